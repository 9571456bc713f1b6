from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from alesteb.core.timeutils import utc_now, UTCDateTime


class ExpenseType(str, Enum):
    EXPENSE = "expense"
    PURCHASE = "purchase"


class Expense(SQLModel, table=True):
    __tablename__ = "expenses"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: ExpenseType
    category: str
    description: Optional[str] = None
    amount: Decimal = Field(max_digits=12, decimal_places=2)

    provider_id: Optional[int] = Field(default=None, foreign_key="providers.id", index=True)
    product_id: Optional[int] = Field(default=None, foreign_key="products.id")
    quantity: Optional[int] = None

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
