from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from alesteb.models.expense import ExpenseType


class ExpenseCreate(BaseModel):
    type: ExpenseType
    category: str = Field(min_length=1)
    description: Optional[str] = None
    amount: Decimal = Field(gt=0)
    provider_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_stock_fields(self):
        if (self.product_id is None) != (self.quantity is None):
            raise ValueError("product_id and quantity go together")
        return self


class ExpenseResponse(BaseModel):
    id: int
    type: ExpenseType
    category: str
    description: Optional[str] = None
    amount: Decimal
    provider_id: Optional[int] = None
    product_id: Optional[int] = None
    quantity: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseSummary(BaseModel):
    total_expenses: Decimal
    total_purchases: Decimal
