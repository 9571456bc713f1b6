from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum
from alesteb.core.timeutils import utc_now, UTCDateTime


class SaleType(str, Enum):
    PHYSICAL = "physical"
    ONLINE = "online"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"


class Sale(SQLModel, table=True):
    __tablename__ = "sales"

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="users.id", index=True)

    total: Decimal = Field(max_digits=12, decimal_places=2)
    sale_type: SaleType = Field(default=SaleType.PHYSICAL)
    payment_status: PaymentStatus = Field(default=PaymentStatus.PAID)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    items: List["SaleItem"] = Relationship(back_populates="sale")


class SaleItem(SQLModel, table=True):
    __tablename__ = "sale_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    sale_id: int = Field(foreign_key="sales.id", index=True)
    product_id: int = Field(foreign_key="products.id")

    quantity: int
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)  # Price at the moment of sale
    # Purchase price of the product at the moment of sale, for cost of goods sold
    unit_cost: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    # Relationships
    sale: Optional[Sale] = Relationship(back_populates="items")
