from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from alesteb.core.timeutils import utc_now, UTCDateTime


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchasePaymentMethod(str, Enum):
    CASH = "cash"
    TRANSFER = "transfer"
    CREDIT = "credit"


class PurchaseOrder(SQLModel, table=True):
    __tablename__ = "purchase_orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)

    provider_id: int = Field(foreign_key="providers.id", index=True)
    status: PurchaseOrderStatus = Field(default=PurchaseOrderStatus.DRAFT)
    payment_method: PurchasePaymentMethod = Field(default=PurchasePaymentMethod.CASH)

    expected_delivery_date: Optional[date] = None
    received_date: Optional[date] = None

    # Totals
    subtotal: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    tax_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    shipping_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    total_cost: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)

    notes: Optional[str] = None
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    items: List["PurchaseOrderItem"] = Relationship(back_populates="purchase_order")


class PurchaseOrderItem(SQLModel, table=True):
    __tablename__ = "purchase_order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    purchase_order_id: int = Field(foreign_key="purchase_orders.id", index=True)
    product_id: int = Field(foreign_key="products.id")

    quantity: int
    received_quantity: Optional[int] = None
    unit_cost: Decimal = Field(max_digits=10, decimal_places=2)
    subtotal: Decimal = Field(max_digits=12, decimal_places=2)

    suggested_sale_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    markup_percentage: Optional[Decimal] = Field(default=None, max_digits=7, decimal_places=2)

    # Relationships
    purchase_order: Optional[PurchaseOrder] = Relationship(back_populates="items")
