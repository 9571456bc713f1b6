from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from alesteb.core.timeutils import utc_now, utc_today, UTCDateTime
from alesteb.models.purchase_order import PurchasePaymentMethod


class InvoiceType(str, Enum):
    SERVICE = "service"
    PURCHASE = "purchase"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class Invoice(SQLModel, table=True):
    __tablename__ = "invoices"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_type: InvoiceType
    provider_id: Optional[int] = Field(default=None, foreign_key="providers.id", index=True)
    invoice_number: Optional[str] = None
    invoice_date: date = Field(default_factory=utc_today)
    due_date: Optional[date] = None
    description: str

    total_amount: Decimal = Field(max_digits=12, decimal_places=2)
    # Still owed; only credit invoices start with something pending
    pending_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    payment_status: InvoiceStatus = Field(default=InvoiceStatus.PAID)
    payment_method: PurchasePaymentMethod = Field(default=PurchasePaymentMethod.CASH)

    notes: Optional[str] = None
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    items: List["InvoiceItem"] = Relationship(back_populates="invoice")
    payments: List["InvoicePayment"] = Relationship(back_populates="invoice")


class InvoiceItem(SQLModel, table=True):
    __tablename__ = "invoice_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoices.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    quantity: int
    unit_price: Decimal = Field(max_digits=10, decimal_places=2)
    subtotal: Decimal = Field(max_digits=12, decimal_places=2)

    # Relationships
    invoice: Optional[Invoice] = Relationship(back_populates="items")


class InvoicePayment(SQLModel, table=True):
    __tablename__ = "invoice_payments"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(foreign_key="invoices.id", index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    payment_method: PurchasePaymentMethod = Field(default=PurchasePaymentMethod.CASH)
    payment_date: date = Field(default_factory=utc_today)
    notes: Optional[str] = None
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    invoice: Optional[Invoice] = Relationship(back_populates="payments")
