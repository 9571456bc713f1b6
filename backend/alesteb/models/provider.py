from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from alesteb.core.timeutils import utc_now, UTCDateTime


class Provider(SQLModel, table=True):
    __tablename__ = "providers"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    # Amount owed to the provider
    balance: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    payments: List["ProviderPayment"] = Relationship(back_populates="provider")


class ProviderPayment(SQLModel, table=True):
    __tablename__ = "provider_payments"

    id: Optional[int] = Field(default=None, primary_key=True)
    provider_id: int = Field(foreign_key="providers.id", index=True)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    payment_method: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    provider: Optional[Provider] = Relationship(back_populates="payments")
