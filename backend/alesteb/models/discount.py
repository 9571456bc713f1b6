from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum
from alesteb.core.timeutils import utc_now, UTCDateTime


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class TargetType(str, Enum):
    PRODUCT = "product"
    CATEGORY = "category"


class Discount(SQLModel, table=True):
    __tablename__ = "discounts"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str

    type: DiscountType
    # Percent or fixed amount depending on type
    value: Decimal = Field(max_digits=10, decimal_places=2)

    starts_at: datetime = Field(sa_type=UTCDateTime)
    ends_at: datetime = Field(sa_type=UTCDateTime)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    targets: List["DiscountTarget"] = Relationship(back_populates="discount")


class DiscountTarget(SQLModel, table=True):
    __tablename__ = "discount_targets"

    id: Optional[int] = Field(default=None, primary_key=True)
    discount_id: int = Field(foreign_key="discounts.id", index=True)
    target_type: TargetType
    target_id: int

    # Relationships
    discount: Optional[Discount] = Relationship(back_populates="targets")
