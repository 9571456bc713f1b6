from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List
from datetime import datetime
from decimal import Decimal
from alesteb.core.timeutils import as_utc
from alesteb.models.discount import DiscountType, TargetType


class DiscountTargetSchema(BaseModel):
    target_type: TargetType
    target_id: int

    class Config:
        from_attributes = True


class DiscountResponse(BaseModel):
    id: int
    name: str
    type: DiscountType
    value: Decimal
    starts_at: datetime
    ends_at: datetime
    is_active: bool
    created_at: datetime
    targets: List[DiscountTargetSchema] = []

    class Config:
        from_attributes = True


class DiscountCreate(BaseModel):
    name: str = Field(min_length=1)
    type: DiscountType
    value: Decimal = Field(gt=0)
    starts_at: datetime
    ends_at: datetime
    is_active: bool = True
    targets: List[DiscountTargetSchema] = []

    @field_validator("starts_at", "ends_at")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        # Naive input is taken as UTC
        return as_utc(value)

    @model_validator(mode="after")
    def check_window_and_value(self):
        if self.starts_at >= self.ends_at:
            raise ValueError("starts_at must be before ends_at")
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class DiscountUpdate(DiscountCreate):
    pass
