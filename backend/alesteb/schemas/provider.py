from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ProviderResponse(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    balance: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ProviderCreate(BaseModel):
    name: str = Field(min_length=1)
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class ProviderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_method: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    provider_id: int
    amount: Decimal
    payment_method: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
