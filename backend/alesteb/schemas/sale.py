from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from alesteb.models.sale import SaleType, PaymentStatus


class SaleItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    # Defaults to the current discounted price
    unit_price: Optional[Decimal] = Field(default=None, ge=0)


class SaleCreate(BaseModel):
    customer_id: int
    items: List[SaleItemCreate] = Field(min_length=1)
    sale_type: SaleType = SaleType.PHYSICAL


class SaleItemResponse(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    unit_price: Decimal


class SaleResponse(BaseModel):
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    total: Decimal
    sale_type: SaleType
    payment_status: PaymentStatus
    created_at: datetime
    items_count: int = 0
    items: List[SaleItemResponse] = []


class SaleCreated(BaseModel):
    sale_id: int
    order_code: str
    total: Decimal
    payment_status: PaymentStatus


class MonthlyAmount(BaseModel):
    month: str
    amount: float


class CustomerStats(BaseModel):
    total_orders: int
    total_invested: float
    favorite_product: Optional[str] = None
    chart: List[MonthlyAmount] = []
