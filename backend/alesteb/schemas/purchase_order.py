from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from alesteb.models.purchase_order import PurchaseOrderStatus, PurchasePaymentMethod


class PurchaseOrderItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)
    suggested_sale_price: Optional[Decimal] = Field(default=None, ge=0)
    markup_percentage: Optional[Decimal] = None


class PurchaseOrderCreate(BaseModel):
    provider_id: int
    payment_method: PurchasePaymentMethod = PurchasePaymentMethod.CASH
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(min_length=1)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0)
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)


class PurchaseOrderUpdate(BaseModel):
    payment_method: Optional[PurchasePaymentMethod] = None
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None
    items: Optional[List[PurchaseOrderItemCreate]] = Field(default=None, min_length=1)
    tax_amount: Optional[Decimal] = Field(default=None, ge=0)
    shipping_cost: Optional[Decimal] = Field(default=None, ge=0)
    discount_amount: Optional[Decimal] = Field(default=None, ge=0)


class ReceivedItem(BaseModel):
    product_id: int
    received_quantity: int = Field(ge=0)


class PurchaseOrderReceive(BaseModel):
    # Omitted items are received in full
    received_items: List[ReceivedItem] = []


class PurchaseOrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    received_quantity: Optional[int] = None
    unit_cost: Decimal
    subtotal: Decimal
    suggested_sale_price: Optional[Decimal] = None
    markup_percentage: Optional[Decimal] = None

    class Config:
        from_attributes = True


class PurchaseOrderResponse(BaseModel):
    id: int
    order_number: str
    provider_id: int
    status: PurchaseOrderStatus
    payment_method: PurchasePaymentMethod
    expected_delivery_date: Optional[date] = None
    received_date: Optional[date] = None
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total_cost: Decimal
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    items: List[PurchaseOrderItemResponse] = []

    class Config:
        from_attributes = True
