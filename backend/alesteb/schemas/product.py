from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from alesteb.models.discount import DiscountType


class ProductImageResponse(BaseModel):
    id: int
    url: str
    is_main: bool
    sort_order: int

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    """Product card in the catalogue list"""
    id: int
    name: str
    description: Optional[str] = None

    price: Decimal
    final_price: Decimal
    discount_value: Optional[Decimal] = None

    stock: int
    inventory_status: str

    category_id: Optional[int] = None
    category_name: Optional[str] = None
    main_image: Optional[str] = None

    created_at: datetime

    class Config:
        from_attributes = True


class ProductDetailResponse(ProductResponse):
    """Product page with the full image list"""
    purchase_price: Optional[Decimal] = None
    discount_name: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    images: List[ProductImageResponse] = []


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    stock: int = Field(default=0, ge=0)
    category_id: Optional[int] = None
    description: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    description: Optional[str] = None


class ProductCreated(BaseModel):
    id: int


class ProductDeleted(BaseModel):
    deleted: int
    cleanup_failed: List[str] = []
