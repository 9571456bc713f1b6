from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal
from alesteb.core.timeutils import utc_now, UTCDateTime

if TYPE_CHECKING:
    from .category import Category


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None

    price: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    stock: int = Field(default=0)
    # Last unit cost, set when a purchase order is received
    purchase_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    category: Optional["Category"] = Relationship(back_populates="products")
    images: List["ProductImage"] = Relationship(back_populates="product")


class ProductImage(SQLModel, table=True):
    __tablename__ = "product_images"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    url: str
    storage_key: str
    is_main: bool = Field(default=False)
    sort_order: int = Field(default=0)

    # Relationships
    product: Optional[Product] = Relationship(back_populates="images")
