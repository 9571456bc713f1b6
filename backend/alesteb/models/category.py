from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from alesteb.core.timeutils import utc_now, UTCDateTime

if TYPE_CHECKING:
    from .product import Product


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = None

    parent_id: Optional[int] = Field(default=None, foreign_key="categories.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    products: List["Product"] = Relationship(back_populates="category")
