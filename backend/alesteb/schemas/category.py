from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CategoryTreeNode(CategoryResponse):
    children: List["CategoryTreeNode"] = []


class CategoryPath(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    full_path: str
    level: int


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None


CategoryTreeNode.model_rebuild()
