from fastapi import APIRouter, Depends
from sqlmodel import Session, select, func
from typing import List, Optional
import re
import unicodedata
import uuid
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.errors import NotFoundError, ValidationError, ConflictError
from alesteb.db.session import transaction
from alesteb.models.category import Category
from alesteb.models.product import Product
from alesteb.schemas.category import (
    CategoryResponse, CategoryTreeNode, CategoryPath, CategoryCreate, CategoryUpdate
)

router = APIRouter(prefix="/api/categories", tags=["categories"])


def slugify(value: str) -> str:
    normalized = " ".join(value.split()).lower()
    ascii_name = unicodedata.normalize("NFKD", normalized).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")
    return slug or uuid.uuid4().hex


def is_descendant(db: Session, ancestor_id: int, category_id: Optional[int]) -> bool:
    """True if category_id sits somewhere below ancestor_id"""
    seen = set()
    while category_id is not None and category_id not in seen:
        seen.add(category_id)
        category = db.get(Category, category_id)
        if not category:
            return False
        if category.parent_id == ancestor_id:
            return True
        category_id = category.parent_id
    return False


def ensure_unique_slug(db: Session, slug: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Category).where(Category.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if db.exec(stmt).first():
        raise ConflictError("Slug already exists")


@router.get("/", response_model=List[CategoryTreeNode])
def category_tree(db: Session = Depends(get_db)):
    """Categories as a tree of root nodes"""
    categories = db.exec(select(Category).order_by(Category.name)).all()

    nodes = {c.id: CategoryTreeNode.model_validate(c) for c in categories}
    roots = []
    for c in categories:
        node = nodes[c.id]
        parent = nodes.get(c.parent_id) if c.parent_id else None
        if parent:
            parent.children.append(node)
        else:
            roots.append(node)
    return roots


@router.get("/flat", response_model=List[CategoryPath])
def category_paths(db: Session = Depends(get_db)):
    """Every category with its full path, e.g. "Women > Shoes" """
    categories = {c.id: c for c in db.exec(select(Category)).all()}

    result = []
    for c in categories.values():
        names = [c.name]
        parent_id = c.parent_id
        seen = {c.id}
        while parent_id and parent_id in categories and parent_id not in seen:
            seen.add(parent_id)
            parent = categories[parent_id]
            names.insert(0, parent.name)
            parent_id = parent.parent_id

        result.append(CategoryPath(
            id=c.id,
            name=c.name,
            parent_id=c.parent_id,
            full_path=" > ".join(names),
            level=len(names) - 1,
        ))

    result.sort(key=lambda p: p.full_path)
    return result


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, db: Session = Depends(get_db)):
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category")
    return category


@router.post("/", response_model=CategoryResponse, status_code=201)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    slug = data.slug or slugify(data.name)
    ensure_unique_slug(db, slug)

    if data.parent_id and not db.get(Category, data.parent_id):
        raise ValidationError("Parent category not found")

    with transaction(db):
        category = Category(**data.model_dump(exclude={"slug"}), slug=slug)
        db.add(category)

    db.refresh(category)
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category")

    update_data = data.model_dump(exclude_unset=True)

    if "parent_id" in update_data and update_data["parent_id"]:
        parent_id = update_data["parent_id"]
        if parent_id == category_id:
            raise ValidationError("Category cannot be its own parent")
        if not db.get(Category, parent_id):
            raise ValidationError("Parent category not found")
        if is_descendant(db, category_id, parent_id):
            raise ValidationError("Cannot set a descendant category as parent")

    if update_data.get("slug"):
        ensure_unique_slug(db, update_data["slug"], exclude_id=category_id)
    else:
        update_data.pop("slug", None)

    with transaction(db):
        for key, value in update_data.items():
            setattr(category, key, value)
        db.add(category)

    db.refresh(category)
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category")

    children = db.exec(select(func.count(Category.id)).where(Category.parent_id == category_id)).one()
    if children:
        raise ValidationError("Category has subcategories")

    products = db.exec(select(func.count(Product.id)).where(Product.category_id == category_id)).one()
    if products:
        raise ValidationError("Category has products")

    with transaction(db):
        db.delete(category)
    return {"message": "Category deleted"}
