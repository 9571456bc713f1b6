from fastapi import APIRouter, Depends, UploadFile, File, Form, Query, Request
from sqlmodel import Session
from typing import Optional, List, Set
from decimal import Decimal
import json
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.errors import ValidationError
from alesteb.schemas.product import (
    ProductResponse, ProductDetailResponse, ProductCreate, ProductUpdate,
    ProductCreated, ProductDeleted
)
from alesteb.services import catalog, pricing
from alesteb.services.catalog import ImageUpload
from alesteb.services.image_store import LocalImageStore, get_image_store

router = APIRouter(prefix="/api/products", tags=["products"])

# Sent empty, these are cleared rather than left unchanged
CLEARABLE_FIELDS = {"category_id", "description"}


async def submitted_fields(request: Request) -> Set[str]:
    """Names of the form fields present in the request, empty ones included"""
    form = await request.form()
    return set(form.keys())


def parse_id_list(value: Optional[str], field: str) -> List[int]:
    """Accept a JSON array ("[1, 2]") or a comma separated list ("1,2")"""
    if value is None or not value.strip():
        return []

    value = value.strip()
    try:
        if value.startswith("["):
            items = json.loads(value)
            if not isinstance(items, list):
                raise ValueError(value)
        else:
            items = [part for part in value.split(",") if part.strip()]
        return [int(item) for item in items]
    except (ValueError, TypeError):
        raise ValidationError(f"{field} must be a list of integer ids")


def read_uploads(images: Optional[List[UploadFile]]) -> List[ImageUpload]:
    uploads = []
    for file in images or []:
        uploads.append(ImageUpload(
            filename=file.filename or "",
            content_type=file.content_type,
            content=file.file.read(),
        ))
    return uploads


@router.get("", response_model=List[ProductResponse])
def list_products(
    category: Optional[str] = Query(None, description="Category slug, includes subcategories"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """Catalogue with final prices"""
    return pricing.list_products(db, category_slug=category, search=search, page=page, page_size=page_size)


@router.get("/{product_id}", response_model=ProductDetailResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return pricing.get_product(db, product_id)


@router.post("", response_model=ProductCreated, status_code=201)
def create_product(
    name: str = Form(..., min_length=1, max_length=200),
    price: Decimal = Form(Decimal("0"), ge=0),
    stock: int = Form(0, ge=0),
    category_id: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    """Create a product with its images (the first one becomes main)"""
    data = ProductCreate(
        name=name,
        price=price,
        stock=stock,
        category_id=category_id,
        description=description,
    )
    product_id = catalog.create_product(db, store, data, read_uploads(images))
    return ProductCreated(id=product_id)


@router.put("/{product_id}", response_model=ProductDetailResponse)
def update_product(
    product_id: int,
    name: Optional[str] = Form(None, min_length=1, max_length=200),
    price: Optional[Decimal] = Form(None, ge=0),
    stock: Optional[int] = Form(None, ge=0),
    category_id: Optional[int] = Form(None),
    description: Optional[str] = Form(None),
    deleted_image_ids: Optional[str] = Form(None),
    image_order: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    submitted: Set[str] = Depends(submitted_fields),
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    """
    Update fields and images. ``deleted_image_ids`` and ``image_order`` are
    lists of image ids; new files are appended after the existing images.
    """
    fields = {
        "name": name,
        "price": price,
        "stock": stock,
        "category_id": category_id,
        "description": description,
    }
    # Only the fields actually sent are applied; an empty category or description clears it
    data = ProductUpdate(**{
        key: value for key, value in fields.items()
        if value is not None or (key in CLEARABLE_FIELDS and key in submitted)
    })

    product = catalog.update_product(
        db,
        store,
        product_id,
        data,
        deleted_image_ids=parse_id_list(deleted_image_ids, "deleted_image_ids"),
        files=read_uploads(images),
        image_order=parse_id_list(image_order, "image_order"),
    )
    return pricing.build_product_detail_response(product, pricing.get_active_discounts(db))


@router.delete("/{product_id}", response_model=ProductDeleted)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    store: LocalImageStore = Depends(get_image_store),
    _: TokenClaims = Depends(admin_required)
):
    deleted, failed = catalog.delete_product(db, store, product_id)
    return ProductDeleted(deleted=deleted, cleanup_failed=failed)
