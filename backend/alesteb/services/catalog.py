"""
Product catalog write path.

Every product owns an ordered set of images with exactly one main image,
and keeps at least one image after create and update. The rules are
checked before any write; the database work runs in one scoped transaction.

Uploads to the image store happen before the transaction starts, so no
transaction is held open while images are processed and written. If the
database work then fails, the freshly uploaded objects are deleted again
(compensation). Objects that cannot be deleted are logged and left for
out-of-band cleanup.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.core.timeutils import utc_now
from alesteb.db.session import transaction
from alesteb.models.category import Category
from alesteb.models.product import Product, ProductImage
from alesteb.schemas.product import ProductCreate, ProductUpdate
from alesteb.services.image_store import LocalImageStore, StoredImage

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_IMAGES_PER_PRODUCT = 10
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}


@dataclass
class ImageUpload:
    filename: str
    content_type: Optional[str]
    content: bytes


def validate_uploads(files: List[ImageUpload]) -> None:
    if len(files) > MAX_IMAGES_PER_PRODUCT:
        raise ValidationError(f"At most {MAX_IMAGES_PER_PRODUCT} images per request")

    for f in files:
        if f.content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(f"{f.filename}: unsupported image type {f.content_type}")
        if not f.content:
            raise ValidationError(f"{f.filename}: empty file")
        if len(f.content) > MAX_IMAGE_BYTES:
            raise ValidationError(f"{f.filename}: image larger than 5 MB")


def discard_objects(store: LocalImageStore, keys: List[str]) -> List[str]:
    """Delete stored objects, returning the keys that could not be deleted"""
    failed = []
    for key in keys:
        try:
            store.delete(key)
        except Exception as e:
            logger.error("Could not delete stored image %s, left for cleanup: %s", key, e)
            failed.append(key)
    return failed


def upload_all(store: LocalImageStore, files: List[ImageUpload]) -> List[StoredImage]:
    """Upload every file or none: a failure deletes what was already stored"""
    uploaded: List[StoredImage] = []
    try:
        for f in files:
            uploaded.append(store.upload(f.content, f.filename))
    except Exception:
        discard_objects(store, [s.key for s in uploaded])
        raise
    return uploaded


def check_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is not None and not db.get(Category, category_id):
        raise ValidationError("Category not found")


def repair_main_image(db: Session, product_id: int) -> None:
    """Clear every main flag, then mark the image with the lowest id"""
    images = db.exec(
        select(ProductImage)
        .where(ProductImage.product_id == product_id)
        .order_by(ProductImage.id)
    ).all()

    for img in images:
        img.is_main = False
        db.add(img)
    if images:
        images[0].is_main = True
    db.flush()


def apply_image_order(db: Session, product_id: int, image_order: List[int]) -> None:
    images = {
        img.id: img
        for img in db.exec(select(ProductImage).where(ProductImage.product_id == product_id)).all()
    }
    for position, image_id in enumerate(image_order):
        img = images.get(image_id)
        if img is None:
            continue
        img.sort_order = position
        db.add(img)


def create_product(
    db: Session,
    store: LocalImageStore,
    data: ProductCreate,
    files: List[ImageUpload],
) -> int:
    validate_uploads(files)
    if not files:
        raise ValidationError("A product needs at least one image")
    check_category(db, data.category_id)

    uploaded = upload_all(store, files)
    try:
        with transaction(db):
            product = Product(**data.model_dump())
            db.add(product)
            db.flush()
            product_id = product.id

            for index, stored in enumerate(uploaded):
                db.add(ProductImage(
                    product_id=product_id,
                    url=stored.url,
                    storage_key=stored.key,
                    is_main=index == 0,
                    sort_order=index,
                ))
    except Exception:
        discard_objects(store, [s.key for s in uploaded])
        raise

    logger.info("Created product %s with %d images", product_id, len(uploaded))
    return product_id


def update_product(
    db: Session,
    store: LocalImageStore,
    product_id: int,
    data: ProductUpdate,
    deleted_image_ids: List[int],
    files: List[ImageUpload],
    image_order: Optional[List[int]] = None,
) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product")

    validate_uploads(files)

    current = db.exec(
        select(ProductImage)
        .where(ProductImage.product_id == product_id)
        .order_by(ProductImage.id)
    ).all()
    deleted_ids = set(deleted_image_ids)
    to_delete = [img for img in current if img.id in deleted_ids]
    remaining = [img for img in current if img.id not in deleted_ids]

    if len(remaining) + len(files) < 1:
        raise ValidationError("A product must keep at least one image")

    update_data = data.model_dump(exclude_unset=True)
    if "category_id" in update_data:
        check_category(db, update_data["category_id"])

    uploaded = upload_all(store, files)
    try:
        with transaction(db):
            for key, value in update_data.items():
                setattr(product, key, value)
            product.updated_at = utc_now()
            db.add(product)

            # Stored object first: a failure here keeps the row and its object
            for img in to_delete:
                store.delete(img.storage_key)
                db.delete(img)

            has_main = any(img.is_main for img in remaining)
            next_order = max((img.sort_order for img in remaining), default=-1) + 1
            for index, stored in enumerate(uploaded):
                db.add(ProductImage(
                    product_id=product_id,
                    url=stored.url,
                    storage_key=stored.key,
                    is_main=not has_main and index == 0,
                    sort_order=next_order + index,
                ))
            db.flush()

            if image_order:
                apply_image_order(db, product_id, image_order)

            repair_main_image(db, product_id)
    except Exception:
        discard_objects(store, [s.key for s in uploaded])
        raise

    db.refresh(product)
    logger.info(
        "Updated product %s: %d images removed, %d added",
        product_id, len(to_delete), len(uploaded),
    )
    return product


def delete_product(db: Session, store: LocalImageStore, product_id: int) -> Tuple[int, List[str]]:
    """
    Delete the product and its image rows in one transaction, then the
    stored objects. Returns (deleted row count, keys that failed cleanup).
    """
    product = db.get(Product, product_id)
    if not product:
        return 0, []

    images = db.exec(select(ProductImage).where(ProductImage.product_id == product_id)).all()
    keys = [img.storage_key for img in images]

    with transaction(db):
        for img in images:
            db.delete(img)
        db.flush()
        db.delete(product)

    failed = discard_objects(store, keys)
    if failed:
        logger.error("Product %s deleted, %d stored images left behind: %s", product_id, len(failed), failed)
    else:
        logger.info("Deleted product %s and %d images", product_id, len(keys))
    return 1, failed
