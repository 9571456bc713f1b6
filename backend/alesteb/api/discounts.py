from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.db.session import transaction
from alesteb.models.category import Category
from alesteb.models.discount import Discount, DiscountTarget, TargetType
from alesteb.models.product import Product
from alesteb.schemas.discount import DiscountResponse, DiscountCreate, DiscountUpdate, DiscountTargetSchema
from alesteb.services.pricing import get_active_discounts

router = APIRouter(prefix="/api/discounts", tags=["discounts"])


def check_targets(db: Session, targets: List[DiscountTargetSchema]) -> None:
    for target in targets:
        model = Product if target.target_type == TargetType.PRODUCT else Category
        if not db.get(model, target.target_id):
            raise ValidationError(f"{target.target_type.value} {target.target_id} not found")


def add_targets(db: Session, discount_id: int, targets: List[DiscountTargetSchema]) -> None:
    for target in targets:
        db.add(DiscountTarget(
            discount_id=discount_id,
            target_type=target.target_type,
            target_id=target.target_id,
        ))


# === Public ===

@router.get("/active", response_model=List[DiscountResponse])
def list_active_discounts(db: Session = Depends(get_db)):
    """Discounts running right now"""
    return get_active_discounts(db)


# === Admin CRUD ===

@router.get("/", response_model=List[DiscountResponse])
def list_discounts(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    stmt = select(Discount).offset(skip).limit(limit).order_by(Discount.id.desc())
    return db.exec(stmt).all()


@router.get("/{discount_id}", response_model=DiscountResponse)
def get_discount(
    discount_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    discount = db.get(Discount, discount_id)
    if not discount:
        raise NotFoundError("Discount")
    return discount


@router.post("/", response_model=DiscountResponse, status_code=201)
def create_discount(
    data: DiscountCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    check_targets(db, data.targets)

    with transaction(db):
        discount = Discount(**data.model_dump(exclude={"targets"}))
        db.add(discount)
        db.flush()
        add_targets(db, discount.id, data.targets)

    db.refresh(discount)
    return discount


@router.put("/{discount_id}", response_model=DiscountResponse)
def update_discount(
    discount_id: int,
    data: DiscountUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Replace the discount and its targets"""
    discount = db.get(Discount, discount_id)
    if not discount:
        raise NotFoundError("Discount")

    check_targets(db, data.targets)

    with transaction(db):
        for key, value in data.model_dump(exclude={"targets"}).items():
            setattr(discount, key, value)
        db.add(discount)

        for target in list(discount.targets):
            db.delete(target)
        db.flush()
        add_targets(db, discount.id, data.targets)

    db.refresh(discount)
    return discount


@router.delete("/{discount_id}")
def delete_discount(
    discount_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    discount = db.get(Discount, discount_id)
    if not discount:
        raise NotFoundError("Discount")

    with transaction(db):
        for target in list(discount.targets):
            db.delete(target)
        db.flush()
        db.delete(discount)
    return {"message": "Discount deleted"}
