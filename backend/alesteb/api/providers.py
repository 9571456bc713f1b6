from fastapi import APIRouter, Depends
from sqlmodel import Session, select, func
from typing import List
import logging
from alesteb.api.deps import get_db, require_permission, TokenClaims
from alesteb.core.errors import NotFoundError
from alesteb.db.session import transaction
from alesteb.models.expense import Expense, ExpenseType
from alesteb.models.product import Product
from alesteb.models.provider import Provider, ProviderPayment
from alesteb.models.purchase_order import PurchaseOrder
from alesteb.schemas.provider import (
    ProviderResponse, ProviderCreate, ProviderUpdate, PaymentCreate, PaymentResponse
)
from alesteb.services.inventory import adjust_provider_balance

router = APIRouter(prefix="/api/providers", tags=["providers"])

logger = logging.getLogger(__name__)

manage_providers = require_permission("manage_providers")


def get_provider_or_404(db: Session, provider_id: int) -> Provider:
    provider = db.get(Provider, provider_id)
    if not provider:
        raise NotFoundError("Provider")
    return provider


@router.get("/", response_model=List[ProviderResponse])
def list_providers(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    return db.exec(select(Provider).order_by(Provider.name)).all()


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    return get_provider_or_404(db, provider_id)


@router.post("/", response_model=ProviderResponse, status_code=201)
def create_provider(
    data: ProviderCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    with transaction(db):
        provider = Provider(**data.model_dump())
        db.add(provider)

    db.refresh(provider)
    return provider


@router.put("/{provider_id}", response_model=ProviderResponse)
def update_provider(
    provider_id: int,
    data: ProviderUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    provider = get_provider_or_404(db, provider_id)

    with transaction(db):
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(provider, key, value)
        db.add(provider)

    db.refresh(provider)
    return provider


@router.delete("/{provider_id}")
def delete_provider(
    provider_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    """Delete a provider without history; providers with history are deactivated instead"""
    provider = get_provider_or_404(db, provider_id)

    has_orders = db.exec(
        select(func.count(PurchaseOrder.id)).where(PurchaseOrder.provider_id == provider_id)
    ).one()
    has_expenses = db.exec(
        select(func.count(Expense.id)).where(Expense.provider_id == provider_id)
    ).one()
    has_payments = db.exec(
        select(func.count(ProviderPayment.id)).where(ProviderPayment.provider_id == provider_id)
    ).one()

    with transaction(db):
        if has_orders or has_expenses or has_payments:
            provider.is_active = False
            db.add(provider)
            message = "Provider deactivated"
        else:
            db.delete(provider)
            message = "Provider deleted"

    return {"message": message}


# === Payments ===

@router.post("/{provider_id}/payments", response_model=PaymentResponse, status_code=201)
def register_payment(
    provider_id: int,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    """Record a payment and lower the amount owed (a negative balance is a prepayment)"""
    provider = get_provider_or_404(db, provider_id)

    with transaction(db):
        payment = ProviderPayment(
            provider_id=provider.id,
            amount=data.amount,
            payment_method=data.payment_method,
        )
        db.add(payment)

        adjust_provider_balance(db, provider.id, -data.amount)

    db.refresh(payment)
    logger.info("Payment of %s registered for provider %s", data.amount, provider_id)
    return payment


@router.get("/{provider_id}/payments", response_model=List[PaymentResponse])
def list_payments(
    provider_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    get_provider_or_404(db, provider_id)
    return db.exec(
        select(ProviderPayment)
        .where(ProviderPayment.provider_id == provider_id)
        .order_by(ProviderPayment.created_at.desc(), ProviderPayment.id.desc())
    ).all()


# === History ===

@router.get("/{provider_id}/purchases")
def purchase_history(
    provider_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    """Purchases recorded against the provider"""
    get_provider_or_404(db, provider_id)

    rows = db.exec(
        select(Expense, Product.name)
        .join(Product, Product.id == Expense.product_id, isouter=True)
        .where(Expense.provider_id == provider_id)
        .order_by(Expense.created_at.desc(), Expense.id.desc())
    ).all()

    return [
        {
            "id": expense.id,
            "type": expense.type,
            "category": expense.category,
            "description": expense.description,
            "amount": expense.amount,
            "product_id": expense.product_id,
            "product_name": product_name,
            "quantity": expense.quantity,
            "created_at": expense.created_at,
        }
        for expense, product_name in rows
    ]


@router.get("/{provider_id}/products/{product_id}/prices")
def price_history(
    provider_id: int,
    product_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_providers)
):
    """Last five unit prices paid to the provider for a product"""
    rows = db.exec(
        select(Expense)
        .where(
            Expense.provider_id == provider_id,
            Expense.product_id == product_id,
            Expense.type == ExpenseType.PURCHASE,
        )
        .order_by(Expense.created_at.desc(), Expense.id.desc())
        .limit(5)
    ).all()

    return [
        {
            "amount": e.amount,
            "quantity": e.quantity,
            "unit_price": (e.amount / e.quantity) if e.quantity else None,
            "created_at": e.created_at,
        }
        for e in rows
    ]
