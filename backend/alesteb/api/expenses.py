from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select, func
from typing import List, Optional
from decimal import Decimal
import logging
from alesteb.api.deps import get_db, require_permission, TokenClaims
from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.db.session import transaction
from alesteb.models.expense import Expense, ExpenseType
from alesteb.models.provider import Provider
from alesteb.schemas.expense import ExpenseCreate, ExpenseResponse, ExpenseSummary
from alesteb.services.inventory import add_stock

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

logger = logging.getLogger(__name__)

manage_expenses = require_permission("manage_expenses")


@router.get("/", response_model=List[ExpenseResponse])
def list_expenses(
    type: Optional[ExpenseType] = Query(None),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_expenses)
):
    stmt = select(Expense)
    if type is not None:
        stmt = stmt.where(Expense.type == type)
    stmt = stmt.order_by(Expense.created_at.desc(), Expense.id.desc()).offset(skip).limit(limit)
    return db.exec(stmt).all()


@router.post("/", response_model=ExpenseResponse, status_code=201)
def create_expense(
    data: ExpenseCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_expenses)
):
    """Record an expense; a purchase with product and quantity also adds stock"""
    if data.provider_id is not None and not db.get(Provider, data.provider_id):
        raise ValidationError("Provider not found")

    with transaction(db):
        expense = Expense(**data.model_dump())
        db.add(expense)

        if data.type == ExpenseType.PURCHASE and data.product_id is not None:
            if not add_stock(db, data.product_id, data.quantity):
                raise NotFoundError("Product")

    db.refresh(expense)
    logger.info("Expense %s recorded (%s, %s)", expense.id, expense.type.value, expense.amount)
    return expense


@router.get("/summary", response_model=ExpenseSummary)
def expense_summary(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_expenses)
):
    def total_for(expense_type: ExpenseType) -> Decimal:
        result = db.exec(
            select(func.sum(Expense.amount)).where(Expense.type == expense_type)
        ).one()
        return Decimal(result) if result is not None else Decimal("0")

    return ExpenseSummary(
        total_expenses=total_for(ExpenseType.EXPENSE),
        total_purchases=total_for(ExpenseType.PURCHASE),
    )
