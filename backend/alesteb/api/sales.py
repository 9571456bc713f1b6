from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select
from typing import List, Optional
from alesteb.api.deps import get_db, get_current_claims, staff_required, TokenClaims
from alesteb.models.sale import Sale, SaleType
from alesteb.schemas.sale import SaleCreate, SaleCreated, SaleResponse, CustomerStats
from alesteb.services import sales as sales_service

router = APIRouter(prefix="/api/sales", tags=["sales"])


@router.post("/", response_model=SaleCreated, status_code=201)
def create_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    sale = sales_service.create_sale(db, data)
    return SaleCreated(
        sale_id=sale.id,
        order_code=sales_service.order_code(sale),
        total=sale.total,
        payment_status=sale.payment_status,
    )


@router.get("/", response_model=List[SaleResponse])
def list_sales(
    customer_id: Optional[int] = Query(None),
    sale_type: Optional[SaleType] = Query(None),
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    stmt = select(Sale)
    if customer_id is not None:
        stmt = stmt.where(Sale.customer_id == customer_id)
    if sale_type is not None:
        stmt = stmt.where(Sale.sale_type == sale_type)
    stmt = stmt.order_by(Sale.created_at.desc(), Sale.id.desc()).offset(skip).limit(limit)

    return [sales_service.build_sale_response(s, db) for s in db.exec(stmt).all()]


@router.get("/my", response_model=List[SaleResponse])
def my_sales(
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(get_current_claims)
):
    """Purchase history of the current user"""
    stmt = (
        select(Sale)
        .where(Sale.customer_id == claims.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    )
    return [sales_service.build_sale_response(s, db, with_items=True) for s in db.exec(stmt).all()]


@router.get("/my/stats", response_model=CustomerStats)
def my_stats(
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(get_current_claims)
):
    return sales_service.customer_stats(db, claims.id)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    sale = sales_service.get_sale(db, sale_id)
    return sales_service.build_sale_response(sale, db, with_items=True)
