from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select
from typing import List, Optional
from alesteb.api.deps import get_db, require_permission, TokenClaims
from alesteb.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from alesteb.schemas.purchase_order import (
    PurchaseOrderCreate, PurchaseOrderUpdate, PurchaseOrderReceive, PurchaseOrderResponse
)
from alesteb.services import purchase_orders as orders_service

router = APIRouter(prefix="/api/purchase-orders", tags=["purchase-orders"])

manage_purchases = require_permission("manage_purchases")


@router.post("/", response_model=PurchaseOrderResponse, status_code=201)
def create_order(
    data: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(manage_purchases)
):
    """New draft order"""
    return orders_service.create_order(db, data, claims.id)


@router.get("/", response_model=List[PurchaseOrderResponse])
def list_orders(
    status: Optional[PurchaseOrderStatus] = Query(None),
    provider_id: Optional[int] = Query(None),
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    stmt = select(PurchaseOrder)
    if status is not None:
        stmt = stmt.where(PurchaseOrder.status == status)
    if provider_id is not None:
        stmt = stmt.where(PurchaseOrder.provider_id == provider_id)
    stmt = stmt.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).offset(skip).limit(limit)
    return db.exec(stmt).all()


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    return orders_service.get_order(db, order_id)


@router.put("/{order_id}", response_model=PurchaseOrderResponse)
def update_order(
    order_id: int,
    data: PurchaseOrderUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    return orders_service.update_order(db, order_id, data)


@router.post("/{order_id}/approve", response_model=PurchaseOrderResponse)
def approve_order(
    order_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    return orders_service.approve_order(db, order_id)


@router.post("/{order_id}/receive", response_model=PurchaseOrderResponse)
def receive_order(
    order_id: int,
    data: Optional[PurchaseOrderReceive] = None,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    return orders_service.receive_order(db, order_id, data or PurchaseOrderReceive())


@router.post("/{order_id}/cancel", response_model=PurchaseOrderResponse)
def cancel_order(
    order_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    return orders_service.cancel_order(db, order_id)


@router.delete("/{order_id}")
def delete_order(
    order_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(manage_purchases)
):
    orders_service.delete_order(db, order_id)
    return {"message": "Purchase order deleted"}
