from decimal import Decimal
from typing import List
import logging
from sqlalchemy import delete
from sqlmodel import Session, select, func
from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.core.timeutils import utc_now
from alesteb.db.session import transaction
from alesteb.models.product import Product
from alesteb.models.provider import Provider
from alesteb.models.purchase_order import (
    PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, PurchasePaymentMethod
)
from alesteb.schemas.purchase_order import (
    PurchaseOrderCreate, PurchaseOrderUpdate, PurchaseOrderItemCreate, PurchaseOrderReceive
)
from alesteb.services.inventory import add_stock, adjust_provider_balance

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def generate_order_number(db: Session) -> str:
    """PO-<year>-<sequence>, sequence counted per year"""
    year = utc_now().year
    prefix = f"PO-{year}-"
    count = db.exec(
        select(func.count(PurchaseOrder.id)).where(PurchaseOrder.order_number.startswith(prefix))
    ).one()
    return f"{prefix}{count + 1:06d}"


def resolve_pricing(item: PurchaseOrderItemCreate):
    """Fill in the sale price from the markup or the markup from the sale price"""
    sale_price = item.suggested_sale_price
    markup = item.markup_percentage

    if sale_price is None and markup is not None:
        sale_price = (item.unit_cost * (1 + markup / 100)).quantize(CENT)
    elif markup is None and sale_price is not None and item.unit_cost > 0:
        markup = ((sale_price - item.unit_cost) / item.unit_cost * 100).quantize(CENT)

    return sale_price, markup


def build_items(db: Session, order_id: int, items: List[PurchaseOrderItemCreate]) -> Decimal:
    subtotal = Decimal("0")
    for item in items:
        if not db.get(Product, item.product_id):
            raise ValidationError(f"Product {item.product_id} not found")

        sale_price, markup = resolve_pricing(item)
        item_subtotal = item.unit_cost * item.quantity
        db.add(PurchaseOrderItem(
            purchase_order_id=order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_cost=item.unit_cost,
            subtotal=item_subtotal,
            suggested_sale_price=sale_price,
            markup_percentage=markup,
        ))
        subtotal += item_subtotal
    return subtotal


def delete_items(db: Session, order: PurchaseOrder) -> None:
    """Remove the order's lines in SQL and drop the loaded collection"""
    db.exec(delete(PurchaseOrderItem).where(PurchaseOrderItem.purchase_order_id == order.id))
    db.expire(order, ["items"])


def get_order(db: Session, order_id: int) -> PurchaseOrder:
    order = db.get(PurchaseOrder, order_id)
    if not order:
        raise NotFoundError("Purchase order")
    return order


def create_order(db: Session, data: PurchaseOrderCreate, user_id: int) -> PurchaseOrder:
    provider = db.get(Provider, data.provider_id)
    if not provider or not provider.is_active:
        raise ValidationError("Provider not found or inactive")

    with transaction(db):
        order = PurchaseOrder(
            order_number=generate_order_number(db),
            provider_id=provider.id,
            payment_method=data.payment_method,
            expected_delivery_date=data.expected_delivery_date,
            notes=data.notes,
            tax_amount=data.tax_amount,
            shipping_cost=data.shipping_cost,
            discount_amount=data.discount_amount,
            created_by=user_id,
        )
        db.add(order)
        db.flush()

        order.subtotal = build_items(db, order.id, data.items)
        order.total_cost = order.subtotal + order.tax_amount + order.shipping_cost - order.discount_amount
        db.add(order)

    db.refresh(order)
    logger.info("Purchase order %s created for provider %s", order.order_number, provider.id)
    return order


def update_order(db: Session, order_id: int, data: PurchaseOrderUpdate) -> PurchaseOrder:
    order = get_order(db, order_id)
    if order.status in (PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED):
        raise ValidationError("Received or cancelled orders cannot be edited")

    update_data = data.model_dump(exclude_unset=True, exclude={"items"})

    with transaction(db):
        for key, value in update_data.items():
            setattr(order, key, value)

        if data.items is not None:
            delete_items(db, order)
            order.subtotal = build_items(db, order.id, data.items)

        order.total_cost = order.subtotal + order.tax_amount + order.shipping_cost - order.discount_amount
        order.updated_at = utc_now()
        db.add(order)

    db.refresh(order)
    return order


def approve_order(db: Session, order_id: int) -> PurchaseOrder:
    order = get_order(db, order_id)
    if order.status != PurchaseOrderStatus.DRAFT:
        raise ValidationError("Only draft orders can be approved")

    with transaction(db):
        order.status = PurchaseOrderStatus.PENDING
        order.updated_at = utc_now()
        db.add(order)

    db.refresh(order)
    return order


def receive_order(db: Session, order_id: int, data: PurchaseOrderReceive) -> PurchaseOrder:
    """
    Mark the order received: stock grows by the received quantities, each
    product takes the new unit cost (and suggested sale price, when set), and
    credit orders are added to the provider balance.
    """
    order = get_order(db, order_id)
    if order.status == PurchaseOrderStatus.RECEIVED:
        raise ValidationError("Order already received")
    if order.status == PurchaseOrderStatus.CANCELLED:
        raise ValidationError("Cancelled orders cannot be received")

    received = {r.product_id: r.received_quantity for r in data.received_items}

    with transaction(db):
        for item in order.items:
            quantity = received.get(item.product_id, item.quantity)
            item.received_quantity = quantity
            db.add(item)

            prices = {"purchase_price": item.unit_cost}
            if item.suggested_sale_price is not None:
                prices["price"] = item.suggested_sale_price
            if not add_stock(db, item.product_id, quantity, **prices):
                raise ValidationError(f"Product {item.product_id} not found")

        order.status = PurchaseOrderStatus.RECEIVED
        order.received_date = utc_now().date()
        order.updated_at = utc_now()
        db.add(order)

        if order.payment_method == PurchasePaymentMethod.CREDIT:
            adjust_provider_balance(db, order.provider_id, order.total_cost)

    db.refresh(order)
    logger.info("Purchase order %s received", order.order_number)
    return order


def cancel_order(db: Session, order_id: int) -> PurchaseOrder:
    order = get_order(db, order_id)
    if order.status == PurchaseOrderStatus.RECEIVED:
        raise ValidationError("Received orders cannot be cancelled")
    if order.status == PurchaseOrderStatus.CANCELLED:
        raise ValidationError("Order already cancelled")

    with transaction(db):
        order.status = PurchaseOrderStatus.CANCELLED
        order.updated_at = utc_now()
        db.add(order)

    db.refresh(order)
    return order


def delete_order(db: Session, order_id: int) -> None:
    order = get_order(db, order_id)
    if order.status != PurchaseOrderStatus.DRAFT:
        raise ValidationError("Only draft orders can be deleted")

    with transaction(db):
        delete_items(db, order)
        db.delete(order)
