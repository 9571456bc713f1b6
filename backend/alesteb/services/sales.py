from decimal import Decimal
import logging
from sqlmodel import Session, select, func, col
from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.core.timeutils import utc_now
from alesteb.db.session import transaction
from alesteb.models.product import Product
from alesteb.models.sale import Sale, SaleItem, SaleType, PaymentStatus
from alesteb.models.user import User
from alesteb.schemas.sale import SaleCreate
from alesteb.services.inventory import add_customer_spend, take_stock
from alesteb.services.pricing import current_unit_price

logger = logging.getLogger(__name__)


def order_code(sale: Sale) -> str:
    """Human-facing sale code"""
    return f"AL-{sale.id}-{sale.created_at.year}"


def create_sale(db: Session, data: SaleCreate) -> Sale:
    """
    Post a sale: header, items, stock decrement and the customer's running
    total, all in one transaction. Any item without enough stock aborts it.

    Stock is decremented with a conditional UPDATE, so two requests selling
    the last unit cannot both succeed.
    """
    customer = db.get(User, data.customer_id)
    if not customer:
        raise ValidationError("Customer not found")

    payment_status = PaymentStatus.PENDING if data.sale_type == SaleType.ONLINE else PaymentStatus.PAID

    with transaction(db):
        sale = Sale(
            customer_id=customer.id,
            total=Decimal("0"),
            sale_type=data.sale_type,
            payment_status=payment_status,
        )
        db.add(sale)
        db.flush()

        total = Decimal("0")
        for item_data in data.items:
            product = db.get(Product, item_data.product_id)
            if not product:
                raise ValidationError(f"Product {item_data.product_id} not found")

            unit_price = item_data.unit_price
            if unit_price is None:
                unit_price = current_unit_price(db, product)

            if not take_stock(db, product.id, item_data.quantity):
                raise ValidationError(f"Insufficient stock for product {product.id}")

            db.add(SaleItem(
                sale_id=sale.id,
                product_id=product.id,
                quantity=item_data.quantity,
                unit_price=unit_price,
                unit_cost=product.purchase_price,
            ))
            total += unit_price * item_data.quantity

        sale.total = total
        db.add(sale)

        add_customer_spend(db, customer.id, total)

    db.refresh(sale)
    logger.info("Sale %s posted for customer %s, total %s", sale.id, customer.id, total)
    return sale


def build_sale_response(sale: Sale, db: Session, with_items: bool = False) -> dict:
    customer = db.get(User, sale.customer_id)
    result = {
        "id": sale.id,
        "customer_id": sale.customer_id,
        "customer_name": customer.name if customer else None,
        "total": sale.total,
        "sale_type": sale.sale_type,
        "payment_status": sale.payment_status,
        "created_at": sale.created_at,
        "items_count": len(sale.items),
        "items": [],
    }
    if with_items:
        items = []
        for item in sale.items:
            product = db.get(Product, item.product_id)
            items.append({
                "product_id": item.product_id,
                "product_name": product.name if product else None,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            })
        result["items"] = items
    return result


def get_sale(db: Session, sale_id: int) -> Sale:
    sale = db.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale")
    return sale


def customer_stats(db: Session, customer_id: int, months: int = 6) -> dict:
    """Order count, amount spent, favourite product and monthly totals"""
    total_orders, total_invested = db.exec(
        select(func.count(Sale.id), func.coalesce(func.sum(Sale.total), 0))
        .where(Sale.customer_id == customer_id)
    ).one()

    favorite = db.exec(
        select(Product.name)
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(Sale.customer_id == customer_id)
        .group_by(Product.id, Product.name)
        .order_by(func.sum(SaleItem.quantity).desc())
        .limit(1)
    ).first()

    # Month buckets computed in Python to stay portable across databases
    sales = db.exec(
        select(Sale).where(Sale.customer_id == customer_id).order_by(col(Sale.created_at))
    ).all()
    now = utc_now()
    buckets = {}
    for sale in sales:
        age = (now.year - sale.created_at.year) * 12 + now.month - sale.created_at.month
        if age >= months:
            continue
        label = sale.created_at.strftime("%Y-%m")
        buckets[label] = buckets.get(label, 0.0) + float(sale.total)

    return {
        "total_orders": total_orders,
        "total_invested": float(total_invested or 0),
        "favorite_product": favorite,
        "chart": [{"month": month, "amount": amount} for month, amount in buckets.items()],
    }
