"""
Counter updates done in SQL.

Stock and provider balances are changed with ``UPDATE ... SET x = x + n``
so concurrent requests add up instead of overwriting each other. In-memory
instances are not synchronised; they are expired when the transaction
commits.
"""

from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session, func

from alesteb.core.timeutils import utc_now
from alesteb.models.product import Product
from alesteb.models.provider import Provider
from alesteb.models.user import User


def _rowcount(db: Session, stmt) -> int:
    return db.exec(stmt.execution_options(synchronize_session=False)).rowcount


def take_stock(db: Session, product_id: int, quantity: int) -> bool:
    """Remove quantity units; False when the product is missing or has too few"""
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, updated_at=utc_now())
    )
    return _rowcount(db, stmt) == 1


def add_stock(db: Session, product_id: int, quantity: int, **values) -> bool:
    """Add quantity units, setting any extra columns given; False when the product is missing"""
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity, updated_at=utc_now(), **values)
    )
    return _rowcount(db, stmt) == 1


def adjust_provider_balance(db: Session, provider_id: int, delta: Decimal) -> bool:
    stmt = (
        update(Provider)
        .where(Provider.id == provider_id)
        .values(balance=Provider.balance + delta)
    )
    return _rowcount(db, stmt) == 1


def add_customer_spend(db: Session, user_id: int, amount: Decimal) -> bool:
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(total_spent=func.coalesce(User.total_spent, 0) + amount)
    )
    return _rowcount(db, stmt) == 1
