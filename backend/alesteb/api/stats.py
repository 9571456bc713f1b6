from fastapi import APIRouter, Depends
from sqlmodel import Session, select, func, and_
from datetime import datetime, timedelta, timezone
from typing import List
from pydantic import BaseModel
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.timeutils import start_of_day, utc_now
from alesteb.models.product import Product
from alesteb.models.sale import Sale, SaleItem

router = APIRouter(prefix="/api/stats", tags=["stats"])


class TopProduct(BaseModel):
    name: str
    total_qty: int


class SalesByDay(BaseModel):
    date: str
    revenue: float


class StatsResponse(BaseModel):
    sales_today: int
    sales_month: int
    revenue_today: float
    revenue_month: float
    top_products_qty: List[TopProduct]
    sales_by_day: List[SalesByDay]


def count_and_revenue(db: Session, start: datetime, end: datetime):
    count, revenue = db.exec(
        select(func.count(Sale.id), func.sum(Sale.total)).where(
            and_(Sale.created_at >= start, Sale.created_at < end)
        )
    ).one()
    return count or 0, float(revenue) if revenue else 0.0


@router.get("/", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Dashboard numbers for the admin panel"""
    today = utc_now().date()
    today_start = start_of_day(today)
    tomorrow_start = today_start + timedelta(days=1)

    month_start = datetime(today.year, today.month, 1, tzinfo=timezone.utc)
    if today.month == 12:
        next_month_start = datetime(today.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_month_start = datetime(today.year, today.month + 1, 1, tzinfo=timezone.utc)

    sales_today, revenue_today = count_and_revenue(db, today_start, tomorrow_start)
    sales_month, revenue_month = count_and_revenue(db, month_start, next_month_start)

    # Last 7 days including today, for the chart
    sales_by_day = []
    for i in range(6, -1, -1):
        day_start = today_start - timedelta(days=i)
        _count, revenue = count_and_revenue(db, day_start, day_start + timedelta(days=1))
        sales_by_day.append(SalesByDay(date=day_start.date().isoformat(), revenue=revenue))

    top_products = db.exec(
        select(Product.name, func.sum(SaleItem.quantity).label("total_qty"))
        .select_from(SaleItem)
        .join(Product, Product.id == SaleItem.product_id)
        .group_by(Product.id, Product.name)
        .order_by(func.sum(SaleItem.quantity).desc())
        .limit(10)
    ).all()

    return StatsResponse(
        sales_today=sales_today,
        sales_month=sales_month,
        revenue_today=revenue_today,
        revenue_month=revenue_month,
        top_products_qty=[TopProduct(name=row[0], total_qty=int(row[1])) for row in top_products],
        sales_by_day=sales_by_day,
    )
