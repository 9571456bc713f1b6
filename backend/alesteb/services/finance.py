"""
Accounting reports and supplier invoices.

Reports aggregate sales, expenses, purchase orders, provider payments and
invoices. Amounts are returned as floats for the dashboard charts, the
same way the stats endpoint does.

Cash movements (money in from paid sales, money out for expenses,
non-credit invoices, invoice payments, provider payments and received
non-credit purchase orders) feed both the monthly cash flow and the
general ledger.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy import case, update
from sqlmodel import Session, select, func, col

from alesteb.core.errors import NotFoundError, ValidationError
from alesteb.core.timeutils import as_utc, start_of_day, utc_now, utc_today
from alesteb.db.session import transaction
from alesteb.models.expense import Expense, ExpenseType
from alesteb.models.invoice import Invoice, InvoiceItem, InvoicePayment, InvoiceStatus, InvoiceType
from alesteb.models.product import Product
from alesteb.models.provider import Provider, ProviderPayment
from alesteb.models.purchase_order import PurchaseOrder, PurchaseOrderStatus, PurchasePaymentMethod
from alesteb.models.sale import Sale, SaleItem, PaymentStatus
from alesteb.models.user import User
from alesteb.schemas.finance import InvoiceCreate, InvoicePaymentCreate
from alesteb.services.inventory import add_stock, adjust_provider_balance
from alesteb.services.sales import order_code

logger = logging.getLogger(__name__)

CASHFLOW_MONTHS = 6


@dataclass
class Period:
    """Inclusive date range; either end may be open"""
    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self):
        if self.start and self.end and self.start > self.end:
            raise ValidationError("start_date must not be after end_date")

    def on_timestamp(self, stmt, column):
        if self.start:
            stmt = stmt.where(column >= start_of_day(self.start))
        if self.end:
            stmt = stmt.where(column < start_of_day(self.end + timedelta(days=1)))
        return stmt

    def on_date(self, stmt, column):
        if self.start:
            stmt = stmt.where(column >= self.start)
        if self.end:
            stmt = stmt.where(column <= self.end)
        return stmt

    def contains(self, when: datetime) -> bool:
        day = as_utc(when).date()
        return (not self.start or day >= self.start) and (not self.end or day <= self.end)


@dataclass
class Movement:
    when: datetime
    kind: str
    reference: str
    description: str
    # Positive is money in
    amount: Decimal


def money(value) -> float:
    return float(value or 0)


def pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


# === Building blocks ===

def sales_figures(db: Session, period: Period) -> Tuple[float, float, int, int]:
    """Revenue, cost of goods sold, sale count and distinct customers of paid sales"""
    count, customers, revenue = db.exec(period.on_timestamp(
        select(
            func.count(Sale.id),
            func.count(func.distinct(Sale.customer_id)),
            func.coalesce(func.sum(Sale.total), 0),
        ).where(Sale.payment_status == PaymentStatus.PAID),
        Sale.created_at,
    )).one()

    # Items sold before costs were tracked have no unit cost and are left out
    cogs = db.exec(period.on_timestamp(
        select(func.coalesce(func.sum(SaleItem.unit_cost * SaleItem.quantity), 0))
        .select_from(SaleItem)
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(Sale.payment_status == PaymentStatus.PAID),
        Sale.created_at,
    )).one()

    return money(revenue), money(cogs), count or 0, customers or 0


def expense_total(db: Session, period: Period, expense_type: ExpenseType) -> float:
    total = db.exec(period.on_timestamp(
        select(func.coalesce(func.sum(Expense.amount), 0)).where(Expense.type == expense_type),
        Expense.created_at,
    )).one()
    return money(total)


def invoice_total(db: Session, period: Period, invoice_type: InvoiceType) -> float:
    total = db.exec(period.on_date(
        select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(Invoice.invoice_type == invoice_type),
        Invoice.invoice_date,
    )).one()
    return money(total)


def cash_movements(db: Session, since: Optional[date] = None) -> List[Movement]:
    """Every cash movement from the given day on, oldest first"""
    period = Period(start=since)
    movements = []

    for sale in db.exec(period.on_timestamp(
        select(Sale).where(Sale.payment_status == PaymentStatus.PAID), Sale.created_at
    )):
        movements.append(Movement(sale.created_at, "sale", order_code(sale), f"{sale.sale_type.value} sale", sale.total))

    for expense in db.exec(period.on_timestamp(select(Expense), Expense.created_at)):
        description = expense.category if not expense.description else f"{expense.category}: {expense.description}"
        movements.append(Movement(expense.created_at, expense.type.value, f"EXP-{expense.id}", description, -expense.amount))

    # Credit invoices move cash only through their payments
    for invoice in db.exec(period.on_date(
        select(Invoice).where(Invoice.payment_method != PurchasePaymentMethod.CREDIT), Invoice.invoice_date
    )):
        movements.append(Movement(
            start_of_day(invoice.invoice_date), "invoice", invoice_reference(invoice),
            invoice.description, -invoice.total_amount,
        ))

    for payment, invoice in db.exec(period.on_date(
        select(InvoicePayment, Invoice).join(Invoice, Invoice.id == InvoicePayment.invoice_id),
        InvoicePayment.payment_date,
    )):
        movements.append(Movement(
            start_of_day(payment.payment_date), "invoice_payment", invoice_reference(invoice),
            f"Payment of {invoice_reference(invoice)}", -payment.amount,
        ))

    for payment, provider in db.exec(period.on_timestamp(
        select(ProviderPayment, Provider).join(Provider, Provider.id == ProviderPayment.provider_id),
        ProviderPayment.created_at,
    )):
        movements.append(Movement(
            payment.created_at, "provider_payment", f"PRV-{provider.id}",
            f"Payment to {provider.name}", -payment.amount,
        ))

    for order in db.exec(period.on_date(
        select(PurchaseOrder).where(
            PurchaseOrder.status == PurchaseOrderStatus.RECEIVED,
            PurchaseOrder.payment_method != PurchasePaymentMethod.CREDIT,
        ),
        PurchaseOrder.received_date,
    )):
        movements.append(Movement(
            start_of_day(order.received_date), "purchase_order", order.order_number,
            f"Purchase order {order.order_number}", -order.total_cost,
        ))

    movements.sort(key=lambda m: as_utc(m.when))
    return movements


# === Reports ===

def summary(db: Session, period: Period) -> dict:
    revenue, cogs, sales_count, customers = sales_figures(db, period)
    gross_profit = revenue - cogs

    operating = expense_total(db, period, ExpenseType.EXPENSE) + invoice_total(db, period, InvoiceType.SERVICE)
    purchases = expense_total(db, period, ExpenseType.PURCHASE) + invoice_total(db, period, InvoiceType.PURCHASE)
    net_profit = gross_profit - operating

    total_purchased, total_orders = db.exec(period.on_timestamp(
        select(func.coalesce(func.sum(PurchaseOrder.total_cost), 0), func.count(PurchaseOrder.id))
        .where(PurchaseOrder.status != PurchaseOrderStatus.CANCELLED),
        PurchaseOrder.created_at,
    )).one()

    provider_total = db.exec(
        select(func.coalesce(func.sum(Provider.balance), 0)).where(Provider.is_active == True)
    ).one()
    pending_invoices = db.exec(
        select(func.coalesce(func.sum(Invoice.pending_amount), 0)).where(Invoice.payment_status != InvoiceStatus.PAID)
    ).one()

    inventory_value, products_count = db.exec(
        select(
            func.coalesce(func.sum(Product.stock * func.coalesce(Product.purchase_price, 0)), 0),
            func.count(Product.id),
        )
    ).one()

    return {
        "revenue": {
            "total": revenue,
            "cogs": cogs,
            "gross_profit": gross_profit,
            "gross_margin_pct": pct(gross_profit, revenue),
            "total_sales": sales_count,
            "unique_customers": customers,
        },
        "expenses": {
            "operating": operating,
            "purchases": purchases,
            "total_purchased": money(total_purchased),
            "total_orders": total_orders or 0,
        },
        "profitability": {
            "gross_profit": gross_profit,
            "net_profit": net_profit,
            "gross_margin_pct": pct(gross_profit, revenue),
            "net_margin_pct": pct(net_profit, revenue),
        },
        "debt": {
            "provider_total": money(provider_total),
            "pending_invoices": money(pending_invoices),
        },
        "assets": {
            "inventory_value": money(inventory_value),
            "products_count": products_count or 0,
        },
    }


def month_labels(today: date, months: int) -> List[str]:
    """The last ``months`` calendar months as YYYY-MM, oldest first"""
    year, month = today.year, today.month
    labels = []
    for _ in range(months):
        labels.append(f"{year:04d}-{month:02d}")
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    return labels[::-1]


def cashflow(db: Session, months: int = CASHFLOW_MONTHS, today: Optional[date] = None) -> List[dict]:
    """Money in and out per month; every month in the window is listed"""
    labels = month_labels(today or utc_today(), months)
    first_year, first_month = (int(part) for part in labels[0].split("-"))
    buckets: Dict[str, Dict[str, float]] = {label: {"revenue": 0.0, "costs": 0.0} for label in labels}

    for movement in cash_movements(db, since=date(first_year, first_month, 1)):
        bucket = buckets.get(as_utc(movement.when).strftime("%Y-%m"))
        if bucket is None:
            continue
        if movement.amount >= 0:
            bucket["revenue"] += float(movement.amount)
        else:
            bucket["costs"] -= float(movement.amount)

    return [
        {"month": label, "revenue": b["revenue"], "costs": b["costs"], "profit": b["revenue"] - b["costs"]}
        for label, b in buckets.items()
    ]


def profit_by_product(db: Session, limit: int = 100) -> List[dict]:
    """Unit margins and realised profit of every product with a known cost"""
    known_cost = col(SaleItem.unit_cost).is_not(None)
    sold = (
        select(
            SaleItem.product_id,
            func.sum(SaleItem.quantity).label("units_sold"),
            func.sum(SaleItem.unit_price * SaleItem.quantity).label("revenue"),
            func.sum(case(
                (known_cost, (SaleItem.unit_price - SaleItem.unit_cost) * SaleItem.quantity),
                else_=0,
            )).label("profit"),
        )
        .group_by(SaleItem.product_id)
        .subquery()
    )

    rows = db.exec(
        select(Product, sold.c.units_sold, sold.c.revenue, sold.c.profit)
        .outerjoin(sold, sold.c.product_id == Product.id)
        .where(func.coalesce(Product.purchase_price, 0) > 0)
        .order_by(func.coalesce(sold.c.profit, 0).desc(), Product.id)
        .limit(limit)
    ).all()

    result = []
    for product, units_sold, revenue, profit in rows:
        cost = money(product.purchase_price)
        price = money(product.price)
        result.append({
            "id": product.id,
            "name": product.name,
            "stock": product.stock,
            "cost_price": cost,
            "sale_price": price,
            "unit_profit": price - cost,
            "margin_pct": pct(price - cost, price),
            "units_sold": int(units_sold or 0),
            "total_revenue": money(revenue),
            "realized_profit": money(profit),
            "inventory_value": product.stock * cost,
        })
    return result


def profit_and_loss(db: Session, period: Period) -> dict:
    revenue, cogs, _count, _customers = sales_figures(db, period)
    gross_profit = revenue - cogs

    by_category = db.exec(period.on_timestamp(
        select(Expense.category, func.sum(Expense.amount))
        .where(Expense.type == ExpenseType.EXPENSE)
        .group_by(Expense.category),
        Expense.created_at,
    )).all()
    lines = [{"category": category, "total": money(total)} for category, total in by_category]

    services = invoice_total(db, period, InvoiceType.SERVICE)
    if services:
        lines.append({"category": "service invoices", "total": services})
    lines.sort(key=lambda line: line["total"], reverse=True)

    operating = sum(line["total"] for line in lines)
    net_profit = gross_profit - operating
    return {
        "start_date": period.start,
        "end_date": period.end,
        "revenue": revenue,
        "cogs": cogs,
        "gross_profit": gross_profit,
        "operating_expenses": lines,
        "total_operating_expenses": operating,
        "net_profit": net_profit,
        "net_margin_pct": pct(net_profit, revenue),
    }


def provider_debts(db: Session) -> List[dict]:
    """Active providers by amount owed, with unpaid invoices and approved orders not yet received"""
    pending_invoices = dict(db.exec(
        select(Invoice.provider_id, func.sum(Invoice.pending_amount))
        .where(Invoice.payment_status != InvoiceStatus.PAID, col(Invoice.provider_id).is_not(None))
        .group_by(Invoice.provider_id)
    ).all())
    open_orders = dict(db.exec(
        select(PurchaseOrder.provider_id, func.sum(PurchaseOrder.total_cost))
        .where(PurchaseOrder.status == PurchaseOrderStatus.PENDING)
        .group_by(PurchaseOrder.provider_id)
    ).all())

    providers = db.exec(
        select(Provider).where(Provider.is_active == True).order_by(Provider.balance.desc(), Provider.id)
    ).all()
    return [
        {
            "id": provider.id,
            "name": provider.name,
            "category": provider.category,
            "phone": provider.phone,
            "email": provider.email,
            "balance": money(provider.balance),
            "pending_invoices": money(pending_invoices.get(provider.id)),
            "open_orders": money(open_orders.get(provider.id)),
        }
        for provider in providers
    ]


def provider_analysis(db: Session) -> List[dict]:
    """Purchased and paid totals per provider, biggest suppliers first"""
    received = {
        provider_id: (count, total)
        for provider_id, count, total in db.exec(
            select(PurchaseOrder.provider_id, func.count(PurchaseOrder.id), func.sum(PurchaseOrder.total_cost))
            .where(PurchaseOrder.status == PurchaseOrderStatus.RECEIVED)
            .group_by(PurchaseOrder.provider_id)
        ).all()
    }
    invoiced = dict(db.exec(
        select(Invoice.provider_id, func.sum(Invoice.total_amount))
        .where(Invoice.invoice_type == InvoiceType.PURCHASE, col(Invoice.provider_id).is_not(None))
        .group_by(Invoice.provider_id)
    ).all())
    paid_direct = dict(db.exec(
        select(ProviderPayment.provider_id, func.sum(ProviderPayment.amount)).group_by(ProviderPayment.provider_id)
    ).all())
    paid_invoices = dict(db.exec(
        select(Invoice.provider_id, func.sum(InvoicePayment.amount))
        .join(Invoice, Invoice.id == InvoicePayment.invoice_id)
        .where(col(Invoice.provider_id).is_not(None))
        .group_by(Invoice.provider_id)
    ).all())

    result = []
    for provider in db.exec(select(Provider).where(Provider.is_active == True)).all():
        orders, order_total = received.get(provider.id, (0, 0))
        result.append({
            "id": provider.id,
            "name": provider.name,
            "orders_received": orders,
            "total_purchased": money(order_total) + money(invoiced.get(provider.id)),
            "total_paid": money(paid_direct.get(provider.id)) + money(paid_invoices.get(provider.id)),
            "balance": money(provider.balance),
        })
    result.sort(key=lambda row: (-row["total_purchased"], row["id"]))
    return result


def accounts_receivable(db: Session) -> dict:
    """Sales still waiting for payment, oldest first"""
    rows = db.exec(
        select(Sale, User.name)
        .join(User, User.id == Sale.customer_id)
        .where(Sale.payment_status == PaymentStatus.PENDING)
        .order_by(Sale.created_at, Sale.id)
    ).all()

    now = utc_now()
    sales = [
        {
            "sale_id": sale.id,
            "order_code": order_code(sale),
            "customer_id": sale.customer_id,
            "customer_name": customer_name,
            "total": money(sale.total),
            "created_at": sale.created_at,
            "days_outstanding": (now - as_utc(sale.created_at)).days,
        }
        for sale, customer_name in rows
    ]
    return {
        "total_pending": sum(sale["total"] for sale in sales),
        "count": len(sales),
        "sales": sales,
    }


def general_ledger(db: Session, period: Period) -> List[dict]:
    """
    Cash movements in order with a running balance. The balance starts from
    everything before the period, so it matches the unfiltered ledger.
    """
    entries = []
    balance = Decimal("0")
    for movement in cash_movements(db):
        balance += movement.amount
        if not period.contains(movement.when):
            continue
        entries.append({
            "date": movement.when,
            "kind": movement.kind,
            "reference": movement.reference,
            "description": movement.description,
            "amount": money(movement.amount),
            "balance": money(balance),
        })
    return entries


# === Invoices ===

def invoice_reference(invoice: Invoice) -> str:
    return invoice.invoice_number or f"INV-{invoice.id}"


def get_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError("Invoice")
    return invoice


def list_invoices(
    db: Session,
    invoice_type: Optional[InvoiceType] = None,
    status: Optional[InvoiceStatus] = None,
    period: Optional[Period] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Invoice]:
    stmt = select(Invoice)
    if invoice_type is not None:
        stmt = stmt.where(Invoice.invoice_type == invoice_type)
    if status is not None:
        stmt = stmt.where(Invoice.payment_status == status)
    if period is not None:
        stmt = period.on_date(stmt, Invoice.invoice_date)
    stmt = stmt.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).offset(skip).limit(limit)
    return db.exec(stmt).all()


def build_invoice_response(invoice: Invoice, db: Session) -> dict:
    provider = db.get(Provider, invoice.provider_id) if invoice.provider_id else None
    items = []
    for item in invoice.items:
        product = db.get(Product, item.product_id)
        items.append({
            "product_id": item.product_id,
            "product_name": product.name if product else None,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "subtotal": item.subtotal,
        })
    return {
        "id": invoice.id,
        "invoice_type": invoice.invoice_type,
        "provider_id": invoice.provider_id,
        "provider_name": provider.name if provider else None,
        "invoice_number": invoice.invoice_number,
        "invoice_date": invoice.invoice_date,
        "due_date": invoice.due_date,
        "description": invoice.description,
        "total_amount": invoice.total_amount,
        "pending_amount": invoice.pending_amount,
        "payment_status": invoice.payment_status,
        "payment_method": invoice.payment_method,
        "notes": invoice.notes,
        "created_at": invoice.created_at,
        "items": items,
    }


def create_invoice(db: Session, data: InvoiceCreate, user_id: int) -> Invoice:
    """
    Record a supplier invoice. Purchase items add stock and set the product's
    purchase price; a credit invoice stays pending and is added to the
    provider balance, anything else is paid on the spot.
    """
    if data.provider_id is not None and not db.get(Provider, data.provider_id):
        raise ValidationError("Provider not found")

    on_credit = data.payment_method == PurchasePaymentMethod.CREDIT

    with transaction(db):
        invoice = Invoice(
            invoice_type=data.invoice_type,
            provider_id=data.provider_id,
            invoice_number=data.invoice_number,
            invoice_date=data.invoice_date or utc_today(),
            due_date=data.due_date,
            description=data.description or f"{data.invoice_type.value.title()} invoice",
            total_amount=data.total_amount,
            pending_amount=data.total_amount if on_credit else Decimal("0"),
            payment_status=InvoiceStatus.PENDING if on_credit else InvoiceStatus.PAID,
            payment_method=data.payment_method,
            notes=data.notes,
            created_by=user_id,
        )
        db.add(invoice)
        db.flush()

        if data.invoice_type == InvoiceType.PURCHASE:
            for item in data.items:
                if not add_stock(db, item.product_id, item.quantity, purchase_price=item.unit_price):
                    raise ValidationError(f"Product {item.product_id} not found")
                db.add(InvoiceItem(
                    invoice_id=invoice.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.unit_price * item.quantity,
                ))

        if on_credit and data.provider_id is not None:
            adjust_provider_balance(db, data.provider_id, data.total_amount)

    db.refresh(invoice)
    logger.info("Invoice %s recorded (%s, %s)", invoice.id, invoice.invoice_type.value, invoice.total_amount)
    return invoice


def pay_invoice(db: Session, invoice_id: int, data: InvoicePaymentCreate, user_id: int) -> Invoice:
    """Apply a payment to a pending invoice and lower the provider balance by the same amount"""
    invoice = get_invoice(db, invoice_id)
    if invoice.payment_status == InvoiceStatus.PAID:
        raise ValidationError("Invoice already paid")
    if data.amount > invoice.pending_amount:
        raise ValidationError("Amount exceeds the pending balance")

    with transaction(db):
        # Conditional so two payments cannot take the pending amount below zero
        taken = db.exec(
            update(Invoice)
            .where(Invoice.id == invoice.id, Invoice.pending_amount >= data.amount)
            .values(pending_amount=Invoice.pending_amount - data.amount, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        ).rowcount
        if taken != 1:
            raise ValidationError("Amount exceeds the pending balance")

        db.add(InvoicePayment(
            invoice_id=invoice.id,
            amount=data.amount,
            payment_method=data.payment_method,
            payment_date=data.payment_date or utc_today(),
            notes=data.notes,
            created_by=user_id,
        ))

        db.refresh(invoice)
        invoice.payment_status = InvoiceStatus.PAID if invoice.pending_amount <= 0 else InvoiceStatus.PARTIAL
        db.add(invoice)

        if invoice.provider_id is not None:
            adjust_provider_balance(db, invoice.provider_id, -data.amount)

    db.refresh(invoice)
    logger.info("Payment of %s applied to invoice %s", data.amount, invoice.id)
    return invoice
