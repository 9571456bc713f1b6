from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from alesteb.models.invoice import InvoiceType, InvoiceStatus
from alesteb.models.purchase_order import PurchasePaymentMethod


# === Invoices ===

class InvoiceItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0)


class InvoiceCreate(BaseModel):
    invoice_type: InvoiceType
    provider_id: Optional[int] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    description: Optional[str] = None
    total_amount: Decimal = Field(gt=0)
    payment_method: PurchasePaymentMethod = PurchasePaymentMethod.CASH
    notes: Optional[str] = None
    # Purchases only: stock received with the invoice
    items: List[InvoiceItemCreate] = []

    @model_validator(mode="after")
    def check_purchase(self):
        if self.invoice_type == InvoiceType.PURCHASE:
            if not self.items:
                raise ValueError("purchase invoices need at least one item")
            if self.provider_id is None:
                raise ValueError("purchase invoices need a provider")
        return self


class InvoiceItemResponse(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class InvoiceResponse(BaseModel):
    id: int
    invoice_type: InvoiceType
    provider_id: Optional[int] = None
    provider_name: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: date
    due_date: Optional[date] = None
    description: str
    total_amount: Decimal
    pending_amount: Decimal
    payment_status: InvoiceStatus
    payment_method: PurchasePaymentMethod
    notes: Optional[str] = None
    created_at: datetime
    items: List[InvoiceItemResponse] = []


class InvoicePaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_method: PurchasePaymentMethod = PurchasePaymentMethod.CASH
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class InvoicePaymentResult(BaseModel):
    message: str
    new_pending: Decimal
    new_status: InvoiceStatus


# === Reports ===

class RevenueSection(BaseModel):
    total: float
    cogs: float
    gross_profit: float
    gross_margin_pct: float
    total_sales: int
    unique_customers: int


class ExpenseSection(BaseModel):
    operating: float
    purchases: float
    total_purchased: float
    total_orders: int


class ProfitabilitySection(BaseModel):
    gross_profit: float
    net_profit: float
    gross_margin_pct: float
    net_margin_pct: float


class DebtSection(BaseModel):
    provider_total: float
    pending_invoices: float


class AssetSection(BaseModel):
    inventory_value: float
    products_count: int


class FinanceSummary(BaseModel):
    revenue: RevenueSection
    expenses: ExpenseSection
    profitability: ProfitabilitySection
    debt: DebtSection
    assets: AssetSection


class CashflowMonth(BaseModel):
    month: str
    revenue: float
    costs: float
    profit: float


class ProductProfit(BaseModel):
    id: int
    name: str
    stock: int
    cost_price: float
    sale_price: float
    unit_profit: float
    margin_pct: float
    units_sold: int
    total_revenue: float
    realized_profit: float
    inventory_value: float


class ExpenseLine(BaseModel):
    category: str
    total: float


class ProfitAndLoss(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    revenue: float
    cogs: float
    gross_profit: float
    operating_expenses: List[ExpenseLine]
    total_operating_expenses: float
    net_profit: float
    net_margin_pct: float


class ProviderDebt(BaseModel):
    id: int
    name: str
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    balance: float
    pending_invoices: float
    open_orders: float


class ProviderAnalysis(BaseModel):
    id: int
    name: str
    orders_received: int
    total_purchased: float
    total_paid: float
    balance: float


class ReceivableSale(BaseModel):
    sale_id: int
    order_code: str
    customer_id: int
    customer_name: Optional[str] = None
    total: float
    created_at: datetime
    days_outstanding: int


class AccountsReceivable(BaseModel):
    total_pending: float
    count: int
    sales: List[ReceivableSale]


class LedgerEntry(BaseModel):
    date: datetime
    kind: str
    reference: str
    description: str
    amount: float
    balance: float
