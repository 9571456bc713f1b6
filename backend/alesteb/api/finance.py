from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import List, Optional
from datetime import date
from alesteb.api.deps import get_db, staff_required, TokenClaims
from alesteb.models.invoice import InvoiceType, InvoiceStatus
from alesteb.schemas.finance import (
    FinanceSummary, CashflowMonth, ProductProfit, ProfitAndLoss, ProviderDebt, ProviderAnalysis,
    AccountsReceivable, LedgerEntry, InvoiceCreate, InvoiceResponse, InvoicePaymentCreate,
    InvoicePaymentResult
)
from alesteb.services import finance
from alesteb.services.finance import Period

router = APIRouter(prefix="/api/finance", tags=["finance"])


def period_params(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> Period:
    return Period(start=start_date, end=end_date)


# === Reports ===

@router.get("/summary", response_model=FinanceSummary)
def get_summary(
    period: Period = Depends(period_params),
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    """Revenue, margins, expenses, debts and inventory value for the period"""
    return finance.summary(db, period)


@router.get("/cashflow", response_model=List[CashflowMonth])
def get_cashflow(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.cashflow(db)


@router.get("/profit-by-product", response_model=List[ProductProfit])
def get_profit_by_product(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.profit_by_product(db, limit=limit)


@router.get("/profit-and-loss", response_model=ProfitAndLoss)
def get_profit_and_loss(
    period: Period = Depends(period_params),
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.profit_and_loss(db, period)


@router.get("/provider-debts", response_model=List[ProviderDebt])
def get_provider_debts(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.provider_debts(db)


@router.get("/provider-analysis", response_model=List[ProviderAnalysis])
def get_provider_analysis(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.provider_analysis(db)


@router.get("/accounts-receivable", response_model=AccountsReceivable)
def get_accounts_receivable(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.accounts_receivable(db)


@router.get("/general-ledger", response_model=List[LedgerEntry])
def get_general_ledger(
    period: Period = Depends(period_params),
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.general_ledger(db, period)


# === Invoices ===

@router.get("/invoices", response_model=List[InvoiceResponse])
def list_invoices(
    type: Optional[InvoiceType] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    period: Period = Depends(period_params),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    invoices = finance.list_invoices(db, invoice_type=type, status=status, period=period, skip=skip, limit=limit)
    return [finance.build_invoice_response(invoice, db) for invoice in invoices]


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(staff_required)
):
    return finance.build_invoice_response(finance.get_invoice(db, invoice_id), db)


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
def create_invoice(
    data: InvoiceCreate,
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(staff_required)
):
    invoice = finance.create_invoice(db, data, claims.id)
    return finance.build_invoice_response(invoice, db)


@router.post("/invoices/{invoice_id}/payments", response_model=InvoicePaymentResult)
def pay_invoice(
    invoice_id: int,
    data: InvoicePaymentCreate,
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(staff_required)
):
    """Pay part or all of a pending invoice"""
    invoice = finance.pay_invoice(db, invoice_id, data, claims.id)
    return InvoicePaymentResult(
        message="Payment registered",
        new_pending=invoice.pending_amount,
        new_status=invoice.payment_status,
    )
