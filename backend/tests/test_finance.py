"""
Accounting reports and supplier invoices
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlmodel import select

from alesteb.models.expense import Expense, ExpenseType
from alesteb.models.invoice import InvoicePayment
from alesteb.models.product import Product
from alesteb.services.finance import month_labels


def sell(client, headers, customer_id, product_id, quantity, sale_type="physical"):
    response = client.post("/api/sales/", json={
        "customer_id": customer_id,
        "sale_type": sale_type,
        "items": [{"product_id": product_id, "quantity": quantity}],
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def credit_purchase(client, headers, provider_id, product_id, quantity=5, unit_price="60.00"):
    total = Decimal(unit_price) * quantity
    return client.post("/api/finance/invoices", json={
        "invoice_type": "purchase",
        "provider_id": provider_id,
        "invoice_number": "F-001",
        "total_amount": str(total),
        "payment_method": "credit",
        "items": [{"product_id": product_id, "quantity": quantity, "unit_price": unit_price}],
    }, headers=headers)


@pytest.fixture
def costed_product(db_session, product):
    """The sample product bought at 60 and sold at 100"""
    product.purchase_price = Decimal("60.00")
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product


def add_expense(db_session, amount, category="rent"):
    expense = Expense(type=ExpenseType.EXPENSE, category=category, amount=Decimal(amount))
    db_session.add(expense)
    db_session.commit()
    return expense


class TestInvoices:

    def test_service_invoice_is_paid_on_the_spot(self, client, admin_headers):
        response = client.post("/api/finance/invoices", json={
            "invoice_type": "service",
            "description": "Electricity",
            "total_amount": "45.00",
        }, headers=admin_headers)

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["payment_status"] == "paid"
        assert Decimal(body["pending_amount"]) == 0
        assert body["items"] == []

    def test_credit_purchase_adds_stock_and_debt(self, client, db_session, admin_headers, product, provider):
        response = credit_purchase(client, admin_headers, provider.id, product.id)

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["payment_status"] == "pending"
        assert Decimal(body["pending_amount"]) == Decimal("300.00")
        assert body["provider_name"] == "Acme Supplies"
        assert body["items"][0]["product_name"] == "Runner"
        assert Decimal(body["items"][0]["subtotal"]) == Decimal("300.00")

        db_session.refresh(product)
        db_session.refresh(provider)
        assert product.stock == 15
        assert product.purchase_price == Decimal("60.00")
        assert provider.balance == Decimal("300.00")

    @pytest.mark.parametrize("payload", [
        {"invoice_type": "purchase", "total_amount": "10", "provider_id": 1, "items": []},
        {"invoice_type": "purchase", "total_amount": "10", "items": [{"product_id": 1, "quantity": 1, "unit_price": "10"}]},
        {"invoice_type": "service", "total_amount": "0"},
    ])
    def test_invalid_invoices(self, client, admin_headers, payload):
        response = client.post("/api/finance/invoices", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_unknown_product_rolls_back(self, client, db_session, admin_headers, provider):
        response = credit_purchase(client, admin_headers, provider.id, 999)

        assert response.status_code == 400
        db_session.refresh(provider)
        assert provider.balance == 0
        assert client.get("/api/finance/invoices", headers=admin_headers).json() == []

    def test_list_filters_by_type(self, client, admin_headers, product, provider):
        credit_purchase(client, admin_headers, provider.id, product.id)
        client.post("/api/finance/invoices", json={"invoice_type": "service", "total_amount": "20"},
                    headers=admin_headers)

        purchases = client.get("/api/finance/invoices?type=purchase", headers=admin_headers).json()
        pending = client.get("/api/finance/invoices?status=pending", headers=admin_headers).json()

        assert [i["invoice_type"] for i in purchases] == ["purchase"]
        assert [i["invoice_number"] for i in pending] == ["F-001"]

    def test_missing_invoice(self, client, admin_headers):
        assert client.get("/api/finance/invoices/77", headers=admin_headers).status_code == 404


class TestInvoicePayments:

    def test_partial_then_full_payment(self, client, db_session, admin_headers, product, provider):
        invoice_id = credit_purchase(client, admin_headers, provider.id, product.id).json()["id"]
        url = f"/api/finance/invoices/{invoice_id}/payments"

        first = client.post(url, json={"amount": "100.00"}, headers=admin_headers)
        assert first.status_code == 200, first.text
        assert first.json()["new_status"] == "partial"
        assert Decimal(first.json()["new_pending"]) == Decimal("200.00")

        second = client.post(url, json={"amount": "200.00", "payment_method": "transfer"}, headers=admin_headers)
        assert second.json()["new_status"] == "paid"
        assert Decimal(second.json()["new_pending"]) == 0

        db_session.refresh(provider)
        assert provider.balance == 0
        assert len(db_session.exec(select(InvoicePayment)).all()) == 2

    def test_paid_invoice_rejects_payments(self, client, admin_headers):
        invoice_id = client.post("/api/finance/invoices", json={
            "invoice_type": "service", "total_amount": "20",
        }, headers=admin_headers).json()["id"]

        response = client.post(f"/api/finance/invoices/{invoice_id}/payments", json={"amount": "5"},
                               headers=admin_headers)

        assert response.status_code == 400

    def test_overpayment_changes_nothing(self, client, db_session, admin_headers, product, provider):
        invoice_id = credit_purchase(client, admin_headers, provider.id, product.id).json()["id"]

        response = client.post(f"/api/finance/invoices/{invoice_id}/payments", json={"amount": "300.01"},
                               headers=admin_headers)

        assert response.status_code == 400
        db_session.refresh(provider)
        assert provider.balance == Decimal("300.00")
        assert db_session.exec(select(InvoicePayment)).all() == []

    def test_unknown_invoice(self, client, admin_headers):
        response = client.post("/api/finance/invoices/404/payments", json={"amount": "5"}, headers=admin_headers)

        assert response.status_code == 404


class TestReports:

    def test_summary(self, client, db_session, admin_headers, customer_user, costed_product):
        sell(client, admin_headers, customer_user.id, costed_product.id, 2)
        add_expense(db_session, "30.00")

        summary = client.get("/api/finance/summary", headers=admin_headers).json()

        assert summary["revenue"] == {
            "total": 200.0,
            "cogs": 120.0,
            "gross_profit": 80.0,
            "gross_margin_pct": 40.0,
            "total_sales": 1,
            "unique_customers": 1,
        }
        assert summary["expenses"]["operating"] == 30.0
        assert summary["profitability"]["net_profit"] == 50.0
        assert summary["profitability"]["net_margin_pct"] == 25.0
        assert summary["assets"] == {"inventory_value": 480.0, "products_count": 1}

    def test_summary_ignores_pending_sales(self, client, admin_headers, customer_user, costed_product):
        sell(client, admin_headers, customer_user.id, costed_product.id, 1, sale_type="online")

        summary = client.get("/api/finance/summary", headers=admin_headers).json()

        assert summary["revenue"]["total"] == 0.0
        assert summary["revenue"]["gross_margin_pct"] == 0.0

    def test_summary_period_outside_sales(self, client, admin_headers, customer_user, costed_product):
        sell(client, admin_headers, customer_user.id, costed_product.id, 1)

        summary = client.get("/api/finance/summary?start_date=2001-01-01&end_date=2001-12-31",
                             headers=admin_headers).json()

        assert summary["revenue"]["total"] == 0.0

    def test_reversed_period(self, client, admin_headers):
        response = client.get("/api/finance/summary?start_date=2024-05-01&end_date=2024-04-01",
                              headers=admin_headers)

        assert response.status_code == 400

    def test_cashflow_lists_six_months(self, client, db_session, admin_headers, customer_user, costed_product):
        sell(client, admin_headers, customer_user.id, costed_product.id, 2)
        add_expense(db_session, "30.00")

        months = client.get("/api/finance/cashflow", headers=admin_headers).json()

        assert len(months) == 6
        assert months[-1]["revenue"] == 200.0
        assert months[-1]["costs"] == 30.0
        assert months[-1]["profit"] == 170.0
        assert all(m["revenue"] == 0.0 for m in months[:-1])

    def test_month_labels_cross_the_year(self):
        assert month_labels(date(2025, 2, 14), 4) == ["2024-11", "2024-12", "2025-01", "2025-02"]

    def test_profit_by_product(self, client, db_session, admin_headers, customer_user, costed_product):
        db_session.add(Product(name="No cost yet", price=Decimal("10"), stock=3))
        db_session.commit()
        sell(client, admin_headers, customer_user.id, costed_product.id, 2)

        rows = client.get("/api/finance/profit-by-product", headers=admin_headers).json()

        assert len(rows) == 1
        row = rows[0]
        assert row["name"] == "Runner"
        assert row["unit_profit"] == 40.0
        assert row["margin_pct"] == 40.0
        assert row["units_sold"] == 2
        assert row["total_revenue"] == 200.0
        assert row["realized_profit"] == 80.0
        assert row["inventory_value"] == 480.0

    def test_profit_and_loss(self, client, db_session, admin_headers, customer_user, costed_product):
        sell(client, admin_headers, customer_user.id, costed_product.id, 1)
        add_expense(db_session, "10.00", category="rent")
        add_expense(db_session, "5.00", category="internet")
        client.post("/api/finance/invoices", json={"invoice_type": "service", "total_amount": "20"},
                    headers=admin_headers)

        report = client.get("/api/finance/profit-and-loss", headers=admin_headers).json()

        assert report["gross_profit"] == 40.0
        assert report["operating_expenses"] == [
            {"category": "service invoices", "total": 20.0},
            {"category": "rent", "total": 10.0},
            {"category": "internet", "total": 5.0},
        ]
        assert report["net_profit"] == 5.0

    def test_provider_debts_and_analysis(self, client, admin_headers, product, provider):
        invoice_id = credit_purchase(client, admin_headers, provider.id, product.id).json()["id"]
        client.post(f"/api/finance/invoices/{invoice_id}/payments", json={"amount": "100"}, headers=admin_headers)

        debts = client.get("/api/finance/provider-debts", headers=admin_headers).json()
        assert debts == [{
            "id": provider.id,
            "name": "Acme Supplies",
            "category": "footwear",
            "phone": None,
            "email": None,
            "balance": 200.0,
            "pending_invoices": 200.0,
            "open_orders": 0.0,
        }]

        analysis = client.get("/api/finance/provider-analysis", headers=admin_headers).json()
        assert analysis[0]["total_purchased"] == 300.0
        assert analysis[0]["total_paid"] == 100.0

    def test_accounts_receivable(self, client, admin_headers, customer_user, product):
        sale = sell(client, admin_headers, customer_user.id, product.id, 1, sale_type="online")
        sell(client, admin_headers, customer_user.id, product.id, 1)

        receivable = client.get("/api/finance/accounts-receivable", headers=admin_headers).json()

        assert receivable["count"] == 1
        assert receivable["total_pending"] == 100.0
        assert receivable["sales"][0]["order_code"] == sale["order_code"]
        assert receivable["sales"][0]["days_outstanding"] == 0

    def test_general_ledger_running_balance(self, client, db_session, admin_headers, customer_user, product):
        sell(client, admin_headers, customer_user.id, product.id, 2)
        add_expense(db_session, "30.00")

        ledger = client.get("/api/finance/general-ledger", headers=admin_headers).json()

        assert [(e["kind"], e["amount"], e["balance"]) for e in ledger] == [
            ("sale", 200.0, 200.0),
            ("expense", -30.0, 170.0),
        ]

    def test_staff_only(self, client, customer_headers):
        assert client.get("/api/finance/summary", headers=customer_headers).status_code == 403
        assert client.get("/api/finance/summary").status_code == 401
