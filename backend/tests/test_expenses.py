"""
Expenses and stock purchases
"""
from decimal import Decimal

from sqlmodel import select

from alesteb.models.expense import Expense


class TestCreateExpense:

    def test_plain_expense(self, client, admin_headers):
        response = client.post("/api/expenses/", json={
            "type": "expense", "category": "rent", "amount": "800.00",
        }, headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["product_id"] is None

    def test_purchase_adds_stock(self, client, db_session, admin_headers, provider, product):
        response = client.post("/api/expenses/", json={
            "type": "purchase",
            "category": "stock",
            "amount": "300.00",
            "provider_id": provider.id,
            "product_id": product.id,
            "quantity": 6,
        }, headers=admin_headers)

        assert response.status_code == 201
        db_session.refresh(product)
        assert product.stock == 16

    def test_missing_product_records_nothing(self, client, db_session, admin_headers):
        response = client.post("/api/expenses/", json={
            "type": "purchase", "category": "stock", "amount": "10", "product_id": 404, "quantity": 1,
        }, headers=admin_headers)

        assert response.status_code == 404
        assert db_session.exec(select(Expense)).all() == []

    def test_unknown_provider(self, client, admin_headers):
        response = client.post("/api/expenses/", json={
            "type": "expense", "category": "rent", "amount": "10", "provider_id": 12,
        }, headers=admin_headers)

        assert response.status_code == 400

    def test_product_needs_quantity(self, client, admin_headers, product):
        response = client.post("/api/expenses/", json={
            "type": "purchase", "category": "stock", "amount": "10", "product_id": product.id,
        }, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestExpenseReads:

    def test_list_filters_by_type(self, client, admin_headers):
        client.post("/api/expenses/", json={"type": "expense", "category": "rent", "amount": "800"},
                    headers=admin_headers)
        client.post("/api/expenses/", json={"type": "purchase", "category": "stock", "amount": "50"},
                    headers=admin_headers)

        purchases = client.get("/api/expenses/?type=purchase", headers=admin_headers).json()

        assert [e["category"] for e in purchases] == ["stock"]

    def test_summary(self, client, admin_headers):
        for kind, amount in (("expense", "800"), ("expense", "200"), ("purchase", "50")):
            client.post("/api/expenses/", json={"type": kind, "category": "misc", "amount": amount},
                        headers=admin_headers)

        summary = client.get("/api/expenses/summary", headers=admin_headers).json()

        assert Decimal(summary["total_expenses"]) == Decimal("1000")
        assert Decimal(summary["total_purchases"]) == Decimal("50")

    def test_empty_summary(self, client, admin_headers):
        summary = client.get("/api/expenses/summary", headers=admin_headers).json()

        assert Decimal(summary["total_expenses"]) == Decimal("0")
