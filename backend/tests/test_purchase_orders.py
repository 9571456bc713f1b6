"""
Purchase order lifecycle: draft, pending, received or cancelled
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlmodel import select

from alesteb.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from alesteb.schemas.purchase_order import PurchaseOrderItemCreate
from alesteb.services.purchase_orders import resolve_pricing


def order_payload(provider, product, **overrides) -> dict:
    payload = {
        "provider_id": provider.id,
        "items": [{"product_id": product.id, "quantity": 5, "unit_cost": "40.00", "markup_percentage": "50"}],
        "shipping_cost": "10.00",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def draft(client, admin_headers, provider, product) -> dict:
    response = client.post("/api/purchase-orders/", json=order_payload(provider, product), headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestPricing:

    def test_sale_price_from_markup(self):
        item = PurchaseOrderItemCreate(product_id=1, quantity=1, unit_cost=Decimal("40"),
                                       markup_percentage=Decimal("25"))

        assert resolve_pricing(item) == (Decimal("50.00"), Decimal("25"))

    def test_markup_from_sale_price(self):
        item = PurchaseOrderItemCreate(product_id=1, quantity=1, unit_cost=Decimal("40"),
                                       suggested_sale_price=Decimal("60"))

        assert resolve_pricing(item) == (Decimal("60"), Decimal("50.00"))

    def test_nothing_to_derive(self):
        item = PurchaseOrderItemCreate(product_id=1, quantity=1, unit_cost=Decimal("40"))

        assert resolve_pricing(item) == (None, None)


class TestCreateOrder:

    def test_draft_totals_and_number(self, draft, admin_user):
        assert draft["status"] == "draft"
        assert draft["order_number"] == f"PO-{datetime.now(timezone.utc).year}-000001"
        assert Decimal(draft["subtotal"]) == Decimal("200.00")
        assert Decimal(draft["total_cost"]) == Decimal("210.00")
        assert Decimal(draft["items"][0]["suggested_sale_price"]) == Decimal("60.00")
        assert draft["created_by"] == admin_user.id

    def test_numbers_increase(self, client, admin_headers, provider, product, draft):
        second = client.post("/api/purchase-orders/", json=order_payload(provider, product),
                             headers=admin_headers).json()

        assert second["order_number"].endswith("-000002")

    def test_inactive_provider(self, client, db_session, admin_headers, provider, product):
        provider.is_active = False
        db_session.add(provider)
        db_session.commit()

        response = client.post("/api/purchase-orders/", json=order_payload(provider, product), headers=admin_headers)

        assert response.status_code == 400

    def test_unknown_product_rolls_back(self, client, db_session, admin_headers, provider):
        response = client.post("/api/purchase-orders/", json={
            "provider_id": provider.id,
            "items": [{"product_id": 404, "quantity": 1, "unit_cost": "1"}],
        }, headers=admin_headers)

        assert response.status_code == 400
        assert db_session.get(PurchaseOrder, 1) is None


class TestOrderLifecycle:

    def test_update_replaces_items(self, client, db_session, admin_headers, product, draft):
        response = client.put(f"/api/purchase-orders/{draft['id']}", json={
            "items": [{"product_id": product.id, "quantity": 2, "unit_cost": "30.00"}],
        }, headers=admin_headers)

        body = response.json()
        assert len(body["items"]) == 1
        assert Decimal(body["subtotal"]) == Decimal("60.00")
        assert Decimal(body["total_cost"]) == Decimal("70.00")

        stored = db_session.exec(select(PurchaseOrderItem)).all()
        assert [(i.purchase_order_id, i.quantity) for i in stored] == [(draft["id"], 2)]

    def test_approve_only_drafts(self, client, admin_headers, draft):
        url = f"/api/purchase-orders/{draft['id']}/approve"

        assert client.post(url, headers=admin_headers).json()["status"] == "pending"
        assert client.post(url, headers=admin_headers).status_code == 400

    def test_receive_updates_stock_and_prices(self, client, db_session, admin_headers, product, draft):
        response = client.post(f"/api/purchase-orders/{draft['id']}/receive", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "received"
        assert response.json()["received_date"] is not None

        db_session.refresh(product)
        assert product.stock == 15
        assert product.purchase_price == Decimal("40.00")
        assert product.price == Decimal("60.00")

    def test_partial_receipt(self, client, db_session, admin_headers, product, draft):
        client.post(f"/api/purchase-orders/{draft['id']}/receive", json={
            "received_items": [{"product_id": product.id, "received_quantity": 3}],
        }, headers=admin_headers)

        db_session.refresh(product)
        assert product.stock == 13

    def test_credit_order_raises_balance(self, client, db_session, admin_headers, provider, product):
        order = client.post("/api/purchase-orders/", json=order_payload(provider, product, payment_method="credit"),
                            headers=admin_headers).json()

        client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers)

        db_session.refresh(provider)
        assert provider.balance == Decimal("210.00")

    def test_received_order_is_frozen(self, client, admin_headers, draft):
        order_id = draft["id"]
        client.post(f"/api/purchase-orders/{order_id}/receive", headers=admin_headers)

        assert client.post(f"/api/purchase-orders/{order_id}/receive", headers=admin_headers).status_code == 400
        assert client.post(f"/api/purchase-orders/{order_id}/cancel", headers=admin_headers).status_code == 400
        assert client.put(f"/api/purchase-orders/{order_id}", json={"notes": "late"},
                          headers=admin_headers).status_code == 400

    def test_cancel(self, client, db_session, admin_headers, product, draft):
        url = f"/api/purchase-orders/{draft['id']}"

        assert client.post(f"{url}/cancel", headers=admin_headers).json()["status"] == "cancelled"
        assert client.post(f"{url}/receive", headers=admin_headers).status_code == 400
        db_session.refresh(product)
        assert product.stock == 10

    def test_delete_only_drafts(self, client, admin_headers, draft):
        url = f"/api/purchase-orders/{draft['id']}"
        client.post(f"{url}/approve", headers=admin_headers)

        assert client.delete(url, headers=admin_headers).status_code == 400

    def test_delete_draft(self, client, db_session, admin_headers, draft):
        url = f"/api/purchase-orders/{draft['id']}"

        assert client.delete(url, headers=admin_headers).status_code == 200
        assert client.get(url, headers=admin_headers).status_code == 404
        assert db_session.exec(select(PurchaseOrderItem)).all() == []

    def test_filter_by_status(self, client, admin_headers, draft):
        assert client.get("/api/purchase-orders/?status=pending", headers=admin_headers).json() == []
        assert len(client.get("/api/purchase-orders/?status=draft", headers=admin_headers).json()) == 1
