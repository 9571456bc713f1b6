"""
Discount administration
"""
from datetime import datetime, timedelta, timezone

from alesteb.models.discount import DiscountTarget
from sqlmodel import select


def window(days_before=1, days_after=1) -> dict:
    now = datetime.now(timezone.utc)
    return {
        "starts_at": (now - timedelta(days=days_before)).isoformat(),
        "ends_at": (now + timedelta(days=days_after)).isoformat(),
    }


class TestDiscountAdmin:

    def test_create_with_targets(self, client, admin_headers, product, category):
        payload = {
            "name": "Summer",
            "type": "percentage",
            "value": "15",
            "targets": [
                {"target_type": "product", "target_id": product.id},
                {"target_type": "category", "target_id": category.id},
            ],
            **window(),
        }
        response = client.post("/api/discounts/", json=payload, headers=admin_headers)

        assert response.status_code == 201, response.text
        assert len(response.json()["targets"]) == 2

        active = client.get("/api/discounts/active").json()
        assert [d["name"] for d in active] == ["Summer"]

    def test_window_with_offset_is_stored_in_utc(self, client, admin_headers):
        """Wall-clock times at +05:00 would start five hours late if the offset were dropped"""
        now = datetime.now(timezone(timedelta(hours=5)))
        payload = {
            "name": "Offset",
            "type": "fixed",
            "value": "5",
            "starts_at": (now - timedelta(hours=1)).isoformat(),
            "ends_at": (now + timedelta(hours=1)).isoformat(),
        }
        assert client.post("/api/discounts/", json=payload, headers=admin_headers).status_code == 201

        active = client.get("/api/discounts/active").json()
        assert [d["name"] for d in active] == ["Offset"]

    def test_unknown_target(self, client, admin_headers):
        payload = {
            "name": "Ghost",
            "type": "fixed",
            "value": "5",
            "targets": [{"target_type": "product", "target_id": 404}],
            **window(),
        }
        response = client.post("/api/discounts/", json=payload, headers=admin_headers)

        assert response.status_code == 400

    def test_percentage_over_100(self, client, admin_headers):
        payload = {"name": "Too much", "type": "percentage", "value": "150", **window()}
        response = client.post("/api/discounts/", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_end_before_start(self, client, admin_headers):
        now = datetime.now(timezone.utc)
        payload = {
            "name": "Backwards",
            "type": "fixed",
            "value": "5",
            "starts_at": now.isoformat(),
            "ends_at": (now - timedelta(days=1)).isoformat(),
        }
        response = client.post("/api/discounts/", json=payload, headers=admin_headers)

        assert response.status_code == 400

    def test_update_replaces_targets(self, client, db_session, admin_headers, product, category):
        created = client.post("/api/discounts/", json={
            "name": "Promo",
            "type": "fixed",
            "value": "5",
            "targets": [{"target_type": "product", "target_id": product.id}],
            **window(),
        }, headers=admin_headers).json()

        response = client.put(f"/api/discounts/{created['id']}", json={
            "name": "Promo",
            "type": "fixed",
            "value": "7",
            "targets": [{"target_type": "category", "target_id": category.id}],
            **window(),
        }, headers=admin_headers)

        assert response.status_code == 200
        targets = db_session.exec(select(DiscountTarget).where(DiscountTarget.discount_id == created["id"])).all()
        assert [(t.target_type.value, t.target_id) for t in targets] == [("category", category.id)]

    def test_delete(self, client, db_session, admin_headers, product):
        created = client.post("/api/discounts/", json={
            "name": "Promo",
            "type": "fixed",
            "value": "5",
            "targets": [{"target_type": "product", "target_id": product.id}],
            **window(),
        }, headers=admin_headers).json()

        assert client.delete(f"/api/discounts/{created['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/discounts/{created['id']}", headers=admin_headers).status_code == 404
        assert db_session.exec(select(DiscountTarget)).all() == []

    def test_listing_requires_admin(self, client, customer_headers):
        assert client.get("/api/discounts/", headers=customer_headers).status_code == 403
