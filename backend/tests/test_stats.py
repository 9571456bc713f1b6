"""
Admin dashboard numbers
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from alesteb.models.sale import Sale, SaleItem


def add_sale(db, customer, product, quantity, created_at):
    sale = Sale(customer_id=customer.id, total=product.price * quantity, created_at=created_at)
    db.add(sale)
    db.flush()
    db.add(SaleItem(sale_id=sale.id, product_id=product.id, quantity=quantity, unit_price=product.price))
    db.commit()


class TestStats:

    def test_empty(self, client, admin_headers):
        stats = client.get("/api/stats/", headers=admin_headers).json()

        assert stats["sales_today"] == 0
        assert stats["revenue_month"] == 0.0
        assert stats["top_products_qty"] == []
        assert len(stats["sales_by_day"]) == 7

    def test_counts_and_top_products(self, client, db_session, admin_headers, customer_user, product):
        now = datetime.now(timezone.utc)
        add_sale(db_session, customer_user, product, 2, now)
        add_sale(db_session, customer_user, product, 1, now - timedelta(days=40))

        stats = client.get("/api/stats/", headers=admin_headers).json()

        assert stats["sales_today"] == 1
        assert stats["revenue_today"] == float(Decimal("200.00"))
        assert stats["sales_by_day"][-1] == {"date": now.date().isoformat(), "revenue": 200.0}
        assert stats["top_products_qty"] == [{"name": "Runner", "total_qty": 3}]

    def test_requires_admin(self, client, customer_headers):
        assert client.get("/api/stats/", headers=customer_headers).status_code == 403
