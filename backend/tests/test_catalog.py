"""Catalog read tests: listing, detail, discount windows and categories."""

from datetime import timedelta

from storefront.models import ProductCategory, ProductDiscount
from storefront.services import catalog_service
from storefront.time_utils import utcnow


class TestProductListing:
    def test_list_products(self, client, make_product):
        older = make_product(name="Older")
        newer = make_product(name="Newer")

        products = client.get("/products").json

        assert [p["id"] for p in products] == [newer.id, older.id]
        assert products[0]["pieces_sold"] == 0
        assert products[0]["rating"] == 0.0

    def test_detail_with_active_discount(self, client, make_product):
        product = make_product(price_cents=50_000, discount_price_cents=40_000)

        data = client.get(f"/products/{product.id}").json

        assert data["price_cents"] == 50_000
        assert data["discount_price_cents"] == 40_000
        assert data["effective_price_cents"] == 40_000

    def test_missing_product(self, client, db_session):
        resp = client.get("/products/98765")
        assert resp.status_code == 404
        assert resp.json["error"] == "Product not found"

    def test_categories(self, client, db_session):
        db_session.add_all([ProductCategory(name="Toys"), ProductCategory(name="Books")])
        db_session.commit()

        names = [c["name"] for c in client.get("/categories").json]

        assert names == ["Books", "Toys"]


class TestDiscountWindows:
    def test_window_is_half_open(self, db_session, make_product):
        product = make_product(price_cents=1_000)
        start = utcnow() - timedelta(hours=1)
        end = utcnow() + timedelta(hours=1)
        db_session.add(ProductDiscount(product_id=product.id, discount_price_cents=800, starts_at=start, ends_at=end))
        db_session.commit()

        assert catalog_service.active_discount_price(product.id, at=start) == 800
        assert catalog_service.active_discount_price(product.id, at=end) is None
        assert catalog_service.active_discount_price(product.id, at=start - timedelta(seconds=1)) is None

    def test_latest_started_window_wins(self, db_session, make_product):
        product = make_product(price_cents=1_000)
        now = utcnow()
        db_session.add_all([
            ProductDiscount(
                product_id=product.id, discount_price_cents=900,
                starts_at=now - timedelta(days=3), ends_at=now + timedelta(days=3),
            ),
            ProductDiscount(
                product_id=product.id, discount_price_cents=700,
                starts_at=now - timedelta(days=1), ends_at=now + timedelta(days=1),
            ),
        ])
        db_session.commit()

        assert catalog_service.active_discount_price(product.id, at=now) == 700

    def test_expired_window_ignored(self, client, db_session, make_product):
        product = make_product(price_cents=1_000)
        now = utcnow()
        db_session.add(ProductDiscount(
            product_id=product.id, discount_price_cents=500,
            starts_at=now - timedelta(days=2), ends_at=now - timedelta(days=1),
        ))
        db_session.commit()

        data = client.get(f"/products/{product.id}").json

        assert data["discount_price_cents"] is None
        assert data["effective_price_cents"] == 1_000
