"""
Back-office tests.

Verifies:
- Every admin endpoint rejects missing tokens (401) and shopper tokens (403)
- Product, stock, order, voucher and user management
"""

import pytest

from storefront.models import InventoryLog, Order, Product, ProductDiscount, Voucher
from storefront.models.vouchers import DISCOUNT_FIXED_AMOUNT, DISCOUNT_PERCENTAGE
from storefront.services import session_service

from conftest import PASSWORD, auth_headers


ADMIN_ENDPOINTS = [
    ("GET", "/users"),
    ("POST", "/users/add"),
    ("DELETE", "/users/delete/1"),
    ("POST", "/products/add"),
    ("PATCH", "/products/1"),
    ("POST", "/products/add-stock"),
    ("DELETE", "/products/delete/1"),
    ("GET", "/inventory"),
    ("GET", "/orders"),
    ("PUT", "/orders/1/status"),
    ("PUT", "/orders/1/cancel"),
    ("DELETE", "/orders/delete/1"),
    ("GET", "/admin/vouchers"),
    ("POST", "/admin/vouchers"),
    ("DELETE", "/admin/vouchers/1"),
    ("GET", "/reviews"),
    ("GET", "/admin"),
    ("POST", "/admin/change-password"),
]


# =============================================================================
# ACCESS CONTROL
# =============================================================================


class TestAdminAccess:
    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
    def test_requires_token(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    @pytest.mark.parametrize("method,path", ADMIN_ENDPOINTS)
    def test_shopper_token_forbidden(self, client, user_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=user_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"

    def test_profile(self, client, admin, admin_headers):
        resp = client.get("/admin", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["email"] == admin.email


# =============================================================================
# PRODUCTS AND STOCK
# =============================================================================


class TestProductManagement:
    def test_create_product(self, client, db_session, admin_headers):
        resp = client.post("/products/add", headers=admin_headers, json={
            "name": "Desk Lamp",
            "price": "45.50",
            "stock_quantity": 12,
            "category": "Lighting",
            "discount_price": 39.99,
            "discount_start": "2020-01-01T00:00:00Z",
            "discount_end": "2999-01-01T00:00:00Z",
        })

        assert resp.status_code == 201
        assert resp.json["price_cents"] == 4_550
        assert resp.json["effective_price_cents"] == 3_999
        assert resp.json["category"] == "Lighting"
        assert resp.json["stock_quantity"] == 12
        log = db_session.query(InventoryLog).filter_by(product_id=resp.json["id"]).one()
        assert log.stock_added == 12
        assert db_session.query(ProductDiscount).count() == 1

    def test_create_requires_name_and_price(self, client, db_session, admin_headers):
        assert client.post("/products/add", headers=admin_headers, json={"price_cents": 100}).status_code == 400
        assert client.post("/products/add", headers=admin_headers, json={"name": "Thing"}).status_code == 400

    def test_patch_product(self, client, admin_headers, make_product):
        product = make_product(price_cents=1_000)
        resp = client.patch(f"/products/{product.id}", headers=admin_headers, json={"price_cents": 1_500})

        assert resp.status_code == 200
        assert resp.json["price_cents"] == 1_500

    def test_patch_cannot_touch_stock(self, client, admin_headers, make_product):
        product = make_product()
        resp = client.patch(f"/products/{product.id}", headers=admin_headers, json={"stock_quantity": 99})
        assert resp.status_code == 400

    def test_add_stock(self, client, db_session, admin_headers, make_product):
        product = make_product(stock=3)
        resp = client.post("/products/add-stock", headers=admin_headers, json={
            "product_id": product.id, "stock_quantity": 7,
        })

        assert resp.status_code == 200
        assert resp.json["stockQuantity"] == 10
        assert db_session.query(InventoryLog).filter_by(product_id=product.id, stock_added=7).count() == 1

    @pytest.mark.parametrize("quantity", [0, -4])
    def test_add_stock_must_be_positive(self, client, admin_headers, make_product, quantity):
        product = make_product()
        resp = client.post("/products/add-stock", headers=admin_headers, json={
            "product_id": product.id, "stock_quantity": quantity,
        })
        assert resp.status_code == 400

    def test_add_stock_unknown_product(self, client, admin_headers):
        resp = client.post("/products/add-stock", headers=admin_headers, json={
            "product_id": 5555, "stock_quantity": 1,
        })
        assert resp.status_code == 404

    def test_delete_product_keeps_order_history(
        self, client, db_session, admin_headers, user, make_product, add_to_cart
    ):
        product = make_product(stock=2)
        item = add_to_cart(user.id, product.id)
        order_id = client.post("/checkout", json={"userId": user.id, "cartItemIds": [item.id]}).json["orderId"]

        resp = client.delete(f"/products/delete/{product.id}", headers=admin_headers)

        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.get(Product, product.id) is None
        order = db_session.get(Order, order_id)
        assert order is not None
        assert order.items[0].product_id is None

    def test_inventory_ledger(self, client, admin_headers, make_product):
        product = make_product()
        client.post("/products/add-stock", headers=admin_headers, json={"product_id": product.id, "stock_quantity": 2})

        ledger = client.get("/inventory", headers=admin_headers).json

        assert ledger[0]["product_id"] == product.id
        assert ledger[0]["stock_added"] == 2


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderManagement:
    @pytest.fixture
    def order_id(self, client, user, make_product, add_to_cart):
        item = add_to_cart(user.id, make_product(stock=5).id, quantity=2)
        return client.post("/checkout", json={"userId": user.id, "cartItemIds": [item.id]}).json["orderId"]

    def test_list_includes_customer(self, client, admin_headers, order_id):
        [order] = client.get("/orders", headers=admin_headers).json
        assert order["order_id"] == order_id
        assert order["user_name"] == "Ayesha"
        assert order["items"][0]["quantity"] == 2

    def test_update_status(self, client, admin_headers, order_id):
        resp = client.put(f"/orders/{order_id}/status", headers=admin_headers, json={"status": "Shipped"})
        assert resp.status_code == 200
        assert resp.json["status"] == "Shipped"

    def test_update_status_requires_value(self, client, admin_headers, order_id):
        resp = client.put(f"/orders/{order_id}/status", headers=admin_headers, json={})
        assert resp.status_code == 400

    def test_cancel(self, client, db_session, admin_headers, order_id):
        resp = client.put(f"/orders/{order_id}/cancel", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["status"] == "Cancelled"

    def test_delete(self, client, db_session, admin_headers, order_id):
        assert client.delete(f"/orders/delete/{order_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/orders/delete/{order_id}", headers=admin_headers).status_code == 404


# =============================================================================
# VOUCHERS
# =============================================================================


class TestVoucherManagement:
    def test_create_typed_voucher(self, client, db_session, admin_headers):
        resp = client.post("/admin/vouchers", headers=admin_headers, json={
            "code": "spring25",
            "discount_type": "PERCENTAGE",
            "discount_value": 2_500,
            "max_discount_cents": 5_000,
            "min_order_cents": 10_000,
            "expires_at": "2999-01-01T00:00:00Z",
        })

        assert resp.status_code == 201
        assert resp.json["code"] == "SPRING25"
        assert resp.json["discount_type"] == DISCOUNT_PERCENTAGE
        assert resp.json["max_discount_cents"] == 5_000

    @pytest.mark.parametrize(
        "amount,kind,value",
        [(15, DISCOUNT_PERCENTAGE, 1_500), (250, DISCOUNT_FIXED_AMOUNT, 25_000)],
    )
    def test_create_legacy_voucher(self, client, db_session, admin_headers, amount, kind, value):
        resp = client.post("/admin/vouchers", headers=admin_headers, json={
            "code": f"LEGACY{amount}", "discount_amount": amount, "min_order_value": 20,
        })

        assert resp.status_code == 201
        assert resp.json["discount_type"] == kind
        assert resp.json["discount_value"] == value
        assert resp.json["min_order_cents"] == 2_000

    def test_percentage_above_hundred_rejected(self, client, db_session, admin_headers):
        resp = client.post("/admin/vouchers", headers=admin_headers, json={
            "code": "TOOMUCH", "discount_type": "PERCENTAGE", "discount_value": 12_000,
        })
        assert resp.status_code == 400

    def test_duplicate_code(self, client, admin_headers, make_voucher):
        make_voucher(code="DUPE")
        resp = client.post("/admin/vouchers", headers=admin_headers, json={
            "code": "dupe", "discount_type": "FIXED_AMOUNT", "discount_value": 100,
        })
        assert resp.status_code == 409

    def test_usage_counts(self, client, admin_headers, make_user, make_voucher, make_claim):
        voucher = make_voucher(code="COUNTED")
        make_claim(make_user().id, voucher.id)
        make_claim(make_user().id, voucher.id, used=True)

        [entry] = client.get("/admin/vouchers", headers=admin_headers).json

        assert entry["times_claimed"] == 2
        assert entry["times_used"] == 1

    def test_delete_voucher(self, client, db_session, admin_headers, make_voucher):
        voucher = make_voucher()
        voucher_id = voucher.id

        assert client.delete(f"/admin/vouchers/{voucher_id}", headers=admin_headers).status_code == 200
        db_session.expire_all()
        assert db_session.get(Voucher, voucher_id) is None


# =============================================================================
# USERS, REVIEWS, PASSWORD
# =============================================================================


class TestUserManagement:
    def test_list_users(self, client, admin_headers, user):
        resp = client.get("/users", headers=admin_headers)
        assert resp.json["count"] == 1
        assert resp.json["users"][0]["email"] == user.email

    def test_add_user(self, client, db_session, admin_headers):
        resp = client.post("/users/add", headers=admin_headers, json={
            "name": "Sana",
            "email": "sana@example.com",
            "password": PASSWORD,
            "phone": "03211111111",
            "street_no": 1,
            "house_no": 2,
            "city": "Multan",
            "country": "Pakistan",
        })
        assert resp.status_code == 201

    def test_delete_user_ends_sessions(self, client, admin_headers, user, user_headers):
        token = user_headers["Authorization"].split(" ", 1)[1]

        resp = client.delete(f"/users/delete/{user.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert session_service.validate_session(token) is None

    def test_all_reviews(self, client, admin_headers, user, make_product):
        product = make_product()
        client.post("/reviews/add", json={"userId": user.id, "productId": product.id, "rating": 5})

        reviews = client.get("/reviews", headers=admin_headers).json
        assert len(reviews) == 1


class TestChangePassword:
    def test_change_password(self, client, admin, admin_headers):
        other = client.post("/admin/login", json={"email": admin.email, "password": PASSWORD}).json["token"]

        resp = client.post("/admin/change-password", headers=admin_headers, json={
            "current_password": PASSWORD, "new_password": "N3w-Password!",
        })

        assert resp.status_code == 200
        assert client.get("/admin", headers=admin_headers).status_code == 200
        assert client.get("/admin", headers=auth_headers(other)).status_code == 401
        assert client.post("/admin/login", json={
            "email": admin.email, "password": "N3w-Password!",
        }).status_code == 200

    def test_wrong_current_password(self, client, admin_headers):
        resp = client.post("/admin/change-password", headers=admin_headers, json={
            "current_password": "Wrong123!x", "new_password": "N3w-Password!",
        })
        assert resp.status_code == 401
