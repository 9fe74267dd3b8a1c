"""
Pytest fixtures for storefront backend tests.

Provides an in-memory application, a clean database per test, and
factories for shoppers, admins, products, vouchers and carts.
"""

from datetime import timedelta
from itertools import count

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import (
    Product,
    ProductDiscount,
    ProductStats,
    Voucher,
    UserVoucher,
    CartItem,
    Cart,
)
from storefront.models.vouchers import DISCOUNT_FIXED_AMOUNT, DISCOUNT_PERCENTAGE
from storefront.services import auth_service
from storefront.time_utils import utcnow


PASSWORD = "Password123!"

_seq = count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SEED_WELCOME_VOUCHER': False,
        'BCRYPT_ROUNDS': 4,
        'LOGIN_RETRY_BACKOFF_SECONDS': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    """Create a shopper through the signup service."""
    def _make(name="Test Shopper", email=None, phone=None, password=PASSWORD):
        n = next(_seq)
        return auth_service.signup({
            "name": name,
            "email": email or f"shopper{n}@example.com",
            "password": password,
            "phone": phone or f"0300{n:07d}",
            "street_no": 12,
            "house_no": 7,
            "block_name": "C",
            "society": "Garden Town",
            "city": "Lahore",
            "country": "Pakistan",
        })
    return _make


@pytest.fixture(scope='function')
def user(make_user):
    return make_user(name="Ayesha")


@pytest.fixture(scope='function')
def admin(db_session):
    return auth_service.create_admin("Store Admin", "admin@store.local", PASSWORD)


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    resp = client.post('/admin/login', json={'email': admin.email, 'password': PASSWORD})
    assert resp.status_code == 200
    return auth_headers(resp.json['token'])


@pytest.fixture(scope='function')
def user_headers(client, user):
    resp = client.post('/login', json={'email': user.email, 'password': PASSWORD})
    assert resp.status_code == 200
    return auth_headers(resp.json['token'])


@pytest.fixture(scope='function')
def make_product(db_session):
    """Insert a product with its stats row and, optionally, an active discount window."""
    def _make(name=None, price_cents=10_000, stock=10, discount_price_cents=None, product_link=None):
        product = Product(
            name=name or f"Product {next(_seq)}",
            price_cents=price_cents,
            stock_quantity=stock,
            product_link=product_link,
        )
        db_session.add(product)
        db_session.flush()
        db_session.add(ProductStats(product_id=product.id, pieces_sold=0, rating=0.0))
        if discount_price_cents is not None:
            now = utcnow()
            db_session.add(ProductDiscount(
                product_id=product.id,
                discount_price_cents=discount_price_cents,
                starts_at=now - timedelta(days=1),
                ends_at=now + timedelta(days=1),
            ))
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_voucher(db_session):
    def _make(
        code=None,
        discount_type=DISCOUNT_FIXED_AMOUNT,
        discount_value=1_000,
        min_order_cents=0,
        max_discount_cents=None,
        expires_at=None,
        status="active",
    ):
        voucher = Voucher(
            code=code or f"CODE{next(_seq)}",
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_cents=min_order_cents,
            max_discount_cents=max_discount_cents,
            expires_at=expires_at if expires_at is not None else utcnow() + timedelta(days=30),
            status=status,
        )
        db_session.add(voucher)
        db_session.commit()
        return voucher
    return _make


@pytest.fixture(scope='function')
def percent_voucher(make_voucher):
    """20% off, no explicit cap."""
    return make_voucher(code="SAVE20", discount_type=DISCOUNT_PERCENTAGE, discount_value=2_000)


@pytest.fixture(scope='function')
def make_claim(db_session):
    def _make(user_id, voucher_id, used=False):
        claim = UserVoucher(user_id=user_id, voucher_id=voucher_id, claimed_at=utcnow(), used=used)
        db_session.add(claim)
        db_session.commit()
        return claim
    return _make


@pytest.fixture(scope='function')
def add_to_cart(db_session):
    """Put a line straight into the user's cart; returns the CartItem."""
    def _add(user_id, product_id, quantity=1):
        cart = db_session.query(Cart).filter_by(user_id=user_id).first()
        if cart is None:
            cart = Cart(user_id=user_id)
            db_session.add(cart)
            db_session.flush()
        item = CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity)
        db_session.add(item)
        db_session.commit()
        return item
    return _add


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
