from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_CANCELLED = "Cancelled"

PAYMENT_METHOD_COD = "cod"
PAYMENT_METHOD_CARD = "card"
VALID_PAYMENT_METHODS = (PAYMENT_METHOD_COD, PAYMENT_METHOD_CARD)

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_COMPLETED = "completed"


class Cart(db.Model):
    """One cart per user, created the first time something is added."""
    __tablename__ = "carts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "CartItem", backref="cart", lazy=True, cascade="all, delete-orphan", passive_deletes=True
    )


class CartItem(db.Model):
    """
    Cart line. quantity is always > 0: setting it to 0 deletes the row.

    voucher_id is a per-line voucher reference kept for the front end;
    checkout pricing uses the voucher passed with the checkout request.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
        db.UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    voucher_id = db.Column(db.Integer, db.ForeignKey("vouchers.id", ondelete="SET NULL"), nullable=True)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "cart_item_id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "voucher_id": self.voucher_id,
            "added_at": to_utc_z(self.added_at),
        }


class Order(db.Model):
    """
    Placed order.

    total_price_cents (before voucher) and total_cents (after voucher) are
    snapshots taken at checkout and never recomputed from products.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    total_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(50), nullable=False, default=ORDER_STATUS_PROCESSING)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship(
        "User", backref=db.backref("orders", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    )
    items = db.relationship(
        "OrderItem", backref="order", lazy=True, cascade="all, delete-orphan", passive_deletes=True
    )
    payment = db.relationship(
        "Payment", uselist=False, backref="order", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self) -> dict:
        return {
            "order_id": self.id,
            "user_id": self.user_id,
            "total_price_cents": self.total_price_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "payment_method": self.payment.method if self.payment else None,
            "payment_status": self.payment.status if self.payment else None,
        }


class OrderItem(db.Model):
    """subtotal_cents is the already-discounted line total at checkout time."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept when the product is deleted so order history survives
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "order_item_id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_link": self.product.product_link if self.product else None,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
            "unit_price_cents": self.subtotal_cents // self.quantity if self.quantity else 0,
        }


class Payment(db.Model):
    """
    One payment row per order.

    There is no gateway: cash on delivery starts 'pending', every other
    method is recorded as 'completed' at checkout.
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)
    method = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "payment_id": self.id,
            "order_id": self.order_id,
            "payment_method": self.method,
            "payment_status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
