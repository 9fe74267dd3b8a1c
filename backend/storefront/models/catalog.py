from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class ProductCategory(db.Model):
    __tablename__ = "product_categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Product(db.Model):
    """
    Sellable product.

    stock_quantity is the source of truth for availability. It only moves
    through services/inventory_service.py (admin restock) and
    services/checkout_service.py (conditional decrement), and both append an
    InventoryLog row in the same transaction.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    product_link = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    category = db.relationship("ProductCategory", backref=db.backref("products", lazy=True))
    stats = db.relationship(
        "ProductStats", uselist=False, backref="product", cascade="all, delete-orphan", passive_deletes=True
    )
    discounts = db.relationship(
        "ProductDiscount", backref="product", lazy=True, cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "product_link": self.product_link,
            "created_at": to_utc_z(self.created_at),
        }


class ProductDiscount(db.Model):
    """
    Time-windowed override price, active on [starts_at, ends_at).

    Overlapping windows are allowed; services/catalog_service.py picks the
    most recently started active window.
    """
    __tablename__ = "product_discounts"
    __table_args__ = (
        db.Index("ix_product_discounts_window", "product_id", "starts_at", "ends_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    discount_price_cents = db.Column(db.Integer, nullable=False)
    starts_at = db.Column(db.DateTime(timezone=True), nullable=False)
    ends_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "discount_price_cents": self.discount_price_cents,
            "starts_at": to_utc_z(self.starts_at),
            "ends_at": to_utc_z(self.ends_at),
        }


class ProductStats(db.Model):
    """Rolling per-product aggregates: mean review rating and units sold."""
    __tablename__ = "product_stats"
    __table_args__ = (
        db.CheckConstraint("rating >= 0 AND rating <= 5", name="ck_product_stats_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    pieces_sold = db.Column(db.Integer, nullable=False, default=0)
    rating = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "pieces_sold": self.pieces_sold,
            "rating": self.rating,
        }


class InventoryLog(db.Model):
    """
    Append-only record of stock movements.

    Audit only: current stock is Product.stock_quantity, never a sum over
    this table. Rows are never updated; they only go away together with their product.
    """
    __tablename__ = "inventory_logs"
    __table_args__ = (
        db.Index("ix_inventory_logs_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    stock_added = db.Column(db.Integer, nullable=False, default=0)
    stock_removed = db.Column(db.Integer, nullable=False, default=0)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship(
        "Product",
        backref=db.backref("inventory_logs", lazy=True, cascade="all, delete-orphan", passive_deletes=True),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "stock_added": self.stock_added,
            "stock_removed": self.stock_removed,
            "order_id": self.order_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
