# Overview: Service-layer operations for stock; admin restocks, product maintenance and the inventory ledger.

"""
Product.stock_quantity is the source of truth. Every change to it is paired
with an InventoryLog row in the same transaction; the log is append-only and
never summed to derive stock.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import InventoryLog, Product, ProductCategory, ProductDiscount, ProductStats
from ..validation import (
    NotFoundError,
    PatchPolicy,
    ValidationError,
    enforce_rules_product,
    parse_int,
    validate_patch,
)
from storefront.time_utils import parse_iso_datetime
from .catalog_service import get_or_create_category
from .pricing import to_cents


PRODUCT_UPDATE_POLICY = PatchPolicy(
    writable_fields=frozenset({"name", "description", "price_cents", "product_link", "category_id"}),
    guarded_fields={"stock_quantity": "stock_quantity changes go through /products/add-stock"},
)


def _money_field(data: dict, cents_key: str, units_key: str, *, required: bool = False) -> int | None:
    if data.get(cents_key) is not None:
        return parse_int(data[cents_key], cents_key, minimum=0)
    if data.get(units_key) not in (None, ""):
        cents = to_cents(data[units_key], units_key)
        if cents < 0:
            raise ValidationError(f"{units_key} must be >= 0")
        return cents
    if required:
        raise ValidationError(f"{cents_key} (or {units_key}) is required")
    return None


def create_product(data: dict, admin_id: int | None = None) -> Product:
    """
    Back-office product creation, in one transaction:
    category get-or-create, product, stats row, optional discount window.

    Prices come as *_cents, or in currency units under the legacy names
    (price, discount_price).
    """
    name = str(data.get("name") or data.get("product_name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    price_cents = _money_field(data, "price_cents", "price", required=True)
    stock = parse_int(data.get("stock_quantity", 0), "stock_quantity", minimum=0)
    enforce_rules_product({"price_cents": price_cents, "stock_quantity": stock})

    discount_price = _money_field(data, "discount_price_cents", "discount_price")
    raw_start = data.get("discount_starts_at", data.get("discount_start"))
    raw_end = data.get("discount_ends_at", data.get("discount_end"))

    try:
        category_name = (data.get("category") or "").strip()
        category = get_or_create_category(category_name) if category_name else None

        product = Product(
            admin_id=admin_id,
            category_id=category.id if category else None,
            name=name,
            description=data.get("description"),
            price_cents=price_cents,
            stock_quantity=stock,
            product_link=data.get("product_link"),
        )
        db.session.add(product)
        db.session.flush()

        db.session.add(ProductStats(product_id=product.id, pieces_sold=0, rating=0.0))

        if discount_price is not None and raw_start and raw_end:
            try:
                starts_at = parse_iso_datetime(raw_start)
                ends_at = parse_iso_datetime(raw_end)
            except (TypeError, ValueError):
                raise ValidationError("discount window must be ISO-8601 datetimes")
            if ends_at <= starts_at:
                raise ValidationError("discount window must end after it starts")
            db.session.add(ProductDiscount(
                product_id=product.id,
                discount_price_cents=discount_price,
                starts_at=starts_at,
                ends_at=ends_at,
            ))

        if stock:
            db.session.add(InventoryLog(product_id=product.id, stock_added=stock, note="Initial stock"))

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    """Partial update of descriptive fields and price. Stock moves only through add_stock and checkout."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")

    patch = validate_patch(Product, payload, PRODUCT_UPDATE_POLICY)
    enforce_rules_product(patch)
    if patch.get("category_id") is not None and db.session.get(ProductCategory, patch["category_id"]) is None:
        raise NotFoundError("Category not found")

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def add_stock(product_id: int, quantity: int, note: str | None = None) -> Product:
    if quantity <= 0:
        raise ValidationError("stock_quantity must be > 0")

    updated = db.session.query(Product).filter(Product.id == product_id).update(
        {Product.stock_quantity: Product.stock_quantity + quantity},
        synchronize_session=False,
    )
    if updated != 1:
        db.session.rollback()
        raise NotFoundError("Product not found")

    db.session.add(InventoryLog(product_id=product_id, stock_added=quantity, note=note or "Restock"))
    db.session.commit()

    product = db.session.get(Product, product_id)
    current_app.logger.info("Added %d unit(s) to product %s, now %d", quantity, product_id, product.stock_quantity)
    return product


def delete_product(product_id: int) -> None:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    db.session.delete(product)
    db.session.commit()


def inventory_ledger() -> list[dict]:
    logs = (
        db.session.query(InventoryLog)
        .order_by(InventoryLog.occurred_at.desc(), InventoryLog.id.desc())
        .all()
    )
    return [log.to_dict() for log in logs]
