# Overview: Service-layer operations for the product catalog; read-only queries plus discount window resolution.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductCategory, ProductDiscount, ProductStats, Review
from ..validation import NotFoundError
from storefront.time_utils import utcnow, to_utc_z
from .pricing import effective_unit_price


def active_discounts(product_ids=None, at: datetime | None = None) -> dict[int, ProductDiscount]:
    """
    Map product_id -> the discount window active at `at`.

    Windows are half-open [starts_at, ends_at). When several overlap, the
    most recently started one wins (ties broken by the newest row).
    """
    at = at or utcnow()
    query = db.session.query(ProductDiscount).filter(
        ProductDiscount.starts_at <= at,
        ProductDiscount.ends_at > at,
    )
    if product_ids is not None:
        ids = list(product_ids)
        if not ids:
            return {}
        query = query.filter(ProductDiscount.product_id.in_(ids))

    result: dict[int, ProductDiscount] = {}
    for discount in query.order_by(ProductDiscount.starts_at.asc(), ProductDiscount.id.asc()):
        result[discount.product_id] = discount
    return result


def active_discount_price(product_id: int, at: datetime | None = None) -> int | None:
    discount = active_discounts([product_id], at).get(product_id)
    return discount.discount_price_cents if discount else None


def _review_counts(product_ids=None) -> dict[int, int]:
    query = db.session.query(Review.product_id, func.count(Review.id)).group_by(Review.product_id)
    if product_ids is not None:
        query = query.filter(Review.product_id.in_(list(product_ids)))
    return dict(query.all())


def serialize_product(product: Product, discount: ProductDiscount | None, review_count: int) -> dict:
    stats: ProductStats | None = product.stats
    discount_price = discount.discount_price_cents if discount else None
    data = product.to_dict()
    data.update({
        "pieces_sold": stats.pieces_sold if stats else 0,
        "rating": stats.rating if stats else 0.0,
        "review_count": review_count,
        "discount_price_cents": discount_price,
        "discount_starts_at": to_utc_z(discount.starts_at) if discount else None,
        "discount_ends_at": to_utc_z(discount.ends_at) if discount else None,
        "effective_price_cents": effective_unit_price(product.price_cents, discount_price),
    })
    return data


def list_products() -> list[dict]:
    products = db.session.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()
    discounts = active_discounts()
    counts = _review_counts()
    return [serialize_product(p, discounts.get(p.id), counts.get(p.id, 0)) for p in products]


def get_product(product_id: int) -> dict:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    discount = active_discounts([product_id]).get(product_id)
    count = _review_counts([product_id]).get(product_id, 0)
    return serialize_product(product, discount, count)


def list_categories() -> list[dict]:
    categories = db.session.query(ProductCategory).order_by(ProductCategory.name.asc()).all()
    return [c.to_dict() for c in categories]


def get_or_create_category(name: str) -> ProductCategory:
    """Caller commits."""
    name = name.strip()
    category = db.session.query(ProductCategory).filter_by(name=name).first()
    if category is None:
        category = ProductCategory(name=name)
        db.session.add(category)
        db.session.flush()
    return category
