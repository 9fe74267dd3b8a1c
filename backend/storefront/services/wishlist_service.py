# Overview: Service-layer operations for wishlists.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, User, Wishlist, WishlistItem
from ..validation import NotFoundError
from storefront.time_utils import to_utc_z
from .catalog_service import active_discounts, serialize_product


def _wishlist_for(user_id: int) -> Wishlist | None:
    return db.session.query(Wishlist).filter_by(user_id=user_id).first()


def get_wishlist(user_id: int) -> list[dict]:
    rows = (
        db.session.query(WishlistItem, Product)
        .join(Wishlist, Wishlist.id == WishlistItem.wishlist_id)
        .join(Product, Product.id == WishlistItem.product_id)
        .filter(Wishlist.user_id == user_id)
        .order_by(WishlistItem.added_at.desc(), WishlistItem.id.desc())
        .all()
    )
    discounts = active_discounts({product.id for _, product in rows})

    result = []
    for item, product in rows:
        data = serialize_product(product, discounts.get(product.id), len(product.reviews))
        data["wishlist_item_id"] = item.id
        data["added_at"] = to_utc_z(item.added_at)
        result.append(data)
    return result


def add_to_wishlist(user_id: int, product_id: int) -> tuple[WishlistItem, bool]:
    """Idempotent. Returns (item, created)."""
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    wishlist = _wishlist_for(user_id)
    if wishlist is None:
        wishlist = Wishlist(user_id=user_id)
        db.session.add(wishlist)
        db.session.flush()

    existing = db.session.query(WishlistItem).filter_by(wishlist_id=wishlist.id, product_id=product_id).first()
    if existing:
        return existing, False

    item = WishlistItem(wishlist_id=wishlist.id, product_id=product_id)
    db.session.add(item)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent add of the same product
        db.session.rollback()
        wishlist = _wishlist_for(user_id)
        return db.session.query(WishlistItem).filter_by(wishlist_id=wishlist.id, product_id=product_id).one(), False
    return item, True


def is_in_wishlist(user_id: int, product_id: int) -> bool:
    return (
        db.session.query(WishlistItem.id)
        .join(Wishlist, Wishlist.id == WishlistItem.wishlist_id)
        .filter(Wishlist.user_id == user_id, WishlistItem.product_id == product_id)
        .first()
    ) is not None


def remove_from_wishlist(user_id: int, product_id: int) -> None:
    wishlist = _wishlist_for(user_id)
    item = None
    if wishlist is not None:
        item = db.session.query(WishlistItem).filter_by(wishlist_id=wishlist.id, product_id=product_id).first()
    if item is None:
        raise NotFoundError("Product not in wishlist")
    db.session.delete(item)
    db.session.commit()
