# Overview: Service-layer operations for carts; encapsulates business logic and database work.

"""
Cart line management.

One cart per user, created on the first add. A line's quantity is always
positive: updating it to 0 deletes the line.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product, User, Voucher
from ..validation import ValidationError, NotFoundError
from storefront.time_utils import to_utc_z
from .catalog_service import active_discounts
from .concurrency import lock_for_update
from .pricing import effective_unit_price


def get_cart_snapshot(user_id: int) -> list[dict]:
    """
    All lines of the user's cart with the price that applies right now.

    discount_price_cents is the effective unit price (active discount
    window, else list price). No cart yields an empty list.
    """
    rows = (
        db.session.query(CartItem, Product)
        .join(Cart, Cart.id == CartItem.cart_id)
        .join(Product, Product.id == CartItem.product_id)
        .filter(Cart.user_id == user_id)
        .order_by(CartItem.id.asc())
        .all()
    )
    discounts = active_discounts({product.id for _, product in rows})

    snapshot = []
    for item, product in rows:
        discount = discounts.get(product.id)
        snapshot.append({
            "cart_item_id": item.id,
            "cart_id": item.cart_id,
            "quantity": item.quantity,
            "voucher_id": item.voucher_id,
            "added_at": to_utc_z(item.added_at),
            "product_id": product.id,
            "product_name": product.name,
            "product_link": product.product_link,
            "stock_quantity": product.stock_quantity,
            "price_cents": product.price_cents,
            "discount_price_cents": effective_unit_price(
                product.price_cents, discount.discount_price_cents if discount else None
            ),
        })
    return snapshot


def _get_or_create_cart(user_id: int) -> Cart:
    cart = db.session.query(Cart).filter_by(user_id=user_id).first()
    if cart is None:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def _check_voucher(voucher_id: int | None) -> None:
    if voucher_id is not None and db.session.get(Voucher, voucher_id) is None:
        raise NotFoundError("Voucher not found")


def add_item(user_id: int, product_id: int, quantity: int = 1, voucher_id: int | None = None) -> dict:
    """
    Add a product to the user's cart.

    An existing line for the same product has its quantity increased; its
    voucher reference is replaced only when a new one is given.
    """
    if quantity < 1:
        raise ValidationError("quantity must be >= 1")
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    _check_voucher(voucher_id)

    try:
        cart = _get_or_create_cart(user_id)
        item = lock_for_update(
            db.session.query(CartItem).filter_by(cart_id=cart.id, product_id=product_id)
        ).first()

        if item is not None:
            item.quantity = item.quantity + quantity
            if voucher_id is not None:
                item.voucher_id = voucher_id
            db.session.commit()
            return {"success": True, "updated": True, "newQuantity": item.quantity, "cartItemId": item.id}

        item = CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity, voucher_id=voucher_id)
        db.session.add(item)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Cart changed concurrently, please retry")

    return {"success": True, "added": True, "cartItemId": item.id}


def _get_item(cart_item_id: int) -> CartItem:
    item = db.session.get(CartItem, cart_item_id)
    if item is None:
        raise NotFoundError(f"Cart item with id {cart_item_id} not found")
    return item


def update_quantity(cart_item_id: int, quantity: int) -> dict:
    """0 removes the line, a positive value replaces its quantity."""
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    item = _get_item(cart_item_id)

    if quantity == 0:
        db.session.delete(item)
        db.session.commit()
        return {"success": True, "removed": True, "cartItemId": cart_item_id}

    item.quantity = quantity
    db.session.commit()
    return {"success": True, "quantity": quantity, "cartItemId": cart_item_id}


def remove_item(cart_item_id: int) -> None:
    item = _get_item(cart_item_id)
    db.session.delete(item)
    db.session.commit()


def set_item_voucher(cart_item_id: int, voucher_id: int | None) -> dict:
    """Attach or clear the per-line voucher reference. Checkout does not read it."""
    item = _get_item(cart_item_id)
    _check_voucher(voucher_id)
    item.voucher_id = voucher_id
    db.session.commit()
    return {"success": True, "cartItemId": item.id, "voucherId": item.voucher_id}
