# Overview: Service-layer operations for placed orders; history reads and back-office status changes.

"""
Orders are written once by checkout_service. Afterwards only status moves:
totals and line subtotals are snapshots and are never recomputed.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Order, OrderItem, User
from ..models.orders import ORDER_STATUS_CANCELLED
from ..validation import NotFoundError, ValidationError


def _serialize(order: Order, *, include_customer: bool = False) -> dict:
    data = order.to_dict()
    user: User | None = order.user
    data["final_total_cents"] = order.total_cents
    data["shipping_address"] = user.address.one_line() if user and user.address else ""
    data["items"] = [item.to_dict() for item in sorted(order.items, key=lambda i: i.id)]
    if include_customer:
        data["user_name"] = user.name if user else None
        data["user_email"] = user.email if user else None
        data["user_phone"] = user.phones[0].phone if user and user.phones else None
    return data


def _base_query():
    return db.session.query(Order).options(
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.payment),
        selectinload(Order.user).selectinload(User.address),
    )


def orders_for_user(user_id: int) -> list[dict]:
    orders = (
        _base_query()
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [_serialize(o) for o in orders]


def all_orders() -> list[dict]:
    orders = _base_query().order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [_serialize(o, include_customer=True) for o in orders]


def purchase_summary(user_id: int, product_id: int) -> dict:
    """Whether the user has ever ordered the product, from real order history."""
    count = (
        db.session.query(func.count(OrderItem.id))
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.user_id == user_id, OrderItem.product_id == product_id)
        .scalar()
    ) or 0
    return {"hasPurchased": count > 0, "purchaseCount": count}


def _get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def update_status(order_id: int, status: str) -> Order:
    status = (status or "").strip()
    if not status:
        raise ValidationError("status is required")
    if len(status) > 50:
        raise ValidationError("status exceeds max length 50")

    order = _get_order(order_id)
    order.status = status
    db.session.commit()
    return order


def cancel_order(order_id: int) -> Order:
    return update_status(order_id, ORDER_STATUS_CANCELLED)


def delete_order(order_id: int) -> None:
    """Items, payment and voucher link go with the order; inventory log rows stay."""
    order = _get_order(order_id)
    db.session.delete(order)
    db.session.commit()
