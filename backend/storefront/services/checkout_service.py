# Overview: Service-layer checkout workflow; validates selected cart lines, prices them and places the order atomically.

"""
Checkout

Two phases:

1. Validation and pricing, outside any write transaction. Rejections here
   are reportable (400) and leave nothing behind.
2. Commit phase, one transaction. Stock is taken with a conditional
   decrement per line:

       UPDATE products SET stock_quantity = stock_quantity - :q
       WHERE id = :p AND stock_quantity >= :q

   so two checkouts racing for the last unit cannot both win; the loser
   sees zero affected rows and the whole transaction rolls back.

Best-effort side writes (order/voucher link, marking the claim used,
removing the cart lines) run in savepoints inside the same transaction.
A failing savepoint is logged and rolled back on its own; the order
still commits without that side fact. Checkout never retries itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import (
    CartItem,
    InventoryLog,
    Order,
    OrderItem,
    OrderVoucher,
    Payment,
    Product,
    ProductStats,
)
from ..models.orders import (
    ORDER_STATUS_PROCESSING,
    PAYMENT_METHOD_COD,
    PAYMENT_STATUS_COMPLETED,
    PAYMENT_STATUS_PENDING,
    VALID_PAYMENT_METHODS,
)
from ..validation import ValidationError
from .concurrency import begin_write_transaction
from .pricing import PricedLine, final_total_cents, subtotal_cents
from . import voucher_service


class CheckoutError(Exception):
    """Raised for checkout validation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InsufficientStockError(CheckoutError):
    """One or more lines ask for more than is in stock."""
    def __init__(self, message: str, items: list[dict]):
        super().__init__(message, details={"items": items})
        self.items = items


@dataclass(frozen=True)
class AppliedVoucher:
    voucher_id: int
    code: str
    discount_cents: int


@dataclass
class CheckoutResult:
    order_id: int
    subtotal_cents: int
    discount_cents: int
    final_total_cents: int
    payment_method: str
    payment_status: str
    voucher: AppliedVoucher | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "orderId": self.order_id,
            "totalBeforeDiscount": self.subtotal_cents,
            "discount": self.discount_cents,
            "finalTotal": self.final_total_cents,
            "paymentMethod": self.payment_method,
            "paymentStatus": self.payment_status,
            "voucherApplied": {
                "voucherId": self.voucher.voucher_id,
                "code": self.voucher.code,
                "discountAmount": self.voucher.discount_cents,
            } if self.voucher else None,
        }


def _stock_shortfalls(lines: list[PricedLine], stock: dict[int, int]) -> list[dict]:
    shortfalls = []
    for line in lines:
        available = stock.get(line.product_id, 0)
        if line.quantity > available:
            shortfalls.append({
                "cart_item_id": line.cart_item_id,
                "product_id": line.product_id,
                "product_name": line.product_name,
                "requested": line.quantity,
                "available": available,
            })
    return shortfalls


def _current_stock(product_ids) -> dict[int, int]:
    rows = db.session.query(Product.id, Product.stock_quantity).filter(Product.id.in_(list(product_ids))).all()
    return dict(rows)


def _validate(user_id, cart_item_ids, payment_method) -> tuple[list[PricedLine], str]:
    if user_id is None:
        raise CheckoutError("User ID is required")
    if not isinstance(cart_item_ids, list) or not cart_item_ids:
        raise CheckoutError("No items selected for checkout")

    method = str(payment_method or PAYMENT_METHOD_COD).strip().lower()
    if method not in VALID_PAYMENT_METHODS:
        raise CheckoutError(
            f"Unsupported payment method: {payment_method}",
            details={"allowed": list(VALID_PAYMENT_METHODS)},
        )

    try:
        lines = voucher_service.selected_lines(user_id, cart_item_ids)
    except ValidationError as e:
        raise CheckoutError(
            "Some selected cart items were not found in your cart",
            details={"requested": cart_item_ids},
        ) from e

    shortfalls = _stock_shortfalls(lines, _current_stock({line.product_id for line in lines}))
    if shortfalls:
        raise InsufficientStockError("Insufficient stock for some items", items=shortfalls)

    return lines, method


def _take_stock(line: PricedLine) -> None:
    updated = db.session.query(Product).filter(
        Product.id == line.product_id,
        Product.stock_quantity >= line.quantity,
    ).update(
        {Product.stock_quantity: Product.stock_quantity - line.quantity},
        synchronize_session=False,
    )
    if updated != 1:
        available = db.session.query(Product.stock_quantity).filter(Product.id == line.product_id).scalar()
        raise InsufficientStockError(
            f"Insufficient stock for {line.product_name}",
            items=[{
                "cart_item_id": line.cart_item_id,
                "product_id": line.product_id,
                "product_name": line.product_name,
                "requested": line.quantity,
                "available": available or 0,
            }],
        )


def _bump_pieces_sold(product_id: int, quantity: int) -> None:
    updated = db.session.query(ProductStats).filter(ProductStats.product_id == product_id).update(
        {ProductStats.pieces_sold: ProductStats.pieces_sold + quantity},
        synchronize_session=False,
    )
    if updated == 0:
        db.session.add(ProductStats(product_id=product_id, pieces_sold=quantity, rating=0.0))
        db.session.flush()


def _best_effort(label: str, order_id: int, func, warnings: list[str]) -> None:
    """Run func in a savepoint; on a database error roll back only the savepoint."""
    try:
        with db.session.begin_nested():
            func()
    except SQLAlchemyError:
        current_app.logger.warning(
            "Checkout side write '%s' failed for order %s; order kept without it", label, order_id, exc_info=True
        )
        warnings.append(label)


def place_order(
    user_id: int | None,
    cart_item_ids: list[int] | None,
    voucher_id: int | None = None,
    user_voucher_id: int | None = None,
    payment_method: str | None = None,
) -> CheckoutResult:
    """
    Turn selected cart lines into an order.

    Raises CheckoutError for validation failures and InsufficientStockError
    (a CheckoutError) when stock runs short, either before or inside the
    transaction. Any other exception leaves the database untouched.
    """
    lines, method = _validate(user_id, cart_item_ids, payment_method)

    subtotal = subtotal_cents(lines)
    applied = voucher_service.resolve_for_checkout(user_id, voucher_id, user_voucher_id, subtotal)
    voucher = None
    if applied:
        applied_voucher, discount = applied
        voucher = AppliedVoucher(voucher_id=applied_voucher.id, code=applied_voucher.code, discount_cents=discount)
    discount = voucher.discount_cents if voucher else 0
    final_total = final_total_cents(subtotal, discount)
    payment_status = PAYMENT_STATUS_PENDING if method == PAYMENT_METHOD_COD else PAYMENT_STATUS_COMPLETED
    selected_ids = [line.cart_item_id for line in lines]
    warnings: list[str] = []

    begin_write_transaction()
    try:
        for line in lines:
            _take_stock(line)

        order = Order(
            user_id=user_id,
            total_price_cents=subtotal,
            total_cents=final_total,
            status=ORDER_STATUS_PROCESSING,
        )
        db.session.add(order)
        db.session.flush()
        order_id = order.id

        if voucher:
            _best_effort(
                "order voucher link",
                order_id,
                lambda: db.session.add(OrderVoucher(
                    order_id=order_id, voucher_id=voucher.voucher_id, discount_cents=voucher.discount_cents
                )),
                warnings,
            )

        for line in lines:
            db.session.add(OrderItem(
                order_id=order_id,
                product_id=line.product_id,
                quantity=line.quantity,
                subtotal_cents=line.line_total_cents,
            ))
            db.session.add(InventoryLog(
                product_id=line.product_id,
                stock_removed=line.quantity,
                order_id=order_id,
                note=f"Order #{order_id}",
            ))
            _bump_pieces_sold(line.product_id, line.quantity)

        db.session.add(Payment(order_id=order_id, method=method, status=payment_status))
        db.session.flush()

        if user_voucher_id is not None and voucher_id is not None:
            def _mark_used():
                if not voucher_service.mark_claim_used(user_voucher_id, user_id=user_id, voucher_id=voucher_id):
                    current_app.logger.info(
                        "User voucher %s for order %s was not marked used (unknown, foreign, other voucher or already used)",
                        user_voucher_id, order_id,
                    )
            _best_effort("voucher used marking", order_id, _mark_used, warnings)

        _best_effort(
            "cart cleanup",
            order_id,
            lambda: db.session.query(CartItem).filter(CartItem.id.in_(selected_ids)).delete(
                synchronize_session=False
            ),
            warnings,
        )

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Order %s placed by user %s: %d line(s), subtotal=%d discount=%d total=%d, payment %s/%s",
        order_id, user_id, len(lines), subtotal, discount, final_total, method, payment_status,
    )

    return CheckoutResult(
        order_id=order_id,
        subtotal_cents=subtotal,
        discount_cents=discount,
        final_total_cents=final_total,
        payment_method=method,
        payment_status=payment_status,
        voucher=voucher,
        warnings=warnings,
    )
