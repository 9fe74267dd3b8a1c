# Overview: Pure money arithmetic for carts, vouchers and checkout; no database access.

"""
Pricing rules, all in integer cents.

- effective unit price: active discount price, else list price
- subtotal: sum of unit price x quantity
- voucher discount:
  PERCENTAGE  subtotal x bps / 10000 (half-up), capped
  FIXED_AMOUNT  the fixed value
  then never more than the subtotal
- final total: subtotal - discount, floored at 0
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from ..models.vouchers import DISCOUNT_FIXED_AMOUNT, DISCOUNT_PERCENTAGE
from ..validation import ValidationError


BASIS_POINTS = 10_000

# Legacy single-number vouchers: values up to this are a percent, above it an amount
LEGACY_PERCENT_THRESHOLD = Decimal("100")


@dataclass(frozen=True)
class VoucherTerms:
    discount_type: str
    discount_value: int
    max_discount_cents: int | None = None


@dataclass(frozen=True)
class PricedLine:
    cart_item_id: int
    product_id: int
    product_name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


def effective_unit_price(price_cents: int, discount_price_cents: int | None) -> int:
    if discount_price_cents is None:
        return price_cents
    return discount_price_cents


def subtotal_cents(lines: Iterable[PricedLine]) -> int:
    return sum(line.line_total_cents for line in lines)


def voucher_discount_cents(subtotal: int, terms: VoucherTerms, *, default_cap_cents: int) -> int:
    if subtotal <= 0:
        return 0

    if terms.discount_type == DISCOUNT_PERCENTAGE:
        raw = (subtotal * terms.discount_value + BASIS_POINTS // 2) // BASIS_POINTS
        cap = terms.max_discount_cents if terms.max_discount_cents is not None else default_cap_cents
        discount = min(raw, cap)
    elif terms.discount_type == DISCOUNT_FIXED_AMOUNT:
        discount = terms.discount_value
    else:
        raise ValueError(f"Unknown discount type: {terms.discount_type}")

    return max(0, min(discount, subtotal))


def final_total_cents(subtotal: int, discount: int) -> int:
    return max(0, subtotal - discount)


def to_cents(value, field: str = "amount") -> int:
    """Currency units (number or numeric string) to integer cents, half-up."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def infer_legacy_discount(discount_amount) -> tuple[str, int]:
    """
    Decide the discount kind of a single-number voucher once, at creation.

    <= 100 is a percentage (stored as basis points), anything larger a fixed
    amount in currency units (stored as cents).
    """
    cents = to_cents(discount_amount, "discount_amount")
    if cents < 0:
        raise ValidationError("discount_amount must be >= 0")
    if Decimal(cents) / 100 <= LEGACY_PERCENT_THRESHOLD:
        # percent x 100 = basis points, which is the same integer as the cents value
        return DISCOUNT_PERCENTAGE, cents
    return DISCOUNT_FIXED_AMOUNT, cents
