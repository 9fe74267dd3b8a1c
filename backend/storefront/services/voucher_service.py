# Overview: Service-layer operations for vouchers; eligibility, claims, single-use marking, previews and seeding.

"""
Voucher Service

A voucher is usable when its status is 'active' or NULL and it has not
expired. Per-user consumption lives in user_vouchers: a claim's used flag
goes False -> True once, through a conditional UPDATE, and never back.

The eligibility query never writes. The WELCOME10 voucher is created by
seed_welcome_voucher(), which runs at startup and from the CLI.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Cart, CartItem, Product, User, UserVoucher, Voucher
from ..models.vouchers import DISCOUNT_FIXED_AMOUNT, DISCOUNT_TYPES, VOUCHER_STATUSES
from ..validation import ConflictError, NotFoundError, ValidationError, parse_int, parse_optional_int
from storefront.time_utils import add_months, parse_iso_datetime, to_utc_z, utcnow
from .catalog_service import active_discounts
from .pricing import (
    PricedLine,
    VoucherTerms,
    effective_unit_price,
    final_total_cents,
    infer_legacy_discount,
    subtotal_cents,
    to_cents,
    voucher_discount_cents,
)


WELCOME_VOUCHER_CODE = "WELCOME10"
WELCOME_VOUCHER_AMOUNT_CENTS = 10_000
WELCOME_VOUCHER_MIN_ORDER_CENTS = 50_000


def _usable_filter(at: datetime):
    return and_(
        or_(Voucher.status.is_(None), Voucher.status == "active"),
        or_(Voucher.expires_at.is_(None), Voucher.expires_at > at),
    )


def is_usable(voucher: Voucher, at: datetime | None = None) -> bool:
    at = at or utcnow()
    if voucher.status not in (None, "active"):
        return False
    return voucher.expires_at is None or voucher.expires_at > at


def is_live_for_checkout(voucher: Voucher, at: datetime | None = None) -> bool:
    """Checkout is stricter than eligibility: status must be 'active' and an expiry must be set and in the future."""
    at = at or utcnow()
    return voucher.status == "active" and voucher.expires_at is not None and voucher.expires_at > at


def terms_for(voucher: Voucher) -> VoucherTerms:
    return VoucherTerms(
        discount_type=voucher.discount_type,
        discount_value=voucher.discount_value,
        max_discount_cents=voucher.max_discount_cents,
    )


def compute_discount(voucher: Voucher, subtotal: int) -> int:
    return voucher_discount_cents(
        subtotal,
        terms_for(voucher),
        default_cap_cents=current_app.config.get("PERCENT_DISCOUNT_CAP_CENTS", 100_000),
    )


def _has_used_claim(user_id: int, voucher_id: int) -> bool:
    return db.session.query(UserVoucher.id).filter_by(
        user_id=user_id, voucher_id=voucher_id, used=True
    ).first() is not None


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

def eligible_vouchers(user_id: int) -> list[dict]:
    """
    Vouchers the user can still apply.

    Global entries have no claim by this user yet; user_specific entries are
    the user's own unused claims. Read-only.
    """
    rows = (
        db.session.query(Voucher, UserVoucher)
        .outerjoin(
            UserVoucher,
            and_(UserVoucher.voucher_id == Voucher.id, UserVoucher.user_id == user_id),
        )
        .filter(_usable_filter(utcnow()))
        .filter(or_(UserVoucher.id.is_(None), UserVoucher.used.is_(False)))
        .order_by(Voucher.created_at.desc(), Voucher.id.desc())
        .all()
    )

    result = []
    for voucher, claim in rows:
        entry = voucher.to_dict()
        entry.update({
            "voucher_type": "user_specific" if claim else "global",
            "user_voucher_id": claim.id if claim else None,
            "claimed_at": to_utc_z(claim.claimed_at) if claim else None,
            "used": claim.used if claim else None,
        })
        result.append(entry)
    return result


# ---------------------------------------------------------------------------
# Claim / use
# ---------------------------------------------------------------------------

def claim_voucher(user_id: int, voucher_id: int) -> tuple[UserVoucher, bool]:
    """
    Idempotently claim a voucher for a user.

    Returns (claim, created). An existing claim is returned as is, used or not.
    """
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    voucher = db.session.get(Voucher, voucher_id)
    if voucher is None or not is_usable(voucher):
        raise NotFoundError("Voucher not found or expired")

    existing = db.session.query(UserVoucher).filter_by(user_id=user_id, voucher_id=voucher_id).first()
    if existing:
        return existing, False

    claim = UserVoucher(user_id=user_id, voucher_id=voucher_id, claimed_at=utcnow(), used=False)
    db.session.add(claim)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = db.session.query(UserVoucher).filter_by(user_id=user_id, voucher_id=voucher_id).one()
        return existing, False
    return claim, True


def mark_claim_used(user_voucher_id: int, *, user_id: int, voucher_id: int | None = None) -> bool:
    """
    Conditional used=False -> True on one claim. Caller commits.

    Returns False when no row matched (unknown, foreign, or already used).
    """
    query = db.session.query(UserVoucher).filter(
        UserVoucher.id == user_voucher_id,
        UserVoucher.user_id == user_id,
        UserVoucher.used.is_(False),
    )
    if voucher_id is not None:
        query = query.filter(UserVoucher.voucher_id == voucher_id)
    updated = query.update({"used": True, "used_at": utcnow()}, synchronize_session=False)
    return updated == 1


def use_voucher(user_id: int, voucher_id: int, user_voucher_id: int | None = None) -> UserVoucher:
    """
    Mark the user's claim on a voucher as used, outside checkout.

    Without user_voucher_id the user's claim is looked up, and a global
    voucher with no claim yet gets a claim recorded as used. A second call
    raises ConflictError.
    """
    if db.session.get(Voucher, voucher_id) is None:
        raise NotFoundError("Voucher not found")

    if user_voucher_id is None:
        claim = db.session.query(UserVoucher).filter_by(user_id=user_id, voucher_id=voucher_id).first()
        if claim is None:
            if db.session.get(User, user_id) is None:
                raise NotFoundError("User not found")
            now = utcnow()
            claim = UserVoucher(user_id=user_id, voucher_id=voucher_id, claimed_at=now, used=True, used_at=now)
            db.session.add(claim)
            try:
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                raise ConflictError("Voucher already used")
            return claim
        user_voucher_id = claim.id

    claim = db.session.get(UserVoucher, user_voucher_id)
    if claim is None or claim.user_id != user_id or claim.voucher_id != voucher_id:
        raise NotFoundError("Voucher claim not found")

    if not mark_claim_used(user_voucher_id, user_id=user_id, voucher_id=voucher_id):
        db.session.rollback()
        raise ConflictError("Voucher already used")

    db.session.commit()
    db.session.refresh(claim)
    return claim


# ---------------------------------------------------------------------------
# Pricing with a voucher
# ---------------------------------------------------------------------------

def resolve_for_checkout(
    user_id: int,
    voucher_id: int | None,
    user_voucher_id: int | None,
    subtotal: int,
) -> tuple[Voucher, int] | None:
    """
    (voucher, discount_cents) when the voucher applies, else None.

    Never raises for a voucher that does not qualify: inactive, expired,
    below the minimum, a claim that is not the user's own unused claim on
    this voucher, or a voucher the user has already used all make it
    silently not apply.
    """
    if voucher_id is None:
        return None

    voucher = db.session.get(Voucher, voucher_id)
    if voucher is None or not is_live_for_checkout(voucher):
        return None
    if subtotal < voucher.min_order_cents:
        return None

    if user_voucher_id is not None:
        claim = db.session.get(UserVoucher, user_voucher_id)
        if claim is None or claim.user_id != user_id or claim.voucher_id != voucher.id or claim.used:
            return None

    if _has_used_claim(user_id, voucher.id):
        return None

    discount = compute_discount(voucher, subtotal)
    if discount <= 0:
        return None
    return voucher, discount


def selected_lines(user_id: int, cart_item_ids: list[int]) -> list[PricedLine]:
    """
    Price the user's selected cart lines at the current effective price.

    Raises ValidationError unless every id is a distinct line in this
    user's cart. A repeated id counts as a missing line.
    """
    ids = list(cart_item_ids)
    if not ids:
        raise ValidationError("No items selected")

    rows = (
        db.session.query(CartItem, Product)
        .join(Cart, Cart.id == CartItem.cart_id)
        .join(Product, Product.id == CartItem.product_id)
        .filter(Cart.user_id == user_id, CartItem.id.in_(ids))
        .order_by(CartItem.id.asc())
        .all()
    )
    if len(rows) != len(ids):
        raise ValidationError("Some selected cart items were not found")

    discounts = active_discounts({product.id for _, product in rows})
    lines = []
    for item, product in rows:
        discount = discounts.get(product.id)
        lines.append(PricedLine(
            cart_item_id=item.id,
            product_id=product.id,
            product_name=product.name,
            quantity=item.quantity,
            unit_price_cents=effective_unit_price(
                product.price_cents, discount.discount_price_cents if discount else None
            ),
        ))
    return lines


def preview(user_id: int, voucher_id: int, cart_item_ids: list[int]) -> dict:
    """Discount the voucher would give on the selected lines. No writes."""
    voucher = db.session.get(Voucher, voucher_id)
    if voucher is None or not is_usable(voucher):
        raise NotFoundError("Voucher not found or expired")

    lines = selected_lines(user_id, cart_item_ids)
    subtotal = subtotal_cents(lines)

    if subtotal < voucher.min_order_cents:
        raise ValidationError(f"Minimum order value of {voucher.min_order_cents} cents not met")
    if _has_used_claim(user_id, voucher.id):
        raise ValidationError("Voucher already used")

    claim = db.session.query(UserVoucher).filter_by(user_id=user_id, voucher_id=voucher.id).first()
    discount = compute_discount(voucher, subtotal)

    return {
        "success": True,
        "voucherId": voucher.id,
        "voucherCode": voucher.code,
        "userVoucherId": claim.id if claim else None,
        "discountType": voucher.discount_type,
        "discountValue": voucher.discount_value,
        "originalAmount": subtotal,
        "discountAmount": discount,
        "finalAmount": final_total_cents(subtotal, discount),
    }


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

def seed_welcome_voucher() -> tuple[Voucher, bool]:
    """
    Create WELCOME10 if it does not exist yet. Returns (voucher, created).

    100.00 off orders of 500.00 or more, valid one month from seeding.
    """
    existing = db.session.query(Voucher).filter_by(code=WELCOME_VOUCHER_CODE).first()
    if existing:
        return existing, False

    voucher = Voucher(
        code=WELCOME_VOUCHER_CODE,
        discount_type=DISCOUNT_FIXED_AMOUNT,
        discount_value=WELCOME_VOUCHER_AMOUNT_CENTS,
        min_order_cents=WELCOME_VOUCHER_MIN_ORDER_CENTS,
        expires_at=add_months(utcnow(), 1),
        usage_limit=1,
        status="active",
    )
    db.session.add(voucher)
    try:
        db.session.commit()
    except IntegrityError:
        # Another worker seeded it first
        db.session.rollback()
        return db.session.query(Voucher).filter_by(code=WELCOME_VOUCHER_CODE).one(), False

    current_app.logger.info("Seeded %s voucher (id=%s)", WELCOME_VOUCHER_CODE, voucher.id)
    return voucher, True


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def list_vouchers_with_usage() -> list[dict]:
    claimed = (
        db.session.query(UserVoucher.voucher_id, func.count(UserVoucher.id).label("claimed"))
        .group_by(UserVoucher.voucher_id)
        .subquery()
    )
    used = (
        db.session.query(UserVoucher.voucher_id, func.count(UserVoucher.id).label("used"))
        .filter(UserVoucher.used.is_(True))
        .group_by(UserVoucher.voucher_id)
        .subquery()
    )
    rows = (
        db.session.query(Voucher, claimed.c.claimed, used.c.used)
        .outerjoin(claimed, claimed.c.voucher_id == Voucher.id)
        .outerjoin(used, used.c.voucher_id == Voucher.id)
        .order_by(Voucher.created_at.desc(), Voucher.id.desc())
        .all()
    )

    result = []
    for voucher, times_claimed, times_used in rows:
        entry = voucher.to_dict()
        entry["times_claimed"] = times_claimed or 0
        entry["times_used"] = times_used or 0
        result.append(entry)
    return result


def _parse_discount(data: dict) -> tuple[str, int]:
    if data.get("discount_type") is not None:
        discount_type = str(data["discount_type"]).strip().upper()
        if discount_type not in DISCOUNT_TYPES:
            raise ValidationError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")
        if data.get("discount_value") is None:
            raise ValidationError("discount_value is required")
        value = parse_int(data["discount_value"], "discount_value", minimum=0)
        if discount_type != DISCOUNT_FIXED_AMOUNT and value > 10_000:
            raise ValidationError("discount_value for PERCENTAGE is basis points and cannot exceed 10000")
        return discount_type, value

    if data.get("discount_amount") is not None:
        return infer_legacy_discount(data["discount_amount"])

    raise ValidationError("discount_type and discount_value (or discount_amount) are required")


def create_voucher(data: dict, admin_id: int | None = None) -> Voucher:
    """
    Back-office voucher creation.

    Takes discount_type + discount_value in storage units, or a legacy
    discount_amount whose magnitude picks the type here, once. Minimum order
    is min_order_cents, or min_order_value in currency units.
    """
    code = str(data.get("code") or "").strip().upper()
    if not code:
        raise ValidationError("code is required")
    if len(code) > 50:
        raise ValidationError("code exceeds max length 50")

    discount_type, discount_value = _parse_discount(data)

    if data.get("min_order_cents") is not None:
        min_order = parse_int(data["min_order_cents"], "min_order_cents", minimum=0)
    elif data.get("min_order_value") is not None:
        min_order = to_cents(data["min_order_value"], "min_order_value")
    else:
        min_order = 0
    if min_order < 0:
        raise ValidationError("min_order_value must be >= 0")

    raw_expiry = data.get("expires_at", data.get("expiry_date"))
    try:
        expires_at = parse_iso_datetime(raw_expiry) if raw_expiry else None
    except (TypeError, ValueError):
        raise ValidationError("expires_at must be an ISO-8601 datetime")

    status = data.get("status") or "active"
    if status not in VOUCHER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(VOUCHER_STATUSES)}")

    voucher = Voucher(
        admin_id=admin_id,
        code=code,
        discount_type=discount_type,
        discount_value=discount_value,
        max_discount_cents=parse_optional_int(data.get("max_discount_cents"), "max_discount_cents", minimum=0),
        min_order_cents=min_order,
        expires_at=expires_at,
        usage_limit=parse_optional_int(data.get("usage_limit"), "usage_limit", minimum=1) or 1,
        status=status,
    )
    db.session.add(voucher)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"Voucher code {code} already exists")
    return voucher


def delete_voucher(voucher_id: int) -> None:
    voucher = db.session.get(Voucher, voucher_id)
    if voucher is None:
        raise NotFoundError("Voucher not found")
    db.session.delete(voucher)
    db.session.commit()
