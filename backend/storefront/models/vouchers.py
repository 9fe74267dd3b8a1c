from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


DISCOUNT_PERCENTAGE = "PERCENTAGE"
DISCOUNT_FIXED_AMOUNT = "FIXED_AMOUNT"
DISCOUNT_TYPES = (DISCOUNT_PERCENTAGE, DISCOUNT_FIXED_AMOUNT)

VOUCHER_STATUSES = ("active", "expired", "disabled")


class Voucher(db.Model):
    """
    Discount code.

    The discount kind is stored explicitly and fixed at creation:
    - PERCENTAGE: discount_value is basis points (2000 = 20%), capped by
      max_discount_cents or the app-wide ceiling
    - FIXED_AMOUNT: discount_value is cents

    status NULL is treated the same as 'active'. usage_limit is recorded
    for the back office; the per-user single use is enforced through
    UserVoucher.used.
    """
    __tablename__ = "vouchers"
    __table_args__ = (
        db.CheckConstraint("discount_value >= 0", name="ck_vouchers_value_non_negative"),
        db.CheckConstraint(
            "status IS NULL OR status IN ('active', 'expired', 'disabled')", name="ck_vouchers_status"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("admins.id", ondelete="SET NULL"), nullable=True, index=True)
    code = db.Column(db.String(50), nullable=False, unique=True, index=True)

    discount_type = db.Column(db.String(16), nullable=False)
    discount_value = db.Column(db.Integer, nullable=False)
    max_discount_cents = db.Column(db.Integer, nullable=True)

    min_order_cents = db.Column(db.Integer, nullable=False, default=0)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    usage_limit = db.Column(db.Integer, nullable=False, default=1)
    status = db.Column(db.String(10), nullable=True, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    claims = db.relationship(
        "UserVoucher", backref="voucher", lazy=True, cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Voucher id={self.id} code={self.code!r} {self.discount_type}={self.discount_value}>"

    def to_dict(self) -> dict:
        return {
            "voucher_id": self.id,
            "admin_id": self.admin_id,
            "code": self.code,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "max_discount_cents": self.max_discount_cents,
            "min_order_cents": self.min_order_cents,
            "expires_at": to_utc_z(self.expires_at),
            "usage_limit": self.usage_limit,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class UserVoucher(db.Model):
    """
    A user's claim on a voucher.

    used only ever moves False -> True, through a conditional UPDATE in
    services/voucher_service.py.
    """
    __tablename__ = "user_vouchers"
    __table_args__ = (
        db.UniqueConstraint("user_id", "voucher_id", name="uq_user_vouchers_user_voucher"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "user_voucher_id": self.id,
            "user_id": self.user_id,
            "voucher_id": self.voucher_id,
            "claimed_at": to_utc_z(self.claimed_at),
            "used": self.used,
            "used_at": to_utc_z(self.used_at),
        }


class OrderVoucher(db.Model):
    """Which voucher an order was placed with and what it took off."""
    __tablename__ = "order_vouchers"
    __table_args__ = (
        db.UniqueConstraint("order_id", "voucher_id", name="uq_order_vouchers_order_voucher"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    voucher_id = db.Column(db.Integer, db.ForeignKey("vouchers.id", ondelete="CASCADE"), nullable=False, index=True)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    applied_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "voucher_id": self.voucher_id,
            "discount_cents": self.discount_cents,
            "applied_at": to_utc_z(self.applied_at),
        }
