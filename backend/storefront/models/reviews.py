from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class Review(db.Model):
    """
    One review per (user, product); resubmitting overwrites it.

    Every write here is followed by a recompute of ProductStats.rating in
    the same transaction (services/review_service.py).
    """
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    review_text = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship(
        "User", backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    )
    product = db.relationship(
        "Product", backref=db.backref("reviews", lazy=True, cascade="all, delete-orphan", passive_deletes=True)
    )

    def to_dict(self) -> dict:
        return {
            "review_id": self.id,
            "user_id": self.user_id,
            "user_name": self.user.name if self.user else None,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "rating": self.rating,
            "review_text": self.review_text,
            "created_at": to_utc_z(self.created_at),
        }
