# Overview: Service-layer operations for reviews; keeps ProductStats.rating equal to the mean of current reviews.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, ProductStats, Review, User
from ..validation import NotFoundError, ValidationError
from storefront.time_utils import utcnow


def recompute_rating(product_id: int) -> float:
    """
    Set ProductStats.rating to the arithmetic mean of the product's reviews
    (0 with none), creating the stats row if missing. Caller commits.
    """
    mean = db.session.query(func.avg(Review.rating)).filter(Review.product_id == product_id).scalar()
    rating = float(mean) if mean is not None else 0.0

    stats = db.session.query(ProductStats).filter_by(product_id=product_id).first()
    if stats is None:
        stats = ProductStats(product_id=product_id, pieces_sold=0, rating=rating)
        db.session.add(stats)
    else:
        stats.rating = rating
    return rating


def submit_review(user_id: int, product_id: int, rating: int, review_text: str | None = None) -> tuple[Review, bool]:
    """
    Create or overwrite the user's review of a product.

    Returns (review, created). A resubmission replaces rating, text and
    timestamp in place.
    """
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    if db.session.get(User, user_id) is None:
        raise NotFoundError("User not found")
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    review = db.session.query(Review).filter_by(user_id=user_id, product_id=product_id).first()
    created = review is None
    if created:
        review = Review(user_id=user_id, product_id=product_id)
        db.session.add(review)

    review.rating = rating
    review.review_text = (review_text or "").strip()
    review.created_at = utcnow()

    try:
        db.session.flush()
        recompute_rating(product_id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Review changed concurrently, please retry")

    return review, created


def delete_review(review_id: int) -> int:
    """Delete a review and refresh its product's rating. Returns the product id."""
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")

    product_id = review.product_id
    db.session.delete(review)
    db.session.flush()
    recompute_rating(product_id)
    db.session.commit()
    return product_id


def reviews_for_product(product_id: int) -> list[dict]:
    reviews = (
        db.session.query(Review)
        .filter_by(product_id=product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    return [r.to_dict() for r in reviews]


def reviews_by_user(user_id: int) -> list[dict]:
    reviews = (
        db.session.query(Review)
        .filter_by(user_id=user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    result = []
    for review in reviews:
        data = review.to_dict()
        data["product_link"] = review.product.product_link if review.product else None
        result.append(data)
    return result


def all_reviews() -> list[dict]:
    reviews = db.session.query(Review).order_by(Review.created_at.desc(), Review.id.desc()).all()
    return [r.to_dict() for r in reviews]
