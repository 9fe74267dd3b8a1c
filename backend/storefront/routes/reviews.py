# Overview: Flask API routes for product reviews.

from flask import Blueprint, request, jsonify

from ..services import review_service
from ..validation import ValidationError, NotFoundError, parse_int, require_fields


reviews_bp = Blueprint("reviews", __name__, url_prefix="/reviews")


@reviews_bp.get("/product/<int:product_id>")
def product_reviews_route(product_id: int):
    return jsonify(review_service.reviews_for_product(product_id)), 200


@reviews_bp.get("/user/<int:user_id>")
def user_reviews_route(user_id: int):
    return jsonify(review_service.reviews_by_user(user_id)), 200


@reviews_bp.post("/add")
def add_review_route():
    """
    Create or replace the user's review of a product.

    Body: {userId, productId, rating (1-5), reviewText?}
    """
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "userId", "productId", "rating")
        review, created = review_service.submit_review(
            user_id=parse_int(data["userId"], "userId"),
            product_id=parse_int(data["productId"], "productId"),
            rating=parse_int(data["rating"], "rating"),
            review_text=data.get("reviewText"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "success": True,
        "created": created,
        "review": review.to_dict(),
    }), 201 if created else 200


@reviews_bp.delete("/<int:review_id>")
def delete_review_route(review_id: int):
    try:
        product_id = review_service.delete_review(review_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True, "productId": product_id}), 200
