# Overview: Flask API routes for wishlists.

from flask import Blueprint, request, jsonify

from ..services import wishlist_service
from ..validation import ValidationError, NotFoundError, parse_int, require_fields


wishlist_bp = Blueprint("wishlist", __name__, url_prefix="/wishlist")


@wishlist_bp.get("/<int:user_id>")
def get_wishlist_route(user_id: int):
    return jsonify(wishlist_service.get_wishlist(user_id)), 200


@wishlist_bp.post("/add")
def add_to_wishlist_route():
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "userId", "productId")
        item, created = wishlist_service.add_to_wishlist(
            parse_int(data["userId"], "userId"),
            parse_int(data["productId"], "productId"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "success": True,
        "created": created,
        "wishlistItemId": item.id,
    }), 201 if created else 200


@wishlist_bp.get("/check/<int:user_id>/<int:product_id>")
def check_wishlist_route(user_id: int, product_id: int):
    return jsonify({"inWishlist": wishlist_service.is_in_wishlist(user_id, product_id)}), 200


@wishlist_bp.delete("/user/<int:user_id>/product/<int:product_id>")
def remove_from_wishlist_route(user_id: int, product_id: int):
    try:
        wishlist_service.remove_from_wishlist(user_id, product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True}), 200
