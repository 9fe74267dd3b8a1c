# Overview: Flask API routes for cart operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import cart_service
from ..validation import ValidationError, NotFoundError, parse_int, parse_optional_int


cart_bp = Blueprint("cart", __name__, url_prefix="/cart")


@cart_bp.get("/<int:user_id>")
def get_cart_route(user_id: int):
    """Cart snapshot; an empty list when the user has no cart."""
    return jsonify(cart_service.get_cart_snapshot(user_id)), 200


@cart_bp.post("/add")
def add_to_cart_route():
    data = request.get_json(silent=True) or {}

    if not data.get("userId"):
        return jsonify({"error": "User ID is required. Please login before adding items to cart."}), 400
    if not data.get("productId"):
        return jsonify({"error": "Product ID is required"}), 400

    try:
        result = cart_service.add_item(
            user_id=parse_int(data["userId"], "userId"),
            product_id=parse_int(data["productId"], "productId"),
            quantity=parse_int(data.get("quantity", 1), "quantity"),
            voucher_id=parse_optional_int(data.get("voucherId"), "voucherId"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(result), 200


@cart_bp.put("/<int:cart_item_id>")
def update_cart_item_route(cart_item_id: int):
    """{quantity}: 0 removes the line."""
    data = request.get_json(silent=True) or {}

    if data.get("quantity") is None:
        return jsonify({"error": "quantity is required"}), 400

    try:
        result = cart_service.update_quantity(cart_item_id, parse_int(data["quantity"], "quantity"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(result), 200


@cart_bp.delete("/<int:cart_item_id>")
def remove_cart_item_route(cart_item_id: int):
    try:
        cart_service.remove_item(cart_item_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True, "cartItemId": cart_item_id}), 200


@cart_bp.put("/<int:cart_item_id>/voucher")
def set_cart_item_voucher_route(cart_item_id: int):
    data = request.get_json(silent=True) or {}

    try:
        result = cart_service.set_item_voucher(
            cart_item_id, parse_optional_int(data.get("voucherId"), "voucherId")
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(result), 200
