# Overview: Flask API route for checkout; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import OperationalError

from ..services import checkout_service
from ..services.checkout_service import CheckoutError, InsufficientStockError
from ..validation import ValidationError, parse_int, parse_int_list, parse_optional_int


checkout_bp = Blueprint("checkout", __name__)


@checkout_bp.post("/checkout")
def checkout_route():
    """
    Place an order from selected cart lines.

    Body: {userId, cartItemIds, voucherId?, userVoucherId?, paymentMethod?}

    400 for validation failures, including an `items` list when stock is
    short; 503 when the database connection fails; 500 with the reason
    for anything else. Nothing is written on failure.
    """
    data = request.get_json(silent=True) or {}

    if not data.get("userId"):
        return jsonify({"success": False, "error": "User ID is required"}), 400

    cart_item_ids = data.get("cartItemIds")
    if not isinstance(cart_item_ids, list) or not cart_item_ids:
        return jsonify({"success": False, "error": "No items selected for checkout"}), 400

    try:
        result = checkout_service.place_order(
            user_id=parse_int(data["userId"], "userId"),
            cart_item_ids=parse_int_list(cart_item_ids, "cartItemIds"),
            voucher_id=parse_optional_int(data.get("voucherId"), "voucherId"),
            user_voucher_id=parse_optional_int(data.get("userVoucherId"), "userVoucherId"),
            payment_method=data.get("paymentMethod"),
        )
    except InsufficientStockError as e:
        return jsonify({"success": False, "error": str(e), "items": e.items}), 400
    except CheckoutError as e:
        return jsonify({"success": False, "error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except OperationalError:
        # Connection-level failure: the app handler resets the pool and answers 503
        raise
    except Exception as e:
        current_app.logger.exception("Failed to place order")
        return jsonify({"success": False, "error": "Checkout failed", "reason": str(e)}), 500

    return jsonify(result.to_dict()), 200
