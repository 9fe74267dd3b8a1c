# Overview: Flask API routes for a shopper's order history.

from flask import Blueprint, jsonify

from ..services import order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/orders")


@orders_bp.get("/user/<int:user_id>")
def user_orders_route(user_id: int):
    """Orders newest first, each with its lines and payment."""
    return jsonify(order_service.orders_for_user(user_id)), 200


@orders_bp.get("/user/<int:user_id>/product/<int:product_id>")
def purchase_check_route(user_id: int, product_id: int):
    return jsonify(order_service.purchase_summary(user_id, product_id)), 200
