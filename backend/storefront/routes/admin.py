# Overview: Flask API routes for back-office operations; parses input and returns JSON responses.

# backend/storefront/routes/admin.py
"""
Back-office routes.

Provides endpoints for:
- Shopper accounts (list, create, delete)
- Products and stock (create, patch, restock, delete, inventory ledger)
- Orders (list, status change, cancel, delete)
- Vouchers (list with usage counts, create, delete)
- Reviews (list all) and the admin's own profile

Every endpoint requires an admin bearer token.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_admin
from ..services import (
    auth_service,
    inventory_service,
    order_service,
    review_service,
    session_service,
    user_service,
    voucher_service,
)
from ..services.auth_service import AuthError, PasswordValidationError
from ..services.catalog_service import get_product
from ..validation import ValidationError, ConflictError, NotFoundError, parse_int, require_fields


admin_bp = Blueprint("admin", __name__)


# =============================================================================
# USERS
# =============================================================================

@admin_bp.get("/users")
@require_admin
def list_users_route():
    users = user_service.list_users()
    return jsonify({"users": users, "count": len(users)}), 200


@admin_bp.post("/users/add")
@require_admin
def create_user_route():
    data = request.get_json(silent=True) or {}
    try:
        user = user_service.create_user(data)
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400

    current_app.logger.info("Admin %s created user %s", g.current_admin.id, user.id)
    return jsonify({"success": True, "userId": user.id}), 201


@admin_bp.delete("/users/delete/<int:user_id>")
@require_admin
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(user_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Admin %s deleted user %s", g.current_admin.id, user_id)
    return jsonify({"success": True}), 200


# =============================================================================
# PRODUCTS AND STOCK
# =============================================================================

@admin_bp.post("/products/add")
@require_admin
def create_product_route():
    """
    Body: {name, price_cents | price, stock_quantity?, description?,
    category?, product_link?, discount_price_cents | discount_price?,
    discount_start?, discount_end?}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = inventory_service.create_product(data, admin_id=g.current_admin.id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(get_product(product.id)), 201


@admin_bp.patch("/products/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        inventory_service.update_product(product_id, data)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify(get_product(product_id)), 200


@admin_bp.post("/products/add-stock")
@require_admin
def add_stock_route():
    data = request.get_json(silent=True) or {}
    try:
        require_fields(data, "product_id", "stock_quantity")
        product = inventory_service.add_stock(
            parse_int(data["product_id"], "product_id"),
            parse_int(data["stock_quantity"], "stock_quantity"),
            note=data.get("note"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "success": True,
        "productId": product.id,
        "stockQuantity": product.stock_quantity,
    }), 200


@admin_bp.delete("/products/delete/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    try:
        inventory_service.delete_product(product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Admin %s deleted product %s", g.current_admin.id, product_id)
    return jsonify({"success": True}), 200


@admin_bp.get("/inventory")
@require_admin
def inventory_ledger_route():
    return jsonify(inventory_service.inventory_ledger()), 200


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.get("/orders")
@require_admin
def list_orders_route():
    return jsonify(order_service.all_orders()), 200


@admin_bp.put("/orders/<int:order_id>/status")
@require_admin
def update_order_status_route(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.update_status(order_id, data.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True, "orderId": order.id, "status": order.status}), 200


@admin_bp.put("/orders/<int:order_id>/cancel")
@require_admin
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True, "orderId": order.id, "status": order.status}), 200


@admin_bp.delete("/orders/delete/<int:order_id>")
@require_admin
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    current_app.logger.info("Admin %s deleted order %s", g.current_admin.id, order_id)
    return jsonify({"success": True}), 200


# =============================================================================
# VOUCHERS
# =============================================================================

@admin_bp.get("/admin/vouchers")
@require_admin
def list_vouchers_route():
    return jsonify(voucher_service.list_vouchers_with_usage()), 200


@admin_bp.post("/admin/vouchers")
@require_admin
def create_voucher_route():
    """
    Body: {code, discount_type + discount_value | discount_amount,
    max_discount_cents?, min_order_cents | min_order_value?,
    expires_at | expiry_date?, usage_limit?, status?}
    """
    data = request.get_json(silent=True) or {}
    try:
        voucher = voucher_service.create_voucher(data, admin_id=g.current_admin.id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify(voucher.to_dict()), 201


@admin_bp.delete("/admin/vouchers/<int:voucher_id>")
@require_admin
def delete_voucher_route(voucher_id: int):
    try:
        voucher_service.delete_voucher(voucher_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"success": True}), 200


# =============================================================================
# REVIEWS AND PROFILE
# =============================================================================

@admin_bp.get("/reviews")
@require_admin
def list_reviews_route():
    return jsonify(review_service.all_reviews()), 200


@admin_bp.get("/admin")
@require_admin
def admin_profile_route():
    return jsonify(g.current_admin.to_dict()), 200


@admin_bp.post("/admin/change-password")
@require_admin
def change_password_route():
    """
    Change the calling admin's password.

    Every other session of this admin is revoked; the presenting token stays valid.
    """
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")

    if not current_password or not new_password:
        return jsonify({"error": "current_password and new_password are required"}), 400

    admin = g.current_admin
    try:
        auth_service.change_admin_password(admin, current_password, new_password)
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthError as e:
        return jsonify({"error": str(e)}), 401

    session_service.revoke_all_sessions(
        session_service.PRINCIPAL_ADMIN,
        admin.id,
        keep_session_id=g.session_context.session.id,
    )
    return jsonify({"success": True}), 200
