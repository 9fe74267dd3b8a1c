# Overview: Flask API routes for shopper voucher operations; parses input and returns JSON responses.

# backend/storefront/routes/vouchers.py
"""
Voucher API routes

- List vouchers a user can still apply
- Claim (idempotent) and use (once per user per voucher)
- Preview the discount on selected cart lines without writing anything
"""

from flask import Blueprint, request, jsonify

from ..services import voucher_service
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    parse_int,
    parse_int_list,
    parse_optional_int,
    require_fields,
)
from storefront.time_utils import to_utc_z


vouchers_bp = Blueprint("vouchers", __name__)


@vouchers_bp.get("/vouchers/<int:user_id>")
def eligible_vouchers_route(user_id: int):
    return jsonify(voucher_service.eligible_vouchers(user_id)), 200


@vouchers_bp.post("/vouchers/claim")
def claim_voucher_route():
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "userId", "voucherId")
        claim, created = voucher_service.claim_voucher(
            parse_int(data["userId"], "userId"),
            parse_int(data["voucherId"], "voucherId"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({
        "success": True,
        "created": created,
        "userVoucherId": claim.id,
        "used": claim.used,
        "claimedAt": to_utc_z(claim.claimed_at),
    }), 201 if created else 200


@vouchers_bp.post("/vouchers/use")
def use_voucher_route():
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "userId", "voucherId")
        claim = voucher_service.use_voucher(
            parse_int(data["userId"], "userId"),
            parse_int(data["voucherId"], "voucherId"),
            parse_optional_int(data.get("userVoucherId"), "userVoucherId"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    return jsonify({
        "success": True,
        "userVoucherId": claim.id,
        "usedAt": to_utc_z(claim.used_at),
    }), 200


@vouchers_bp.post("/apply-voucher")
def apply_voucher_route():
    """
    Preview a voucher against selected cart lines.

    Body: {userId, voucherId, cartItemIds}. Nothing is marked used.
    """
    data = request.get_json(silent=True) or {}

    try:
        require_fields(data, "userId", "voucherId", "cartItemIds")
        result = voucher_service.preview(
            parse_int(data["userId"], "userId"),
            parse_int(data["voucherId"], "voucherId"),
            parse_int_list(data["cartItemIds"], "cartItemIds"),
        )
    except ValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404

    return jsonify(result), 200
