# Overview: Flask API routes for catalog reads; returns JSON product and category listings.

from flask import Blueprint, jsonify

from ..services import catalog_service
from ..validation import NotFoundError


catalog_bp = Blueprint("catalog", __name__)


@catalog_bp.get("/products")
def list_products_route():
    """All products, newest first, priced as of now."""
    return jsonify(catalog_service.list_products()), 200


@catalog_bp.get("/products/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify(catalog_service.get_product(product_id)), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@catalog_bp.get("/categories")
def list_categories_route():
    return jsonify(catalog_service.list_categories()), 200
