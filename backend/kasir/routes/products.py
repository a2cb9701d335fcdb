# Overview: Flask API routes for products and categories; parses input and returns JSON responses.

"""
Product and category routes.

MULTI-TENANT: All operations are scoped to g.tenant_id.
- Read operations require products.read.outlet
- Writes require products.create / update / delete
"""

from flask import Blueprint, request, jsonify, g

from ..services import product_service
from ..decorators import require_auth, require_permission
from .errors import json_error


products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in {"1", "true", "yes"}


# =============================================================================
# Categories
# =============================================================================

@categories_bp.get("")
@require_auth
@require_permission("products.read.outlet")
def list_categories_route():
    categories = product_service.list_categories(g.tenant_id)
    return jsonify({"count": len(categories), "categories": [c.to_dict() for c in categories]})


@categories_bp.post("")
@require_auth
@require_permission("products.create.outlet")
def create_category_route():
    try:
        category = product_service.create_category(g.tenant_id, g.current_user.id, request.get_json(silent=True))
        return jsonify({"message": "Category created successfully", "category": category.to_dict()}), 201
    except Exception as exc:
        return json_error(exc)


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_permission("products.delete.outlet")
def delete_category_route(category_id: int):
    try:
        product_service.delete_category(g.tenant_id, g.current_user.id, category_id)
        return jsonify({"message": "Category deleted successfully"})
    except Exception as exc:
        return json_error(exc)


# =============================================================================
# Products
# =============================================================================

@products_bp.get("")
@require_auth
@require_permission("products.read.outlet")
def list_products_route():
    """
    Query params: outlet_id, category_id, include_inactive, search
    (case-insensitive over name / sku / barcode).
    """
    try:
        result = product_service.list_products(
            g.tenant_id,
            outlet_id=request.args.get("outlet_id", type=int),
            category_id=request.args.get("category_id", type=int),
            include_inactive=_flag("include_inactive"),
            search=(request.args.get("search") or "").strip() or None,
        )
        result["products"] = [p.to_dict() for p in result["products"]]
        return jsonify(result)
    except Exception as exc:
        return json_error(exc)


@products_bp.get("/low-stock")
@require_auth
@require_permission("products.read.outlet")
def low_stock_route():
    try:
        products = product_service.low_stock_products(
            g.tenant_id, outlet_id=request.args.get("outlet_id", type=int)
        )
        return jsonify({
            "tenant_id": g.tenant_id,
            "count": len(products),
            "products": [p.to_dict() for p in products],
        })
    except Exception as exc:
        return json_error(exc)


@products_bp.post("")
@require_auth
@require_permission("products.create.outlet")
def create_product_route():
    try:
        product = product_service.create_product(g.tenant_id, g.current_user.id, request.get_json(silent=True))
        return jsonify({"message": "Product created successfully", "product": product.to_dict()}), 201
    except Exception as exc:
        return json_error(exc)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("products.read.outlet")
def get_product_route(product_id: int):
    try:
        product = product_service.get_product(g.tenant_id, product_id)
        data = product.to_dict()
        data["outlet"] = product.outlet.summary()
        return jsonify({"product": data})
    except Exception as exc:
        return json_error(exc)


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("products.update.outlet")
def update_product_route(product_id: int):
    try:
        product = product_service.update_product(
            g.tenant_id, g.current_user.id, product_id, request.get_json(silent=True)
        )
        return jsonify({"message": "Product updated successfully", "product": product.to_dict()})
    except Exception as exc:
        return json_error(exc)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("products.delete.outlet")
def delete_product_route(product_id: int):
    try:
        product_service.delete_product(g.tenant_id, g.current_user.id, product_id)
        return jsonify({"message": "Product deleted successfully"})
    except Exception as exc:
        return json_error(exc)


@products_bp.post("/<int:product_id>/toggle-active")
@require_auth
@require_permission("products.update.outlet")
def toggle_product_route(product_id: int):
    try:
        product = product_service.toggle_product_active(g.tenant_id, g.current_user.id, product_id)
        state = "activated" if product.is_active else "deactivated"
        return jsonify({"message": f"Product {state} successfully", "product": product.to_dict()})
    except Exception as exc:
        return json_error(exc)


@products_bp.post("/<int:product_id>/adjust-stock")
@require_auth
@require_permission("products.update.outlet")
def adjust_stock_route(product_id: int):
    """Body: {"quantity": <signed int>, "reason": "..."}"""
    try:
        result = product_service.adjust_stock(
            g.tenant_id, g.current_user.id, product_id, request.get_json(silent=True)
        )
        result["product"] = result["product"].to_dict()
        result["message"] = "Stock adjusted successfully"
        return jsonify(result)
    except Exception as exc:
        return json_error(exc)
