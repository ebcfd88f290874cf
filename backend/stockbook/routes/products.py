# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockbook/routes/products.py
"""
Product management routes.

OWNERSHIP: All product operations are scoped to the signed-in user
(g.current_user, set by @require_auth). Foreign ids answer 404.
"""
from flask import Blueprint, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services.products_service import (
    list_products as list_products_service,
    low_stock_products,
    get_product,
    create_product,
    update_product,
    delete_product,
)
from ..services.stock_service import InsufficientStockError, list_movements
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "sku",
        "category",
        "description",
        "quantity",
        "purchase_price_cents",
        "sale_price_cents",
        "low_stock_threshold",
    },
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products with optional pagination.

    Query params:
    - search: str (optional) - name or SKU contains
    - category: str (optional)
    - low_stock: bool (optional) - only products at/below threshold
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return list_products_service(
        user_id=g.current_user.id,
        search=request.args.get("search"),
        category=request.args.get("category"),
        low_stock=request.args.get("low_stock", "").lower() in {"1", "true"},
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/low-stock")
@require_auth
def list_low_stock():
    products = low_stock_products(user_id=g.current_user.id)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = get_product(user_id=g.current_user.id, product_id=product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.get("/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    """Stock movement history for one product, newest first."""
    product = get_product(user_id=g.current_user.id, product_id=product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    limit = request.args.get("limit", default=100, type=int)
    items = list_movements(user_id=g.current_user.id, product_id=product_id, limit=limit)
    return {"items": items, "count": len(items)}


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a new product."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = create_product(user_id=g.current_user.id, patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except SQLAlchemyError:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """
    Update a product.

    A changed `quantity` is recorded as a manual stock movement.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = update_product(user_id=g.current_user.id, product_id=product_id, patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except InsufficientStockError as e:
        return {"error": str(e), "details": e.details}, 409
    except SQLAlchemyError:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    if not updated:
        return {"error": "Product not found"}, 404

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    """
    Delete a product.

    Document lines keep their description and price but lose the product link.
    """
    try:
        deleted = delete_product(user_id=g.current_user.id, product_id=product_id)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Product not found"}, 404

    return {"ok": True}, 200
