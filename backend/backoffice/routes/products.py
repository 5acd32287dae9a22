# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product catalog routes.

MULTI-TENANT: All product operations are scoped to the caller's company
(g.company_id, set by @require_tenant). Products of another company
answer 404.
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_tenant
from ..models import Product
from ..services import products_service
from ..services.errors import OrderError
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_product,
    parse_bool_arg,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code",
        "name",
        "description",
        "category",
        "brand",
        "unit",
        "cost_price_cents",
        "sale_price_cents",
        "stock",
        "min_stock",
        "is_active",
    },
    required_on_create={"code", "name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_tenant
def list_products():
    """
    List products with optional filters and pagination.

    Query params:
    - search: matches name, code or description
    - category: exact category
    - active: "true" / "false"
    - page, per_page: pagination (omit page to get every item)
    """
    return products_service.list_products(
        g.company_id,
        search=request.args.get("search"),
        category=request.args.get("category"),
        active=parse_bool_arg(request.args.get("active")),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.get("/low-stock")
@require_tenant
def low_stock():
    """Active products at or below their own minimum stock."""
    items = products_service.low_stock_products(g.company_id)
    return {"items": items, "count": len(items)}


@products_bp.get("/<int:product_id>")
@require_tenant
def get_product_route(product_id: int):
    product = products_service.get_product(g.company_id, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product


@products_bp.post("")
@require_tenant
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(g.company_id, patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400

    return created, 201


@products_bp.put("/<int:product_id>")
@require_tenant
def update_product_route(product_id: int):
    """
    Update a product. A `stock` value is applied as a ledger movement to
    reach that quantity.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(g.company_id, product_id, patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except OrderError as e:
        return e.to_dict(), e.http_status

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated, 200


@products_bp.patch("/<int:product_id>/stock")
@require_tenant
def adjust_stock_route(product_id: int):
    """
    Manual stock movement.

    Body: {"quantity": int > 0, "operation": "IN" | "OUT"}
    """
    payload = request.get_json(silent=True) or {}

    try:
        product = products_service.adjust_stock(
            g.company_id,
            product_id,
            payload.get("quantity"),
            payload.get("operation"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except OrderError as e:
        return e.to_dict(), e.http_status
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    return product, 200


@products_bp.delete("/<int:product_id>")
@require_tenant
def delete_product_route(product_id: int):
    """
    Delete a product. Products used by any order are deactivated instead.
    """
    outcome = products_service.delete_product(g.company_id, product_id)
    if outcome is None:
        return {"error": "Product not found"}, 404
    return {"ok": True, "result": outcome}, 200
