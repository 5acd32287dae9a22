# backend/backoffice/services/products_service.py
"""
Products Service (tenant-scoped catalog).

All product operations take the caller's company_id; rows of another
company are treated as missing.

STOCK: Product.stock is never assigned here. An initial stock on create,
a `stock` value in an update patch and manual IN/OUT movements all go
through the stock ledger. Updates and movements run the low-stock
refresh after commit.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import OrderItem, OrderStockEffect, Product
from ..validation import ConflictError, MAX_QUANTITY, ValidationError, coerce_int
from . import stock_ledger
from .alert_service import trigger_low_stock_refresh
from .concurrency import run_with_retry
from .errors import ProductNotFound
from .pagination import paginate
from .tenant_service import get_scoped, scoped_query

PRODUCT_MUTABLE_FIELDS = {
    "code",
    "name",
    "description",
    "category",
    "brand",
    "unit",
    "cost_price_cents",
    "sale_price_cents",
    "min_stock",
    "is_active",
}

STOCK_IN = "IN"
STOCK_OUT = "OUT"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_code_free(company_id: int, code: str, exclude_id: int | None = None) -> None:
    query = scoped_query(Product, company_id).filter(Product.code == code)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Product code already exists for this company.")


def list_products(
    company_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    active: bool | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Tenant-scoped product listing with optional pagination.

    Args:
        search: case-insensitive match on name, code or description
        category: exact category
        active: filter by is_active; None lists both
        page: page number (1-indexed). If None, returns all items.
        per_page: items per page (default DEFAULT_PAGE_SIZE)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    query = scoped_query(Product, company_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.code.ilike(pattern),
                Product.description.ilike(pattern),
            )
        )
    if category:
        query = query.filter(Product.category == category)
    if active is not None:
        query = query.filter(Product.is_active.is_(active))

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page, per_page, lambda p: p.to_dict())


def get_product(company_id: int, product_id) -> dict | None:
    p = get_scoped(Product, company_id, product_id)
    return p.to_dict() if p else None


def create_product(company_id: int, patch: dict) -> dict:
    """
    Create a product from a validated patch dict.

    An initial `stock` is booked through the ledger as an IN movement.

    Raises:
        ValidationError: code missing
        ConflictError: code already used by this company
    """
    code = patch.get("code")
    if not code:
        raise ValidationError("code is required")
    _ensure_code_free(company_id, code)

    initial_stock = patch.get("stock") or 0

    def _op() -> Product:
        p = Product(company_id=company_id, stock=0)
        apply_product_patch(p, patch)
        db.session.add(p)
        db.session.flush()

        if initial_stock:
            stock_ledger.increment(company_id, p.id, initial_stock)

        db.session.commit()
        return p

    p = run_with_retry(_op)
    return p.to_dict()


def update_product(company_id: int, product_id, patch: dict) -> dict | None:
    """
    Update a product. Returns the updated dict, or None if not found.

    A `stock` value is an absolute target count, written by the ledger in
    the same transaction without reading the current stock first.

    Raises:
        ConflictError: new code already used by this company
    """
    p = get_scoped(Product, company_id, product_id)
    if p is None:
        return None

    if "code" in patch and patch["code"] != p.code:
        _ensure_code_free(company_id, patch["code"], exclude_id=p.id)

    target_stock = patch.get("stock")

    def _op() -> Product:
        product = get_scoped(Product, company_id, product_id)
        if product is None:
            raise ProductNotFound(product_id)

        apply_product_patch(product, patch)
        db.session.flush()

        if target_stock is not None:
            stock_ledger.set_quantity(company_id, product.id, target_stock)

        db.session.commit()
        return product

    p = run_with_retry(_op)
    if target_stock is not None or "is_active" in patch:
        trigger_low_stock_refresh(company_id)
    return p.to_dict()


def adjust_stock(company_id: int, product_id, quantity, operation: str) -> dict:
    """
    Manual stock movement.

    Args:
        quantity: positive integer amount
        operation: "IN" (receive) or "OUT" (withdraw)

    Raises:
        ValidationError: bad quantity or operation
        ProductNotFound: product missing or owned by another company
        InsufficientStock: OUT would take stock below zero
    """
    quantity = coerce_int(quantity, "quantity")
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")

    operation = (operation or "").upper()
    if operation not in (STOCK_IN, STOCK_OUT):
        raise ValidationError('operation must be "IN" or "OUT"')

    p = get_scoped(Product, company_id, product_id)
    if p is None:
        raise ProductNotFound(product_id)

    delta = quantity if operation == STOCK_IN else -quantity

    def _op() -> Product:
        stock_ledger.adjust(company_id, p.id, delta)
        db.session.commit()
        return p

    p = run_with_retry(_op)
    trigger_low_stock_refresh(company_id)
    return p.to_dict()


def delete_product(company_id: int, product_id) -> str | None:
    """
    Delete a product.

    Products referenced by any order item or recorded stock effect are
    soft-deactivated so order history keeps resolving; unreferenced ones
    are removed.

    Returns "deleted", "deactivated", or None if not found.
    """
    p = get_scoped(Product, company_id, product_id)
    if p is None:
        return None

    referenced = (
        db.session.query(OrderItem.id).filter(OrderItem.product_id == p.id).first() is not None
        or db.session.query(OrderStockEffect.id).filter(OrderStockEffect.product_id == p.id).first() is not None
    )

    if referenced:
        p.is_active = False
        outcome = "deactivated"
    else:
        db.session.delete(p)
        outcome = "deleted"

    db.session.commit()
    return outcome


def low_stock_products(company_id: int) -> list[dict]:
    """Active products at or below their own min_stock."""
    products = (
        scoped_query(Product, company_id)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
    return [p.to_dict() for p in products]
