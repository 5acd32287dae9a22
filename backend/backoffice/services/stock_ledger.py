"""
Stock Ledger: the only writer of Product.stock.

    adjust(company_id, product_id, delta) -> new quantity
    set_quantity(company_id, product_id, quantity) -> quantity

The adjustment is one conditional UPDATE:

    UPDATE products
       SET stock = stock + :delta
     WHERE id = :product_id AND company_id = :company_id
       AND stock + :delta >= 0

so the sufficiency check and the write are a single atomic statement. Zero
affected rows means either the product does not exist for this tenant
(ProductNotFound) or the result would be negative (InsufficientStock).
set_quantity writes an absolute count for manual inventory edits.

This module never commits. Callers run it inside their own atomic unit
(see order_service and products_service) so that a multi-item order either
moves every item's stock or none.
"""

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.orm.util import identity_key

from ..extensions import db
from ..models import Product
from .errors import InsufficientStock, ProductNotFound


def _expire_cached(product_id: int, attrs: list[str]) -> None:
    # The UPDATE bypasses the identity map; drop stale values if loaded.
    cached = db.session.identity_map.get(identity_key(Product, product_id))
    if cached is not None:
        db.session.expire(cached, attrs)


def adjust(
    company_id: int,
    product_id: int,
    delta: int,
    *,
    cost_price_cents: int | None = None,
) -> int:
    """
    Apply `delta` to the product's stock and return the new quantity.

    cost_price_cents, when given, overwrites the product's cost price in the
    same statement (last-purchase-price costing used by purchases).

    Raises:
        ProductNotFound: product missing or owned by another company
        InsufficientStock: the result would be negative
    """
    values = {"stock": Product.stock + delta}
    if cost_price_cents is not None:
        values["cost_price_cents"] = cost_price_cents

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.company_id == company_id,
            Product.stock + delta >= 0,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != 1:
        row = (
            db.session.query(Product.name, Product.stock)
            .filter(Product.id == product_id, Product.company_id == company_id)
            .first()
        )
        if row is None:
            raise ProductNotFound(product_id)
        raise InsufficientStock(
            product_id=product_id,
            product_name=row.name,
            available=row.stock,
            requested=-delta,
        )

    expired = ["stock", "updated_at"]
    if cost_price_cents is not None:
        expired.append("cost_price_cents")
    _expire_cached(product_id, expired)

    return int(
        db.session.query(Product.stock)
        .filter(Product.id == product_id)
        .scalar()
    )


def decrement(company_id: int, product_id: int, quantity: int) -> int:
    """Take `quantity` units out; fails instead of going below zero."""
    return adjust(company_id, product_id, -quantity)


def increment(
    company_id: int,
    product_id: int,
    quantity: int,
    *,
    cost_price_cents: int | None = None,
) -> int:
    """Put `quantity` units back or receive them; never blocked by stock level."""
    return adjust(company_id, product_id, quantity, cost_price_cents=cost_price_cents)


def set_quantity(company_id: int, product_id: int, quantity: int) -> int:
    """
    Overwrite the product's stock with an absolute count (manual inventory).

    One UPDATE with the target as a literal, so a sale committed after the
    caller read the product cannot turn the target into a different result.

    Raises:
        ProductNotFound: product missing or owned by another company
    """
    if quantity < 0:
        raise ValueError("stock quantity must be >= 0")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.company_id == company_id)
        .values(stock=quantity)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise ProductNotFound(product_id)

    _expire_cached(product_id, ["stock", "updated_at"])
    return quantity
