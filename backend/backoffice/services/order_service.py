"""
Transaction Coordinator for sales and purchases.

Create, edit, cancel and status changes each run as one atomic unit
(run_with_retry + a single commit): the order header, its items and every
stock movement commit together or not at all.

STOCK EFFECT RULES:
- Creation applies the effect once: sales decrement, purchases increment
  and overwrite the product's cost price with the line's unit price.
- Creation records the per-product quantities it moved
  (Order.stock_effects). Cancellation reverses exactly those, once: sales
  add the quantity back (never blocked); purchases subtract it and fail
  with InsufficientStock if the units were already sold. One failed line
  rejects the whole cancellation.
- PENDING <-> COMPLETED never touches stock. Order.stock_effect_applied,
  not the status, says whether the effect is currently in Product.stock.
- Edit replaces items and totals but does NOT adjust stock or the
  recorded effect; changed quantities are logged as a warning.

All stock writes go through services/stock_ledger.py.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Order, OrderItem, OrderStockEffect, Product
from ..models.orders import (
    DEFAULT_PAYMENT_METHOD,
    DIRECTION_BY_DOCUMENT,
    DOCUMENT_PURCHASE,
    DOCUMENT_SALE,
    DOCUMENT_TYPES,
    ORDER_STATUSES,
    PAYMENT_METHODS,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
)
from ..time_utils import utcnow
from ..validation import MAX_PRICE_CENTS, MAX_QUANTITY, ValidationError, coerce_int
from . import stock_ledger
from .alert_service import trigger_low_stock_refresh
from .concurrency import lock_for_update, run_with_retry
from .errors import (
    AlreadyCancelled,
    EmptyOrder,
    InsufficientStock,
    InvalidOrderData,
    InvalidStatus,
    OrderNotDeletable,
    OrderNotFound,
    ProductNotFound,
)
from .pagination import paginate
from .sequence_service import next_order_number
from .tenant_service import scoped_query


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int
    unit_price_cents: int | None = None

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * (self.unit_price_cents or 0)


# =============================================================================
# Input normalization
# =============================================================================

def _as_int(value, field: str) -> int:
    try:
        return coerce_int(value, field)
    except ValidationError as e:
        raise InvalidOrderData(str(e), {"field": field})


def _check_document_type(document_type: str) -> str:
    if document_type not in DOCUMENT_TYPES:
        raise InvalidOrderData(f"Unknown document type: {document_type}")
    return document_type


def _check_payment_method(payment_method: str | None) -> str:
    if payment_method is None or payment_method == "":
        return DEFAULT_PAYMENT_METHOD
    if payment_method not in PAYMENT_METHODS:
        raise InvalidOrderData(
            f"payment_method must be one of {', '.join(PAYMENT_METHODS)}",
            {"payment_method": payment_method},
        )
    return payment_method


def _check_discount(discount_cents) -> int:
    if discount_cents is None:
        return 0
    discount = _as_int(discount_cents, "discount_cents")
    if discount < 0:
        raise InvalidOrderData("discount_cents must be >= 0")
    if discount > MAX_PRICE_CENTS:
        raise InvalidOrderData(f"discount_cents cannot exceed {MAX_PRICE_CENTS}")
    return discount


def _clean_text(value, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise InvalidOrderData(f"{field} exceeds max length {max_length}")
    return text or None


def parse_lines(items, *, require_price: bool) -> list[OrderLine]:
    """
    Normalize raw item dicts: {product_id, quantity[, unit_price_cents]}.

    Raises EmptyOrder for a missing/empty list and InvalidOrderData for
    non-positive quantities or negative prices.
    """
    if not items:
        raise EmptyOrder()
    if not isinstance(items, (list, tuple)):
        raise InvalidOrderData("items must be a list")

    lines = []
    for position, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise InvalidOrderData(f"item {position} must be an object")
        if raw.get("product_id") is None:
            raise InvalidOrderData(f"item {position}: product_id is required")

        product_id = _as_int(raw.get("product_id"), "product_id")
        quantity = _as_int(raw.get("quantity"), "quantity")
        if quantity <= 0:
            raise InvalidOrderData(f"item {position}: quantity must be > 0", {"product_id": product_id})
        if quantity > MAX_QUANTITY:
            raise InvalidOrderData(f"item {position}: quantity cannot exceed {MAX_QUANTITY}")

        unit_price = raw.get("unit_price_cents")
        if unit_price is None:
            if require_price:
                raise InvalidOrderData(f"item {position}: unit_price_cents is required", {"product_id": product_id})
        else:
            unit_price = _as_int(unit_price, "unit_price_cents")
            if unit_price < 0:
                raise InvalidOrderData(f"item {position}: unit_price_cents must be >= 0")
            if unit_price > MAX_PRICE_CENTS:
                raise InvalidOrderData(f"item {position}: unit_price_cents cannot exceed {MAX_PRICE_CENTS}")

        lines.append(OrderLine(product_id=product_id, quantity=quantity, unit_price_cents=unit_price))
    return lines


def compute_totals(lines: list[OrderLine], discount_cents: int) -> tuple[int, int]:
    """(subtotal, total) where total = sum(line subtotals) - discount."""
    subtotal = sum(line.subtotal_cents for line in lines)
    if discount_cents > subtotal:
        raise InvalidOrderData(
            "discount_cents cannot exceed the order subtotal",
            {"subtotal_cents": subtotal, "discount_cents": discount_cents},
        )
    return subtotal, subtotal - discount_cents


def _load_products(company_id: int, lines: list[OrderLine], *, require_active: bool) -> dict[int, Product]:
    ids = {line.product_id for line in lines}
    query = scoped_query(Product, company_id).filter(Product.id.in_(ids))
    if require_active:
        query = query.filter(Product.is_active.is_(True))
    products = {p.id: p for p in query.all()}

    for line in lines:
        if line.product_id not in products:
            raise ProductNotFound(line.product_id)
    return products


def _check_sale_availability(lines: list[OrderLine], products: dict[int, Product]) -> None:
    """
    Early, friendly rejection before any write. Quantities are summed per
    product so repeated lines cannot oversell.

    This read is NOT the guard: another request may sell the same units
    between here and the atomic unit. The conditional decrement in the
    stock ledger is what actually keeps stock >= 0.
    """
    requested = Counter()
    for line in lines:
        requested[line.product_id] += line.quantity

    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.stock < quantity:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available=product.stock,
                requested=quantity,
            )


def _order_query(company_id: int, order_id, document_type: str | None, *, lock: bool = False):
    try:
        order_id = int(order_id)
    except (TypeError, ValueError):
        raise OrderNotFound(order_id)

    query = scoped_query(Order, company_id).filter(Order.id == order_id)
    if document_type is not None:
        query = query.filter(Order.document_type == document_type)
    if lock:
        query = lock_for_update(query)
    return query


def _require_order(company_id: int, order_id, document_type: str | None, *, lock: bool = False) -> Order:
    order = _order_query(company_id, order_id, document_type, lock=lock).first()
    if order is None:
        raise OrderNotFound(order_id)
    return order


# =============================================================================
# Stock effect
# =============================================================================

def _apply_stock_effect(order: Order) -> None:
    moved = Counter()
    for item in order.items:
        if order.document_type == DOCUMENT_SALE:
            stock_ledger.decrement(order.company_id, item.product_id, item.quantity)
        else:
            # Last-purchase-price costing: unconditional overwrite, no averaging
            stock_ledger.increment(
                order.company_id,
                item.product_id,
                item.quantity,
                cost_price_cents=item.unit_price_cents,
            )
        moved[item.product_id] += item.quantity

    order.stock_effects = [
        OrderStockEffect(product_id=product_id, quantity=quantity)
        for product_id, quantity in sorted(moved.items())
    ]
    order.stock_effect_applied = True


def _reverse_stock_effect(order: Order) -> None:
    # Undo what creation moved, not the current items: edits replace items
    # without touching stock.
    for effect in order.stock_effects:
        if order.document_type == DOCUMENT_SALE:
            stock_ledger.increment(order.company_id, effect.product_id, effect.quantity)
        else:
            stock_ledger.decrement(order.company_id, effect.product_id, effect.quantity)
    order.stock_effects = []
    order.stock_effect_applied = False


# =============================================================================
# Operations
# =============================================================================

def create_order(
    company_id: int,
    document_type: str,
    *,
    counterpart: str | None,
    items,
    discount_cents=0,
    payment_method: str | None = None,
    notes: str | None = None,
    status: str | None = None,
) -> Order:
    """
    Create a sale or purchase and apply its stock effect atomically.

    Sale lines are priced at the product's current sale price; purchase
    lines must carry unit_price_cents.

    Raises EmptyOrder, ProductNotFound (missing, inactive or other tenant),
    InsufficientStock (sales), InvalidStatus, InvalidOrderData.
    """
    _check_document_type(document_type)
    is_sale = document_type == DOCUMENT_SALE

    lines = parse_lines(items, require_price=not is_sale)
    status = status or STATUS_PENDING
    if status not in (STATUS_PENDING, STATUS_COMPLETED):
        raise InvalidStatus(status, "New orders must be PENDING or COMPLETED")
    payment_method = _check_payment_method(payment_method)
    discount = _check_discount(discount_cents)
    counterpart = _clean_text(counterpart, "counterpart", 100)
    notes = _clean_text(notes, "notes", 500)

    products = _load_products(company_id, lines, require_active=True)
    if is_sale:
        _check_sale_availability(lines, products)
        lines = [
            OrderLine(line.product_id, line.quantity, products[line.product_id].sale_price_cents)
            for line in lines
        ]

    subtotal, total = compute_totals(lines, discount)

    def _op() -> Order:
        number = next_order_number(company_id, document_type)
        now = utcnow()

        order = Order(
            company_id=company_id,
            document_type=document_type,
            direction=DIRECTION_BY_DOCUMENT[document_type],
            number=number,
            counterpart=counterpart,
            subtotal_cents=subtotal,
            discount_cents=discount,
            total_cents=total,
            payment_method=payment_method,
            notes=notes,
            status=status,
            created_at=now,
            completed_at=now if status == STATUS_COMPLETED else None,
        )
        order.items = [
            OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                subtotal_cents=line.subtotal_cents,
            )
            for line in lines
        ]
        db.session.add(order)
        db.session.flush()

        _apply_stock_effect(order)

        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "order_created company_id=%s type=%s number=%s items=%s total_cents=%s",
        company_id, document_type, order.number, len(lines), total,
    )

    if is_sale:
        trigger_low_stock_refresh(company_id)
    return order


def create_sale(company_id: int, **kwargs) -> Order:
    return create_order(company_id, DOCUMENT_SALE, **kwargs)


def create_purchase(company_id: int, **kwargs) -> Order:
    return create_order(company_id, DOCUMENT_PURCHASE, **kwargs)


def cancel_order(company_id: int, order_id, *, document_type: str | None = None) -> Order:
    """
    Cancel an order and reverse its stock effect exactly once.

    Raises OrderNotFound, AlreadyCancelled, or InsufficientStock when a
    purchase's units are no longer on hand (nothing is reversed then).
    """
    def _op() -> Order:
        order = _require_order(company_id, order_id, document_type, lock=True)
        if order.status == STATUS_CANCELLED:
            raise AlreadyCancelled(order.id)

        if order.stock_effect_applied:
            _reverse_stock_effect(order)

        order.status = STATUS_CANCELLED
        order.cancelled_at = utcnow()
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "order_cancelled company_id=%s type=%s number=%s",
        company_id, order.document_type, order.number,
    )
    return order


def edit_order(
    company_id: int,
    order_id,
    *,
    counterpart: str | None,
    items,
    discount_cents=0,
    payment_method: str | None = None,
    status: str | None = None,
    notes: str | None = None,
    document_type: str | None = None,
) -> Order:
    """
    Replace an order's items and header fields, recomputing totals.

    Every line must carry unit_price_cents. status=None keeps the current
    status; CANCELLED is rejected (use cancel_order, which reverses stock).

    Product.stock is NOT adjusted for changed quantities; a warning is
    logged when quantities differ from the stored items.
    """
    existing = _require_order(company_id, order_id, document_type)
    lines = parse_lines(items, require_price=True)

    if existing.status == STATUS_CANCELLED:
        raise AlreadyCancelled(existing.id)
    if status is not None and status not in ORDER_STATUSES:
        raise InvalidStatus(status)
    if status == STATUS_CANCELLED:
        raise InvalidStatus(status, "Use cancel to cancel an order")

    payment_method = _check_payment_method(payment_method)
    discount = _check_discount(discount_cents)
    counterpart = _clean_text(counterpart, "counterpart", 100)
    notes = _clean_text(notes, "notes", 500)

    _load_products(company_id, lines, require_active=False)
    subtotal, total = compute_totals(lines, discount)

    def _op() -> tuple[Order, bool]:
        order = _require_order(company_id, order_id, document_type, lock=True)
        if order.status == STATUS_CANCELLED:
            raise AlreadyCancelled(order.id)

        before = Counter()
        for item in order.items:
            before[item.product_id] += item.quantity
        after = Counter()
        for line in lines:
            after[line.product_id] += line.quantity

        # delete-orphan cascade removes the previous rows on flush
        order.items = [
            OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                subtotal_cents=line.subtotal_cents,
            )
            for line in lines
        ]
        order.counterpart = counterpart
        order.subtotal_cents = subtotal
        order.discount_cents = discount
        order.total_cents = total
        order.payment_method = payment_method
        order.notes = notes
        if status is not None and status != order.status:
            order.status = status
            order.completed_at = utcnow() if status == STATUS_COMPLETED else None

        db.session.commit()
        return order, before != after

    order, quantities_changed = run_with_retry(_op)
    current_app.logger.info(
        "order_edited company_id=%s type=%s number=%s items=%s total_cents=%s",
        company_id, order.document_type, order.number, len(lines), total,
    )
    if quantities_changed:
        current_app.logger.warning(
            "order_edit_quantities_changed company_id=%s type=%s number=%s stock_not_adjusted",
            company_id, order.document_type, order.number,
        )
    return order


def update_status(company_id: int, order_id, new_status: str, *, document_type: str | None = None) -> Order:
    """
    Move an order between PENDING and COMPLETED without touching stock.

    CANCELLED is delegated to cancel_order so the reversal runs exactly
    once. A cancelled order accepts no further transitions. Completing a
    sale triggers the low-stock refresh.
    """
    if new_status not in ORDER_STATUSES:
        raise InvalidStatus(new_status)
    if new_status == STATUS_CANCELLED:
        return cancel_order(company_id, order_id, document_type=document_type)

    def _op() -> tuple[Order, str]:
        order = _require_order(company_id, order_id, document_type, lock=True)
        if order.status == STATUS_CANCELLED:
            raise AlreadyCancelled(order.id)

        previous = order.status
        if previous != new_status:
            order.status = new_status
            order.completed_at = utcnow() if new_status == STATUS_COMPLETED else None
        db.session.commit()
        return order, previous

    order, previous = run_with_retry(_op)
    current_app.logger.info(
        "order_status_changed company_id=%s type=%s number=%s from=%s to=%s",
        company_id, order.document_type, order.number, previous, new_status,
    )

    if new_status == STATUS_COMPLETED and order.document_type == DOCUMENT_SALE:
        trigger_low_stock_refresh(company_id)
    return order


def delete_order(company_id: int, order_id, *, document_type: str | None = None) -> None:
    """Permanently delete a CANCELLED order and its items."""
    def _op() -> None:
        order = _require_order(company_id, order_id, document_type, lock=True)
        if order.status != STATUS_CANCELLED:
            raise OrderNotDeletable(order.id, order.status)
        db.session.delete(order)
        db.session.commit()

    run_with_retry(_op)


def get_order(company_id: int, order_id, *, document_type: str | None = None) -> Order:
    return _require_order(company_id, order_id, document_type)


def list_orders(
    company_id: int,
    *,
    document_type: str | None = None,
    status: str | None = None,
    date_from=None,
    date_to=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Tenant-scoped order listing, newest first. Date bounds are inclusive."""
    query = scoped_query(Order, company_id)
    if document_type:
        query = query.filter(Order.document_type == document_type)
    if status:
        query = query.filter(Order.status == status)
    if date_from is not None:
        query = query.filter(Order.created_at >= date_from)
    if date_to is not None:
        query = query.filter(Order.created_at <= date_to)

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    return paginate(query, page, per_page, lambda o: o.to_dict())
