# Overview: Read-only order reports and the completed-sales feed for pricing analysis.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Order, OrderItem, Product
from ..models.orders import DOCUMENT_PURCHASE, DOCUMENT_SALE, DOCUMENT_TYPES, STATUS_COMPLETED
from ..time_utils import parse_iso_datetime, to_utc_z

TOP_PRODUCTS_LIMIT = 10
TOP_COUNTERPARTS_LIMIT = 10


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """Inclusive date range; a bare YYYY-MM-DD end covers that whole day."""
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end, end_of_day=True) if end else None
    except ValueError:
        raise ReportError("Dates must be ISO-8601 (YYYY-MM-DD or full datetime)")
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must not be after end")
    return start_dt, end_dt


def _completed(company_id: int, document_type: str, start_dt, end_dt):
    query = db.session.query(Order).filter(
        Order.company_id == company_id,
        Order.document_type == document_type,
        Order.status == STATUS_COMPLETED,
    )
    if start_dt:
        query = query.filter(Order.created_at >= start_dt)
    if end_dt:
        query = query.filter(Order.created_at <= end_dt)
    return query


def order_report(
    company_id: int,
    document_type: str,
    *,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    """
    Summary of COMPLETED orders of one document type.

    Returns count, total, totals per payment method, the top products by
    quantity and, for purchases, the top suppliers by amount.
    """
    if document_type not in DOCUMENT_TYPES:
        raise ReportError(f"Unknown document type: {document_type}")
    start_dt, end_dt = parse_range(start, end)

    base = _completed(company_id, document_type, start_dt, end_dt)

    totals = base.with_entities(
        func.count(Order.id).label("order_count"),
        func.coalesce(func.sum(Order.total_cents), 0).label("total_cents"),
    ).one()

    by_payment = (
        base.with_entities(
            Order.payment_method,
            func.count(Order.id).label("order_count"),
            func.coalesce(func.sum(Order.total_cents), 0).label("total_cents"),
        )
        .group_by(Order.payment_method)
        .order_by(Order.payment_method.asc())
        .all()
    )

    top_products = (
        base.join(OrderItem, OrderItem.order_id == Order.id)
        .join(Product, Product.id == OrderItem.product_id)
        .with_entities(
            Product.id,
            Product.code,
            Product.name,
            func.sum(OrderItem.quantity).label("quantity"),
            func.sum(OrderItem.subtotal_cents).label("amount_cents"),
        )
        .group_by(Product.id, Product.code, Product.name)
        .order_by(func.sum(OrderItem.quantity).desc(), Product.id.asc())
        .limit(TOP_PRODUCTS_LIMIT)
        .all()
    )

    report = {
        "document_type": document_type,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "order_count": int(totals.order_count or 0),
        "total_cents": int(totals.total_cents or 0),
        "by_payment_method": [
            {
                "payment_method": row.payment_method,
                "order_count": int(row.order_count),
                "total_cents": int(row.total_cents),
            }
            for row in by_payment
        ],
        "top_products": [
            {
                "product_id": row.id,
                "code": row.code,
                "name": row.name,
                "quantity": int(row.quantity or 0),
                "amount_cents": int(row.amount_cents or 0),
            }
            for row in top_products
        ],
    }

    if document_type == DOCUMENT_PURCHASE:
        suppliers = (
            base.filter(Order.counterpart.isnot(None))
            .with_entities(
                Order.counterpart,
                func.count(Order.id).label("order_count"),
                func.sum(Order.total_cents).label("total_cents"),
            )
            .group_by(Order.counterpart)
            .order_by(func.sum(Order.total_cents).desc(), Order.counterpart.asc())
            .limit(TOP_COUNTERPARTS_LIMIT)
            .all()
        )
        report["top_counterparts"] = [
            {
                "counterpart": row.counterpart,
                "order_count": int(row.order_count),
                "total_cents": int(row.total_cents or 0),
            }
            for row in suppliers
        ]

    return report


def completed_sales_between(company_id: int, start: datetime | None, end: datetime | None) -> list[dict]:
    """
    COMPLETED sales with their items in [start, end], oldest first.

    Read-only feed for pricing analysis; callers get plain dicts, never
    session-bound rows.
    """
    orders = (
        _completed(company_id, DOCUMENT_SALE, start, end)
        .order_by(Order.created_at.asc(), Order.id.asc())
        .all()
    )
    return [o.to_dict(include_items=True) for o in orders]
