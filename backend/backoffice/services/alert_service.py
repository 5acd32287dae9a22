"""
Alert Trigger and alert maintenance.

The trigger scans a company's active products with stock at or below the
fixed LOW_STOCK_THRESHOLD (5 by default, independent of each product's own
min_stock) and adds one HIGH priority LOW_STOCK alert per product, unless
an alert with the same (company, type, title) was created inside the
deduplication window (24 hours by default).

The trigger is purely additive and runs after the order that caused it
has committed. trigger_low_stock_refresh() isolates it: any failure is
logged and swallowed, so it can never fail or roll back that order.
"""

from __future__ import annotations

import threading
from datetime import timedelta

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import Alert, Product
from ..models.alerts import (
    ALERT_LOW_STOCK,
    ALERT_PRIORITIES,
    ALERT_TYPES,
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    PRIORITY_RANK,
)
from ..time_utils import utcnow
from ..validation import ValidationError
from .pagination import paginate
from .tenant_service import get_scoped, scoped_query


def low_stock_title(product: Product) -> str:
    return f"Low stock: {product.name}"


def _low_stock_message(product: Product) -> str:
    return (
        f'Product "{product.name}" is low on stock ({product.stock} units). '
        f"Minimum stock: {product.min_stock} units."
    )


def create_auto_alert(
    company_id: int,
    alert_type: str,
    title: str,
    message: str,
    priority: str = PRIORITY_MEDIUM,
    *,
    now=None,
) -> Alert | None:
    """
    Insert an alert unless an identical (company, type, title) alert was
    created within the deduplication window. Returns the new alert, or
    None when it was suppressed.
    """
    now = now or utcnow()
    window = timedelta(hours=current_app.config.get("ALERT_DEDUP_WINDOW_HOURS", 24))

    recent = (
        scoped_query(Alert, company_id)
        .filter(
            Alert.type == alert_type,
            Alert.title == title,
            Alert.created_at >= now - window,
        )
        .first()
    )
    if recent is not None:
        return None

    alert = Alert(
        company_id=company_id,
        type=alert_type,
        title=title,
        message=message,
        priority=priority,
        created_at=now,
    )
    db.session.add(alert)
    db.session.commit()
    current_app.logger.info("alert_created company_id=%s type=%s title=%r", company_id, alert_type, title)
    return alert


def refresh_low_stock_alerts(company_id: int, *, now=None) -> list[Alert]:
    """
    Scan active products at or below the threshold and create the missing
    LOW_STOCK alerts. Returns the alerts created by this call.
    """
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    products = (
        scoped_query(Product, company_id)
        .filter(Product.is_active.is_(True), Product.stock <= threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )

    created = []
    for product in products:
        alert = create_auto_alert(
            company_id,
            ALERT_LOW_STOCK,
            low_stock_title(product),
            _low_stock_message(product),
            PRIORITY_HIGH,
            now=now,
        )
        if alert is not None:
            created.append(alert)
    return created


def _refresh_safely(company_id: int) -> None:
    try:
        refresh_low_stock_alerts(company_id)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("low_stock_refresh_failed company_id=%s", company_id)


def _refresh_in_app_context(app, company_id: int) -> None:
    with app.app_context():
        _refresh_safely(company_id)
        db.session.remove()


def trigger_low_stock_refresh(company_id: int) -> None:
    """
    Out-of-band entry point used after sales, completed sales and manual
    stock edits. Never raises.
    """
    if current_app.config.get("ALERT_DISPATCH_MODE", "inline") == "thread":
        app = current_app._get_current_object()
        worker = threading.Thread(
            target=_refresh_in_app_context,
            args=(app, company_id),
            name=f"low-stock-refresh-{company_id}",
            daemon=True,
        )
        worker.start()
        return
    _refresh_safely(company_id)


# =============================================================================
# Alert maintenance
# =============================================================================

_PRIORITY_ORDER = case(PRIORITY_RANK, value=Alert.priority, else_=0)


def list_alerts(
    company_id: int,
    *,
    alert_type: str | None = None,
    is_read: bool | None = None,
    priority: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Most urgent first, then newest."""
    query = scoped_query(Alert, company_id)
    if alert_type:
        query = query.filter(Alert.type == alert_type)
    if is_read is not None:
        query = query.filter(Alert.is_read.is_(is_read))
    if priority:
        query = query.filter(Alert.priority == priority)

    query = query.order_by(_PRIORITY_ORDER.desc(), Alert.created_at.desc(), Alert.id.desc())
    return paginate(query, page, per_page, lambda a: a.to_dict())


def get_alert(company_id: int, alert_id) -> Alert | None:
    return get_scoped(Alert, company_id, alert_id)


def create_alert(company_id: int, *, alert_type: str, title: str, message: str, priority: str = PRIORITY_MEDIUM) -> Alert:
    """Manual alert; no deduplication."""
    if alert_type not in ALERT_TYPES:
        raise ValidationError(f"type must be one of {', '.join(ALERT_TYPES)}")
    if priority not in ALERT_PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(ALERT_PRIORITIES)}")
    title = (title or "").strip()
    message = (message or "").strip()
    if not title:
        raise ValidationError("title cannot be blank")
    if not message:
        raise ValidationError("message cannot be blank")
    if len(title) > 255:
        raise ValidationError("title exceeds max length 255")

    alert = Alert(company_id=company_id, type=alert_type, title=title, message=message, priority=priority)
    db.session.add(alert)
    db.session.commit()
    return alert


def mark_read(company_id: int, alert_id) -> Alert | None:
    alert = get_scoped(Alert, company_id, alert_id)
    if alert is None:
        return None
    alert.is_read = True
    db.session.commit()
    return alert


def mark_all_read(company_id: int) -> int:
    count = (
        scoped_query(Alert, company_id)
        .filter(Alert.is_read.is_(False))
        .update({"is_read": True}, synchronize_session=False)
    )
    db.session.commit()
    return count


def delete_alert(company_id: int, alert_id) -> bool:
    alert = get_scoped(Alert, company_id, alert_id)
    if alert is None:
        return False
    db.session.delete(alert)
    db.session.commit()
    return True


def delete_read_alerts(company_id: int) -> int:
    count = (
        scoped_query(Alert, company_id)
        .filter(Alert.is_read.is_(True))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return count


def alert_stats(company_id: int) -> dict:
    total = scoped_query(Alert, company_id).count()
    unread = scoped_query(Alert, company_id).filter(Alert.is_read.is_(False)).count()

    by_type = (
        db.session.query(Alert.type, func.count(Alert.id))
        .filter(Alert.company_id == company_id)
        .group_by(Alert.type)
        .all()
    )
    by_priority = (
        db.session.query(Alert.priority, func.count(Alert.id))
        .filter(Alert.company_id == company_id)
        .group_by(Alert.priority)
        .all()
    )

    return {
        "total": total,
        "unread": unread,
        "by_type": [{"type": t, "count": c} for t, c in by_type],
        "by_priority": [{"priority": p, "count": c} for p, c in by_priority],
    }


def check_alerts(company_id: int) -> dict:
    """Mark every alert read, then run the low-stock scan."""
    marked = mark_all_read(company_id)
    created = refresh_low_stock_alerts(company_id)
    return {"marked_read": marked, "created": len(created)}
