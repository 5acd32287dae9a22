# Overview: Display-number allocation for sales and purchases.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Order, OrderSequence
from .concurrency import RetryableConflict


NUMBER_WIDTH = 6


def format_number(value: int) -> str:
    """Zero-padded display number, e.g. 1 -> "000001"."""
    return f"{value:0{NUMBER_WIDTH}d}"


def _highest_existing_number(company_id: int, document_type: str) -> int:
    numbers = (
        db.session.query(Order.number)
        .filter(Order.company_id == company_id, Order.document_type == document_type)
        .all()
    )
    highest = 0
    for (number,) in numbers:
        if number and number.isdigit():
            highest = max(highest, int(number))
    return highest


def _advance(company_id: int, document_type: str) -> int | None:
    stmt = (
        update(OrderSequence)
        .where(
            OrderSequence.company_id == company_id,
            OrderSequence.document_type == document_type,
        )
        .values(next_number=OrderSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(OrderSequence.next_number)
        .filter_by(company_id=company_id, document_type=document_type)
        .scalar()
    )
    return current - 1


def next_order_number(company_id: int, document_type: str) -> str:
    """
    Allocate the next display number for a (company, document type).

    The counter row is advanced with a single UPDATE, so two creators can
    never be handed the same value. On first use the row is seeded from the
    highest number already stored for that pair, which keeps the result
    equal to "successor of the highest existing number" for data created
    before the counter existed.

    Runs inside the caller's transaction and does not commit: if the order
    insert fails, the allocation is rolled back with it.
    """
    if not company_id:
        raise ValueError("company_id is required")
    if not document_type:
        raise ValueError("document_type is required")

    allocated = _advance(company_id, document_type)
    if allocated is None:
        first = _highest_existing_number(company_id, document_type) + 1
        seq = OrderSequence(company_id=company_id, document_type=document_type, next_number=first + 1)
        db.session.add(seq)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another transaction created the row first; the whole unit is
            # rolled back and re-run, taking the UPDATE path next time.
            raise RetryableConflict("order sequence created concurrently") from exc
        allocated = first

    return format_number(allocated)

