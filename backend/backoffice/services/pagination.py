# Overview: Shared page/per_page handling for list endpoints.

from __future__ import annotations

from flask import current_app


def paginate(query, page: int | None, per_page: int | None, serialize) -> dict:
    """
    Apply optional pagination to an ordered query.

    page=None returns every row. Otherwise per_page defaults to
    DEFAULT_PAGE_SIZE and is capped at MAX_PAGE_SIZE.

    Returns a dict with 'items', 'count' and, when paginated, 'pagination'.
    """
    if page is None:
        rows = query.all()
        return {
            "items": [serialize(r) for r in rows],
            "count": len(rows),
        }

    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    per_page = min(per_page or default_size, max_size)
    per_page = max(per_page, 1)
    page = max(page, 1)

    total = query.order_by(None).count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
