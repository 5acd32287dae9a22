"""
Tenant context: resolves the caller's company and scopes queries to it.

The authentication layer owns identity; this module only turns the tenant
id it hands over into a checked TenantContext, and offers the scoping
helpers every service uses.

SECURITY INVARIANTS:
1. Every request handled by the engine has g.company_id set
2. Every query on tenant-owned rows filters by company_id
3. Rows of another tenant are reported as "not found", never "forbidden"
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Company


class TenantAccessError(Exception):
    """Raised when the tenant is missing, unknown or inactive."""
    pass


@dataclass(frozen=True)
class TenantContext:
    company_id: int
    is_active: bool


def resolve_company(company_id) -> TenantContext:
    """
    Resolve a tenant id supplied by the authentication layer.

    Raises TenantAccessError if the id is malformed, unknown or the company
    is deactivated.
    """
    try:
        company_id = int(company_id)
    except (TypeError, ValueError):
        raise TenantAccessError("Tenant context not established")

    company = db.session.get(Company, company_id)
    if company is None:
        raise TenantAccessError("Company not found")
    if not company.is_active:
        raise TenantAccessError("Company is deactivated")

    return TenantContext(company_id=company.id, is_active=company.is_active)


def scoped_query(model, company_id: int):
    """Query on a tenant-owned model, filtered to one company."""
    return db.session.query(model).filter(model.company_id == company_id)


def get_scoped(model, company_id: int, row_id):
    """
    Fetch one tenant-owned row by id, or None.

    A row that exists under a different company is indistinguishable from
    a missing one.
    """
    try:
        row_id = int(row_id)
    except (TypeError, ValueError):
        return None
    return scoped_query(model, company_id).filter(model.id == row_id).first()
