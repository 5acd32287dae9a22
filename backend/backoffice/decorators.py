# Overview: Request decorators for API routes (tenant context).

from functools import wraps
from flask import current_app, g, jsonify, request

from .services.tenant_service import TenantAccessError, resolve_company


def header_tenant_resolver():
    """
    Default resolver: the upstream authentication layer forwards the
    authenticated company id in a trusted header (TENANT_HEADER).
    """
    return request.headers.get(current_app.config.get("TENANT_HEADER", "X-Company-Id"))


def require_tenant(f):
    """
    Establish tenant context for the request.

    Sets the following Flask g attributes:
    - g.company_id: the caller's company (tenant) id - REQUIRED by services
    - g.tenant: the resolved TenantContext

    SECURITY: Returns 401 if the tenant id is missing or malformed, the
    company does not exist, or it is deactivated.

    The resolver can be swapped with app.config["TENANT_RESOLVER"], a
    zero-argument callable returning the raw company id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        resolver = current_app.config.get("TENANT_RESOLVER") or header_tenant_resolver
        raw_company_id = resolver()

        if raw_company_id in (None, ""):
            return jsonify({"error": "Tenant context required"}), 401

        try:
            context = resolve_company(raw_company_id)
        except TenantAccessError as e:
            return jsonify({"error": str(e)}), 401

        g.company_id = context.company_id
        g.tenant = context

        return f(*args, **kwargs)

    return decorated_function
