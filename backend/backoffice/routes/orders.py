# Overview: Flask API routes for sales and purchases; parses input and returns JSON responses.

# backend/backoffice/routes/orders.py
"""
Sales and purchases API routes.

Both document types share one set of handlers; build_orders_blueprint()
binds them to a document type and URL prefix. Handlers only translate
JSON <-> order_service calls and map the error taxonomy to status codes.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_tenant
from ..models.orders import DOCUMENT_PURCHASE, DOCUMENT_SALE
from ..services import order_service, reporting_service
from ..services.errors import OrderError, ProductNotFound
from ..services.reporting_service import ReportError
from ..time_utils import parse_iso_datetime


def _error_response(e: OrderError, *, from_payload: bool = False):
    status = e.http_status
    # A product named inside the request body is bad input, not a missing resource
    if from_payload and isinstance(e, ProductNotFound):
        status = 400
    return jsonify(e.to_dict()), status


def _order_fields(data: dict) -> dict:
    return {
        "counterpart": data.get("counterpart"),
        "items": data.get("items"),
        "discount_cents": data.get("discount_cents", 0),
        "payment_method": data.get("payment_method"),
        "notes": data.get("notes"),
        "status": data.get("status"),
    }


def build_orders_blueprint(name: str, document_type: str, url_prefix: str) -> Blueprint:
    bp = Blueprint(name, __name__, url_prefix=url_prefix)
    label = document_type.lower()

    @bp.get("")
    @require_tenant
    def list_orders_route():
        """
        List orders, newest first.

        Query params: status, date_from, date_to (ISO-8601, inclusive),
        page, per_page.
        """
        try:
            date_from = parse_iso_datetime(request.args.get("date_from"))
            date_to = parse_iso_datetime(request.args.get("date_to"), end_of_day=True)
        except ValueError:
            return jsonify({"error": "date_from/date_to must be ISO-8601"}), 400

        result = order_service.list_orders(
            g.company_id,
            document_type=document_type,
            status=request.args.get("status"),
            date_from=date_from,
            date_to=date_to,
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200

    @bp.get("/report")
    @require_tenant
    def report_route():
        """Completed-order summary. Query params: start, end."""
        try:
            report = reporting_service.order_report(
                g.company_id,
                document_type,
                start=request.args.get("start"),
                end=request.args.get("end"),
            )
        except ReportError as e:
            return jsonify({"error": str(e)}), 400
        return jsonify(report), 200

    @bp.get("/<int:order_id>")
    @require_tenant
    def get_order_route(order_id: int):
        try:
            order = order_service.get_order(g.company_id, order_id, document_type=document_type)
        except OrderError as e:
            return _error_response(e)
        return jsonify({"order": order.to_dict()}), 200

    @bp.post("")
    @require_tenant
    def create_order_route():
        """
        Create an order and apply its stock effect.

        Body: counterpart, items[{product_id, quantity, unit_price_cents}],
        discount_cents, payment_method, notes, status.
        """
        data = request.get_json(silent=True) or {}
        try:
            order = order_service.create_order(g.company_id, document_type, **_order_fields(data))
        except OrderError as e:
            return _error_response(e, from_payload=True)
        except Exception:
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify({"order": order.to_dict()}), 201

    @bp.put("/<int:order_id>")
    @require_tenant
    def edit_order_route(order_id: int):
        """Replace items and header fields. Stock is not adjusted."""
        data = request.get_json(silent=True) or {}
        try:
            order = order_service.edit_order(
                g.company_id,
                order_id,
                document_type=document_type,
                **_order_fields(data),
            )
        except OrderError as e:
            return _error_response(e, from_payload=True)
        except Exception:
            current_app.logger.exception("Failed to edit %s", label)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify({"order": order.to_dict()}), 200

    @bp.patch("/<int:order_id>/status")
    @require_tenant
    def update_status_route(order_id: int):
        data = request.get_json(silent=True) or {}
        new_status = data.get("status")
        if not new_status:
            return jsonify({"error": "status required"}), 400
        try:
            order = order_service.update_status(
                g.company_id, order_id, new_status, document_type=document_type
            )
        except OrderError as e:
            return _error_response(e)
        except Exception:
            current_app.logger.exception("Failed to change %s status", label)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify({"order": order.to_dict()}), 200

    @bp.patch("/<int:order_id>/cancel")
    @require_tenant
    def cancel_order_route(order_id: int):
        """Cancel and reverse the stock effect."""
        try:
            order = order_service.cancel_order(g.company_id, order_id, document_type=document_type)
        except OrderError as e:
            return _error_response(e)
        except Exception:
            current_app.logger.exception("Failed to cancel %s", label)
            return jsonify({"error": "Internal server error"}), 500
        return jsonify({"order": order.to_dict()}), 200

    @bp.delete("/<int:order_id>")
    @require_tenant
    def delete_order_route(order_id: int):
        """Permanently delete a cancelled order."""
        try:
            order_service.delete_order(g.company_id, order_id, document_type=document_type)
        except OrderError as e:
            return _error_response(e)
        return jsonify({"ok": True}), 200

    return bp


sales_bp = build_orders_blueprint("sales", DOCUMENT_SALE, "/api/sales")
purchases_bp = build_orders_blueprint("purchases", DOCUMENT_PURCHASE, "/api/purchases")
