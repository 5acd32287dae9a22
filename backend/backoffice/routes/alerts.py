# Overview: Flask API routes for alerts; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_tenant
from ..models.alerts import PRIORITY_MEDIUM
from ..services import alert_service
from ..validation import ValidationError, parse_bool_arg

alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_tenant
def list_alerts_route():
    """
    List alerts, most urgent first.

    Query params: type, is_read ("true"/"false"), priority, page, per_page.
    """
    result = alert_service.list_alerts(
        g.company_id,
        alert_type=request.args.get("type"),
        is_read=parse_bool_arg(request.args.get("is_read")),
        priority=request.args.get("priority"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return jsonify(result), 200


@alerts_bp.get("/stats")
@require_tenant
def alert_stats_route():
    return jsonify(alert_service.alert_stats(g.company_id)), 200


@alerts_bp.get("/<int:alert_id>")
@require_tenant
def get_alert_route(alert_id: int):
    alert = alert_service.get_alert(g.company_id, alert_id)
    if alert is None:
        return jsonify({"error": "Alert not found"}), 404
    return jsonify({"alert": alert.to_dict()}), 200


@alerts_bp.post("")
@require_tenant
def create_alert_route():
    data = request.get_json(silent=True) or {}
    try:
        alert = alert_service.create_alert(
            g.company_id,
            alert_type=data.get("type"),
            title=data.get("title"),
            message=data.get("message"),
            priority=data.get("priority") or PRIORITY_MEDIUM,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"alert": alert.to_dict()}), 201


@alerts_bp.patch("/<int:alert_id>/read")
@require_tenant
def mark_read_route(alert_id: int):
    alert = alert_service.mark_read(g.company_id, alert_id)
    if alert is None:
        return jsonify({"error": "Alert not found"}), 404
    return jsonify({"alert": alert.to_dict()}), 200


@alerts_bp.patch("/read-all")
@require_tenant
def mark_all_read_route():
    count = alert_service.mark_all_read(g.company_id)
    return jsonify({"updated": count}), 200


@alerts_bp.delete("/read")
@require_tenant
def delete_read_route():
    count = alert_service.delete_read_alerts(g.company_id)
    return jsonify({"deleted": count}), 200


@alerts_bp.delete("/<int:alert_id>")
@require_tenant
def delete_alert_route(alert_id: int):
    if not alert_service.delete_alert(g.company_id, alert_id):
        return jsonify({"error": "Alert not found"}), 404
    return jsonify({"ok": True}), 200


@alerts_bp.post("/check")
@require_tenant
def check_alerts_route():
    """Mark everything read, then rescan for low stock."""
    return jsonify(alert_service.check_alerts(g.company_id)), 200
