# Overview: Flask API routes for the audit trail (read-only).

from flask import Blueprint, request, jsonify, g

from ..services import audit_service
from ..services.audit_service import AuditLogFilter
from ..decorators import require_auth, require_permission
from ..validation import ValidationError
from kasir.time_utils import parse_range_bound
from .errors import json_error


audit_logs_bp = Blueprint("audit_logs", __name__, url_prefix="/api/audit-logs")


@audit_logs_bp.get("")
@require_auth
@require_permission("audit.read.tenant")
def list_audit_logs_route():
    """
    Query params: user_id, action, resource, resource_id, status,
    start_date, end_date, page, limit (max 100).
    """
    try:
        filters = AuditLogFilter.from_args(request.args)
        return jsonify(audit_service.list_audit_logs(g.tenant_id, filters))
    except Exception as exc:
        return json_error(exc)


@audit_logs_bp.get("/stats")
@require_auth
@require_permission("audit.read.tenant")
def audit_stats_route():
    try:
        try:
            start = parse_range_bound(request.args.get("start_date"))
            end = parse_range_bound(request.args.get("end_date"), end=True)
        except ValueError:
            raise ValidationError("Invalid date range")
        return jsonify(audit_service.audit_stats(g.tenant_id, start=start, end=end))
    except Exception as exc:
        return json_error(exc)


@audit_logs_bp.get("/resource/<resource>/<resource_id>")
@require_auth
@require_permission("audit.read.tenant")
def resource_history_route(resource: str, resource_id: str):
    logs = audit_service.resource_history(g.tenant_id, resource, resource_id)
    return jsonify({
        "resource": resource,
        "resource_id": resource_id,
        "count": len(logs),
        "logs": [log.to_dict() for log in logs],
    })


@audit_logs_bp.get("/<int:log_id>")
@require_auth
@require_permission("audit.read.tenant")
def get_audit_log_route(log_id: int):
    try:
        return jsonify({"log": audit_service.get_audit_log(g.tenant_id, log_id).to_dict()})
    except Exception as exc:
        return json_error(exc)
