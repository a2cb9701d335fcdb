# Overview: Audit trail recording and queries.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from flask import current_app, has_request_context, request
from sqlalchemy import func

from ..extensions import db
from ..models import AuditLog
from ..models.audit import AUDIT_ACTIONS, AUDIT_STATUSES
from ..validation import NotFoundError, ValidationError
from kasir.time_utils import parse_range_bound, to_utc_z
"""
Audit Recorder Invariants

- Append-only: rows are inserted, never updated or deleted.
- Best-effort: the audit row is committed in its own unit of work AFTER the
  business transaction. A failed audit write is logged and swallowed; it
  never rolls back or fails the business operation that triggered it.
- changes is computed here, not by callers: {"field": {"old": x, "new": y}}
  for every key whose value differs between old_values and new_values.
"""


MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


def _jsonable(value):
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def compute_changes(old_values: dict | None, new_values: dict | None) -> dict | None:
    """Field-level diff between two snapshots, or None when either is missing."""
    if not old_values or not new_values:
        return None
    changes = {}
    for key in sorted(set(old_values) | set(new_values)):
        old = old_values.get(key)
        new = new_values.get(key)
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


def record(
    *,
    tenant_id: int,
    action: str,
    resource: str,
    resource_id=None,
    user_id: int | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
    metadata: dict | None = None,
    status: str = "SUCCESS",
    error_message: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuditLog | None:
    """
    Append an audit entry and commit it.

    Returns the AuditLog, or None when the write failed (logged, not raised).
    Client ip / user agent default to the current request when one exists.
    """
    if action not in AUDIT_ACTIONS:
        current_app.logger.warning("Unknown audit action %s for %s", action, resource)
    if status not in AUDIT_STATUSES:
        current_app.logger.warning("Unknown audit status %s for %s", status, resource)

    if has_request_context():
        ip_address = ip_address or request.remote_addr
        user_agent = user_agent or request.headers.get("User-Agent")

    old_values = _jsonable(old_values) if old_values is not None else None
    new_values = _jsonable(new_values) if new_values is not None else None

    try:
        entry = AuditLog(
            tenant_id=tenant_id,
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_values=old_values,
            new_values=new_values,
            changes=compute_changes(old_values, new_values),
            extra=_jsonable(metadata) if metadata is not None else None,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:512] or None,
            status=status,
            error_message=error_message,
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to write audit log (tenant=%s action=%s resource=%s id=%s)",
            tenant_id, action, resource, resource_id,
        )
        return None


def log_create(*, tenant_id: int, user_id: int | None, resource: str, resource_id, new_values: dict,
               metadata: dict | None = None) -> AuditLog | None:
    return record(
        tenant_id=tenant_id,
        user_id=user_id,
        action="CREATE",
        resource=resource,
        resource_id=resource_id,
        new_values=new_values,
        metadata=metadata,
    )


def log_update(*, tenant_id: int, user_id: int | None, resource: str, resource_id, old_values: dict,
               new_values: dict, metadata: dict | None = None) -> AuditLog | None:
    return record(
        tenant_id=tenant_id,
        user_id=user_id,
        action="UPDATE",
        resource=resource,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
        metadata=metadata,
    )


def log_delete(*, tenant_id: int, user_id: int | None, resource: str, resource_id, old_values: dict,
               metadata: dict | None = None) -> AuditLog | None:
    return record(
        tenant_id=tenant_id,
        user_id=user_id,
        action="DELETE",
        resource=resource,
        resource_id=resource_id,
        old_values=old_values,
        metadata=metadata,
    )


# =============================================================================
# Queries
# =============================================================================

@dataclass
class AuditLogFilter:
    user_id: int | None = None
    action: str | None = None
    resource: str | None = None
    resource_id: str | None = None
    status: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_args(cls, args) -> "AuditLogFilter":
        try:
            user_id = args.get("user_id", type=int)
            page = args.get("page", default=1, type=int)
            limit = args.get("limit", default=DEFAULT_PAGE_SIZE, type=int)
            start = parse_range_bound(args.get("start_date"))
            end = parse_range_bound(args.get("end_date"), end=True)
        except ValueError:
            raise ValidationError("Invalid query parameters")

        action = args.get("action")
        if action and action not in AUDIT_ACTIONS:
            raise ValidationError(f"Invalid action: {action}")
        status = args.get("status")
        if status and status not in AUDIT_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        return cls(
            user_id=user_id,
            action=action or None,
            resource=args.get("resource") or None,
            resource_id=args.get("resource_id") or None,
            status=status or None,
            start=start,
            end=end,
            page=max(page or 1, 1),
            limit=min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE),
        )


def _filtered_query(tenant_id: int, filters: AuditLogFilter):
    query = db.session.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)
    if filters.user_id:
        query = query.filter(AuditLog.user_id == filters.user_id)
    if filters.action:
        query = query.filter(AuditLog.action == filters.action)
    if filters.resource:
        query = query.filter(AuditLog.resource == filters.resource)
    if filters.resource_id:
        query = query.filter(AuditLog.resource_id == str(filters.resource_id))
    if filters.status:
        query = query.filter(AuditLog.status == filters.status)
    if filters.start:
        query = query.filter(AuditLog.created_at >= filters.start)
    if filters.end:
        query = query.filter(AuditLog.created_at < filters.end)
    return query


def list_audit_logs(tenant_id: int, filters: AuditLogFilter) -> dict:
    query = _filtered_query(tenant_id, filters)
    total = query.count()
    logs = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((filters.page - 1) * filters.limit)
        .limit(filters.limit)
        .all()
    )
    return {
        "logs": [log.to_dict() for log in logs],
        "pagination": {
            "page": filters.page,
            "limit": filters.limit,
            "total": total,
            "total_pages": (total + filters.limit - 1) // filters.limit,
        },
    }


def get_audit_log(tenant_id: int, log_id: int) -> AuditLog:
    log = db.session.query(AuditLog).filter_by(id=log_id, tenant_id=tenant_id).first()
    if not log:
        raise NotFoundError("Audit log not found")
    return log


def audit_stats(tenant_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    filters = AuditLogFilter(start=start, end=end)

    def _grouped(column) -> dict:
        rows = (
            _filtered_query(tenant_id, filters)
            .with_entities(column, func.count(AuditLog.id))
            .group_by(column)
            .all()
        )
        return {key: count for key, count in rows}

    return {
        "total": _filtered_query(tenant_id, filters).count(),
        "by_action": _grouped(AuditLog.action),
        "by_resource": _grouped(AuditLog.resource),
        "by_status": _grouped(AuditLog.status),
    }


def resource_history(tenant_id: int, resource: str, resource_id) -> list[AuditLog]:
    return (
        db.session.query(AuditLog)
        .filter_by(tenant_id=tenant_id, resource=resource, resource_id=str(resource_id))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .all()
    )
