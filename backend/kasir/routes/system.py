# backend/kasir/routes/system.py
"""
System health endpoint.

GET /api/health checks database connectivity and that the permission
catalogue has been seeded (`flask system init`).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Permission, SessionToken, Tenant
from kasir.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Database connectivity and basic query latency."""
    start_time = time.time()
    try:
        tenant_count = db.session.query(Tenant).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_permissions_health() -> dict:
    """Degraded (still operational) when no permissions are seeded."""
    try:
        permission_count = db.session.query(Permission).count()
    except Exception:
        current_app.logger.exception("Permission health check failed")
        return {"status": "unhealthy", "error": "Permission table error"}

    if not permission_count:
        return {
            "status": "degraded",
            "warning": "Permissions not initialized; run `flask system init`",
            "details": {"permission_count": 0},
        }
    return {"status": "healthy", "details": {"permission_count": permission_count}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    permissions_health = check_permissions_health()

    all_checks = [database_health, permissions_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "permissions": permissions_health,
        }
    }

    return response, http_status
