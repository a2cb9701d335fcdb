from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


AUDIT_ACTIONS = (
    "CREATE",
    "UPDATE",
    "DELETE",
    "LOGIN",
    "LOGIN_FAILED",
    "LOGOUT",
    "PASSWORD_CHANGE",
    "PERMISSION_CHANGE",
    "ROLE_CHANGE",
    "REFUND",
    "VOID",
    "EXPORT",
    "IMPORT",
    "APPROVE",
    "REJECT",
)
AUDIT_STATUSES = ("SUCCESS", "FAILED", "PENDING")


class AuditLog(db.Model):
    """
    Append-only compliance trail.

    - No domain logic here; rows are never updated or deleted.
    - Written after the business transaction commits (best-effort).
    - old_values / new_values are JSON snapshots; changes holds the
      field-level diff {"field": {"old": x, "new": y}} when both exist.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_audit_logs_tenant_resource", "tenant_id", "resource", "resource_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    action = db.Column(db.String(32), nullable=False, index=True)
    resource = db.Column(db.String(64), nullable=False, index=True)
    resource_id = db.Column(db.String(64), nullable=True)

    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)
    changes = db.Column(db.JSON, nullable=True)
    extra = db.Column("metadata", db.JSON, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="SUCCESS", index=True)
    error_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "action": self.action,
            "resource": self.resource,
            "resource_id": self.resource_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "changes": self.changes,
            "metadata": self.extra,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "status": self.status,
            "error_message": self.error_message,
            "created_at": to_utc_z(self.created_at),
            "user": {
                "id": self.user.id,
                "username": self.user.username,
                "email": self.user.email,
            } if self.user else None,
        }
