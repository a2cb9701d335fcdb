"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services and routes.
Every request is scoped to a tenant, and cross-tenant access must be denied
without revealing that the other tenant's row exists.

SECURITY INVARIANTS:
1. Every authenticated request has g.tenant_id set
2. Outlet IDs from client input are validated against g.tenant_id
3. Cross-tenant access attempts are logged

USAGE:
    from kasir.services.tenant_service import require_outlet_in_tenant

    outlet = require_outlet_in_tenant(outlet_id, g.tenant_id)
"""

from flask import current_app, g, has_request_context, request

from ..extensions import db
from ..models import Outlet, SubscriptionPlan, Tenant
from ..validation import ConflictError, NotFoundError, ValidationError
from . import permission_service


class TenantAccessError(NotFoundError):
    """Raised when cross-tenant access is attempted (answered as 404)."""
    pass


def get_current_tenant_id() -> int:
    """
    Current tenant id from Flask g.

    SECURITY: Raises TenantAccessError if tenant context is missing.
    """
    if getattr(g, 'tenant_id', None) is None:
        raise TenantAccessError("Tenant context not established")
    return g.tenant_id


def require_outlet_in_tenant(outlet_id: int, tenant_id: int) -> Outlet:
    """
    Validate that an outlet belongs to the tenant.

    Raises TenantAccessError (404) if missing or owned by another tenant.
    """
    outlet = db.session.query(Outlet).filter_by(id=outlet_id).first()

    if not outlet:
        raise TenantAccessError("Outlet not found")

    if outlet.tenant_id != tenant_id:
        _log_cross_tenant_attempt(
            f"Outlet {outlet_id} belongs to tenant {outlet.tenant_id}, not {tenant_id}",
            tenant_id=tenant_id,
        )
        raise TenantAccessError("Outlet not found")  # Don't reveal it exists in another tenant

    return outlet


def validate_tenant_active(tenant_id: int) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise TenantAccessError("Tenant not found")
    if not tenant.is_active:
        raise TenantAccessError("Tenant is not active")
    return tenant


def create_tenant(name: str, code: str, plan_code: str | None = None, plan_expiry=None) -> Tenant:
    """
    Create a tenant with its default roles.

    code is upper-cased; plan_code must name a seeded SubscriptionPlan.
    """
    if not name or not name.strip():
        raise ValidationError("Tenant name is required")
    if not code or not code.strip():
        raise ValidationError("Tenant code is required")
    code = code.strip().upper()

    if db.session.query(Tenant).filter_by(code=code).first():
        raise ConflictError(f"Tenant code {code} already exists")

    plan = None
    if plan_code:
        plan = db.session.query(SubscriptionPlan).filter_by(code=plan_code.upper()).first()
        if not plan:
            raise NotFoundError(f"Subscription plan {plan_code} not found")

    tenant = Tenant(
        name=name.strip(),
        code=code,
        plan_id=plan.id if plan else None,
        plan_expiry=plan_expiry,
        is_active=True,
    )
    db.session.add(tenant)
    db.session.commit()

    permission_service.create_default_roles(tenant.id)
    return tenant


def _log_cross_tenant_attempt(reason: str, tenant_id: int | None = None) -> None:
    user = getattr(g, 'current_user', None)
    current_app.logger.warning(
        "Cross-tenant access denied: user=%s tenant=%s path=%s reason=%s",
        getattr(user, 'id', None),
        tenant_id,
        request.path if has_request_context() else None,
        reason,
    )
