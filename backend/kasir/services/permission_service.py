# Overview: Service-layer operations for permissions; role-based access checks and seeding.

"""
Permission Checking with Multi-Tenant Support

WHY: Enforce role-based access control. Roles are tenant-scoped, permission
definitions are global.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: granted checks are not logged
"""

from flask import current_app

from ..extensions import db
from ..models import Permission, Role, RolePermission, UserRole
from ..permissions import DEFAULT_ROLE_PERMISSIONS, DEFAULT_ROLES, PERMISSION_DEFINITIONS, split_code


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user_id: int) -> set[str]:
    """Union of permission codes over all of the user's roles."""
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .distinct()
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user_id)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    tenant_id: int | None = None,
) -> None:
    """Raise PermissionDeniedError unless the user holds permission_code."""
    if not user_has_permission(user_id, permission_code):
        current_app.logger.warning(
            "Permission denied: user=%s tenant=%s permission=%s resource=%s",
            user_id, tenant_id, permission_code, resource,
        )
        raise PermissionDeniedError(f"Permission denied: {permission_code}")


def get_user_role_names(user_id: int) -> list[str]:
    rows = (
        db.session.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .order_by(Role.name)
        .all()
    )
    return [name for (name,) in rows]


def initialize_permissions() -> int:
    """
    Create Permission records for all codes in PERMISSION_DEFINITIONS.

    Idempotent: Safe to run multiple times.
    """
    created_count = 0

    for code, description in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()
        if existing:
            continue
        resource, action, scope = split_code(code)
        db.session.add(Permission(
            code=code,
            resource=resource,
            action=action,
            scope=scope,
            description=description,
        ))
        created_count += 1

    db.session.commit()
    return created_count


def create_default_roles(tenant_id: int) -> list[Role]:
    """
    Create SUPER_ADMIN / ADMIN / CASHIER for a tenant and link their default
    permissions. Idempotent.
    """
    initialize_permissions()

    permissions = {p.code: p for p in db.session.query(Permission).all()}
    roles = []

    for name, description in DEFAULT_ROLES:
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=name).first()
        if not role:
            role = Role(tenant_id=tenant_id, name=name, description=description)
            db.session.add(role)
            db.session.flush()

        granted = {
            rp.permission_id
            for rp in db.session.query(RolePermission).filter_by(role_id=role.id).all()
        }
        for code in DEFAULT_ROLE_PERMISSIONS.get(name, []):
            permission = permissions.get(code)
            if permission and permission.id not in granted:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))

        roles.append(role)

    db.session.commit()
    return roles
