# Overview: Service-layer operations for auth; users, passwords and role assignment.

"""
Authentication Service with Multi-Tenant Support

WHY: Every sale and refund must be attributable to a person. Uses bcrypt for
password hashing and validates password strength.

MULTI-TENANT: Users belong to exactly one tenant (tenant_id).
Username/email uniqueness is tenant-scoped.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper/lowercase letter, digit and special char
- Session tokens managed separately (see session_service.py)
- Authentication rejects users of inactive tenants
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Outlet, Role, Tenant, User, UserRole
from ..validation import ConflictError, NotFoundError, ValidationError
from . import subscription_service
from kasir.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(
    *,
    tenant_id: int,
    username: str,
    email: str,
    password: str,
    outlet_id: int | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
    role_name: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        NotFoundError: tenant, outlet or role not in this tenant
        ConflictError: username or email already used in the tenant
        LimitExceededError: the tenant's plan allows no more users
        PasswordValidationError: weak password
    """
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError("Tenant not found")
    if not tenant.is_active:
        raise ValidationError("Tenant is not active")

    subscription_service.ensure_within_limit(tenant_id, "users")

    # MULTI-TENANT: Check uniqueness within tenant
    existing = db.session.query(User).filter(
        User.tenant_id == tenant_id,
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists in this tenant")

    if outlet_id is not None:
        outlet = db.session.query(Outlet).filter_by(id=outlet_id, tenant_id=tenant_id).first()
        if not outlet:
            raise NotFoundError("Outlet not found in your tenant")

    role = None
    if role_name:
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
        if not role:
            raise NotFoundError(f"Role {role_name} not found")

    user = User(
        tenant_id=tenant_id,
        outlet_id=outlet_id,
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()

    if role:
        db.session.add(UserRole(user_id=user.id, role_id=role.id))

    db.session.commit()
    return user


def authenticate(username: str, password: str, tenant_code: str | None = None) -> User | None:
    """
    Authenticate user with username (or email) and password.

    MULTI-TENANT: tenant_code scopes the lookup; without it the first active
    user matching the name is used.

    Returns User if credentials valid and tenant active, None otherwise.
    Updates last_login_at on success.
    """
    query = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    )

    if tenant_code:
        query = query.join(Tenant, Tenant.id == User.tenant_id).filter(Tenant.code == tenant_code)

    user = query.order_by(User.id).first()
    if not user:
        return None

    if not user.tenant or not user.tenant.is_active:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def find_login_candidate(username: str, tenant_code: str | None = None) -> User | None:
    """User a failed login attempt was aimed at (for the audit trail)."""
    query = db.session.query(User).filter(db.or_(User.username == username, User.email == username))
    if tenant_code:
        query = query.join(Tenant, Tenant.id == User.tenant_id).filter(Tenant.code == tenant_code)
    return query.order_by(User.id).first()

