# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/kasir/routes/auth.py
"""
Authentication API routes

- Login issues an opaque bearer token (see session_service)
- Logout revokes it
- Register creates a user in the caller's tenant (requires users.create.outlet)
- Login, failed login and logout are written to the audit log
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import audit_service, auth_service, permission_service, session_service
from ..decorators import bearer_token, require_auth, require_permission
from ..permissions import CASHIER, SUPER_ADMIN
from ..validation import ValidationError
from .errors import json_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token: str | None = None) -> dict:
    body = {
        "user": user.to_dict(),
        "roles": permission_service.get_user_role_names(user.id),
        "permissions": sorted(permission_service.get_user_permissions(user.id)),
        "tenant_id": session.tenant_id,
        "outlet_id": session.outlet_id,
    }
    if token is not None:
        body["token"] = token
        body["session"] = session.to_dict()
    return body


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Body: {"username": "...", "password": "...", "tenant_code": "..."(optional)}
    The username field also accepts an email address.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")
        tenant_code = data.get("tenant_code")

        if not username or not password:
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password, tenant_code=tenant_code)

        if not user:
            target = auth_service.find_login_candidate(username, tenant_code=tenant_code)
            if target:
                audit_service.record(
                    tenant_id=target.tenant_id,
                    user_id=target.id,
                    action="LOGIN_FAILED",
                    resource="auth",
                    resource_id=target.id,
                    status="FAILED",
                    error_message="Invalid credentials",
                )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        audit_service.record(
            tenant_id=user.tenant_id,
            user_id=user.id,
            action="LOGIN",
            resource="auth",
            resource_id=user.id,
        )

        body = _session_payload(user, session, token)
        body["message"] = "Login successful"
        return jsonify(body), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        session_service.revoke_session(token, reason="User logout")

        audit_service.record(
            tenant_id=context.tenant_id,
            user_id=context.user.id,
            action="LOGOUT",
            resource="auth",
            resource_id=context.user.id,
        )
        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with roles, permissions and tenant context."""
    body = _session_payload(g.current_user, g.session_context.session)
    return jsonify(body), 200


@auth_bp.post("/register")
@require_auth
@require_permission("users.create.outlet")
def register_route():
    """
    Create a user in the caller's tenant.

    Self-registration is not offered: the caller must hold users.create.outlet.
    Body: {"username", "email", "password", "first_name", "last_name"?, "phone"?,
           "outlet_id"? (defaults to the caller's outlet), "role"? (defaults to CASHIER)}
    Only a SUPER_ADMIN may grant SUPER_ADMIN.
    """
    try:
        data = request.get_json(silent=True) or {}
        missing = [f for f in ("username", "email", "password", "first_name") if not data.get(f)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        role_name = data.get("role") or CASHIER
        if role_name == SUPER_ADMIN and SUPER_ADMIN not in permission_service.get_user_role_names(g.current_user.id):
            return jsonify({"error": "Only a SUPER_ADMIN may grant SUPER_ADMIN"}), 403

        user = auth_service.create_user(
            tenant_id=g.tenant_id,
            username=data["username"],
            email=data["email"],
            password=data["password"],
            outlet_id=data.get("outlet_id", g.outlet_id),
            first_name=data["first_name"],
            last_name=data.get("last_name"),
            phone=data.get("phone"),
            role_name=role_name,
        )
        audit_service.log_create(
            tenant_id=g.tenant_id,
            user_id=g.current_user.id,
            resource="users",
            resource_id=user.id,
            new_values=user.to_dict(),
            metadata={"role": role_name},
        )
        return jsonify({
            "message": "User registered successfully",
            "user": user.to_dict(),
            "roles": permission_service.get_user_role_names(user.id),
        }), 201
    except Exception as exc:
        return json_error(exc)
