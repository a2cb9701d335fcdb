# Overview: Flask API routes for outlet management; parses input and returns JSON responses.

"""
Outlet routes.

MULTI-TENANT: every outlet is looked up inside g.tenant_id; outlets of other
tenants answer 404.
"""

from flask import Blueprint, request, jsonify, g

from ..services import outlet_service
from ..decorators import require_auth, require_permission
from .errors import json_error


outlets_bp = Blueprint("outlets", __name__, url_prefix="/api/outlets")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").lower() in {"1", "true", "yes"}


@outlets_bp.get("")
@require_auth
@require_permission("outlets.read.tenant")
def list_outlets_route():
    try:
        outlets = outlet_service.list_outlets(g.tenant_id, include_inactive=_flag("include_inactive"))
        return jsonify({
            "tenant_id": g.tenant_id,
            "count": len(outlets),
            "outlets": [o.to_dict() for o in outlets],
        })
    except Exception as exc:
        return json_error(exc)


@outlets_bp.post("")
@require_auth
@require_permission("outlets.create.tenant")
def create_outlet_route():
    try:
        outlet = outlet_service.create_outlet(g.tenant_id, g.current_user.id, request.get_json(silent=True))
        return jsonify({"message": "Outlet created successfully", "outlet": outlet.to_dict()}), 201
    except Exception as exc:
        return json_error(exc)


@outlets_bp.get("/<int:outlet_id>")
@require_auth
@require_permission("outlets.read.tenant")
def get_outlet_route(outlet_id: int):
    try:
        outlet = outlet_service.get_outlet(g.tenant_id, outlet_id)
        data = outlet.to_dict()
        data["counts"] = outlet_service.outlet_counts(outlet.id)
        return jsonify({"outlet": data})
    except Exception as exc:
        return json_error(exc)


@outlets_bp.put("/<int:outlet_id>")
@require_auth
@require_permission("outlets.update.tenant")
def update_outlet_route(outlet_id: int):
    try:
        outlet = outlet_service.update_outlet(
            g.tenant_id, g.current_user.id, outlet_id, request.get_json(silent=True)
        )
        return jsonify({"message": "Outlet updated successfully", "outlet": outlet.to_dict()})
    except Exception as exc:
        return json_error(exc)


@outlets_bp.delete("/<int:outlet_id>")
@require_auth
@require_permission("outlets.delete.tenant")
def delete_outlet_route(outlet_id: int):
    try:
        outlet_service.delete_outlet(g.tenant_id, g.current_user.id, outlet_id)
        return jsonify({"message": "Outlet deleted successfully"})
    except Exception as exc:
        return json_error(exc)


@outlets_bp.post("/<int:outlet_id>/toggle-active")
@require_auth
@require_permission("outlets.update.tenant")
def toggle_outlet_route(outlet_id: int):
    try:
        outlet = outlet_service.toggle_outlet_active(g.tenant_id, g.current_user.id, outlet_id)
        state = "activated" if outlet.is_active else "deactivated"
        return jsonify({"message": f"Outlet {state} successfully", "outlet": outlet.to_dict()})
    except Exception as exc:
        return json_error(exc)
