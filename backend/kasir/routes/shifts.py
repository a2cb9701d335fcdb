# Overview: Flask API routes for cashier shifts; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import shift_service
from ..decorators import require_auth, require_permission
from .errors import json_error


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.post("/open")
@require_auth
@require_permission("shifts.open.outlet")
def open_shift_route():
    """Body: {"outlet_id": 1, "opening_cash": 500000, "notes": "..."}"""
    try:
        shift = shift_service.open_shift(g.tenant_id, g.current_user.id, request.get_json(silent=True))
        return jsonify({"message": "Shift opened successfully", "shift": shift.to_dict()}), 201
    except Exception as exc:
        return json_error(exc)


@shifts_bp.post("/<int:shift_id>/close")
@require_auth
@require_permission("shifts.close.outlet")
def close_shift_route(shift_id: int):
    """Body: {"closing_cash": 750000, "notes": "..."}"""
    try:
        shift = shift_service.close_shift(g.tenant_id, g.current_user.id, shift_id, request.get_json(silent=True))
        return jsonify({"message": "Shift closed successfully", "shift": shift.to_dict()})
    except Exception as exc:
        return json_error(exc)


@shifts_bp.get("")
@require_auth
@require_permission("shifts.read.outlet")
def list_shifts_route():
    try:
        shifts = shift_service.list_shifts(
            g.tenant_id,
            outlet_id=request.args.get("outlet_id", type=int),
            status=request.args.get("status"),
        )
        return jsonify({"count": len(shifts), "shifts": [s.to_dict() for s in shifts]})
    except Exception as exc:
        return json_error(exc)


@shifts_bp.get("/<int:shift_id>")
@require_auth
@require_permission("shifts.read.outlet")
def get_shift_route(shift_id: int):
    try:
        shift = shift_service.get_shift(g.tenant_id, shift_id)
        data = shift.to_dict()
        data["outlet"] = shift.outlet.summary()
        data["user"] = shift.user.summary()
        return jsonify({"shift": data})
    except Exception as exc:
        return json_error(exc)
