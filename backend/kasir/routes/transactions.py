# Overview: Flask API routes for POS transactions and refunds; parses input and returns JSON responses.

# backend/kasir/routes/transactions.py
"""Transaction API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g

from ..services import transaction_read_service, transaction_service
from ..services.transaction_read_service import TransactionFilter, project_transaction
from ..services.transaction_service import CreateRefundRequest, PostTransactionRequest
from ..decorators import require_auth, require_permission
from .errors import json_error


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
@require_permission("transactions.create.outlet")
def create_transaction_route():
    """
    Post a completed sale.

    Returns 201 with the new transaction, or 200 with is_duplicate=true when
    the idempotency_key was already used in this tenant.
    """
    try:
        req = PostTransactionRequest.from_payload(request.get_json(silent=True))
        result = transaction_service.post_transaction(g.tenant_id, g.current_user.id, req)
        body = {
            "transaction": project_transaction(result.transaction),
            "is_duplicate": result.is_duplicate,
        }
        if result.is_duplicate:
            body["message"] = "Transaction already exists (idempotent)"
            return jsonify(body), 200
        body["message"] = "Transaction completed successfully"
        return jsonify(body), 201
    except Exception as exc:
        return json_error(exc)


@transactions_bp.post("/refund")
@require_auth
@require_permission("transactions.refund.outlet")
def create_refund_route():
    """Body: {"transaction_id": 1, "amount": 10000, "reason": "...", "approved_by": 2}"""
    try:
        req = CreateRefundRequest.from_payload(request.get_json(silent=True))
        refund = transaction_service.create_refund(g.tenant_id, g.current_user.id, req)
        return jsonify({
            "message": "Refund created successfully",
            "refund": transaction_read_service.project_refund(refund),
            "transaction": project_transaction(refund.transaction, include_refunds=True),
        }), 201
    except Exception as exc:
        return json_error(exc)


@transactions_bp.get("")
@require_auth
@require_permission("transactions.read.outlet")
def list_transactions_route():
    """Query params: outlet_id, shift_id, start_date, end_date."""
    try:
        filters = TransactionFilter.from_args(request.args)
        return jsonify(transaction_read_service.list_transactions(g.tenant_id, filters))
    except Exception as exc:
        return json_error(exc)


@transactions_bp.get("/stats")
@require_auth
@require_permission("transactions.read.outlet")
def transaction_stats_route():
    try:
        filters = TransactionFilter.from_args(request.args)
        return jsonify(transaction_read_service.transaction_stats(g.tenant_id, filters))
    except Exception as exc:
        return json_error(exc)


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_permission("transactions.read.outlet")
def get_transaction_route(transaction_id: int):
    try:
        txn = transaction_read_service.get_transaction(g.tenant_id, transaction_id)
        return jsonify({"transaction": project_transaction(txn, include_refunds=True)})
    except Exception as exc:
        return json_error(exc)
