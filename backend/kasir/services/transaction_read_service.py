# Overview: Read-side queries and response projections for transactions.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Refund, Transaction
from ..validation import NotFoundError, ValidationError
from kasir.time_utils import parse_range_bound, to_utc_z


@dataclass
class TransactionFilter:
    outlet_id: int | None = None
    shift_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def from_args(cls, args) -> "TransactionFilter":
        try:
            return cls(
                outlet_id=args.get("outlet_id", type=int),
                shift_id=args.get("shift_id", type=int),
                start=parse_range_bound(args.get("start_date")),
                end=parse_range_bound(args.get("end_date"), end=True),
            )
        except ValueError:
            raise ValidationError("Invalid query parameters")


# =============================================================================
# Projections
# =============================================================================

def _user_summary(user) -> dict | None:
    if not user:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
    }


def project_refund(refund: Refund) -> dict:
    return refund.to_dict()


def project_transaction(txn: Transaction, *, include_refunds: bool = False) -> dict:
    """Transaction with items and outlet / cashier / shift summaries."""
    data = txn.to_dict()
    data["items"] = [item.to_dict() for item in txn.items]
    data["outlet"] = txn.outlet.summary() if txn.outlet else None
    data["user"] = _user_summary(txn.user)
    data["shift"] = txn.shift.summary() if txn.shift else None
    if include_refunds:
        data["refunds"] = [project_refund(r) for r in txn.refunds]
        data["total_refunded"] = sum(r.amount for r in txn.refunds)
    return data


# =============================================================================
# Queries
# =============================================================================

def _filtered(tenant_id: int, filters: TransactionFilter):
    query = db.session.query(Transaction).filter(Transaction.tenant_id == tenant_id)
    if filters.outlet_id:
        query = query.filter(Transaction.outlet_id == filters.outlet_id)
    if filters.shift_id:
        query = query.filter(Transaction.shift_id == filters.shift_id)
    if filters.start:
        query = query.filter(Transaction.created_at >= filters.start)
    if filters.end:
        query = query.filter(Transaction.created_at < filters.end)
    return query


def list_transactions(tenant_id: int, filters: TransactionFilter) -> dict:
    limit = current_app.config.get("TRANSACTION_LIST_LIMIT", 100)
    transactions = (
        _filtered(tenant_id, filters)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .all()
    )
    return {
        "tenant_id": tenant_id,
        "count": len(transactions),
        "total_amount": sum(t.total for t in transactions),
        "transactions": [project_transaction(t) for t in transactions],
    }


def get_transaction(tenant_id: int, transaction_id: int) -> Transaction:
    txn = db.session.query(Transaction).filter_by(id=transaction_id, tenant_id=tenant_id).first()
    if not txn:
        raise NotFoundError("Transaction not found in your tenant")
    return txn


def transaction_stats(tenant_id: int, filters: TransactionFilter) -> dict:
    """Totals over COMPLETED transactions only; refunded sales are excluded."""
    query = _filtered(tenant_id, filters).filter(Transaction.status == "COMPLETED")

    count, revenue, tax, discount = query.with_entities(
        func.count(Transaction.id),
        func.coalesce(func.sum(Transaction.total), 0),
        func.coalesce(func.sum(Transaction.tax), 0),
        func.coalesce(func.sum(Transaction.discount), 0),
    ).one()

    breakdown = (
        query.with_entities(
            Transaction.payment_method,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total), 0),
        )
        .group_by(Transaction.payment_method)
        .order_by(Transaction.payment_method)
        .all()
    )

    return {
        "tenant_id": tenant_id,
        "outlet_id": filters.outlet_id,
        "period": {
            "start_date": to_utc_z(filters.start),
            "end_date": to_utc_z(filters.end),
        },
        "total_transactions": count,
        "total_revenue": int(revenue),
        "total_tax": int(tax),
        "total_discount": int(discount),
        "payment_methods": [
            {"method": method, "count": n, "total": int(total)}
            for method, n, total in breakdown
        ],
    }
