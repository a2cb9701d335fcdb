# Overview: Cashier shift lifecycle (open, close with cash variance).

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Outlet, Shift, Transaction
from ..validation import BadRequestError, NotFoundError, ValidationError, read_int, read_str
from . import audit_service, sequence_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from kasir.time_utils import utcnow


class ShiftError(BadRequestError):
    """Raised for shift lifecycle violations."""
    pass


def get_shift(tenant_id: int, shift_id: int) -> Shift:
    shift = db.session.query(Shift).filter_by(id=shift_id, tenant_id=tenant_id).first()
    if not shift:
        raise NotFoundError("Shift not found in your tenant")
    return shift


def list_shifts(tenant_id: int, *, outlet_id: int | None = None, status: str | None = None) -> list[Shift]:
    query = db.session.query(Shift).filter(Shift.tenant_id == tenant_id)
    if outlet_id:
        query = query.filter(Shift.outlet_id == outlet_id)
    if status:
        query = query.filter(Shift.status == status.upper())
    return query.order_by(Shift.opened_at.desc(), Shift.id.desc()).all()


def get_open_shift(outlet_id: int, user_id: int) -> Shift | None:
    return db.session.query(Shift).filter_by(outlet_id=outlet_id, user_id=user_id, status="OPEN").first()


def cash_sales_total(shift_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Transaction.total), 0))
        .filter(
            Transaction.shift_id == shift_id,
            Transaction.payment_method == "cash",
            Transaction.status != "VOID",
        )
        .scalar()
    )
    return int(total)


def open_shift(tenant_id: int, user_id: int, payload: dict) -> Shift:
    """
    Open a shift for the calling cashier.

    WHY: Each shift is a period of accountability for one cashier.
    Only one shift can be open per (outlet, cashier) at a time.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    outlet_id = read_int(payload, "outlet_id", required=True, minimum=1)
    opening_cash = read_int(payload, "opening_cash", default=0, minimum=0)
    notes = read_str(payload, "notes")

    def _op() -> Shift:
        begin_write()

        outlet = db.session.query(Outlet).filter_by(id=outlet_id, tenant_id=tenant_id).first()
        if not outlet:
            raise ShiftError("Outlet not found in your tenant")
        if not outlet.is_active:
            raise ShiftError("Cannot open shift on inactive outlet")

        existing = get_open_shift(outlet.id, user_id)
        if existing:
            raise ShiftError(
                f"You already have an open shift at this outlet ({existing.shift_number})",
                details={"shift_id": existing.id},
            )

        now = utcnow()
        shift = Shift(
            tenant_id=tenant_id,
            outlet_id=outlet.id,
            user_id=user_id,
            shift_number=sequence_service.next_shift_number(outlet, at=now),
            status="OPEN",
            opening_cash=opening_cash,
            opened_at=now,
            notes=notes,
        )
        db.session.add(shift)
        db.session.commit()
        return shift

    shift = run_with_retry(_op, retry_on=(IntegrityError,))

    audit_service.log_create(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="shifts",
        resource_id=shift.id,
        new_values=shift.to_dict(),
    )
    return shift


def close_shift(tenant_id: int, user_id: int, shift_id: int, payload: dict) -> Shift:
    """
    Close a shift and calculate cash variance.

    expected_cash = opening_cash + cash sales of the shift;
    variance = closing_cash - expected_cash (negative means short).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    closing_cash = read_int(payload, "closing_cash", required=True, minimum=0)
    notes = read_str(payload, "notes")

    def _op():
        begin_write()

        shift = lock_for_update(
            db.session.query(Shift).filter_by(id=shift_id, tenant_id=tenant_id)
        ).first()
        if not shift:
            raise NotFoundError("Shift not found in your tenant")
        if shift.status != "OPEN":
            raise ShiftError("Shift already closed")

        before = shift.to_dict()
        expected = shift.opening_cash + cash_sales_total(shift.id)

        shift.status = "CLOSED"
        shift.closed_at = utcnow()
        shift.closing_cash = closing_cash
        shift.expected_cash = expected
        shift.variance = closing_cash - expected
        if notes:
            shift.notes = notes

        db.session.commit()
        return shift, before

    shift, before = run_with_retry(_op)

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="shifts",
        resource_id=shift.id,
        old_values=before,
        new_values=shift.to_dict(),
    )
    return shift
