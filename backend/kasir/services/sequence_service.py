# Overview: Human-readable document numbers backed by atomic counter rows.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update

from ..extensions import db
from ..models import DocumentSequence, Outlet
from kasir.time_utils import local_date, utcnow


TRANSACTION = "TRANSACTION"
REFUND = "REFUND"
SHIFT = "SHIFT"

REFUND_PREFIX = "RFD"
SHIFT_PREFIX = "SHF"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def business_period(at: datetime | None, tz_name: str | None) -> str:
    """YYYYMMDD of the instant `at` (UTC) in the given timezone."""
    return local_date(at or utcnow(), tz_name).strftime("%Y%m%d")


def format_number(*parts: str, number: int, pad: int = 4) -> str:
    """
    Join prefix parts and the zero-padded counter with dashes.

    Numbers wider than `pad` digits are kept whole (10000 stays 10000).
    """
    return "-".join([*parts, f"{number:0{pad}d}"])


def allocate(*, tenant_id: int, document_type: str, period: str = "", outlet_id: int = 0) -> int:
    """
    Atomically allocate the next counter value for a sequence scope.

    Must run inside the caller's unit of work: the allocation commits or rolls
    back together with the document that uses it. The first allocation of a
    scope inserts the counter row; two writers racing on that insert surface
    an IntegrityError, which the caller's run_with_retry(retry_on=...) re-runs.
    """
    if not tenant_id:
        raise DocumentSequenceError("tenant_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    scope = (
        DocumentSequence.tenant_id == tenant_id,
        DocumentSequence.outlet_id == outlet_id,
        DocumentSequence.document_type == document_type,
        DocumentSequence.period == period,
    )

    stmt = (
        update(DocumentSequence)
        .where(*scope)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        current = db.session.execute(select(DocumentSequence.next_number).where(*scope)).scalar_one()
        return current - 1

    seq = DocumentSequence(
        tenant_id=tenant_id,
        outlet_id=outlet_id,
        document_type=document_type,
        period=period,
        next_number=2,
    )
    db.session.add(seq)
    db.session.flush()
    return 1


def next_transaction_number(outlet: Outlet, at: datetime | None = None) -> str:
    """
    MAIN-20250101-0001: per outlet code, per business day in the outlet's timezone.

    Scoped by outlet code, not outlet id: the number embeds the code and is
    unique per tenant, so a code reused after a rename continues its sequence.
    """
    period = business_period(at, outlet.timezone)
    number = allocate(
        tenant_id=outlet.tenant_id,
        document_type=TRANSACTION,
        period=f"{outlet.code}:{period}",
    )
    return format_number(outlet.code, period, number=number)


def next_refund_number(tenant_id: int, at: datetime | None = None, tz_name: str | None = None) -> str:
    """RFD-20250101-0001: per tenant, per business day."""
    period = business_period(at, tz_name)
    number = allocate(tenant_id=tenant_id, document_type=REFUND, period=period)
    return format_number(REFUND_PREFIX, period, number=number)


def next_shift_number(outlet: Outlet, at: datetime | None = None) -> str:
    """SHF-MAIN-20250101-01: per outlet, per business day."""
    period = business_period(at, outlet.timezone)
    number = allocate(
        tenant_id=outlet.tenant_id,
        outlet_id=outlet.id,
        document_type=SHIFT,
        period=period,
    )
    return format_number(SHIFT_PREFIX, outlet.code, period, number=number, pad=2)
