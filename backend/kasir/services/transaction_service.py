"""
Transaction Service - POS sale posting and refunds

WHY: A sale touches five tables (transactions, transaction_items, products,
shifts, document_sequences). All of it must land together or not at all,
even with several cashiers selling the same product at the same moment.

INVARIANTS:
- total = subtotal + tax - discount; subtotal = sum(line subtotals)
- product.current_stock never goes below zero
- an idempotency key maps to exactly one transaction per tenant
- sum(refund.amount) per transaction never exceeds transaction.total
- audit entries are written after commit and never fail the sale
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Outlet, Product, Refund, Shift, Transaction, TransactionItem, User
from ..validation import (
    BadRequestError,
    MAX_PRICE,
    NotFoundError,
    ValidationError,
    read_bool,
    read_int,
    read_str,
)
from . import audit_service, sequence_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from kasir.time_utils import utcnow


PAYMENT_METHODS = ("cash", "card", "qris", "transfer", "ewallet")
CASH = "cash"


class TransactionError(BadRequestError):
    """Raised for transaction and refund business rule violations."""
    pass


# =============================================================================
# Requests
# =============================================================================

@dataclass
class LineItemRequest:
    product_id: int
    quantity: int
    discount: int = 0

    @classmethod
    def from_payload(cls, payload) -> "LineItemRequest":
        if not isinstance(payload, dict):
            raise ValidationError("Each item must be an object")
        return cls(
            product_id=read_int(payload, "product_id", required=True, minimum=1),
            quantity=read_int(payload, "quantity", required=True, minimum=1),
            discount=read_int(payload, "discount", default=0, minimum=0),
        )


@dataclass
class PostTransactionRequest:
    outlet_id: int
    items: list[LineItemRequest]
    payment_method: str
    amount_paid: int | None = None
    discount: int = 0
    shift_id: int | None = None
    idempotency_key: str | None = None
    local_id: str | None = None
    is_offline_sync: bool = False
    customer_name: str | None = None
    customer_phone: str | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload) -> "PostTransactionRequest":
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")

        raw_items = payload.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("items must be a non-empty list")

        method = read_str(payload, "payment_method", required=True, max_length=32).lower()
        if method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

        return cls(
            outlet_id=read_int(payload, "outlet_id", required=True, minimum=1),
            items=[LineItemRequest.from_payload(item) for item in raw_items],
            payment_method=method,
            amount_paid=read_int(payload, "amount_paid", minimum=0),
            discount=read_int(payload, "discount", default=0, minimum=0),
            shift_id=read_int(payload, "shift_id", minimum=1),
            idempotency_key=read_str(payload, "idempotency_key", max_length=128),
            local_id=read_str(payload, "local_id", max_length=128),
            is_offline_sync=read_bool(payload, "is_offline_sync"),
            customer_name=read_str(payload, "customer_name", max_length=255),
            customer_phone=read_str(payload, "customer_phone", max_length=32),
            notes=read_str(payload, "notes"),
        )


@dataclass
class CreateRefundRequest:
    transaction_id: int
    amount: int
    reason: str
    approved_by: int | None = None

    @classmethod
    def from_payload(cls, payload) -> "CreateRefundRequest":
        if not isinstance(payload, dict):
            raise ValidationError("Invalid JSON payload")
        return cls(
            transaction_id=read_int(payload, "transaction_id", required=True, minimum=1),
            amount=read_int(payload, "amount", required=True, minimum=1),
            reason=read_str(payload, "reason", required=True, max_length=255),
            approved_by=read_int(payload, "approved_by", minimum=1),
        )


@dataclass
class PostResult:
    transaction: Transaction
    is_duplicate: bool = False


@dataclass
class _PricedLine:
    product: Product
    quantity: int
    unit_price: int
    discount: int
    tax: int
    subtotal: int


@dataclass
class _Totals:
    lines: list[_PricedLine] = field(default_factory=list)
    subtotal: int = 0
    tax: int = 0


# =============================================================================
# Arithmetic
# =============================================================================

def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_tax(line_subtotal: int, tax_rate, is_taxable: bool) -> int:
    """Tax of one line: round(subtotal * rate / 100), 0 when not taxable."""
    if not is_taxable or not tax_rate:
        return 0
    return round_half_up(Decimal(line_subtotal) * Decimal(str(tax_rate)) / Decimal(100))


def _price_lines(outlet: Outlet, tenant_id: int, items: list[LineItemRequest]) -> _Totals:
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    products: dict[int, Product] = {}
    for product_id in sorted(requested):
        product = lock_for_update(
            db.session.query(Product).filter_by(
                id=product_id,
                outlet_id=outlet.id,
                tenant_id=tenant_id,
                is_active=True,
            )
        ).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found or inactive")
        if product.current_stock < requested[product_id]:
            raise TransactionError(
                f"Insufficient stock for {product.name}. "
                f"Available: {product.current_stock}, Required: {requested[product_id]}",
                details={
                    "product_id": product.id,
                    "available": product.current_stock,
                    "requested": requested[product_id],
                },
            )
        products[product_id] = product

    totals = _Totals()
    for item in items:
        product = products[item.product_id]
        gross = product.selling_price * item.quantity
        if item.discount > gross:
            raise TransactionError(
                f"Discount for {product.name} exceeds line amount",
                details={"product_id": product.id, "line_amount": gross, "discount": item.discount},
            )
        subtotal = gross - item.discount
        tax = line_tax(subtotal, product.tax_rate, product.is_taxable)
        totals.lines.append(_PricedLine(
            product=product,
            quantity=item.quantity,
            unit_price=product.selling_price,
            discount=item.discount,
            tax=tax,
            subtotal=subtotal,
        ))
        totals.subtotal += subtotal
        totals.tax += tax

    if totals.subtotal > MAX_PRICE:
        raise TransactionError("Transaction amount too large")
    return totals


def _decrement_stock(lines: list[_PricedLine]) -> None:
    per_product: dict[int, int] = {}
    names: dict[int, str] = {}
    for line in lines:
        per_product[line.product.id] = per_product.get(line.product.id, 0) + line.quantity
        names[line.product.id] = line.product.name

    for product_id, quantity in per_product.items():
        result = db.session.execute(
            update(Product)
            .where(Product.id == product_id, Product.current_stock >= quantity)
            .values(current_stock=Product.current_stock - quantity)
        )
        if result.rowcount != 1:
            raise TransactionError(
                f"Insufficient stock for {names[product_id]}",
                details={"product_id": product_id, "requested": quantity},
            )


def _apply_to_shift(shift_id: int, total: int) -> None:
    result = db.session.execute(
        update(Shift)
        .where(Shift.id == shift_id, Shift.status == "OPEN")
        .values(
            total_transactions=Shift.total_transactions + 1,
            total_sales=Shift.total_sales + total,
        )
    )
    if result.rowcount != 1:
        raise TransactionError("Shift not found or not open in this outlet")


# =============================================================================
# Posting
# =============================================================================

def _find_by_idempotency_key(tenant_id: int, key: str) -> Transaction | None:
    return db.session.query(Transaction).filter_by(tenant_id=tenant_id, idempotency_key=key).first()


def post_transaction(tenant_id: int, user_id: int, req: PostTransactionRequest) -> PostResult:
    """
    Post a completed sale.

    Prices, tax and totals are recomputed from the products; client-side
    amounts other than amount_paid and discounts are never trusted.
    A repeated idempotency key returns the original transaction untouched.
    """
    if not req.items:
        raise ValidationError("items must be a non-empty list")

    def _op() -> PostResult:
        begin_write()

        outlet = db.session.query(Outlet).filter_by(id=req.outlet_id, tenant_id=tenant_id).first()
        if not outlet:
            raise TransactionError("Outlet not found in your tenant")

        if req.idempotency_key:
            existing = _find_by_idempotency_key(tenant_id, req.idempotency_key)
            if existing:
                db.session.commit()
                return PostResult(transaction=existing, is_duplicate=True)

        if req.shift_id:
            shift = lock_for_update(
                db.session.query(Shift).filter_by(
                    id=req.shift_id,
                    tenant_id=tenant_id,
                    outlet_id=outlet.id,
                    status="OPEN",
                )
            ).first()
            if not shift:
                raise TransactionError("Shift not found or not open in this outlet")

        totals = _price_lines(outlet, tenant_id, req.items)

        total = totals.subtotal + totals.tax - req.discount
        if total < 0:
            raise TransactionError(
                "Discount exceeds transaction amount",
                details={"subtotal": totals.subtotal, "tax": totals.tax, "discount": req.discount},
            )

        if req.payment_method == CASH:
            if req.amount_paid is None or req.amount_paid < total:
                raise TransactionError(
                    f"Insufficient payment. Total: {total}, Paid: {req.amount_paid or 0}",
                    details={"total": total, "amount_paid": req.amount_paid or 0},
                )
            amount_paid = req.amount_paid
            change_amount = amount_paid - total
        else:
            amount_paid = req.amount_paid if req.amount_paid is not None else total
            change_amount = 0

        now = utcnow()
        number = sequence_service.next_transaction_number(outlet, at=now)

        txn = Transaction(
            tenant_id=tenant_id,
            outlet_id=outlet.id,
            user_id=user_id,
            shift_id=req.shift_id,
            transaction_number=number,
            subtotal=totals.subtotal,
            discount=req.discount,
            tax=totals.tax,
            total=total,
            payment_method=req.payment_method,
            amount_paid=amount_paid,
            change_amount=change_amount,
            status="COMPLETED",
            customer_name=req.customer_name,
            customer_phone=req.customer_phone,
            notes=req.notes,
            idempotency_key=req.idempotency_key,
            local_id=req.local_id,
            is_offline_sync=req.is_offline_sync,
            created_at=now,
            updated_at=now,
        )
        db.session.add(txn)
        db.session.flush()

        for line in totals.lines:
            db.session.add(TransactionItem(
                transaction_id=txn.id,
                product_id=line.product.id,
                product_name=line.product.name,
                product_sku=line.product.sku,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                tax=line.tax,
                subtotal=line.subtotal,
            ))

        _decrement_stock(totals.lines)
        if req.shift_id:
            _apply_to_shift(req.shift_id, total)

        db.session.commit()
        return PostResult(transaction=txn)

    result = run_with_retry(_op, retry_on=(IntegrityError,))

    txn = result.transaction
    if result.is_duplicate:
        current_app.logger.info(
            "Duplicate transaction post for key %s returned %s", req.idempotency_key, txn.transaction_number
        )
        return result

    current_app.logger.info(
        "Posted transaction %s (tenant=%s total=%s)", txn.transaction_number, tenant_id, txn.total
    )
    audit_service.log_create(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="transactions",
        resource_id=txn.id,
        new_values={
            "transaction_number": txn.transaction_number,
            "total": txn.total,
            "payment_method": txn.payment_method,
            "item_count": len(txn.items),
        },
    )
    return result


# =============================================================================
# Refunds
# =============================================================================

def refund_status(total: int, refunded: int) -> str:
    return "REFUNDED" if refunded >= total else "PARTIAL_REFUND"


def create_refund(tenant_id: int, user_id: int, req: CreateRefundRequest) -> Refund:
    """
    Refund part or all of a transaction.

    The transaction row is locked while prior refunds are summed, so two
    concurrent refunds can never together exceed the transaction total.
    """
    if req.amount is None or req.amount <= 0:
        raise ValidationError("amount must be a positive integer")

    def _op() -> Refund:
        begin_write()

        txn = lock_for_update(
            db.session.query(Transaction).filter_by(id=req.transaction_id, tenant_id=tenant_id)
        ).first()
        if not txn:
            raise NotFoundError("Transaction not found in your tenant")

        if txn.status == "REFUNDED":
            raise TransactionError("Transaction already fully refunded")
        if txn.status == "VOID":
            raise TransactionError("Cannot refund a voided transaction")

        total_refunded = (
            db.session.query(func.coalesce(func.sum(Refund.amount), 0))
            .filter(Refund.transaction_id == txn.id)
            .scalar()
        )
        remaining = txn.total - total_refunded
        if req.amount > remaining:
            raise TransactionError(
                f"Refund amount exceeds transaction total. Available: {remaining}",
                details={"total": txn.total, "refunded": total_refunded, "available": remaining},
            )

        approved_at = None
        if req.approved_by:
            approver = db.session.query(User).filter_by(id=req.approved_by, tenant_id=tenant_id).first()
            if not approver:
                raise TransactionError("Approver not found in your tenant")
            approved_at = utcnow()

        now = utcnow()
        number = sequence_service.next_refund_number(tenant_id, at=now, tz_name=txn.outlet.timezone)

        refund = Refund(
            tenant_id=tenant_id,
            transaction_id=txn.id,
            created_by_user_id=user_id,
            refund_number=number,
            amount=req.amount,
            reason=req.reason,
            status="APPROVED" if req.approved_by else "PENDING",
            approved_by=req.approved_by,
            approved_at=approved_at,
            created_at=now,
        )
        db.session.add(refund)
        txn.status = refund_status(txn.total, total_refunded + req.amount)

        db.session.commit()
        return refund

    refund = run_with_retry(_op, retry_on=(IntegrityError,))

    new_status = refund.transaction.status
    current_app.logger.info(
        "Refund %s of %s on transaction %s (status %s)",
        refund.refund_number, refund.amount, refund.transaction_id, new_status,
    )
    audit_service.record(
        tenant_id=tenant_id,
        user_id=user_id,
        action="REFUND",
        resource="transactions",
        resource_id=refund.transaction_id,
        new_values={
            "refund_number": refund.refund_number,
            "amount": refund.amount,
            "reason": refund.reason,
            "transaction_status": new_status,
        },
    )
    return refund
