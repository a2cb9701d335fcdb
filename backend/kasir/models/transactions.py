from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


TRANSACTION_STATUSES = ("COMPLETED", "PARTIAL_REFUND", "REFUNDED", "VOID")
REFUND_STATUSES = ("PENDING", "APPROVED")


class Transaction(db.Model):
    """
    Completed POS sale.

    INVARIANTS:
    - total = subtotal + tax - discount, fixed at creation
    - refunds change status only (COMPLETED -> PARTIAL_REFUND -> REFUNDED)
    - never hard-deleted

    idempotency_key is unique per tenant so a retried offline sync can never
    create a second row.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "transaction_number", name="uq_transactions_tenant_number"),
        db.UniqueConstraint("tenant_id", "idempotency_key", name="uq_transactions_tenant_idempotency"),
        db.Index("ix_transactions_tenant_outlet_created", "tenant_id", "outlet_id", "created_at"),
        db.Index("ix_transactions_tenant_status_created", "tenant_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True, index=True)

    # Human-readable number, e.g. "MAIN-20250101-0001"
    transaction_number = db.Column(db.String(64), nullable=False)

    # Amounts (minor currency units)
    subtotal = db.Column(db.Integer, nullable=False)
    discount = db.Column(db.Integer, nullable=False, default=0)
    tax = db.Column(db.Integer, nullable=False, default=0)
    total = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(32), nullable=False, index=True)
    amount_paid = db.Column(db.Integer, nullable=False, default=0)
    change_amount = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Offline sync support
    idempotency_key = db.Column(db.String(128), nullable=True)
    local_id = db.Column(db.String(128), nullable=True)
    is_offline_sync = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    outlet = db.relationship("Outlet", backref=db.backref("transactions", lazy=True))
    user = db.relationship("User", backref=db.backref("transactions", lazy=True))
    shift = db.relationship("Shift", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        back_populates="transaction",
        lazy=True,
        order_by="TransactionItem.id",
    )
    refunds = db.relationship(
        "Refund",
        back_populates="transaction",
        lazy=True,
        order_by="Refund.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "outlet_id": self.outlet_id,
            "user_id": self.user_id,
            "shift_id": self.shift_id,
            "transaction_number": self.transaction_number,
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "total": self.total,
            "payment_method": self.payment_method,
            "amount_paid": self.amount_paid,
            "change_amount": self.change_amount,
            "status": self.status,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "idempotency_key": self.idempotency_key,
            "local_id": self.local_id,
            "is_offline_sync": self.is_offline_sync,
            "created_at": to_utc_z(self.created_at),
        }


class TransactionItem(db.Model):
    """
    Line item snapshot.

    Product name, sku and price are copied at sale time so later product
    edits never change historical receipts.
    """
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    product_sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    discount = db.Column(db.Integer, nullable=False, default=0)
    tax = db.Column(db.Integer, nullable=False, default=0)
    subtotal = db.Column(db.Integer, nullable=False)

    transaction = db.relationship("Transaction", back_populates="items")
    product = db.relationship("Product", backref=db.backref("transaction_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount,
            "tax": self.tax,
            "subtotal": self.subtotal,
        }


class Refund(db.Model):
    """
    Money returned against a transaction.

    INVARIANT: sum(refund.amount) for a transaction never exceeds its total.
    Immutable after creation except status / approval fields.
    """
    __tablename__ = "refunds"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "refund_number", name="uq_refunds_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    refund_number = db.Column(db.String(64), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="PENDING", index=True)
    approved_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship("Transaction", back_populates="refunds")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "transaction_id": self.transaction_id,
            "created_by_user_id": self.created_by_user_id,
            "refund_number": self.refund_number,
            "amount": self.amount,
            "reason": self.reason,
            "status": self.status,
            "approved_by": self.approved_by,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "created_at": to_utc_z(self.created_at),
        }
