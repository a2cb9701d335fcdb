from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class Shift(db.Model):
    """
    Cashier work session at an outlet.

    LIFECYCLE:
    - OPEN: accepts transactions; total_transactions / total_sales are
      incremented inside each posting transaction
    - CLOSED: cash counted, variance recorded; no further transactions

    The running totals are only ever changed by guarded UPDATE statements
    (see transaction_service), never read-modify-write in Python.
    """
    __tablename__ = "shifts"
    __table_args__ = (
        db.UniqueConstraint("outlet_id", "shift_number", name="uq_shifts_outlet_number"),
        db.Index("ix_shifts_outlet_status", "outlet_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    shift_number = db.Column(db.String(64), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)  # OPEN, CLOSED

    # Cash tracking (minor currency units)
    opening_cash = db.Column(db.Integer, nullable=False, default=0)
    closing_cash = db.Column(db.Integer, nullable=True)
    expected_cash = db.Column(db.Integer, nullable=True)
    variance = db.Column(db.Integer, nullable=True)

    total_transactions = db.Column(db.Integer, nullable=False, default=0)
    total_sales = db.Column(db.Integer, nullable=False, default=0)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    outlet = db.relationship("Outlet", backref=db.backref("shifts", lazy=True))
    user = db.relationship("User", backref=db.backref("shifts", lazy=True))

    def summary(self) -> dict:
        return {"id": self.id, "shift_number": self.shift_number, "status": self.status}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "outlet_id": self.outlet_id,
            "user_id": self.user_id,
            "shift_number": self.shift_number,
            "status": self.status,
            "opening_cash": self.opening_cash,
            "closing_cash": self.closing_cash,
            "expected_cash": self.expected_cash,
            "variance": self.variance,
            "total_transactions": self.total_transactions,
            "total_sales": self.total_sales,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
        }
