from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document counters.

    One row per (tenant, outlet, document type, period). outlet_id is 0 for
    tenant-wide sequences and period is the YYYYMMDD business date (or "" for
    sequences that never reset). Transaction counters are tenant-wide with a
    "CODE:YYYYMMDD" period. The unique constraint makes the first insert
    of a period race-safe; later allocations are a single UPDATE.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint(
            "tenant_id", "outlet_id", "document_type", "period",
            name="uq_doc_sequences_scope",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    outlet_id = db.Column(db.Integer, nullable=False, default=0)
    document_type = db.Column(db.String(32), nullable=False)
    period = db.Column(db.String(48), nullable=False, default="")
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "outlet_id": self.outlet_id,
            "document_type": self.document_type,
            "period": self.period,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
