from __future__ import annotations

from ..extensions import db
from kasir.time_utils import to_utc_z


class SubscriptionPlan(db.Model):
    """
    Billing plan that caps how much a tenant may create.

    Plans are seeded by the CLI (FREE, BASIC, PRO); editing them is not
    exposed over the API.
    """
    __tablename__ = "subscription_plans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    max_outlets = db.Column(db.Integer, nullable=False, default=1)
    max_products = db.Column(db.Integer, nullable=False, default=50)
    max_users = db.Column(db.Integer, nullable=False, default=3)
    monthly_price = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<SubscriptionPlan code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "max_outlets": self.max_outlets,
            "max_products": self.max_products,
            "max_users": self.max_users,
            "monthly_price": self.monthly_price,
            "is_active": self.is_active,
        }


class Tenant(db.Model):
    """
    Multi-tenant root: every customer organization is a Tenant.

    All outlets, products, users, transactions and audit logs carry a
    tenant_id. No data may cross tenant boundaries.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    plan_id = db.Column(db.Integer, db.ForeignKey("subscription_plans.id"), nullable=True, index=True)
    plan_expiry = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    plan = db.relationship("SubscriptionPlan")

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "plan": self.plan.code if self.plan else None,
            "plan_expiry": to_utc_z(self.plan_expiry),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Outlet(db.Model):
    """
    Point of sale belonging to a tenant.

    Outlet codes are unique within a tenant and prefix every transaction
    number issued at the outlet (e.g. MAIN-20250101-0001).
    """
    __tablename__ = "outlets"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "code", name="uq_outlets_tenant_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=False, index=True)
    type = db.Column(db.String(32), nullable=False, default="RETAIL")

    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    province = db.Column(db.String(120), nullable=True)
    postal_code = db.Column(db.String(16), nullable=True)

    timezone = db.Column(db.String(64), nullable=False, default="Asia/Jakarta")
    currency = db.Column(db.String(8), nullable=False, default="IDR")
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=11)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    tenant = db.relationship("Tenant", backref=db.backref("outlets", lazy=True))

    def __repr__(self) -> str:
        return f"<Outlet id={self.id} code={self.code!r} tenant_id={self.tenant_id}>"

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "code": self.code,
            "type": self.type,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "province": self.province,
            "postal_code": self.postal_code,
            "timezone": self.timezone,
            "currency": self.currency,
            "tax_rate": float(self.tax_rate) if self.tax_rate is not None else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
