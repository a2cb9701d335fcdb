from __future__ import annotations

from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from ..extensions import db
from ..models import Outlet, Product, Transaction, User
from ..validation import (
    BadRequestError,
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_tax_rate,
    validate_payload,
)
from . import audit_service, subscription_service
from .concurrency import lock_for_update, run_with_retry


OUTLET_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "code", "type", "phone", "email", "address", "city", "province",
        "postal_code", "timezone", "currency", "tax_rate", "is_active",
    },
    required_on_create={"name", "code"},
)


def _enforce_rules(patch: dict) -> None:
    if "tax_rate" in patch and patch["tax_rate"] is not None:
        enforce_tax_rate(patch["tax_rate"])
    if patch.get("timezone"):
        try:
            ZoneInfo(patch["timezone"])
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {patch['timezone']}")


def _code_taken(tenant_id: int, code: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Outlet).filter_by(tenant_id=tenant_id, code=code)
    if exclude_id is not None:
        query = query.filter(Outlet.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def get_outlet(tenant_id: int, outlet_id: int) -> Outlet:
    outlet = db.session.query(Outlet).filter_by(id=outlet_id, tenant_id=tenant_id).first()
    if not outlet:
        raise NotFoundError("Outlet not found in your tenant")
    return outlet


def outlet_counts(outlet_id: int) -> dict:
    return {
        "users": db.session.query(User).filter_by(outlet_id=outlet_id).count(),
        "products": db.session.query(Product).filter_by(outlet_id=outlet_id).count(),
        "transactions": db.session.query(Transaction).filter_by(outlet_id=outlet_id).count(),
    }


def list_outlets(tenant_id: int, include_inactive: bool = False) -> list[Outlet]:
    query = db.session.query(Outlet).filter_by(tenant_id=tenant_id)
    if not include_inactive:
        query = query.filter(Outlet.is_active.is_(True))
    return query.order_by(Outlet.created_at.desc(), Outlet.id.desc()).all()


def create_outlet(tenant_id: int, user_id: int | None, payload: dict) -> Outlet:
    patch = validate_payload(model=Outlet, payload=payload, policy=OUTLET_POLICY, partial=False)
    _enforce_rules(patch)

    subscription_service.ensure_within_limit(tenant_id, "outlets")

    if _code_taken(tenant_id, patch["code"]):
        raise ConflictError(f"Outlet with code '{patch['code']}' already exists")

    config = current_app.config
    outlet = Outlet(
        tenant_id=tenant_id,
        timezone=config.get("DEFAULT_TIMEZONE", "Asia/Jakarta"),
        currency=config.get("DEFAULT_CURRENCY", "IDR"),
        tax_rate=Decimal(str(config.get("DEFAULT_TAX_RATE", 11.0))),
        is_active=True,
    )
    for key, value in patch.items():
        if value is not None or key not in {"timezone", "currency", "tax_rate", "is_active"}:
            setattr(outlet, key, value)

    db.session.add(outlet)
    db.session.commit()

    audit_service.log_create(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="outlets",
        resource_id=outlet.id,
        new_values=outlet.to_dict(),
    )
    return outlet


def update_outlet(tenant_id: int, user_id: int | None, outlet_id: int, payload: dict) -> Outlet:
    patch = validate_payload(model=Outlet, payload=payload, policy=OUTLET_POLICY, partial=True)
    _enforce_rules(patch)

    def _op():
        outlet = lock_for_update(
            db.session.query(Outlet).filter_by(id=outlet_id, tenant_id=tenant_id)
        ).first()
        if not outlet:
            raise NotFoundError("Outlet not found in your tenant")

        if "code" in patch and patch["code"] != outlet.code and _code_taken(tenant_id, patch["code"], outlet.id):
            raise ConflictError(f"Outlet with code '{patch['code']}' already exists")

        before = outlet.to_dict()
        for key, value in patch.items():
            setattr(outlet, key, value)
        db.session.commit()
        return outlet, before

    outlet, before = run_with_retry(_op)

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="outlets",
        resource_id=outlet.id,
        old_values=before,
        new_values=outlet.to_dict(),
    )
    return outlet


def delete_outlet(tenant_id: int, user_id: int | None, outlet_id: int) -> None:
    outlet = get_outlet(tenant_id, outlet_id)
    counts = outlet_counts(outlet.id)
    if any(counts.values()):
        raise BadRequestError(
            "Cannot delete outlet with existing users, products, or transactions. "
            "Deactivate it instead.",
            details=counts,
        )

    before = outlet.to_dict()
    db.session.delete(outlet)
    db.session.commit()

    audit_service.log_delete(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="outlets",
        resource_id=outlet_id,
        old_values=before,
    )


def toggle_outlet_active(tenant_id: int, user_id: int | None, outlet_id: int) -> Outlet:
    outlet = get_outlet(tenant_id, outlet_id)
    before = outlet.to_dict()
    outlet.is_active = not outlet.is_active
    db.session.commit()

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="outlets",
        resource_id=outlet.id,
        old_values=before,
        new_values=outlet.to_dict(),
    )
    return outlet
