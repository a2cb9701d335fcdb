# Overview: Subscription plan limits for outlets, products and users.

from __future__ import annotations

from ..extensions import db
from ..models import Outlet, Product, SubscriptionPlan, Tenant, User
from ..validation import LimitExceededError, NotFoundError
from kasir.time_utils import utcnow


# code, name, max_outlets, max_products, max_users, monthly_price
DEFAULT_PLANS = [
    ("FREE", "Free", 1, 50, 3, 0),
    ("BASIC", "Basic", 3, 500, 10, 99000),
    ("PRO", "Pro", 10, 5000, 50, 299000),
]

_LIMITS = {
    "outlets": (Outlet, "max_outlets"),
    "products": (Product, "max_products"),
    "users": (User, "max_users"),
}


def seed_plans() -> int:
    """Insert the default plans that do not exist yet. Idempotent."""
    created = 0
    for code, name, max_outlets, max_products, max_users, price in DEFAULT_PLANS:
        if db.session.query(SubscriptionPlan).filter_by(code=code).first():
            continue
        db.session.add(SubscriptionPlan(
            code=code,
            name=name,
            max_outlets=max_outlets,
            max_products=max_products,
            max_users=max_users,
            monthly_price=price,
        ))
        created += 1
    db.session.commit()
    return created


def ensure_within_limit(tenant_id: int, resource: str) -> None:
    """
    Raise LimitExceededError if the tenant may not create one more `resource`.

    A tenant without a plan is unlimited. An expired plan blocks all creation.
    """
    if resource not in _LIMITS:
        raise ValueError(f"Unknown limited resource: {resource}")

    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError("Tenant not found")

    plan = tenant.plan
    if plan is None:
        return

    if tenant.plan_expiry is not None and tenant.plan_expiry < utcnow():
        raise LimitExceededError(f"Subscription plan {plan.code} has expired")

    model, attr = _LIMITS[resource]
    limit = getattr(plan, attr)
    used = db.session.query(model).filter_by(tenant_id=tenant_id).count()
    if used >= limit:
        raise LimitExceededError(
            f"Plan {plan.code} allows at most {limit} {resource}; upgrade to add more"
        )
