# Overview: Service-layer operations for products and categories.

from __future__ import annotations

from sqlalchemy import func, or_, update

from ..extensions import db
from ..models import Category, Outlet, Product, TransactionItem
from ..validation import (
    BadRequestError,
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    read_int,
    read_str,
    validate_payload,
)
from . import audit_service, subscription_service
from .concurrency import begin_write, lock_for_update, run_with_retry


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "outlet_id", "category_id", "sku", "barcode", "name", "description",
        "selling_price", "cost_price", "is_taxable", "tax_rate",
        "current_stock", "min_stock", "max_stock", "unit", "is_active",
    },
    required_on_create={"outlet_id", "sku", "name", "selling_price"},
)

# Stock only changes through adjust_stock and posted transactions
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_POLICY.writable_fields - {"outlet_id", "current_stock"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)


# =============================================================================
# Categories
# =============================================================================

def list_categories(tenant_id: int) -> list[Category]:
    return db.session.query(Category).filter_by(tenant_id=tenant_id).order_by(Category.name.asc()).all()


def create_category(tenant_id: int, user_id: int | None, payload: dict) -> Category:
    patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
    if db.session.query(Category).filter_by(tenant_id=tenant_id, name=patch["name"]).first():
        raise ConflictError(f"Category '{patch['name']}' already exists")

    category = Category(tenant_id=tenant_id, **patch)
    db.session.add(category)
    db.session.commit()

    audit_service.log_create(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="categories",
        resource_id=category.id,
        new_values=category.to_dict(),
    )
    return category


def delete_category(tenant_id: int, user_id: int | None, category_id: int) -> None:
    category = db.session.query(Category).filter_by(id=category_id, tenant_id=tenant_id).first()
    if not category:
        raise NotFoundError("Category not found in your tenant")
    in_use = db.session.query(Product).filter_by(category_id=category.id).count()
    if in_use:
        raise BadRequestError(
            "Cannot delete category that has products",
            details={"products": in_use},
        )

    before = category.to_dict()
    db.session.delete(category)
    db.session.commit()

    audit_service.log_delete(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="categories",
        resource_id=category_id,
        old_values=before,
    )


# =============================================================================
# Products
# =============================================================================

def _require_outlet(tenant_id: int, outlet_id: int) -> Outlet:
    outlet = db.session.query(Outlet).filter_by(id=outlet_id, tenant_id=tenant_id).first()
    if not outlet:
        raise BadRequestError("Outlet not found in your tenant")
    return outlet


def _require_category(tenant_id: int, category_id: int | None) -> None:
    if category_id is None:
        return
    if not db.session.query(Category).filter_by(id=category_id, tenant_id=tenant_id).first():
        raise BadRequestError("Category not found in your tenant")


def _check_unique(outlet_id: int, *, sku: str | None, barcode: str | None, exclude_id: int | None = None) -> None:
    for field, value in (("sku", sku), ("barcode", barcode)):
        if not value:
            continue
        query = db.session.query(Product).filter(
            Product.outlet_id == outlet_id,
            getattr(Product, field) == value,
        )
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            label = "SKU" if field == "sku" else "Barcode"
            raise ConflictError(f"Product with {label} '{value}' already exists in this outlet")


def get_product(tenant_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()
    if not product:
        raise NotFoundError("Product not found in your tenant")
    return product


def list_products(
    tenant_id: int,
    *,
    outlet_id: int | None = None,
    category_id: int | None = None,
    include_inactive: bool = False,
    search: str | None = None,
) -> dict:
    query = db.session.query(Product).filter(Product.tenant_id == tenant_id)
    if outlet_id:
        query = query.filter(Product.outlet_id == outlet_id)
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(pattern),
            func.lower(Product.sku).like(pattern),
            func.lower(Product.barcode).like(pattern),
        ))

    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return {
        "tenant_id": tenant_id,
        "count": len(products),
        "low_stock_count": sum(1 for p in products if p.is_low_stock),
        "products": products,
    }


def low_stock_products(tenant_id: int, outlet_id: int | None = None) -> list[Product]:
    query = db.session.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.is_active.is_(True),
        Product.min_stock > 0,
        Product.current_stock <= Product.min_stock,
    )
    if outlet_id:
        query = query.filter(Product.outlet_id == outlet_id)
    return query.order_by(Product.current_stock.asc(), Product.name.asc()).all()


def create_product(tenant_id: int, user_id: int | None, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    outlet = _require_outlet(tenant_id, patch["outlet_id"])
    _require_category(tenant_id, patch.get("category_id"))

    subscription_service.ensure_within_limit(tenant_id, "products")

    _check_unique(outlet.id, sku=patch.get("sku"), barcode=patch.get("barcode"))

    if patch.get("tax_rate") is None:
        patch["tax_rate"] = outlet.tax_rate
    for key in ("cost_price", "current_stock", "min_stock", "is_taxable", "unit", "is_active"):
        if key in patch and patch[key] is None:
            del patch[key]

    product = Product(tenant_id=tenant_id, **patch)
    db.session.add(product)
    db.session.commit()

    audit_service.log_create(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="products",
        resource_id=product.id,
        new_values=product.to_dict(),
    )
    return product


def update_product(tenant_id: int, user_id: int | None, product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)
    if "category_id" in patch:
        _require_category(tenant_id, patch["category_id"])

    def _op():
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found in your tenant")

        _check_unique(
            product.outlet_id,
            sku=patch.get("sku") if patch.get("sku") != product.sku else None,
            barcode=patch.get("barcode") if patch.get("barcode") != product.barcode else None,
            exclude_id=product.id,
        )

        before = product.to_dict()
        for key, value in patch.items():
            setattr(product, key, value)
        db.session.commit()
        return product, before

    product, before = run_with_retry(_op)

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="products",
        resource_id=product.id,
        old_values=before,
        new_values=product.to_dict(),
    )
    return product


def delete_product(tenant_id: int, user_id: int | None, product_id: int) -> None:
    product = get_product(tenant_id, product_id)
    sold = db.session.query(TransactionItem).filter_by(product_id=product.id).count()
    if sold:
        raise BadRequestError(
            "Cannot delete product that has been sold. Deactivate it instead.",
            details={"transaction_items": sold},
        )

    before = product.to_dict()
    db.session.delete(product)
    db.session.commit()

    audit_service.log_delete(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="products",
        resource_id=product_id,
        old_values=before,
    )


def toggle_product_active(tenant_id: int, user_id: int | None, product_id: int) -> Product:
    product = get_product(tenant_id, product_id)
    before = product.to_dict()
    product.is_active = not product.is_active
    db.session.commit()

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="products",
        resource_id=product.id,
        old_values=before,
        new_values=product.to_dict(),
    )
    return product


def adjust_stock(tenant_id: int, user_id: int | None, product_id: int, payload: dict) -> dict:
    """
    Apply a signed stock delta (+ receive, - shrinkage).

    The decrement is a guarded UPDATE so it can never drive stock negative,
    even if a sale lands between the read and the write.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    quantity = read_int(payload, "quantity", required=True)
    if quantity == 0:
        raise ValidationError("quantity must not be zero")
    reason = read_str(payload, "reason", required=True, max_length=255)

    def _op():
        begin_write()
        product = lock_for_update(
            db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id)
        ).first()
        if not product:
            raise NotFoundError("Product not found in your tenant")

        previous = product.current_stock
        result = db.session.execute(
            update(Product)
            .where(Product.id == product.id, Product.current_stock + quantity >= 0)
            .values(current_stock=Product.current_stock + quantity)
        )
        if result.rowcount != 1:
            raise BadRequestError(
                "Insufficient stock",
                details={"available": previous, "adjustment": quantity},
            )
        db.session.commit()
        return product, previous

    product, previous = run_with_retry(_op)

    audit_service.log_update(
        tenant_id=tenant_id,
        user_id=user_id,
        resource="products",
        resource_id=product.id,
        old_values={"current_stock": previous},
        new_values={"current_stock": product.current_stock},
        metadata={"adjustment": quantity, "reason": reason},
    )
    return {
        "product": product,
        "previous_stock": previous,
        "new_stock": product.current_stock,
        "adjustment": quantity,
        "reason": reason,
    }
