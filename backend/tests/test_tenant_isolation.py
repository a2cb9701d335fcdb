# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that cross-tenant access is denied for core resources.

These tests create two tenants with separate outlets and users, then
verify that:
1. A user of tenant A cannot read or write data of tenant B
2. Passing a foreign outlet_id is rejected
3. Cross-tenant lookups answer 404 (never revealing that the row exists)
4. Lists only ever contain the caller's own tenant's rows
"""

import pytest
from flask import g

from kasir.extensions import db
from kasir.models import Product, Transaction
from kasir.permissions import CASHIER
from kasir.services import transaction_service
from kasir.services.auth_service import create_user
from kasir.services.session_service import create_session, validate_session
from kasir.services.tenant_service import (
    TenantAccessError,
    get_current_tenant_id,
    require_outlet_in_tenant,
    validate_tenant_active,
)
from kasir.services.transaction_service import LineItemRequest, PostTransactionRequest


@pytest.fixture
def sale_b(db_session, tenant_b, outlet_b, admin_b, product_b):
    req = PostTransactionRequest(
        outlet_id=outlet_b.id,
        items=[LineItemRequest(product_id=product_b.id, quantity=1)],
        payment_method="cash",
        amount_paid=10000,
    )
    return transaction_service.post_transaction(tenant_b.id, admin_b.id, req).transaction


class TestTenantServiceHelpers:
    """Test tenant_service helper functions."""

    def test_require_outlet_in_tenant_valid(self, db_session, tenant_a, outlet_a):
        """Outlet in its own tenant passes validation."""
        result = require_outlet_in_tenant(outlet_a.id, tenant_a.id)
        assert result.id == outlet_a.id

    def test_require_outlet_in_tenant_cross_tenant(self, app, db_session, tenant_a, outlet_b):
        """Outlet from a different tenant raises TenantAccessError."""
        with app.test_request_context():
            with pytest.raises(TenantAccessError):
                require_outlet_in_tenant(outlet_b.id, tenant_a.id)

    def test_require_outlet_in_tenant_nonexistent(self, db_session, tenant_a):
        with pytest.raises(TenantAccessError):
            require_outlet_in_tenant(99999, tenant_a.id)

    def test_get_current_tenant_id_requires_context(self, app):
        with app.test_request_context():
            with pytest.raises(TenantAccessError):
                get_current_tenant_id()

    def test_validate_tenant_active(self, db_session, tenant_a):
        assert validate_tenant_active(tenant_a.id).id == tenant_a.id

        tenant_a.is_active = False
        db_session.commit()
        with pytest.raises(TenantAccessError):
            validate_tenant_active(tenant_a.id)


class TestSessionTenantContext:

    def test_session_carries_tenant_and_outlet(self, db_session, tenant_a, outlet_a, cashier_a):
        _, token = create_session(cashier_a.id)
        context = validate_session(token)
        assert context.tenant_id == tenant_a.id
        assert context.outlet_id == outlet_a.id

    def test_deactivated_tenant_invalidates_session(self, db_session, tenant_a, cashier_a):
        _, token = create_session(cashier_a.id)
        tenant_a.is_active = False
        db_session.commit()
        assert validate_session(token) is None

    def test_authenticated_request_sets_identity(self, client, admin_headers, tenant_a):
        assert client.get("/api/auth/me", headers=admin_headers).status_code == 200
        assert g.tenant_id == tenant_a.id

    def test_identity_does_not_leak_into_next_test(self, app):
        with app.test_request_context():
            with pytest.raises(TenantAccessError):
                get_current_tenant_id()


class TestCrossTenantApi:

    def test_products_list_only_own_tenant(self, client, admin_headers, product_a, product_b):
        resp = client.get("/api/products", headers=admin_headers)
        assert resp.status_code == 200
        assert [p["id"] for p in resp.json["products"]] == [product_a.id]

    def test_product_of_other_tenant_is_404(self, client, admin_headers, product_b):
        resp = client.get(f"/api/products/{product_b.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_cannot_update_other_tenant_product(self, client, admin_headers, product_b):
        resp = client.put(
            f"/api/products/{product_b.id}",
            json={"selling_price": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        db.session.refresh(product_b)
        assert product_b.selling_price == 5000

    def test_cannot_adjust_other_tenant_stock(self, client, admin_headers, product_b):
        resp = client.post(
            f"/api/products/{product_b.id}/adjust-stock",
            json={"quantity": -20, "reason": "theft"},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        db.session.refresh(product_b)
        assert product_b.current_stock == 20

    def test_outlet_of_other_tenant_is_404(self, client, admin_headers, outlet_b):
        resp = client.get(f"/api/outlets/{outlet_b.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_cannot_create_product_in_foreign_outlet(self, client, admin_headers, outlet_b):
        resp = client.post(
            "/api/products",
            json={"outlet_id": outlet_b.id, "sku": "EVIL-1", "name": "Evil", "selling_price": 1000},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db.session.query(Product).filter_by(sku="EVIL-1").count() == 0

    def test_cannot_sell_foreign_product(self, client, admin_headers, outlet_a, product_b):
        resp = client.post(
            "/api/transactions",
            json={
                "outlet_id": outlet_a.id,
                "items": [{"product_id": product_b.id, "quantity": 1}],
                "payment_method": "card",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 404
        db.session.refresh(product_b)
        assert product_b.current_stock == 20

    def test_cannot_sell_into_foreign_outlet(self, client, admin_headers, outlet_b, product_b):
        resp = client.post(
            "/api/transactions",
            json={
                "outlet_id": outlet_b.id,
                "items": [{"product_id": product_b.id, "quantity": 1}],
                "payment_method": "card",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["error"] == "Outlet not found in your tenant"
        assert db.session.query(Transaction).count() == 0

    def test_transaction_of_other_tenant_is_404(self, client, admin_headers, sale_b):
        resp = client.get(f"/api/transactions/{sale_b.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_transactions_list_excludes_other_tenant(self, client, admin_headers, sale_b):
        resp = client.get("/api/transactions", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 0

    def test_cannot_refund_other_tenant_transaction(self, client, admin_headers, sale_b):
        resp = client.post(
            "/api/transactions/refund",
            json={"transaction_id": sale_b.id, "amount": 1000, "reason": "cross-tenant"},
            headers=admin_headers,
        )
        assert resp.status_code == 404

    def test_audit_logs_are_tenant_scoped(self, client, admin_headers, admin_b_headers, sale_b):
        resp = client.get("/api/audit-logs?resource=transactions", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["pagination"]["total"] == 0

        resp = client.get("/api/audit-logs?resource=transactions", headers=admin_b_headers)
        assert resp.json["pagination"]["total"] == 1

    def test_same_username_in_two_tenants(self, client, db_session, tenant_a, tenant_b, outlet_a, outlet_b):
        for tenant, outlet in ((tenant_a, outlet_a), (tenant_b, outlet_b)):
            create_user(
                tenant_id=tenant.id,
                username="kasir",
                email="kasir@example.com",
                password="Password123!",
                outlet_id=outlet.id,
                role_name=CASHIER,
            )

        resp = client.post(
            "/api/auth/login",
            json={"username": "kasir", "password": "Password123!", "tenant_code": "BERKAH"},
        )
        assert resp.status_code == 200
        assert resp.json["tenant_id"] == tenant_b.id
