"""
Authorization tests for kasir.

Verifies:
- Unauthenticated requests return 401
- Cashier role denied back-office operations (403)
- Admin role can perform privileged operations
- Health endpoint stays public
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/outlets"),
            ("POST", "/api/outlets"),
            ("GET", "/api/outlets/1"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/products/low-stock"),
            ("POST", "/api/products/1/adjust-stock"),
            ("GET", "/api/categories"),
            ("GET", "/api/shifts"),
            ("POST", "/api/shifts/open"),
            ("GET", "/api/transactions"),
            ("POST", "/api/transactions"),
            ("GET", "/api/transactions/stats"),
            ("POST", "/api/transactions/refund"),
            ("GET", "/api/audit-logs"),
            ("GET", "/api/audit-logs/stats"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/transactions", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_logout_requires_token(self, client):
        assert client.post("/api/auth/logout").status_code == 401


# =============================================================================
# CASHIER DENIED BACK-OFFICE OPERATIONS (403)
# =============================================================================


class TestCashierDeniedHighRisk:
    """Cashier role can sell but cannot manage the store."""

    def test_cannot_list_outlets(self, client, cashier_headers):
        resp = client.get("/api/outlets", headers=cashier_headers)
        assert resp.status_code == 403
        assert resp.json["error"] == "Permission denied"
        assert resp.json["required_permission"] == "outlets.read.tenant"

    def test_cannot_create_outlet(self, client, cashier_headers):
        resp = client.post("/api/outlets", json={"name": "Evil", "code": "EVIL"}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_cannot_create_product(self, client, cashier_headers, outlet_a):
        resp = client.post(
            "/api/products",
            json={"outlet_id": outlet_a.id, "sku": "X", "name": "X", "selling_price": 1},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, cashier_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/adjust-stock",
            json={"quantity": 100, "reason": "free stock"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403

    def test_cannot_refund(self, client, cashier_headers):
        resp = client.post(
            "/api/transactions/refund",
            json={"transaction_id": 1, "amount": 1000, "reason": "x"},
            headers=cashier_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "transactions.refund.outlet"

    def test_cannot_view_audit_log(self, client, cashier_headers):
        resp = client.get("/api/audit-logs", headers=cashier_headers)
        assert resp.status_code == 403


# =============================================================================
# CASHIER ALLOWED POS OPERATIONS
# =============================================================================


class TestCashierAllowed:

    def test_can_list_products(self, client, cashier_headers, product_a):
        resp = client.get("/api/products", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

    def test_can_sell(self, client, cashier_headers, outlet_a, product_a):
        resp = client.post(
            "/api/transactions",
            json={
                "outlet_id": outlet_a.id,
                "items": [{"product_id": product_a.id, "quantity": 1}],
                "payment_method": "cash",
                "amount_paid": 20000,
            },
            headers=cashier_headers,
        )
        assert resp.status_code == 201

    def test_can_list_transactions(self, client, cashier_headers):
        resp = client.get("/api/transactions", headers=cashier_headers)
        assert resp.status_code == 200


# =============================================================================
# ADMIN ALLOWED
# =============================================================================


class TestAdminAllowed:

    def test_can_list_outlets(self, client, admin_headers, outlet_a):
        resp = client.get("/api/outlets", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1

    def test_can_view_audit_log(self, client, admin_headers):
        resp = client.get("/api/audit-logs", headers=admin_headers)
        assert resp.status_code == 200

    def test_can_view_stats(self, client, admin_headers):
        resp = client.get("/api/transactions/stats", headers=admin_headers)
        assert resp.status_code == 200


# =============================================================================
# PUBLIC
# =============================================================================


class TestPublicEndpoints:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"

    def test_health_degraded_without_permissions(self, client):
        resp = client.get("/api/health")
        assert resp.json["status"] == "degraded"

    def test_health_healthy_after_seed(self, client, tenant_a):
        resp = client.get("/api/health")
        assert resp.json["status"] == "healthy"
