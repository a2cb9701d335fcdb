# Overview: Pytest coverage for cashier shift lifecycle and cash reconciliation.

import re

import pytest

from kasir.extensions import db
from kasir.models import AuditLog, Shift
from kasir.services import shift_service, transaction_service
from kasir.services.shift_service import ShiftError
from kasir.services.transaction_service import LineItemRequest, PostTransactionRequest
from kasir.validation import NotFoundError, ValidationError


def _sell(tenant, user, outlet, product, shift, method="cash", quantity=1):
    req = PostTransactionRequest(
        outlet_id=outlet.id,
        items=[LineItemRequest(product_id=product.id, quantity=quantity)],
        payment_method=method,
        amount_paid=100000 if method == "cash" else None,
        shift_id=shift.id,
    )
    return transaction_service.post_transaction(tenant.id, user.id, req).transaction


class TestOpenShift:

    def test_open(self, db_session, tenant_a, outlet_a, cashier_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id, "opening_cash": 500000})

        assert shift.status == "OPEN"
        assert shift.opening_cash == 500000
        assert shift.total_transactions == 0
        assert re.fullmatch(r"SHF-MAIN-\d{8}-01", shift.shift_number)

        entry = db.session.query(AuditLog).filter_by(resource="shifts", action="CREATE").one()
        assert entry.resource_id == str(shift.id)

    def test_second_open_shift_refused(self, db_session, tenant_a, outlet_a, cashier_a):
        first = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})

        with pytest.raises(ShiftError) as exc_info:
            shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        assert exc_info.value.details == {"shift_id": first.id}
        assert db.session.query(Shift).count() == 1

    def test_other_cashier_may_open_alongside(self, db_session, tenant_a, outlet_a, cashier_a, admin_a):
        shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        second = shift_service.open_shift(tenant_a.id, admin_a.id, {"outlet_id": outlet_a.id})
        assert second.shift_number.endswith("-02")

    def test_inactive_outlet_refused(self, db_session, tenant_a, outlet_a, cashier_a):
        outlet_a.is_active = False
        db.session.commit()
        with pytest.raises(ShiftError):
            shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})

    def test_foreign_outlet_refused(self, db_session, tenant_a, cashier_a, outlet_b):
        with pytest.raises(ShiftError):
            shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_b.id})

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {"outlet_id": 1, "opening_cash": -1},
        {"outlet_id": 1, "opening_cash": 10.5},
    ])
    def test_invalid_payload(self, db_session, tenant_a, cashier_a, payload):
        with pytest.raises(ValidationError):
            shift_service.open_shift(tenant_a.id, cashier_a.id, payload)


class TestCloseShift:

    def test_close_with_variance(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id, "opening_cash": 100000})
        _sell(tenant_a, cashier_a, outlet_a, product_a, shift, method="cash", quantity=2)
        _sell(tenant_a, cashier_a, outlet_a, product_a, shift, method="card", quantity=1)

        closed = shift_service.close_shift(
            tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 120000, "notes": "Short"}
        )

        assert closed.status == "CLOSED"
        assert closed.closed_at is not None
        assert closed.total_transactions == 2
        assert closed.total_sales == 22200 + 11100
        assert closed.expected_cash == 100000 + 22200
        assert closed.closing_cash == 120000
        assert closed.variance == -2200
        assert closed.notes == "Short"

    def test_exact_count_has_zero_variance(self, db_session, tenant_a, outlet_a, cashier_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id, "opening_cash": 50000})
        closed = shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 50000})
        assert closed.expected_cash == 50000
        assert closed.variance == 0

    def test_close_twice_refused(self, db_session, tenant_a, outlet_a, cashier_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 0})

        with pytest.raises(ShiftError) as exc_info:
            shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 0})
        assert str(exc_info.value) == "Shift already closed"

    def test_close_requires_closing_cash(self, db_session, tenant_a, outlet_a, cashier_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        with pytest.raises(ValidationError):
            shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {})

    def test_close_other_tenant_shift(self, db_session, tenant_a, tenant_b, outlet_b, admin_b, cashier_a):
        shift = shift_service.open_shift(tenant_b.id, admin_b.id, {"outlet_id": outlet_b.id})
        with pytest.raises(NotFoundError):
            shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 0})

    def test_can_reopen_after_close(self, db_session, tenant_a, outlet_a, cashier_a):
        first = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        shift_service.close_shift(tenant_a.id, cashier_a.id, first.id, {"closing_cash": 0})
        second = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        assert second.id != first.id
        assert second.shift_number.endswith("-02")


class TestShiftsApi:

    def test_open_list_get_close(self, client, cashier_headers, outlet_a):
        resp = client.post(
            "/api/shifts/open",
            json={"outlet_id": outlet_a.id, "opening_cash": 200000},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        shift_id = resp.json["shift"]["id"]

        listed = client.get("/api/shifts?status=open", headers=cashier_headers).json
        assert [s["id"] for s in listed["shifts"]] == [shift_id]

        detail = client.get(f"/api/shifts/{shift_id}", headers=cashier_headers).json["shift"]
        assert detail["outlet"]["code"] == "MAIN"
        assert detail["user"]["first_name"] == "Budi"

        resp = client.post(f"/api/shifts/{shift_id}/close", json={"closing_cash": 210000}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["shift"]["variance"] == 10000
        assert resp.json["shift"]["closed_at"].endswith("Z")

    def test_duplicate_open_is_400(self, client, cashier_headers, outlet_a):
        client.post("/api/shifts/open", json={"outlet_id": outlet_a.id}, headers=cashier_headers)
        resp = client.post("/api/shifts/open", json={"outlet_id": outlet_a.id}, headers=cashier_headers)
        assert resp.status_code == 400
        assert "shift_id" in resp.json["details"]

    def test_missing_shift_is_404(self, client, cashier_headers):
        resp = client.get("/api/shifts/999", headers=cashier_headers)
        assert resp.status_code == 404
