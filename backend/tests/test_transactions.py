# Overview: Pytest coverage for POS transaction posting.

"""
Transaction posting tests.

Verifies:
- Server-side pricing, tax and change calculation
- Stock decrement and shift totals
- Idempotent retries (same key returns the original sale)
- Failed posts leave no partial state behind
"""

import pytest

from kasir.extensions import db
from kasir.models import AuditLog, DocumentSequence, Product, Shift, Transaction, TransactionItem
from kasir.services import audit_service, shift_service, transaction_service
from kasir.services.transaction_service import (
    LineItemRequest,
    PostTransactionRequest,
    TransactionError,
    line_tax,
)
from kasir.validation import NotFoundError, ValidationError


def _sale(outlet, product, quantity=2, **kwargs):
    return PostTransactionRequest(
        outlet_id=outlet.id,
        items=[LineItemRequest(product_id=product.id, quantity=quantity)],
        payment_method=kwargs.pop("payment_method", "cash"),
        amount_paid=kwargs.pop("amount_paid", 25000),
        **kwargs,
    )


def _reload(obj):
    db.session.refresh(obj)
    return obj


# =============================================================================
# ARITHMETIC
# =============================================================================


class TestLineTax:

    def test_rounds_half_up(self):
        assert line_tax(20000, 11, True) == 2200
        assert line_tax(4545, 11, True) == 500  # 499.95
        assert line_tax(50, 11, True) == 6  # 5.5

    def test_not_taxable(self):
        assert line_tax(20000, 11, False) == 0

    def test_zero_rate(self):
        assert line_tax(20000, 0, True) == 0


# =============================================================================
# POSTING (service level)
# =============================================================================


class TestPostTransaction:

    def test_cash_sale_totals_and_change(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        result = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a)
        )
        txn = result.transaction

        assert result.is_duplicate is False
        assert txn.subtotal == 20000
        assert txn.tax == 2200
        assert txn.discount == 0
        assert txn.total == 22200
        assert txn.amount_paid == 25000
        assert txn.change_amount == 2800
        assert txn.status == "COMPLETED"
        assert txn.payment_method == "cash"
        assert _reload(product_a).current_stock == 3

    def test_items_snapshot_product(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        txn = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a)
        ).transaction

        items = db_session.query(TransactionItem).filter_by(transaction_id=txn.id).all()
        assert len(items) == 1
        item = items[0]
        assert item.product_name == "Kopi Susu"
        assert item.product_sku == "KOPI-001"
        assert item.quantity == 2
        assert item.unit_price == 10000
        assert item.tax == 2200
        assert item.subtotal == 20000

    def test_transaction_number_format(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        first = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, quantity=1)
        ).transaction
        second = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, quantity=1)
        ).transaction

        prefix, day, counter = first.transaction_number.split("-")
        assert prefix == "MAIN"
        assert len(day) == 8
        assert counter == "0001"
        assert second.transaction_number == f"MAIN-{day}-0002"

    def test_line_and_transaction_discounts(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        req = PostTransactionRequest(
            outlet_id=outlet_a.id,
            items=[LineItemRequest(product_id=product_a.id, quantity=2, discount=2000)],
            payment_method="cash",
            amount_paid=20000,
            discount=1000,
        )
        txn = transaction_service.post_transaction(tenant_a.id, cashier_a.id, req).transaction

        # line: 20000 - 2000 = 18000, tax 1980; total 18000 + 1980 - 1000
        assert txn.subtotal == 18000
        assert txn.tax == 1980
        assert txn.discount == 1000
        assert txn.total == 18980
        assert txn.change_amount == 1020

    def test_same_product_on_two_lines_checks_combined_stock(
        self, db_session, tenant_a, outlet_a, cashier_a, product_a
    ):
        req = PostTransactionRequest(
            outlet_id=outlet_a.id,
            items=[
                LineItemRequest(product_id=product_a.id, quantity=3),
                LineItemRequest(product_id=product_a.id, quantity=3),
            ],
            payment_method="card",
        )
        with pytest.raises(TransactionError) as exc:
            transaction_service.post_transaction(tenant_a.id, cashier_a.id, req)
        assert "Available: 5, Required: 6" in str(exc.value)
        assert _reload(product_a).current_stock == 5

    def test_non_cash_defaults_amount_paid_to_total(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        txn = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, payment_method="qris", amount_paid=None)
        ).transaction
        assert txn.amount_paid == 22200
        assert txn.change_amount == 0

    def test_untaxed_product(self, db_session, tenant_a, outlet_a, cashier_a, make_product):
        rice = make_product(outlet_a, "BERAS-5", "Beras 5kg", 65000, 10, is_taxable=False)
        txn = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, rice, quantity=1, amount_paid=65000)
        ).transaction
        assert txn.tax == 0
        assert txn.total == 65000

    def test_audit_entry_written_after_commit(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        txn = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a)
        ).transaction

        entry = db_session.query(AuditLog).filter_by(
            tenant_id=tenant_a.id, resource="transactions", resource_id=str(txn.id)
        ).one()
        assert entry.action == "CREATE"
        assert entry.user_id == cashier_a.id
        assert entry.new_values["total"] == 22200
        assert entry.new_values["item_count"] == 1

    def test_audit_failure_does_not_fail_sale(
        self, db_session, monkeypatch, tenant_a, outlet_a, cashier_a, product_a
    ):
        def boom(*args, **kwargs):
            raise RuntimeError("audit store unavailable")

        monkeypatch.setattr(audit_service, "compute_changes", boom)

        result = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a)
        )
        assert result.transaction.id is not None
        assert db_session.query(Transaction).count() == 1
        assert db_session.query(AuditLog).count() == 0


class TestPostingFailuresLeaveNoTrace:

    def _assert_untouched(self, db_session, product):
        assert db_session.query(Transaction).count() == 0
        assert db_session.query(TransactionItem).count() == 0
        assert db_session.query(DocumentSequence).count() == 0
        assert _reload(product).current_stock == 5

    def test_oversell_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        with pytest.raises(TransactionError) as exc:
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, quantity=6, amount_paid=100000)
            )
        assert "Insufficient stock for Kopi Susu" in str(exc.value)
        assert exc.value.details["available"] == 5
        self._assert_untouched(db_session, product_a)

    def test_oversell_on_second_line_rolls_back_first(
        self, db_session, tenant_a, outlet_a, cashier_a, product_a, make_product
    ):
        tea = make_product(outlet_a, "TEH-001", "Teh Manis", 5000, 1)
        req = PostTransactionRequest(
            outlet_id=outlet_a.id,
            items=[
                LineItemRequest(product_id=product_a.id, quantity=1),
                LineItemRequest(product_id=tea.id, quantity=2),
            ],
            payment_method="card",
        )
        with pytest.raises(TransactionError):
            transaction_service.post_transaction(tenant_a.id, cashier_a.id, req)
        self._assert_untouched(db_session, product_a)
        assert _reload(tea).current_stock == 1

    def test_cash_underpayment_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        with pytest.raises(TransactionError) as exc:
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, amount_paid=20000)
            )
        assert str(exc.value) == "Insufficient payment. Total: 22200, Paid: 20000"
        self._assert_untouched(db_session, product_a)

    def test_cash_without_amount_paid_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        with pytest.raises(TransactionError):
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, amount_paid=None)
            )
        self._assert_untouched(db_session, product_a)

    def test_inactive_product_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        product_a.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError) as exc:
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a)
            )
        assert str(exc.value) == f"Product {product_a.id} not found or inactive"
        self._assert_untouched(db_session, product_a)

    def test_product_of_other_outlet_rejected(
        self, db_session, tenant_a, outlet_a, cashier_a, product_a, make_outlet, make_product
    ):
        branch = make_outlet(tenant_a, code="CBG2", name="Cabang 2")
        other = make_product(branch, "KOPI-001", "Kopi Susu", 10000, 5)
        with pytest.raises(NotFoundError):
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, other)
            )
        self._assert_untouched(db_session, product_a)

    def test_discount_larger_than_line_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        req = PostTransactionRequest(
            outlet_id=outlet_a.id,
            items=[LineItemRequest(product_id=product_a.id, quantity=1, discount=10001)],
            payment_method="card",
        )
        with pytest.raises(TransactionError):
            transaction_service.post_transaction(tenant_a.id, cashier_a.id, req)
        self._assert_untouched(db_session, product_a)

    def test_outlet_of_other_tenant_rejected(self, db_session, tenant_a, cashier_a, product_a, outlet_b):
        req = PostTransactionRequest(
            outlet_id=outlet_b.id,
            items=[LineItemRequest(product_id=product_a.id, quantity=1)],
            payment_method="card",
        )
        with pytest.raises(TransactionError) as exc:
            transaction_service.post_transaction(tenant_a.id, cashier_a.id, req)
        assert str(exc.value) == "Outlet not found in your tenant"
        self._assert_untouched(db_session, product_a)


# =============================================================================
# IDEMPOTENCY
# =============================================================================


class TestIdempotency:

    def test_same_key_returns_original(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        first = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, idempotency_key="pos-1-abc")
        )
        second = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, idempotency_key="pos-1-abc")
        )

        assert first.is_duplicate is False
        assert second.is_duplicate is True
        assert second.transaction.id == first.transaction.id
        assert db_session.query(Transaction).count() == 1
        assert _reload(product_a).current_stock == 3

    def test_duplicate_ignores_changed_payload(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        first = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, idempotency_key="k1")
        )
        second = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, quantity=1, idempotency_key="k1")
        )
        assert second.is_duplicate is True
        assert second.transaction.total == first.transaction.total == 22200

    def test_keys_are_scoped_per_tenant(
        self, db_session, tenant_a, tenant_b, outlet_a, outlet_b, cashier_a, admin_b, product_a, product_b
    ):
        transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, idempotency_key="shared")
        )
        other = transaction_service.post_transaction(
            tenant_b.id, admin_b.id, _sale(outlet_b, product_b, quantity=1, idempotency_key="shared")
        )
        assert other.is_duplicate is False
        assert other.transaction.tenant_id == tenant_b.id

    def test_failed_post_does_not_reserve_key(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        with pytest.raises(TransactionError):
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, amount_paid=1, idempotency_key="retry-me")
            )
        result = transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, idempotency_key="retry-me")
        )
        assert result.is_duplicate is False


# =============================================================================
# SHIFTS
# =============================================================================


class TestShiftTotals:

    def test_sale_updates_open_shift(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id, "opening_cash": 100000})
        transaction_service.post_transaction(
            tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, shift_id=shift.id)
        )
        shift = _reload(shift)
        assert shift.total_transactions == 1
        assert shift.total_sales == 22200

    def test_closed_shift_rejected(self, db_session, tenant_a, outlet_a, cashier_a, product_a):
        shift = shift_service.open_shift(tenant_a.id, cashier_a.id, {"outlet_id": outlet_a.id})
        shift_service.close_shift(tenant_a.id, cashier_a.id, shift.id, {"closing_cash": 0})

        with pytest.raises(TransactionError) as exc:
            transaction_service.post_transaction(
                tenant_a.id, cashier_a.id, _sale(outlet_a, product_a, shift_id=shift.id)
            )
        assert str(exc.value) == "Shift not found or not open in this outlet"
        assert _reload(product_a).current_stock == 5
        assert db_session.get(Shift, shift.id).total_transactions == 0


# =============================================================================
# REQUEST PARSING
# =============================================================================


class TestPostTransactionRequest:

    def test_parses_payload(self):
        req = PostTransactionRequest.from_payload({
            "outlet_id": 1,
            "items": [{"product_id": 3, "quantity": 2}],
            "payment_method": "CASH",
            "amount_paid": 50000,
            "idempotency_key": "abc",
            "is_offline_sync": True,
        })
        assert req.payment_method == "cash"
        assert req.items[0].product_id == 3
        assert req.items[0].discount == 0
        assert req.is_offline_sync is True

    @pytest.mark.parametrize("payload", [
        None,
        {"outlet_id": 1, "items": [], "payment_method": "cash"},
        {"outlet_id": 1, "items": [{"product_id": 1, "quantity": 0}], "payment_method": "cash"},
        {"outlet_id": 1, "items": [{"product_id": 1, "quantity": 1}], "payment_method": "bitcoin"},
        {"items": [{"product_id": 1, "quantity": 1}], "payment_method": "cash"},
        {"outlet_id": 1, "items": [{"product_id": 1, "quantity": 1}], "payment_method": "cash", "amount_paid": -5},
    ])
    def test_rejects_invalid_payload(self, payload):
        with pytest.raises(ValidationError):
            PostTransactionRequest.from_payload(payload)
