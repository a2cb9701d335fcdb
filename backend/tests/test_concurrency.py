# Overview: Pytest coverage for concurrent posting against a file database.

"""
Concurrency tests.

An in-memory database shares one connection, so these tests build a second
app on a temporary SQLite file and post from several threads at once.

Verifies:
- Stock never goes negative when cashiers race for the last units
- Transaction numbers stay unique and gap-free under contention
- One idempotency key yields one transaction even when posted concurrently
"""

import threading

import pytest

from kasir import create_app
from kasir.extensions import db
from kasir.models import Outlet, Product, Transaction
from kasir.permissions import CASHIER
from kasir.services import tenant_service, transaction_service
from kasir.services.auth_service import create_user
from kasir.services.transaction_service import LineItemRequest, PostTransactionRequest, TransactionError


WORKERS = 8
PASSWORD = "Password123!"


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'kasir.sqlite3'}",
        "BCRYPT_ROUNDS": 4,
    })
    with app.app_context():
        db.create_all()
        tenant = tenant_service.create_tenant("Toko Ramai", "RAMAI")
        outlet = Outlet(tenant_id=tenant.id, name="Main Outlet", code="MAIN", tax_rate=0)
        db.session.add(outlet)
        db.session.commit()
        cashier = create_user(
            tenant_id=tenant.id,
            username="kasir",
            email="kasir@ramai.id",
            password=PASSWORD,
            outlet_id=outlet.id,
            role_name=CASHIER,
        )
        product = Product(
            tenant_id=tenant.id,
            outlet_id=outlet.id,
            sku="GULA-1",
            name="Gula 1kg",
            selling_price=15000,
            tax_rate=0,
            current_stock=5,
        )
        db.session.add(product)
        db.session.commit()
        ids = {
            "tenant_id": tenant.id,
            "outlet_id": outlet.id,
            "user_id": cashier.id,
            "product_id": product.id,
        }
    yield app, ids
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _race(app, ids, key_for):
    """Post one unit from WORKERS threads released at the same moment."""
    barrier = threading.Barrier(WORKERS)
    outcomes = []
    lock = threading.Lock()

    def worker(n):
        with app.app_context():
            req = PostTransactionRequest(
                outlet_id=ids["outlet_id"],
                items=[LineItemRequest(product_id=ids["product_id"], quantity=1)],
                payment_method="card",
                idempotency_key=key_for(n),
            )
            barrier.wait()
            try:
                result = transaction_service.post_transaction(ids["tenant_id"], ids["user_id"], req)
                outcome = ("ok", result.transaction.id, result.is_duplicate)
            except TransactionError as exc:
                outcome = ("rejected", str(exc), None)
            finally:
                db.session.remove()
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(WORKERS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def test_racing_cashiers_cannot_oversell(file_app):
    app, ids = file_app

    outcomes = _race(app, ids, key_for=lambda n: f"race-{n}")

    assert len(outcomes) == WORKERS
    accepted = [o for o in outcomes if o[0] == "ok"]
    rejected = [o for o in outcomes if o[0] == "rejected"]
    assert len(accepted) == 5
    assert len(rejected) == WORKERS - 5
    assert all("Insufficient stock" in o[1] for o in rejected)

    with app.app_context():
        assert db.session.get(Product, ids["product_id"]).current_stock == 0
        numbers = [t.transaction_number for t in db.session.query(Transaction).all()]
        assert len(numbers) == 5
        assert len(set(numbers)) == 5
        assert sorted(int(n.rsplit("-", 1)[1]) for n in numbers) == [1, 2, 3, 4, 5]


def test_concurrent_duplicate_key_posts_once(file_app):
    app, ids = file_app

    outcomes = _race(app, ids, key_for=lambda n: "same-key")

    assert len(outcomes) == WORKERS
    assert all(o[0] == "ok" for o in outcomes)
    assert len({o[1] for o in outcomes}) == 1
    assert sum(1 for o in outcomes if not o[2]) == 1

    with app.app_context():
        assert db.session.query(Transaction).count() == 1
        assert db.session.get(Product, ids["product_id"]).current_stock == 4
