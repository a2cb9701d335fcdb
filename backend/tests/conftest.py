"""
Pytest fixtures for kasir backend tests.

Provides the test app and database, two tenants (for isolation tests),
outlets, users for each default role, products and auth helpers.
"""

import pytest

from kasir import create_app
from kasir.extensions import db
from kasir.models import Outlet, Product
from kasir.permissions import ADMIN, CASHIER, SUPER_ADMIN
from kasir.services import subscription_service, tenant_service
from kasir.services.auth_service import create_user


PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def plans(db_session):
    subscription_service.seed_plans()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Tenant A (first tenant), no subscription plan (unlimited)."""
    return tenant_service.create_tenant("Toko Maju", "MAJU")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Tenant B (second tenant)."""
    return tenant_service.create_tenant("Warung Berkah", "BERKAH")


def _outlet(tenant, code="MAIN", name="Main Outlet", **kwargs):
    outlet = Outlet(
        tenant_id=tenant.id,
        name=name,
        code=code,
        timezone=kwargs.pop("timezone", "Asia/Jakarta"),
        tax_rate=kwargs.pop("tax_rate", 11),
        **kwargs,
    )
    db.session.add(outlet)
    db.session.commit()
    return outlet


@pytest.fixture(scope='function')
def outlet_a(tenant_a):
    return _outlet(tenant_a)


@pytest.fixture(scope='function')
def outlet_b(tenant_b):
    """Same outlet code as outlet_a: codes are unique per tenant only."""
    return _outlet(tenant_b)


@pytest.fixture(scope='function')
def make_outlet():
    return _outlet


@pytest.fixture(scope='function')
def owner_a(tenant_a, outlet_a):
    return create_user(
        tenant_id=tenant_a.id,
        username="owner_a",
        email="owner@maju.id",
        password=PASSWORD,
        outlet_id=outlet_a.id,
        role_name=SUPER_ADMIN,
    )


@pytest.fixture(scope='function')
def admin_a(tenant_a, outlet_a):
    return create_user(
        tenant_id=tenant_a.id,
        username="admin_a",
        email="admin@maju.id",
        password=PASSWORD,
        outlet_id=outlet_a.id,
        first_name="Ayu",
        role_name=ADMIN,
    )


@pytest.fixture(scope='function')
def cashier_a(tenant_a, outlet_a):
    return create_user(
        tenant_id=tenant_a.id,
        username="cashier_a",
        email="kasir@maju.id",
        password=PASSWORD,
        outlet_id=outlet_a.id,
        first_name="Budi",
        role_name=CASHIER,
    )


@pytest.fixture(scope='function')
def admin_b(tenant_b, outlet_b):
    return create_user(
        tenant_id=tenant_b.id,
        username="admin_b",
        email="admin@berkah.id",
        password=PASSWORD,
        outlet_id=outlet_b.id,
        role_name=ADMIN,
    )


def _product(outlet, sku, name, price, stock, **kwargs):
    product = Product(
        tenant_id=outlet.tenant_id,
        outlet_id=outlet.id,
        sku=sku,
        name=name,
        selling_price=price,
        cost_price=kwargs.pop("cost_price", price // 2),
        tax_rate=kwargs.pop("tax_rate", 11),
        current_stock=stock,
        **kwargs,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def make_product():
    return _product


@pytest.fixture(scope='function')
def product_a(outlet_a):
    """Kopi Susu, 10.000 at 11% tax, 5 in stock."""
    return _product(outlet_a, "KOPI-001", "Kopi Susu", 10000, 5)


@pytest.fixture(scope='function')
def product_b(outlet_b):
    return _product(outlet_b, "TEH-001", "Teh Manis", 5000, 20)


def get_auth_token(client, username: str, password: str = PASSWORD, tenant_code: str | None = None) -> str:
    """Helper to get auth token for a user."""
    body = {'username': username, 'password': password}
    if tenant_code:
        body['tenant_code'] = tenant_code
    response = client.post('/api/auth/login', json=body)
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_a):
    return auth_headers(get_auth_token(client, "admin_a"))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_a):
    return auth_headers(get_auth_token(client, "cashier_a"))


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(get_auth_token(client, "admin_b"))
