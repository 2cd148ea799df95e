"""
Pytest fixtures for the stock backend tests.

Provides the test database, seeded warehouses, people and products, and a
test client with login helpers.
"""

import pytest

from kardex import create_app
from kardex.cli import seed_warehouses
from kardex.extensions import db
from kardex.models import Customer, Supplier
from kardex.services import products_service
from kardex.services.auth_service import create_user


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test; the fixed warehouses are always present."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        seed_warehouses()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def seller(db_session):
    return create_user("seller1", "secret1", name="Sam Seller")


@pytest.fixture(scope='function')
def manager(db_session):
    return create_user("manager1", "secret1", name="Morgan Manager", role="manager")


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(business_name="Ferreteria Central", tax_id="20-11111111-1")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Distribuidora Norte", tax_id="30-22222222-2")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: register a product with an optional opening stock in MAIN."""
    counter = {"n": 0}

    def _make(name="Widget", stock=0, sell_price_cents=1000, cost_price_cents=600, code=None):
        counter["n"] += 1
        return products_service.create_product(
            code=code or f"P-{counter['n']:03d}",
            name=name,
            sell_price_cents=sell_price_cents,
            cost_price_cents=cost_price_cents,
            initial_stock=stock,
        )

    return _make


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def seller_headers(client, seller):
    return auth_headers(get_auth_token(client, "seller1", "secret1"))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, "manager1", "secret1"))
