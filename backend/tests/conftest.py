"""
Pytest fixtures for Stockbook backend tests.

Provides an in-memory database per test, two independent owners, a few
products and bearer-token headers for the test client.
"""

import pytest

from stockbook import create_app
from stockbook.extensions import db
from stockbook.models import Product, Client
from stockbook.services import change_service
from stockbook.services.auth_service import create_user
from stockbook.services.session_service import create_session


PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


@pytest.fixture(autouse=True)
def clear_change_subscribers():
    """Subscriptions are process-global; never let one leak into the next test."""
    yield
    change_service.registry.clear()


@pytest.fixture(scope='function')
def owner(db_session):
    """The business owner most tests act as."""
    return create_user(
        username="owner",
        email="owner@example.com",
        password=PASSWORD,
        company_name="Owner Traders",
    )


@pytest.fixture(scope='function')
def other_owner(db_session):
    """A second, unrelated business."""
    return create_user(
        username="other",
        email="other@example.com",
        password=PASSWORD,
    )


@pytest.fixture(scope='function')
def owner_headers(owner):
    _, token = create_session(owner.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_owner):
    _, token = create_session(other_owner.id)
    return auth_headers(token)


def make_product(owner_id: int, **overrides) -> Product:
    values = {
        "name": "Widget",
        "sku": None,
        "quantity": 50,
        "purchase_price_cents": 600,
        "sale_price_cents": 1000,
        "low_stock_threshold": 10,
    }
    values.update(overrides)
    product = Product(owner_user_id=owner_id, **values)
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def widget(owner):
    """50 on hand, bought at 6.00, sold at 10.00."""
    return make_product(owner.id, name="Widget", sku="W-001")


@pytest.fixture(scope='function')
def gadget(owner):
    """20 on hand, bought at 15.00, sold at 25.00."""
    return make_product(
        owner.id,
        name="Gadget",
        sku="G-001",
        quantity=20,
        purchase_price_cents=1500,
        sale_price_cents=2500,
    )


@pytest.fixture(scope='function')
def acme(owner):
    client = Client(owner_user_id=owner.id, name="Acme Ltd", email="billing@acme.test")
    db.session.add(client)
    db.session.commit()
    return client


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
