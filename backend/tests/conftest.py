"""
Pytest fixtures for RetailDesk backend tests.

Provides the application on an in-memory database, a per-test table wipe,
one user per role with login helpers, and a catalog item factory.
"""

import pytest
from retaildesk import create_app
from retaildesk.extensions import db
from retaildesk.permissions import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_CUSTOMER
from retaildesk.services import catalog_service
from retaildesk.services.auth_service import create_user


PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'ASSISTANT_API_KEY': 'test-key',
    'ASSISTANT_GATEWAY_URL': 'https://gateway.test/v1/chat/completions',
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
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# USERS
# =============================================================================

@pytest.fixture(scope='function')
def admin_user(db_session):
    return create_user("admin", "admin@retaildesk.test", PASSWORD, full_name="Ada Admin", roles=[ROLE_ADMIN])


@pytest.fixture(scope='function')
def employee_user(db_session):
    return create_user("clerk", "clerk@retaildesk.test", PASSWORD, full_name="Carl Clerk", roles=[ROLE_EMPLOYEE])


@pytest.fixture(scope='function')
def customer_user(db_session):
    return create_user("jane", "jane@example.com", PASSWORD, full_name="Jane Doe", roles=[ROLE_CUSTOMER])


@pytest.fixture(scope='function')
def other_customer(db_session):
    return create_user("omar", "omar@example.com", PASSWORD, full_name="Omar Other", roles=[ROLE_CUSTOMER])


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
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
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username))


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return auth_headers(get_auth_token(client, employee_user.username))


@pytest.fixture(scope='function')
def customer_headers(client, customer_user):
    return auth_headers(get_auth_token(client, customer_user.username))


@pytest.fixture(scope='function')
def other_customer_headers(client, other_customer):
    return auth_headers(get_auth_token(client, other_customer.username))


# =============================================================================
# CATALOG
# =============================================================================

@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory for catalog items: make_item("HAM-16", price=2499, quantity=10)."""
    counter = {"n": 0}

    def _make(code=None, *, name=None, price=1000, quantity=10, category="Hand Tools", reorder_level=None, **extra):
        counter["n"] += 1
        code = code or f"ITEM-{counter['n']:03d}"
        payload = {
            "item_code": code,
            "item_name": name or f"Item {code}",
            "category": category,
            "unit_price_cents": price,
            "quantity": quantity,
            **extra,
        }
        if reorder_level is not None:
            payload["reorder_level"] = reorder_level
        return catalog_service.create_item(payload)

    return _make


@pytest.fixture(scope='function')
def hammer(make_item):
    return make_item("HAM-16", name="Claw Hammer 16oz", price=1000, quantity=10)


@pytest.fixture(scope='function')
def tape(make_item):
    return make_item("TAPE-5M", name="Tape Measure 5m", price=500, quantity=10, category="Measuring")
