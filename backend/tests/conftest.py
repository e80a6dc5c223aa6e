"""
Pytest fixtures for PharmStock backend tests.

Provides a fresh in-memory database per test, the test client, one user
per role, bearer-token helpers, and a stock-item factory.
"""

import itertools

import pytest
from pharmstock import create_app
from pharmstock.extensions import db
from pharmstock.permissions import Role
from pharmstock.services import auth_service, stock_service


PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'BCRYPT_ROUNDS': 4,
}

ROLE_USERNAMES = {
    Role.CEO: "ceo",
    Role.ADMIN: "admin",
    Role.MARKETER: "marketer",
    Role.SALES_MANAGER: "sales",
    Role.STOCK_MANAGER: "stockmgr",
    Role.MEDICAL_REP: "rep",
}


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh schema for each test."""
    app = create_app(TEST_CONFIG)

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
def make_user(app):
    """Factory: make_user(username, role=...) -> User."""
    def _make(username, role=Role.MEDICAL_REP, **kwargs):
        return auth_service.create_user(
            username=username,
            password=PASSWORD,
            full_name=kwargs.pop("full_name", username.title()),
            role=role,
            **kwargs,
        )
    return _make


@pytest.fixture(scope='function')
def users(make_user):
    """One user per role, keyed by role name."""
    return {role: make_user(username, role=role) for role, username in ROLE_USERNAMES.items()}


@pytest.fixture(scope='function')
def admin(users):
    return users[Role.ADMIN]


@pytest.fixture(scope='function')
def rep(users):
    return users[Role.MEDICAL_REP]


@pytest.fixture(scope='function')
def make_stock_item(app, users):
    """Factory: make_stock_item(quantity=100, **fields) -> StockItem, created by the admin."""
    counter = itertools.count(1)

    def _make(quantity=100, **fields):
        n = next(counter)
        data = {
            "name": fields.pop("name", f"Item {n}"),
            "unique_number": fields.pop("unique_number", f"SKU-{n:04d}"),
            "quantity": quantity,
            **fields,
        }
        return stock_service.create_stock_item(data=data, actor_id=users[Role.ADMIN].id)
    return _make


@pytest.fixture(scope='function')
def headers_for(client, users):
    """Factory: headers_for(role) -> Authorization headers for that role's user."""
    def _headers(role):
        token = get_auth_token(client, ROLE_USERNAMES[role], PASSWORD)
        assert token, f"login failed for {role}"
        return auth_headers(token)
    return _headers


def fresh(model, pk):
    """Fetch a fresh copy of a row, bypassing the identity map."""
    db.session.expire_all()
    return db.session.get(model, pk)


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
