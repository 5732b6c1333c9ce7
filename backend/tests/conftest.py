"""
Pytest fixtures for the storefront backend tests.

Provides an in-memory database, a test client, staff users with tokens,
order factories and a fresh broadcast hub per test.
"""

from datetime import datetime, timedelta

import pytest
from simple_websocket import ConnectionClosed

from storefront import create_app
from storefront.extensions import db
from storefront.models import Customer, Order, Transaction, TransactionStatus, Status, User, Widget
from storefront.realtime import BroadcastHub, Connection, HUB_EXTENSION_KEY
from storefront.services import token_service
from storefront.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BROADCAST_HUB_AUTOSTART': False,
        'QUERY_TIMEOUT_SECONDS': 3,
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
def hub(app):
    """Fresh hub for each test; the dispatcher thread is not started."""
    hub = BroadcastHub()
    app.extensions[HUB_EXTENSION_KEY] = hub
    yield hub
    hub.stop(timeout=2)


@pytest.fixture(scope='function')
def statuses(db_session):
    db_session.add_all([
        Status(id=1, name="Cleared"),
        Status(id=2, name="Refunded"),
        Status(id=3, name="Cancelled"),
        TransactionStatus(id=1, name="Pending"),
        TransactionStatus(id=2, name="Cleared"),
    ])
    db_session.commit()


@pytest.fixture(scope='function')
def staff_user(db_session):
    user = User(
        first_name="Admin",
        last_name="User",
        email="admin@example.com",
        password_hash=hash_password(PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def auth_headers(staff_user):
    token = token_service.generate_token(staff_user.id, timedelta(hours=1))
    token_service.persist_token(token, staff_user)
    return {'Authorization': f'Bearer {token.plaintext}'}


@pytest.fixture(scope='function')
def widgets(db_session):
    widget = Widget(name="Widget", description="A very nice widget", price=1000, is_recurring=False)
    plan = Widget(name="Bronze Plan", description="Three widgets a month", price=2000,
                  is_recurring=True, plan_id="price_bronze")
    db_session.add_all([widget, plan])
    db_session.commit()
    return {"one_off": widget, "recurring": plan}


@pytest.fixture(scope='function')
def make_order(db_session, statuses):
    """Factory: make_order(widget, minutes_ago=0) -> Order."""
    base = datetime(2026, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def _make(widget, minutes_ago: int | None = None, amount: int = 1000):
        counter["n"] += 1
        n = counter["n"]
        created_at = base - timedelta(minutes=minutes_ago if minutes_ago is not None else n)

        txn = Transaction(
            amount=amount, currency="usd", last_four="4242",
            bank_return_code=f"ch_{n}", expiry_month=12, expiry_year=2030,
            payment_intent=f"pi_{n}", payment_method=f"pm_{n}",
            transaction_status_id=2,
        )
        customer = Customer(first_name="Jane", last_name=f"Doe{n}", email=f"jane{n}@example.com")
        db_session.add_all([txn, customer])
        db_session.flush()

        order = Order(
            widget_id=widget.id, transaction_id=txn.id, customer_id=customer.id,
            status_id=1, quantity=1, amount=amount,
            created_at=created_at, updated_at=created_at,
        )
        db_session.add(order)
        db_session.commit()
        return order

    return _make


class FakeTransport:
    """Stands in for a flask-sock websocket."""

    def __init__(self, incoming=None, closed=False):
        self.sent = []
        self.incoming = list(incoming or [])
        self.closed = closed

    def send(self, data):
        if self.closed:
            raise ConnectionClosed()
        self.sent.append(data)

    def receive(self, timeout=None):
        if self.closed or not self.incoming:
            raise ConnectionClosed()
        return self.incoming.pop(0)

    def close(self, reason=None, message=None):
        self.closed = True


@pytest.fixture
def make_connection():
    def _make(incoming=None, closed=False, remote_addr="127.0.0.1"):
        return Connection(FakeTransport(incoming, closed), remote_addr=remote_addr)
    return _make
