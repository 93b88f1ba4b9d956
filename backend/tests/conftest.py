"""
Pytest fixtures for HayLedger backend tests.

Provides test database setup, identities for two tenants, header helpers for
the trusted identity headers, and small factories for stacks and locations.
"""

import pytest

from hayledger import create_app
from hayledger.extensions import db
from hayledger.identity import Identity
from hayledger.models import Location, Stack, Transaction
from hayledger.permissions import Role

ORG_A = "org_acme"
ORG_B = "org_beta"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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


@pytest.fixture
def admin_a():
    return Identity.for_role("user_admin_a", ORG_A, Role.ADMIN)


@pytest.fixture
def bookkeeper_a():
    return Identity.for_role("user_books_a", ORG_A, Role.BOOKKEEPER)


@pytest.fixture
def driver_a():
    return Identity.for_role("user_driver_a", ORG_A, Role.DRIVER)


@pytest.fixture
def other_driver_a():
    return Identity.for_role("user_driver2_a", ORG_A, Role.DRIVER)


@pytest.fixture
def admin_b():
    return Identity.for_role("user_admin_b", ORG_B, Role.ADMIN)


def make_stack(org_id=ORG_A, name="North 2nd cut", **kwargs):
    stack = Stack(
        org_id=org_id,
        user_id="seed",
        name=name,
        commodity=kwargs.pop("commodity", "Alfalfa"),
        bale_size=kwargs.pop("bale_size", "3x4"),
        **kwargs,
    )
    db.session.add(stack)
    db.session.commit()
    return stack


def make_location(org_id=ORG_A, name="Main Barn", capacity=500, capacity_unit="bales"):
    location = Location(org_id=org_id, user_id="seed", name=name, capacity=capacity, capacity_unit=capacity_unit)
    db.session.add(location)
    db.session.commit()
    return location


def add_tx(stack, location, type, amount, price=0, org_id=None):
    """Insert a raw ledger row, bypassing the service checks."""
    tx = Transaction(
        org_id=org_id or stack.org_id,
        user_id="seed",
        type=type,
        stack_id=stack.id,
        location_id=location.id if location else None,
        amount=amount,
        unit="bales",
        price=price,
    )
    db.session.add(tx)
    db.session.commit()
    return tx


@pytest.fixture
def stack_a(db_session):
    """1200 lbs/bale (3x4)."""
    return make_stack()


@pytest.fixture
def barn_a(db_session):
    return make_location()


@pytest.fixture
def yard_a(db_session):
    return make_location(name="East Yard", capacity=50, capacity_unit="tons")


@pytest.fixture
def stack_b(db_session):
    return make_stack(org_id=ORG_B, name="Beta Timothy", commodity="Timothy")


@pytest.fixture
def barn_b(db_session):
    return make_location(org_id=ORG_B, name="Beta Barn")


def identity_headers(identity: Identity) -> dict:
    """Trusted headers as forwarded by the auth proxy."""
    headers = {'X-User-Id': identity.user_id, 'X-Org-Id': identity.org_id}
    if identity.role is not None:
        headers['X-Org-Role'] = f"org:{identity.role.value}"
    return headers


@pytest.fixture
def admin_headers(admin_a):
    return identity_headers(admin_a)


@pytest.fixture
def bookkeeper_headers(bookkeeper_a):
    return identity_headers(bookkeeper_a)


@pytest.fixture
def driver_headers(driver_a):
    return identity_headers(driver_a)


@pytest.fixture
def admin_b_headers(admin_b):
    return identity_headers(admin_b)
