"""
Pytest fixtures for bizops backend tests.

Provides the test database, a fresh permission resolver per test, seeded roles
with one employee per role, and small tenant fixtures.
"""

import pytest

from bizops import build_permission_resolver, create_app
from bizops.config import TestConfig
from bizops.extensions import PERMISSION_RESOLVER_KEY, db
from bizops.models import Business, ClientUser, Employee, ServiceLocation
from bizops.services import catalog_service


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
    """Create fresh database and resolver for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        # New cache, role graph and retry queue
        app.extensions[PERMISSION_RESOLVER_KEY] = build_permission_resolver(app)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def resolver(app, db_session):
    return app.extensions[PERMISSION_RESOLVER_KEY]


@pytest.fixture(scope='function')
def seeded(db_session):
    """Catalog, default roles (with parents) and default grants."""
    return catalog_service.seed_all()


def make_employee(session, email, *role_names, resolver=None):
    employee = Employee(email=email, first_name=email.split("@")[0].title(), last_name="Test")
    session.add(employee)
    session.commit()
    for role_name in role_names:
        if resolver is not None:
            resolver.assign_role(employee.id, role_name)
        else:
            from bizops.services.grant_store import GrantStore
            GrantStore().assign_role(employee.id, role_name)
    return employee


@pytest.fixture(scope='function')
def employees(db_session, seeded, resolver):
    """One employee per default role, keyed by role name."""
    return {
        role_name: make_employee(db_session, f"{role_name}@bizops.test", role_name, resolver=resolver)
        for role_name in ("executive", "admin", "manager", "sales", "technician")
    }


@pytest.fixture(scope='function')
def business(db_session):
    business = Business(name="Acme Plumbing")
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_with_one_location(db_session, business):
    db_session.add(ServiceLocation(business_id=business.id, name="Main Street"))
    db_session.commit()
    return business


@pytest.fixture(scope='function')
def business_with_one_user(db_session, business):
    db_session.add(ClientUser(business_id=business.id, email="owner@acme.test"))
    db_session.commit()
    return business


@pytest.fixture
def fake_clock():
    return FakeClock()
