# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- a file-backed SQLite database per test (separate connections per session,
  like the request and background-worker sessions in production)
- a TestClient bound to that database with the background job queue running
- customers, admins and products
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront.database import Base, get_db
from storefront.main import app
from storefront.models import Admin, AdminRole, Customer, Product
from storefront.utils.security import create_admin_token, create_customer_token, get_password_hash
from tests.helpers import CUSTOMER_PASSWORD


@pytest.fixture()
def session_factory(tmp_path):
    """sessionmaker over a fresh SQLite file with every table created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'storefront-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    """TestClient running the app lifespan (and so the background job queue)."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.session_factory = session_factory
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.session_factory = None


@pytest.fixture()
def make_customer(db):
    def _make(email="jane@example.com", name="Jane"):
        customer = Customer(name=name, email=email, password_hash=get_password_hash(CUSTOMER_PASSWORD))
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer
    return _make


@pytest.fixture()
def customer(make_customer):
    return make_customer()


@pytest.fixture()
def customer_token(customer):
    return create_customer_token(customer.id, customer.email)


@pytest.fixture()
def make_admin(db):
    def _make(role=AdminRole.MANAGER, email="ops@example.com"):
        admin = Admin(email=email, name="Ops", role=role, password_hash=get_password_hash("admin-pass"))
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin
    return _make


@pytest.fixture()
def admin_token(make_admin):
    admin = make_admin()
    return create_admin_token(admin.id, admin.email, admin.role.value)


@pytest.fixture()
def product(db):
    item = Product(
        name="Hand Embroidered Cushion",
        slug="hand-embroidered-cushion",
        description="Cotton cushion cover",
        price=Decimal("499.00"),
        stock_quantity=10,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item
