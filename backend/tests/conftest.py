"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerlink.core.security import create_access_token
from ledgerlink.db.base import Base
from ledgerlink.db.session import get_db
from ledgerlink.main import app
# Import all models to ensure they're registered with Base.metadata
from ledgerlink.models import *
from ledgerlink.services.audit_service import AuditContext, install_audit_hook

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create an audited test database session."""
    SessionLocal = install_audit_hook(sessionmaker(autocommit=False, autoflush=False, bind=db_engine))
    session = SessionLocal()
    AuditContext(enabled=True, level=2).attach(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable the rate limiter during tests to avoid flaky failures
    from ledgerlink.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


def headers_for(user: User) -> dict:
    """Bearer headers for ``user``."""
    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def org(db_session: Session) -> Organization:
    organization = Organization(name="Harbor Bakeries")
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


@pytest.fixture
def other_org(db_session: Session) -> Organization:
    organization = Organization(name="Rival Foods")
    db_session.add(organization)
    db_session.commit()
    db_session.refresh(organization)
    return organization


@pytest.fixture
def store_a(db_session: Session, org: Organization) -> Store:
    """The sending store; holds the stock."""
    store = Store(name="Downtown", org_id=org.id)
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def store_b(db_session: Session, org: Organization) -> Store:
    """The requesting store; starts empty."""
    store = Store(name="Uptown", org_id=org.id)
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def foreign_store(db_session: Session, other_org: Organization) -> Store:
    store = Store(name="Rival Central", org_id=other_org.id)
    db_session.add(store)
    db_session.commit()
    db_session.refresh(store)
    return store


@pytest.fixture
def manager(db_session: Session, org: Organization, store_a: Store) -> User:
    """Create a store manager of ``org``."""
    user = User(
        email="manager@harbor.example",
        first_name="Dana",
        last_name="Reyes",
        role=UserRole.STORE_MANAGER,
        org_id=org.id,
        store_id=store_a.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def employee(db_session: Session, org: Organization, store_b: Store) -> User:
    user = User(
        email="clerk@harbor.example",
        role=UserRole.STORE_EMPLOYEE,
        org_id=org.id,
        store_id=store_b.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def outsider(db_session: Session, other_org: Organization, foreign_store: Store) -> User:
    user = User(
        email="admin@rival.example",
        role=UserRole.ORG_ADMIN,
        org_id=other_org.id,
        store_id=foreign_store.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def manager_headers(manager: User) -> dict:
    return headers_for(manager)


@pytest.fixture
def kg(db_session: Session) -> Unit:
    unit = Unit(name="kg")
    db_session.add(unit)
    db_session.commit()
    db_session.refresh(unit)
    return unit


@pytest.fixture
def vat_10(db_session: Session) -> VatCategory:
    vat = VatCategory(name="Standard", vat_rate=Decimal("10"))
    db_session.add(vat)
    db_session.commit()
    db_session.refresh(vat)
    return vat


@pytest.fixture
def flour(db_session: Session, store_a: Store, kg: Unit) -> InventoryItem:
    """10 kg of flour at 2.000 per kg in the sending store."""
    item = InventoryItem(
        name="Flour",
        description="Type 00",
        store_id=store_a.id,
        unit_id=kg.id,
        quantity=Decimal("10"),
        cost_per_unit=Decimal("2.000"),
        minimum_quantity=Decimal("3"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def sugar(db_session: Session, store_a: Store, kg: Unit) -> InventoryItem:
    """5 kg of sugar at 1.000 per kg in the sending store."""
    item = InventoryItem(
        name="Sugar",
        store_id=store_a.id,
        unit_id=kg.id,
        quantity=Decimal("5"),
        cost_per_unit=Decimal("1.000"),
    )
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def bread(db_session: Session, store_a: Store, manager: User, flour: InventoryItem,
          sugar: InventoryItem) -> Recipe:
    """Recipe: 2 kg flour + 2 kg sugar per unit."""
    recipe = Recipe(name="Sweet Bread", store_id=store_a.id, created_by=manager.id)
    recipe.ingredients = [
        RecipeIngredient(inventory_item_id=flour.id, quantity=Decimal("2")),
        RecipeIngredient(inventory_item_id=sugar.id, quantity=Decimal("2")),
    ]
    db_session.add(recipe)
    db_session.commit()
    db_session.refresh(recipe)
    return recipe
