"""
conftest.py — Shared Test Fixtures for the quote engine

Provides an in-memory SQLite database, FastAPI TestClients with auth
overrides, and factory fixtures for the core models (users, catalog units,
suppliers, offers, pricelists, quotes).

Business Rules:
- All tests run against an isolated in-memory DB (no prod data risk)
- Auth is overridden so tests don't need a session cookie
- Each test function gets a fresh schema

Called by: all test files via pytest autodiscovery
Depends on: printshop.models (Base), printshop.database (get_db), printshop.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing printshop modules
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from printshop.models import (
    Base,
    CatalogUnit,
    Pricelist,
    PricelistEntry,
    Supplier,
    SupplierOffer,
    User,
)
from printshop.services import settings_service

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    settings_service.invalidate_cache()
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        settings_service.invalidate_cache()
        Base.metadata.drop_all(bind=engine)


def _make_user(db: Session, email: str, name: str, role: str) -> User:
    user = User(email=email, name=name, role=role, created_at=datetime.now(timezone.utc))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def customer_user(db_session: Session) -> User:
    """A customer who owns quotes."""
    return _make_user(db_session, "dana@example.com", "Dana Customer", "customer")


@pytest.fixture()
def other_customer(db_session: Session) -> User:
    return _make_user(db_session, "other@example.com", "Other Customer", "customer")


@pytest.fixture()
def staff_user(db_session: Session) -> User:
    """An employee: prices quotes and assigns suppliers."""
    return _make_user(db_session, "staff@printshop.test", "Sam Staff", "employee")


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin@printshop.test", "Ada Admin", "admin")


# ── Factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_unit(db_session: Session):
    def _make(product="Business cards", size="9x5cm", units=500, category="cards", base_price="10.00"):
        unit = CatalogUnit(
            product_name=product,
            size_name=size,
            units=units,
            category=category,
            base_price=Decimal(base_price),
        )
        db_session.add(unit)
        db_session.commit()
        db_session.refresh(unit)
        return unit

    return _make


@pytest.fixture()
def make_supplier(db_session: Session):
    def _make(name="Supplier", is_active=True):
        supplier = Supplier(name=name, company_name=f"{name} Ltd", is_active=is_active)
        db_session.add(supplier)
        db_session.commit()
        db_session.refresh(supplier)
        return supplier

    return _make


@pytest.fixture()
def make_offer(db_session: Session):
    def _make(supplier, unit, price="5.00", delivery_days=3):
        offer = SupplierOffer(
            supplier_id=supplier.id,
            catalog_unit_id=unit.id,
            price_per_unit=Decimal(str(price)),
            delivery_days=delivery_days,
        )
        db_session.add(offer)
        db_session.commit()
        db_session.refresh(offer)
        return offer

    return _make


@pytest.fixture()
def make_pricelist(db_session: Session):
    def _make(name="Retail", prices=None, is_default=False):
        pricelist = Pricelist(name=name, is_default=is_default, is_active=True)
        db_session.add(pricelist)
        db_session.flush()
        for unit, price in (prices or {}).items():
            db_session.add(
                PricelistEntry(
                    pricelist_id=pricelist.id,
                    catalog_unit_id=unit.id,
                    unit_price=Decimal(str(price)),
                )
            )
        db_session.commit()
        db_session.refresh(pricelist)
        return pricelist

    return _make


@pytest.fixture()
def make_quote(db_session: Session, customer_user: User):
    """Create a priced draft through the quote service."""
    from printshop.services.quote_service import create_quote

    def _make(units_and_qty, customer=None, pricelist=None, auto_production=False):
        return create_quote(
            db_session,
            customer_id=(customer or customer_user).id,
            items=[{"catalog_unit_id": u.id, "quantity": q} for u, q in units_and_qty],
            pricelist_id=pricelist.id if pricelist else None,
            auto_production=auto_production,
        )

    return _make


# ── API clients ──────────────────────────────────────────────────────


def _client_for(db_session: Session, user: User):
    from printshop.database import get_db
    from printshop.dependencies import require_user
    from printshop.main import app

    def _override_db():
        yield db_session

    def _override_user():
        return user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_user
    return TestClient(app)


@pytest.fixture()
def client(db_session: Session, staff_user: User):
    """FastAPI TestClient authenticated as an employee."""
    from printshop.main import app

    with _client_for(db_session, staff_user) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(db_session: Session, admin_user: User):
    from printshop.main import app

    with _client_for(db_session, admin_user) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def customer_client(db_session: Session, customer_user: User):
    from printshop.main import app

    with _client_for(db_session, customer_user) as c:
        yield c
    app.dependency_overrides.clear()
