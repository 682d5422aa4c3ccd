"""Shared fixtures: in-memory SQLite with migrations applied and a TestClient bound to it."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockplanner.config import get_settings
from stockplanner.db.migrations import run_migrations
from stockplanner.db.models import Product, Sale, Supplier
from stockplanner.db.session import get_db
from stockplanner.main import app


@pytest.fixture(autouse=True)
def _settings(tmp_path, monkeypatch):
    monkeypatch.setenv("ERROR_REPORT_DIR", str(tmp_path / "error_reports"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(stock=0, reorder_point=0, lead_time_days=None, supplier_id=None, sku=None):
        counter["n"] += 1
        product = Product(
            sku=sku or f"SKU-{counter['n']}",
            name=f"Product {counter['n']}",
            stock=stock,
            reorder_point=reorder_point,
            lead_time_days=lead_time_days,
            supplier_id=supplier_id,
        )
        db.add(product)
        db.commit()
        return product.id

    return _make


@pytest.fixture
def make_supplier(db):
    def _make(name="Acme", lead_time_days=30):
        supplier = Supplier(name=name, lead_time_days=lead_time_days)
        db.add(supplier)
        db.commit()
        return supplier.id

    return _make


@pytest.fixture
def add_sale(db):
    def _add(product_id, quantity, sold_at):
        db.add(Sale(product_id=product_id, quantity=quantity, sold_at=sold_at))
        db.commit()

    return _add
