"""Shared fixtures: a fresh SQLite database per test and an app wired to it."""
import os

# Must be set before the service modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTEL_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEED_DATABASE"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import create_db_engine, get_db
from main import app
from models import Base, Product


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
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
    def _make(name="Widget", price="29.99", available_count=10, description="A widget"):
        product = Product(
            name=name,
            description=description,
            price=Decimal(price),
            available_count=available_count
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def stock_of(session_factory):
    """Read a product's current stock through a fresh session."""
    def _stock_of(product_id):
        session = session_factory()
        try:
            return session.get(Product, product_id).available_count
        finally:
            session.close()

    return _stock_of
