"""Shared fixtures: an in-memory SQLite store wired into the product service."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import StaticPool, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.db import Base, make_session_factory
from app.main import app, get_db
from app.models import Product


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return make_session_factory(engine)


@pytest.fixture
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    """Client whose requests borrow sessions from the test store (no lifespan)."""

    def _get_test_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def add_product(session_factory: sessionmaker):
    """Insert a product row directly and return its id."""

    def _add(**fields) -> int:
        values = {
            "user_id": 42,
            "product_name": "Widget",
            "product_description": "",
            "product_images": [],
            "product_price": 1.0,
        }
        values.update(fields)
        with session_factory() as db:
            p = Product(**values)
            db.add(p)
            db.commit()
            return p.id

    return _add


@pytest.fixture
def count_products(session_factory: sessionmaker):
    def _count() -> int:
        with session_factory() as db:
            return db.scalar(select(func.count()).select_from(Product))

    return _count
