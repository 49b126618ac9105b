"""
Pytest fixtures for the kiosko backend tests.

Provides an in-memory application, a per-test clean database, a test client
and catalog helpers. Threaded tests use `file_app`, which is backed by a
SQLite file so each thread gets its own connection.
"""

from decimal import Decimal

import pytest

from kiosko import create_app
from kiosko.extensions import db
from kiosko.models import Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'HELD_ORDER_BACKEND': 'database',
        'DEFAULT_TAX_RATE': '0',
        'REQUIRE_OPEN_REGISTER': False,
        'COMMIT_RETRY_ATTEMPTS': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions.pop("kiosko.held_orders", None)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for catalog products: make_product("Coffee", "10.00", stock=5)."""
    counter = {"n": 0}

    def _make(name="Product", price="10.00", stock=10, is_active=True):
        counter["n"] += 1
        product = Product(
            sku=f"SKU-{counter['n']:04d}",
            name=name,
            price_cents=int(Decimal(price) * 100),
            stock=stock,
            is_active=is_active,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def file_app(tmp_path):
    """Application on a SQLite file, for tests that use several threads."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'COMMIT_RETRY_ATTEMPTS': 5,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
