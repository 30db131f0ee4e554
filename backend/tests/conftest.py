"""
Pytest fixtures for the POS backend tests.

Provides an in-memory database, a test client, and seeded cashier/product
records.
"""

import pytest

from kaizen_pos import create_app
from kaizen_pos.extensions import db
from kaizen_pos.models import Product, User
from kaizen_pos.services.users_service import hash_password


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'COMMIT_RETRY_BACKOFF': 0.0,
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
def cashier(db_session):
    user = User(
        name="Ana Cashier",
        email="ana@kaizen.local",
        password_hash=hash_password("Password123!", rounds=4),
        role="cashier",
        company_name="Kaizen Cafe",
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products inserted directly (no opening-stock history)."""
    counter = {"n": 0}

    def _make(*, sku=None, name=None, stock=20, price_cents=1500, category="Beverages", **kwargs):
        counter["n"] += 1
        n = counter["n"]
        product = Product(
            company_name=kwargs.pop("company_name", "Kaizen Cafe"),
            sku=sku or f"SKU-{n:03d}",
            barcode=kwargs.pop("barcode", f"480000000{n:04d}"),
            name=name or f"Product {n}",
            category=category,
            price_cents=price_cents,
            cost_cents=kwargs.pop("cost_cents", price_cents // 2),
            stock=stock,
            **kwargs,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def iced_tea(make_product):
    """BEV-001: stock 20, price 15.00."""
    return make_product(sku="BEV-001", name="Iced Tea", stock=20, price_cents=1500)
