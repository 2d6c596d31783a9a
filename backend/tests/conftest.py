"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, common reference records, and test client.
"""

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Category, Location, Product, Supplier, Tag, User
from stockledger.models.users import ROLE_MANAGER
from stockledger.services.user_service import hash_password

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
        'BCRYPT_ROUNDS': 4,
        'STOCK_RETRY_BACKOFF': 0.0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app, db_session):
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
def user(db_session):
    """Manager user that transactions are attributed to."""
    u = User(username="manager", password_hash=hash_password(TEST_PASSWORD), role=ROLE_MANAGER)
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture(scope='function')
def warehouse(db_session):
    location = Location(name="Warehouse", address="1 Dock Road")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def bar(db_session):
    location = Location(name="Bar", address="Main floor")
    db_session.add(location)
    db_session.commit()
    return location


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Demo Beverages", email="orders@demo.example")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def category(db_session):
    c = Category(name="Spirits")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def tag(db_session):
    t = Tag(name="premium")
    db_session.add(t)
    db_session.commit()
    return t


@pytest.fixture(scope='function')
def product(db_session, category):
    p = Product(name="Vodka 70cl", barcode="5000000000011", unit="bottle", category_id=category.id)
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def other_product(db_session):
    p = Product(name="Tonic Water 200ml", barcode="5000000000035", unit="bottle")
    db_session.add(p)
    db_session.commit()
    return p
