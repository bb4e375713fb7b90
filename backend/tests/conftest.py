"""
Pytest fixtures for KelontongPro backend tests.

Provides the Flask app on an in-memory database, a clean storage table per
test, and shop services backed by an in-memory blob store.
"""

from datetime import datetime, timedelta

import pytest

from kelontong import create_app
from kelontong.extensions import db
from kelontong.models import StorageBlob
from kelontong.services.catalog_service import Catalog
from kelontong.services.identifier_service import IdentifierGenerator
from kelontong.services.ledger_service import TransactionLog
from kelontong.services.persistence_service import InMemoryBlobStore
from kelontong.services.shop_service import ShopService
from kelontong.seed_data import INITIAL_PRODUCTS


class StepClock:
    """Deterministic clock: every call advances by `step`."""

    def __init__(self, start=datetime(2024, 5, 1, 8, 0, 0), step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'GEMINI_API_KEY': 'test-key',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty storage table for each test."""
    with app.app_context():
        db.session.query(StorageBlob).delete()
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def cli_runner(app, db_session):
    return app.test_cli_runner()


@pytest.fixture
def id_generator():
    return IdentifierGenerator(clock=StepClock())


@pytest.fixture
def catalog(id_generator):
    return Catalog(INITIAL_PRODUCTS, id_generator=id_generator)


@pytest.fixture
def log():
    return TransactionLog()


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def shop(store, id_generator):
    return ShopService(store, id_generator=id_generator)
