"""Shared test fixtures."""

import pytest

from csvimportable import create_service
from csvimportable.contacts import ContactRowProcessor, ensure_contacts_schema
from csvimportable.jobs import ImportJobStore


@pytest.fixture
def db_service(tmp_path):
    """Provide a fresh SQLite DatabaseService for each test."""
    db_path = tmp_path / "test.db"
    service = create_service(f"sqlite:///{db_path}")
    service.connect()
    yield service
    service.close()


@pytest.fixture
def contacts(db_service):
    """A ContactRowProcessor over a database with the contacts table in place."""
    ensure_contacts_schema(db_service)
    return ContactRowProcessor(db_service)


@pytest.fixture
def job_store(db_service):
    store = ImportJobStore(db_service)
    store.ensure_schema()
    return store
