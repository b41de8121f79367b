"""
Shared fixtures: every test gets its own SQLite database file under tmp_path,
with the records table and its FTS5 index created.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from record_search.core.config import get_settings
from record_search.db import sqlalchemy as dbmod
from record_search.services.ingest import IngestPipeline
from record_search.services.mutations import MutationService
from record_search.services.record_store import RecordStore
from record_search.services.search_engine import SearchEngine


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'records.db'}"


@pytest.fixture
def store(database_url):
    dbmod.reconfigure(database_url)
    dbmod.init_db()
    yield RecordStore(dbmod.get_sessionmaker())
    dbmod.dispose_engine()


@pytest.fixture
def search_engine(store) -> SearchEngine:
    return SearchEngine(store)


@pytest.fixture
def pipeline(store) -> IngestPipeline:
    return IngestPipeline(store)


@pytest.fixture
def mutations(store) -> MutationService:
    return MutationService(store)


@pytest.fixture
def sample_records(store):
    """The two-record dataset used throughout: Acme Corp in Reno, Beta LLC in Provo."""
    first = store.insert({"name": "Acme Corp", "city": "Reno"})
    second = store.insert({"name": "Beta LLC", "city": "Provo"})
    return first, second


@pytest.fixture
def broken_store(tmp_path) -> RecordStore:
    """A store whose database file cannot be opened."""
    engine = create_engine(f"sqlite:///{tmp_path / 'missing-dir' / 'records.db'}")
    return RecordStore(sessionmaker(bind=engine))


@pytest.fixture
def client(store):
    from record_search.api.main import app

    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_key(monkeypatch):
    """Enable the write-access gate with a known key for the duration of a test."""
    monkeypatch.setenv("ADMIN_API_KEY", "s3cret")
    get_settings.cache_clear()
    yield "s3cret"
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)
    get_settings.cache_clear()
