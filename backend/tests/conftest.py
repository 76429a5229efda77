"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation and a fake completion provider.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from errors import ProviderError
from extractor import Extractor
from models import Candidate, CompletionResponse
from providers import CompletionProvider


class FakeProvider(CompletionProvider):
    """Returns a canned response (or raises) and records every request."""

    def __init__(self, content=None, candidates=None, error=None):
        self.content = content
        self.candidates = candidates
        self.error = error
        self.requests = []
        self.closed = False

    async def complete(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.candidates is not None:
            return CompletionResponse(candidates=self.candidates)
        return CompletionResponse(candidates=[Candidate(content=self.content)])

    async def aclose(self):
        self.closed = True


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_provider_factory():
    def _make(content=None, candidates=None, error=None):
        return FakeProvider(content=content, candidates=candidates, error=error)
    return _make


@pytest.fixture
def extractor_factory(fake_provider_factory):
    """Build an Extractor around a FakeProvider returning `content`."""
    def _make(content=None, **kwargs):
        provider = fake_provider_factory(content=content, **kwargs)
        return Extractor(provider, model="test-model")
    return _make


@pytest.fixture
def provider_error():
    return ProviderError("rate limited", status_code=429, transient=True)


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE tasks (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            due_date TEXT,
            priority TEXT NOT NULL DEFAULT 'medium',
            estimated_time INTEGER,
            category TEXT,
            completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def fake_provider(fake_provider_factory):
    return fake_provider_factory(content='{"Title": "Buy groceries", "Priority": "medium"}')


@pytest.fixture
def app_client(test_db, monkeypatch, fake_provider):
    """
    Create a test client for the FastAPI app.
    Mocks init_db to skip alembic migrations and injects a fake provider.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(database, "init_db", lambda: None)
    monkeypatch.setattr(main, "build_provider", lambda _settings: fake_provider)

    with TestClient(main.app) as client:
        yield client
