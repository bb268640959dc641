"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database


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
        CREATE TABLE kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Startup loads state from the isolated test database.
    """
    from fastapi.testclient import TestClient
    import main

    monkeypatch.setattr(main, "setup_logging", lambda level: None)

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def fake_planner(monkeypatch):
    """
    Replace the model call with a canned reply.
    Set fake_planner.reply to the text the model should return,
    or fake_planner.error to an exception to raise.
    """
    import config
    import planner

    class FakePlanner:
        reply = "[]"
        error = None
        calls = []

    fake = FakePlanner()
    fake.calls = []

    async def fake_request(user_input, current_date):
        fake.calls.append((user_input, current_date))
        if fake.error is not None:
            raise fake.error
        return fake.reply

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "test-key")
    monkeypatch.setattr(planner, "request_schedule", fake_request)
    return fake
