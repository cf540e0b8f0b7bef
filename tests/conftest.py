"""
Pytest configuration and fixtures
"""
import asyncio
import os

# Must be set before board.config is imported
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from board.api import app, get_candidate_registry
from board.db import get_session
from board.models import Base
from board.pipelines.feedback import CandidateIdRegistry


@pytest.fixture(scope="function")
def engine(tmp_path):
    """File-backed SQLite engine with a fresh schema for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'board.db'}", poolclass=NullPool)

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_schema())
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture(scope="function")
def registry():
    return CandidateIdRegistry()


@pytest.fixture(scope="function")
def client(engine, registry):
    """Create test client with database dependency override"""
    session_maker = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_candidate_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def board_payload():
    """A board as the frontend form submits it."""
    return {
        "requirement": "Backend Engineer",
        "date": "2024-10-01T10:00:00Z",
        "experts": {
            "Alice Smith": {
                "email": "Alice.Smith@Example.com",
                "candidates": [
                    {"Candidate": "Bob", "Relevancy Score": 0.92},
                    {"Candidate": "Dan", "Relevancy Score": 0.81},
                    {"Candidate": "Eve", "Relevancy Score": 0.77},
                    {"Candidate": "Frank", "Relevancy Score": 0.5},
                ],
            },
            "Carol Jones": {
                "email": "carol@example.com",
                "candidates": [{"Candidate": "Bob", "Relevancy Score": 0.6}],
                "acceptanceStatus": "accepted",
            },
        },
    }
