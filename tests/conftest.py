"""Test fixtures — create/drop tables for each async test, in-memory stores, event factory."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Force SQLite test database *before* any app import
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_bizzybot.db"
os.environ["OPENAI_API_KEY"] = ""

from bizzybot.database import Base, engine  # noqa: E402
from bizzybot.main import app  # noqa: E402
from bizzybot.repositories.memory import InMemoryEventStore, InMemoryNoteStore  # noqa: E402
from bizzybot.services.events import EventRecord  # noqa: E402
from bizzybot.services.identity import ContactIndexCache  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.contact_cache = ContactIndexCache()
    app.state.reasoning_service = None
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def note_store():
    return InMemoryNoteStore()


@pytest.fixture
def make_event():
    """Build an EventRecord without a store."""
    counter = {"n": 0}

    def _make(event_type="message", created_at=NOW, channel="chat", customer_id="cust-1", **metadata):
        counter["n"] += 1
        return EventRecord(
            id=f"evt-{counter['n']:04d}",
            customer_id=customer_id,
            event_type=event_type,
            channel=channel,
            created_at=created_at,
            metadata=metadata,
        )

    return _make
