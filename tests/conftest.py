"""
Shared pytest fixtures for the symposium tests.

Sets required environment variables BEFORE any symposium module is imported so
that pydantic-settings and SQLAlchemy engine initialisation use safe test values.
"""
from __future__ import annotations

import os
from typing import AsyncGenerator

# ── Set env vars before any symposium import ──────────────────────────────────
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_SECRET", "admin-secret-for-pytest")
os.environ.setdefault("VIEWER_SECRET", "viewer-secret-for-pytest")
os.environ.setdefault("REGISTRATION_FEE", "50")

# ── Third-party ───────────────────────────────────────────────────────────────
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# ── Symposium imports (safe after env vars are set) ───────────────────────────
from symposium.models.base import Base
from symposium.portal import Portal
from symposium.services.blob_store import LocalBlobStore
from symposium.services.live_feed import RegistrationFeed


# ── DB fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a fresh AsyncSession backed by an isolated in-memory SQLite database.
    Schema is created fresh for every test function; engine is always disposed
    on teardown, even if the test raises an exception.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with factory() as session:
            yield session
    finally:
        await engine.dispose()


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Session factory over a file-backed SQLite database, so that several
    independent sessions (one per portal call) see the same data.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
def portal(session_factory, tmp_path) -> Portal:
    return Portal(
        session_factory=session_factory,
        blob_store=LocalBlobStore(tmp_path / "blobs"),
        feed=RegistrationFeed(),
        fee=50,
    )


# ── Payload helpers ───────────────────────────────────────────────────────────

def _payload(**overrides) -> dict:
    """A valid single-event registration, as the web form sends it."""
    data = {
        "name":         "Asha Raman",
        "rollNumber":   "22ucs01",
        "department":   "B.Sc. Computer Science",
        "year":         "2nd Year",
        "mobileNumber": "9876543210",
        "event1":       "Tech Quiz",
        "addEvent2":    False,
        "event2":       "",
        "teamMember2":  "",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_payload():
    """Factory fixture — returns a callable that builds a registration payload."""
    return _payload
