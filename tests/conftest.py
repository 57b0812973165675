"""
Shared pytest configuration.

Each test gets its own SQLite file so that several sessions can share one
database, as concurrent requests do in production.
"""

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import hackteams.models  # noqa: F401
from hackteams.database import Base, build_engine
from hackteams.services.users import sync_user


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'hackteams_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(db_session):
    """Organizer plus five participants, committed."""
    people = {
        "org": ("user_org", "org@example.com", "Olive Organizer"),
        "alice": ("user_alice", "alice@example.com", "Alice Alpha"),
        "bob": ("user_bob", "bob@example.com", "Bob Beta"),
        "carol": ("user_carol", "carol@example.com", "Carol Gamma"),
        "dave": ("user_dave", "dave@example.com", "Dave Delta"),
        "erin": ("user_erin", "erin@example.com", "Erin Epsilon"),
    }
    for user_id, email, name in people.values():
        await sync_user(db_session, user_id, email, name)
    await db_session.commit()
    return {key: value[0] for key, value in people.items()}

