"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path, so apps, stores and
services never share state between tests.
"""
import asyncio
import sqlite3

import pytest
from fastapi.testclient import TestClient

from sakany.app.core.config import Settings
from sakany.app.db.init_db import create_tables
from sakany.app.db.session import build_engine, build_sessionmaker
from sakany.app.main import create_app
from sakany.app.security.sessions import ChallengeStore, SessionManager
from sakany.app.services.auth import AuthService
from sakany.app.services.properties import PropertyService
from sakany.app.stores.properties import PropertyStore
from sakany.app.stores.users import UserStore

DEFAULT_PASSWORD = "secret1"


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "sakany-test.db"


@pytest.fixture
def settings(db_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{db_path}",
        SEED_SAMPLE_PROPERTIES=False,
        CORS_ORIGINS="",
        ADMIN_EMAIL_DOMAINS="sakany.com",
        ADMIN_EMAILS="chief@example.org",
    )


# ── HTTP fixtures ────────────────────────────────────────────────

@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def read_column(db_path):
    """Read one column of a user row straight from the SQLite file."""
    def _read(email, column):
        with sqlite3.connect(db_path) as conn:
            row = conn.execute(
                f"SELECT {column} FROM users WHERE email = ?", (email.lower(),)
            ).fetchone()
        return row[0] if row else None
    return _read


def register(client, email, password=DEFAULT_PASSWORD, display_name="Alice", **extra):
    body = {"email": email, "password": password, "display_name": display_name}
    body.update(extra)
    return client.post("/api/register", json=body)


def login(client, email, password=DEFAULT_PASSWORD):
    return client.post("/api/login", json={"email": email, "password": password})


# ── store / service fixtures ─────────────────────────────────────

@pytest.fixture
async def sessionmaker(settings):
    engine = build_engine(settings)
    await create_tables(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
async def db(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def user_store(db):
    return UserStore(db, asyncio.Lock())


@pytest.fixture
def property_store(db):
    return PropertyStore(db, asyncio.Lock())


@pytest.fixture
def property_service(property_store):
    return PropertyService(property_store)


@pytest.fixture
def session_manager():
    return SessionManager(ttl_seconds=24 * 60 * 60)


@pytest.fixture
def challenge_store():
    return ChallengeStore(ttl_seconds=300, max_attempts=5)


@pytest.fixture
def auth_service(user_store, session_manager, challenge_store, settings):
    return AuthService(user_store, session_manager, challenge_store, settings)
