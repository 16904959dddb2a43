"""
Shared fixtures for the test suite.

Every test gets its own SQLite database file (through aiosqlite), so tests never
see each other's rows. The environment is configured before any application
module is imported because ``config`` reads it at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_bootstrap.db"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EXPOSE_RESET_LINK"] = "true"

from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from database import Base, get_db
from app.services.catalog import CatalogService
from app.services.identity import IdentityService

DEFAULT_PASSWORD = "secret123"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine_ = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'blog.db'}")
    async with engine_.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine_
    await engine_.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client bound to the ASGI app, with ``get_db`` pointed at the test database."""
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def _make_user(username, password=DEFAULT_PASSWORD, **overrides):
        fields = dict(
            full_name=username.capitalize(),
            username=username,
            email=f"{username}@example.com",
            password=password,
            confirm_password=password,
            dob=date(1990, 1, 1),
            terms_accepted=True,
        )
        fields.update(overrides)
        return await IdentityService(db).signup(**fields)

    return _make_user


@pytest.fixture
def make_post(db):
    async def _make_post(author, title="Hello world", content="Some words here", category="technology", **overrides):
        return await CatalogService(db).create_post(
            title=title,
            content=content,
            category=category,
            author_username=author.username,
            **overrides,
        )

    return _make_post


@pytest.fixture
def login(client):
    """Log a user in through the API and return the bearer header."""
    async def _login(username, password=DEFAULT_PASSWORD):
        response = await client.post("/auth/login", json={"email_or_username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
