import os

# must be set before app.core.config is imported
os.environ.setdefault("TELEMETRY_ENABLED", "false")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import Base + all models so metadata is complete
from app.models import Base

from app.main import app
from app.core.db import get_db
from app.services.storage import get_media_store
from app.services.uploads import folder_cache

from tests.fakes import FakeMediaStore
from tests.fixtures_seed import make_listing  # noqa: F401


def _test_db_url() -> str:
    # in-memory SQLite unless a real database is provided
    return os.getenv("DATABASE_URL_TEST") or "sqlite+aiosqlite://"


@pytest.fixture
async def async_engine():
    url = _test_db_url()
    if url.startswith("sqlite"):
        engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_store() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
async def client(db_session: AsyncSession, fake_store: FakeMediaStore):
    """
    HTTP client that uses the test DB session and the in-memory media store.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_media_store] = lambda: fake_store
    folder_cache.clear()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    folder_cache.clear()
