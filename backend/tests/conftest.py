"""Pytest fixtures for crashdispatch backend tests."""

import asyncio
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

# Settings are cached on first import; point them at SQLite before that happens.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import crashdispatch.models  # noqa: F401
from crashdispatch.database import Base, get_db
from crashdispatch.dependencies import (
    get_evidence_store,
    get_image_fetcher,
    get_vision_judge,
)
from crashdispatch.limiter import limiter
from crashdispatch.main import app
from crashdispatch.schemas.accident import AccidentCreate
from crashdispatch.services.evidence_store import EvidenceFile, LocalEvidenceStore
from crashdispatch.services.vision_client import FetchedImage

# Test database URL - in-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeVisionJudge:
    """Stands in for the OpenAI judge; records the images it was asked about."""

    def __init__(
        self,
        payload: Any = None,
        error: Exception | None = None,
        configured: bool = True,
        delay: float = 0,
    ):
        self.payload = payload
        self.error = error
        self.configured = configured
        self.delay = delay
        self.calls: list[list[FetchedImage]] = []

    def available(self) -> bool:
        return self.configured

    async def judge(self, images: list[FetchedImage]) -> Any:
        self.calls.append(images)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


def fake_fetcher(images: list[FetchedImage] | None = None) -> MagicMock:
    """Fetcher whose fetch_all returns the given images."""
    fetcher = MagicMock()
    fetcher.fetch_all = AsyncMock(return_value=list(images or []))
    return fetcher


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(fixed_now):
    """Injectable clock that always returns ``fixed_now``."""
    return lambda: fixed_now


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing with real SAVEPOINT support."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so nested transactions behave
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_maker = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def evidence_store(tmp_path) -> LocalEvidenceStore:
    return LocalEvidenceStore(
        storage_dir=tmp_path,
        public_base_url="http://test/evidence",
        allowed_types=["image/jpeg", "image/png"],
        max_bytes=1024,
        max_files=3,
    )


@pytest.fixture
def vision_judge() -> FakeVisionJudge:
    """Unconfigured by default, like a deployment without an API key."""
    return FakeVisionJudge(configured=False)


@pytest.fixture
def image_fetcher() -> MagicMock:
    return fake_fetcher([FetchedImage(data=PNG_BYTES, mime_type="image/png")])


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    evidence_store: LocalEvidenceStore,
    vision_judge: FakeVisionJudge,
    image_fetcher: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and collaborator overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_evidence_store] = lambda: evidence_store
    app.dependency_overrides[get_vision_judge] = lambda: vision_judge
    app.dependency_overrides[get_image_fetcher] = lambda: image_fetcher
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def scenario_a_facts() -> AccidentCreate:
    """Two vehicles, one injury, heavy rain on a wet road: score 55."""
    return AccidentCreate(
        description="Two-car collision at intersection",
        latitude=37.7749,
        longitude=-122.4194,
        location_address="Market St & 5th St",
        weather_conditions="heavy rain",
        road_conditions="wet",
        number_of_vehicles=2,
        number_of_injuries=1,
        number_of_fatalities=0,
    )


@pytest.fixture
def scenario_b_facts() -> AccidentCreate:
    """Two fatalities and nothing else: score 100."""
    return AccidentCreate(
        description="Fatal single-vehicle crash",
        latitude=37.78,
        longitude=-122.41,
        location_address="Highway 101 northbound",
        number_of_fatalities=2,
    )


@pytest.fixture
def png_file() -> EvidenceFile:
    return EvidenceFile(filename="crash.png", content_type="image/png", data=PNG_BYTES)


@pytest.fixture
def accident_form() -> dict[str, str]:
    """Multipart form fields for the intake endpoint (scenario A facts)."""
    return {
        "description": "Two-car collision at intersection",
        "latitude": "37.7749",
        "longitude": "-122.4194",
        "location_address": "Market St & 5th St",
        "weather_conditions": "heavy rain",
        "road_conditions": "wet",
        "number_of_vehicles": "2",
        "number_of_injuries": "1",
        "number_of_fatalities": "0",
        "requester_id": "user-1",
    }


@pytest.fixture
def judge_factory() -> type[FakeVisionJudge]:
    return FakeVisionJudge


@pytest.fixture
def fetcher_factory():
    return fake_fetcher


@pytest.fixture
def fetched_image() -> FetchedImage:
    return FetchedImage(data=PNG_BYTES, mime_type="image/png")
