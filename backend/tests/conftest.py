from contextlib import asynccontextmanager
import os
import warnings
from datetime import datetime, timedelta

import pytest

# Set environment variables BEFORE importing app modules
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-32-chars-minimum!!"
os.environ["ENVIRONMENT"] = "local"

warnings.filterwarnings("ignore", category=DeprecationWarning)

from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.services.store import WishlistStore


class FrozenClock:
    """Server clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def pytest_configure(config):
    warnings.filterwarnings("ignore", category=DeprecationWarning)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 12, 1, 12, 0, 0))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_dsn=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        environment="local",
        jwt_secret_key="test-secret-key-32-chars-minimum!!",
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock)


@pytest.fixture
def context(app):
    return app.state.context


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_client(app):
    """Extra clients over the same app; each keeps its own cookie jar."""
    clients: list[TestClient] = []

    def _make() -> TestClient:
        test_client = TestClient(app)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.close()


@pytest.fixture
def store_factory(context):
    """Open a store over a fresh session: ``async with store_factory() as store``."""

    @asynccontextmanager
    async def _open():
        async with context.database.session() as session:
            yield WishlistStore(session)

    return _open
