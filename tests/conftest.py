import os

# Settings are read at import time, so these must be set before storefront is imported
os.environ.setdefault("ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from storefront import dependencies as deps
from storefront.client.transport import Response, Transport
from storefront.database import create_db_and_tables, get_session
from storefront.infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from storefront.main import app

from tests.fakes import Clock, FakeOTPProvider


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_engine(tmp_path):
    # One connection per thread; used where requests run concurrently
    eng = create_engine(f"sqlite:///{tmp_path / 'storefront.db'}", connect_args={"check_same_thread": False})
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def otp_provider():
    return FakeOTPProvider()


@pytest.fixture
def limiter():
    return InMemoryRateLimiter()


def _override(engine, clock, otp_provider, limiter):
    def session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = session_override
    app.dependency_overrides[deps.get_clock] = lambda: clock.now
    app.dependency_overrides[deps.get_otp_provider] = lambda: otp_provider
    app.dependency_overrides[deps.get_rate_limiter] = lambda: limiter


@pytest.fixture
def client(engine, clock, otp_provider, limiter):
    _override(engine, clock, otp_provider, limiter)
    yield TestClient(app)
    app.dependency_overrides.clear()


class ASGITransport(Transport):
    """Client Transport that calls the app in-process through httpx."""

    def __init__(self, asgi_app):
        self.http = httpx.AsyncClient(transport=httpx.ASGITransport(app=asgi_app), base_url="http://testserver")
        self.calls = []

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    async def request(self, method, path, json=None, token=None):
        self.calls.append((method, path))
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        resp = await self.http.request(method, path, json=json, headers=headers)
        try:
            body = resp.json()
        except ValueError:
            body = None
        return Response(status=resp.status_code, body=body)

    async def close(self):
        await self.http.aclose()


@pytest.fixture
def live_app(file_engine, clock, otp_provider, limiter):
    _override(file_engine, clock, otp_provider, limiter)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def transport(live_app):
    return ASGITransport(live_app)
