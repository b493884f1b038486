"""Shared fixtures: an on-disk SQLite store, a fake provider, and the ASGI client."""
from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Settings
from app.core.deps import get_bland_client, get_call_poller
from app.db.session import create_schema, get_session
from app.main import create_app
from app.services.bland import BlandClient


class FakeBland:
    """In-memory stand-in for the provider's REST API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.placed: list[dict[str, Any]] = []
        self.details: dict[str, list[Any]] = {}
        self.transcripts: dict[str, Any] = {}
        self.media: dict[str, Any] = {}
        self.fail_placement = False

    def queue_details(self, call_id: str, *payloads: Any) -> None:
        """Queue detail responses; the last one repeats. Ints are error statuses."""

        self.details.setdefault(call_id, []).extend(payloads)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/call":
            if self.fail_placement:
                return httpx.Response(500, json={"message": "upstream unavailable"})
            self.placed.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "success", "call_id": f"call-{len(self.placed)}"})

        call_id = path.rsplit("/", 1)[-1]
        if path.startswith("/v1/calls/"):
            queue = self.details.get(call_id)
            if not queue:
                return httpx.Response(404, json={"message": "Call not found"})
            payload = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(payload, int):
                return httpx.Response(payload, json={"message": "provider error"})
            return httpx.Response(200, json=payload)
        if path.startswith("/calls/") and call_id in self.transcripts:
            return httpx.Response(200, json={"transcript": self.transcripts[call_id]})
        if path.startswith("/call/") and call_id in self.media:
            return httpx.Response(200, json=self.media[call_id])
        return httpx.Response(404, json={"message": "Not found"})


class RecordingPoller:
    """Poller stub that only remembers what was scheduled."""

    def __init__(self) -> None:
        self.scheduled: list[str] = []

    def schedule(self, call_id: str) -> None:
        self.scheduled.append(call_id)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        bland_api_key="test-key",
        bland_encrypted_key="test-encrypted",
        bland_base_url="https://bland.test",
        poll_initial_delay_seconds=30,
        poll_interval_seconds=30,
        poll_max_attempts=4,
        poll_resume_on_startup=False,
    )


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'calls.db'}")
    await create_schema(engine)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
def bland() -> FakeBland:
    return FakeBland()


@pytest_asyncio.fixture
async def bland_client(settings: Settings, bland: FakeBland) -> AsyncIterator[BlandClient]:
    client = BlandClient(settings, transport=httpx.MockTransport(bland.handler))
    yield client
    await client.close()


@pytest.fixture
def recording_poller() -> RecordingPoller:
    return RecordingPoller()


@pytest.fixture
def application(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    bland_client: BlandClient,
    recording_poller: RecordingPoller,
) -> FastAPI:
    app = create_app(settings)

    async def override_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_bland_client] = lambda: bland_client
    app.dependency_overrides[get_call_poller] = lambda: recording_poller
    return app


@pytest_asyncio.fixture
async def api(application: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=application)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
