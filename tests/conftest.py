"""Test fixtures — an in-memory backplane and recording connections.

The realtime core only needs a bus with publish/subscribe, so tests run
without Redis: InMemoryBus fans every published message out to every
subscriber queue, exactly like a Redis channel shared by several gateway
processes. Several PropagationServices sharing one InMemoryBus model a
cluster.

WebSocket round trips go through Starlette's TestClient, which runs the
app (lifespan included) on its own event loop thread.
"""

import asyncio
import json
from collections import defaultdict
from typing import Any, Optional

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from notifyhub.auth.identity import AuthUser, Role
from notifyhub.auth.jwt import create_access_token
from notifyhub.errors import BusUnavailable
from notifyhub.main import create_app
from notifyhub.realtime.adapter import ConnectionAdapter
from notifyhub.realtime.propagator import PropagationService
from notifyhub.realtime.registry import ConnectionRegistry


class InMemoryBus:
    """Bus test double: JSON round trip, per-channel fan-out, call log."""

    def __init__(self) -> None:
        self.published: list[tuple[str, Any]] = []
        self.available = True
        self._queues: dict[str, list[asyncio.Queue]] = defaultdict(list)

    async def publish(self, channel: str, value: Any) -> int:
        if not self.available:
            raise BusUnavailable("bus down")
        self.published.append((channel, value))
        message = json.dumps(value)
        for queue in self._queues[channel]:
            queue.put_nowait(message)
        return len(self._queues[channel])

    async def subscribe(self, channel: str):
        if not self.available:
            raise BusUnavailable("bus down")
        queue: asyncio.Queue = asyncio.Queue()
        self._queues[channel].append(queue)

        async def stream():
            while True:
                yield json.loads(await queue.get())

        return stream()

    def inject(self, channel: str, raw: Any) -> None:
        """Deliver an already-decoded payload as if another producer sent it."""
        for queue in self._queues[channel]:
            queue.put_nowait(json.dumps(raw))

    async def ping(self) -> bool:
        return self.available

    async def settle(self) -> None:
        """Let subscriber tasks drain everything published so far."""
        for _ in range(50):
            await asyncio.sleep(0)
            if not any(q.qsize() for qs in self._queues.values() for q in qs):
                break
        for _ in range(5):
            await asyncio.sleep(0)


class RecordingConnection:
    """Stand-in for a Connection that records what it was sent."""

    _next = 0

    def __init__(self, auth: Optional[AuthUser] = None, id: Optional[str] = None):
        RecordingConnection._next += 1
        self.id = id or f"conn-{RecordingConnection._next}"
        self.auth = auth
        self.released = False
        self.emitted: list[tuple[str, Any]] = []

    @property
    def authenticated(self) -> bool:
        return self.auth is not None

    def emit(self, event: str, data: Any = None) -> None:
        if not self.released:
            self.emitted.append((event, data))

    def release(self) -> None:
        self.released = True


def make_user(user_id: str, name: Optional[str] = None, role: Role = Role.USER) -> AuthUser:
    return AuthUser(id=user_id, name=name or user_id.title(), role=role)


# ─── Core fixtures ───────────────────────────────────────


@pytest.fixture()
def bus():
    return InMemoryBus()


@pytest.fixture()
def registry():
    return ConnectionRegistry()


@pytest_asyncio.fixture()
async def gateway(bus):
    """One gateway process: registry + propagator + adapter, subscriptions live."""
    registry = ConnectionRegistry()
    propagator = PropagationService(registry, bus)
    adapter = ConnectionAdapter(registry, propagator)
    adapter.create_server()
    await propagator.start()
    try:
        yield adapter
    finally:
        await propagator.stop()


# ─── App fixtures ────────────────────────────────────────


@pytest.fixture()
def app_bus():
    return InMemoryBus()


@pytest.fixture()
def client(app_bus):
    """TestClient with lifespan running against the in-memory bus."""
    app = create_app(bus=app_bus)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def admin_headers():
    token = create_access_token("admin-1", "Ada Admin", Role.ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user_token():
    def _make(user_id: str, name: str = "User", role: Role = Role.USER) -> str:
        return create_access_token(user_id, name, role)

    return _make
