"""Shared fixtures for zonehub tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from zonehub.core.router import CommandRouter
from zonehub.core.state import ZoneStateStore
from zonehub.hub import PresenceHub
from zonehub.settings import Settings
from zonehub.transport.base import BaseTransport
from zonehub.transport.memory import MemoryTransport
from zonehub.web.gateway import BroadcastGateway, Subscriber

ZONES = ["zone1", "zone2", "zone3"]


class FakeClock:
    """Deterministic clock: every call advances by one second."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.calls: list[datetime] = []

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        self.calls.append(self.now)
        return self.now


class RecordingTransport(BaseTransport):
    """Connected transport that records publishes instead of sending them."""

    name = "recording"

    def __init__(self):
        super().__init__()
        self.published: list[tuple[str, dict]] = []

    @property
    def connected(self) -> bool:
        return True

    async def publish(self, topic, payload):
        self.published.append((topic, payload))
        return True

    async def start(self):
        pass

    async def stop(self):
        pass


class RecordingSubscriber(Subscriber):
    """Subscriber that keeps every frame it is sent."""

    def __init__(self, subscriber_id: str = None):
        super().__init__(subscriber_id)
        self.frames: list[dict] = []
        self.close_codes: list[int] = []

    async def _send(self, message: dict):
        self.frames.append(message)

    async def _close(self, code: int):
        self.close_codes.append(code)

    def events(self, name: str = None) -> list:
        return [f for f in self.frames if name is None or f["event"] == name]


class BrokenSubscriber(Subscriber):
    """Subscriber whose connection has gone away."""

    async def _send(self, message: dict):
        raise ConnectionResetError("socket closed")


class StalledSubscriber(RecordingSubscriber):
    """Subscriber whose socket stopped draining: sends never complete."""

    async def _send(self, message: dict):
        await asyncio.Event().wait()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ZoneStateStore(ZONES, clock=clock)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def router(transport, store):
    return CommandRouter(transport, store)


@pytest.fixture
def gateway(router, store):
    return BroadcastGateway(router, store)


@pytest.fixture
def settings():
    return Settings(_env_file=None, transport="memory", zones=ZONES)


@pytest.fixture
async def hub(settings, clock):
    hub = PresenceHub(settings, transport=MemoryTransport(), clock=clock)
    await hub.start()
    yield hub
    await hub.stop(timeout=2.0)
