"""
In-process loopback broker.

Messages published here come back in on matching subscriptions, just
as they would through a real broker. Used for local runs without
Mosquitto and throughout the test suite.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from zonehub.core.topics import SUBSCRIPTIONS, encode_payload
from zonehub.obs import logger
from zonehub.transport.base import BaseTransport, topic_matches


class MemoryTransport(BaseTransport):
    """Loopback transport with a single ordered delivery queue."""

    name = "memory"

    def __init__(self, subscriptions: tuple[str, ...] = SUBSCRIPTIONS):
        super().__init__(subscriptions=subscriptions)
        self._queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._connected = False

        # Every publish, in order, for inspection
        self.published: list[tuple[str, dict]] = []

    @property
    def connected(self) -> bool:
        return self._connected

    @logger.instrument("Starting in-memory transport...")
    async def start(self):
        if self._task:
            return
        self._accepting = True
        self._connected = True
        self._task = asyncio.create_task(self._pump())
        logger.info("Connected to in-memory broker")

    async def stop(self):
        self.stop_accepting()
        self._connected = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Disconnected from in-memory broker")

    async def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        if not self._connected:
            logger.warning(f"Not connected, dropped publish to {topic}")
            return False

        raw = encode_payload(payload)
        self.published.append((topic, payload))
        logger.debug(f"  Published to {topic}")

        if any(topic_matches(pattern, topic) for pattern in self._subscriptions):
            self._queue.put_nowait((topic, raw.encode("utf-8")))
        return True

    def inject(self, topic: str, raw: bytes | str):
        """Queue a raw inbound message as if an external client had published it."""
        self._queue.put_nowait((topic, raw))

    async def drain(self):
        """Wait until every queued message (and anything it triggered) has been delivered."""
        await self._queue.join()

    async def _pump(self):
        while True:
            topic, raw = await self._queue.get()
            try:
                await self._deliver(topic, raw)
            finally:
                self._queue.task_done()
