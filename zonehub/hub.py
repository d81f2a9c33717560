"""
zonehub composition root.

Creates the zone store, transport, router, gateway and handlers once per
process and wires them together. Nothing else holds global state.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional

from zonehub.core.handler import MessageDispatcher, PresenceEventHandler
from zonehub.core.router import CommandRouter
from zonehub.core.state import ZoneStateStore, utc_now
from zonehub.obs import logger
from zonehub.settings import Settings
from zonehub.transport.base import BaseTransport
from zonehub.transport.memory import MemoryTransport
from zonehub.transport.mqtt import MqttTransport
from zonehub.web.gateway import BroadcastGateway


def build_transport(settings: Settings) -> BaseTransport:
    """Create the transport selected in settings."""
    if settings.transport == "memory":
        return MemoryTransport()
    return MqttTransport(
        broker_url=settings.mqtt_broker_url,
        username=settings.mqtt_username,
        password=settings.mqtt_password,
        client_id=settings.mqtt_client_id,
        reconnect_min_delay=settings.reconnect_min_delay,
        reconnect_max_delay=settings.reconnect_max_delay,
    )


class PresenceHub:
    """
    The running hub.

    Lifetime: created at process start, started/stopped by the web app
    lifespan, discarded at exit.
    """

    def __init__(
        self,
        settings: Settings = None,
        transport: BaseTransport = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or Settings()
        self.state = ZoneStateStore(self.settings.zones, clock=clock)
        self.transport = transport or build_transport(self.settings)
        self.router = CommandRouter(self.transport, self.state)
        self.gateway = BroadcastGateway(self.router, self.state, send_timeout=self.settings.send_timeout)
        self.presence = PresenceEventHandler(self.state, self.router, self.gateway)
        self.dispatcher = MessageDispatcher(self.presence, self.gateway)

        self._remove_handler: Optional[Callable[[], None]] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @logger.instrument("Starting presence hub ({self.transport.name} transport)...")
    async def start(self):
        if self._running:
            return
        self._remove_handler = self.transport.on_message(self.dispatcher)
        await self.transport.start()
        self._running = True

    @logger.instrument("Stopping presence hub...")
    async def stop(self, timeout: float = None):
        """
        Orderly shutdown within a time budget.

        Stops inbound delivery, closes the transport, then closes every
        client connection. A step that overruns the remaining budget is
        abandoned and logged.
        """
        if not self._running:
            return
        self._running = False

        budget = timeout if timeout is not None else self.settings.shutdown_timeout
        deadline = time.monotonic() + budget

        self.transport.stop_accepting()
        if self._remove_handler:
            self._remove_handler()
            self._remove_handler = None

        await self._bounded("transport close", self.transport.stop(), deadline)
        await self._bounded("client close", self.gateway.close_all(), deadline)

        logger.info("Presence hub stopped")

    async def _bounded(self, label: str, step, deadline: float):
        remaining = max(0.0, deadline - time.monotonic())
        try:
            await asyncio.wait_for(step, timeout=remaining)
        except asyncio.TimeoutError:
            logger.error(f"Shutdown step '{label}' exceeded the time budget, abandoned")
