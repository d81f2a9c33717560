"""
Inbound message handling.

PresenceEventHandler applies presence events to the store and triggers
the derived automation; MessageDispatcher routes every decoded
transport message to the right place by topic kind.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Protocol, TYPE_CHECKING

from zonehub.core.models import PresenceEvent, ZoneState
from zonehub.core.rules import derive_command
from zonehub.core.topics import InboundMessage, Topic, TopicKind, parse_topic
from zonehub.errors import HubError, UnknownZoneError
from zonehub.obs import logger

if TYPE_CHECKING:
    from zonehub.core.router import CommandRouter
    from zonehub.core.state import ZoneStateStore


class Broadcaster(Protocol):
    """What the handlers need from the realtime gateway."""

    async def broadcast_all(self, event: str, data: Any): ...

    async def broadcast_zone(self, zone_id: str, event: str, data: Any, revision: int = None): ...


class PresenceEventHandler:
    """
    Applies presence events.

    Per zone, update -> derive -> publish -> broadcast runs under one
    asyncio lock so a newer event can never overtake an older one
    part-way through. Different zones proceed independently.
    """

    def __init__(self, state_store: ZoneStateStore, router: CommandRouter, gateway: Broadcaster = None):
        self.state = state_store
        self.router = router
        self.gateway = gateway
        self._zone_locks: dict[str, asyncio.Lock] = {}

    def set_gateway(self, gateway: Broadcaster):
        """Set the broadcast gateway (for deferred initialization)."""
        self.gateway = gateway

    def _lock_for(self, zone_id: str) -> asyncio.Lock:
        lock = self._zone_locks.get(zone_id)
        if lock is None:
            lock = self._zone_locks[zone_id] = asyncio.Lock()
        return lock

    async def handle(self, topic: Topic | str, data: dict) -> Optional[ZoneState]:
        """
        Handle a decoded presence payload.

        Unrecognized topics, unknown zones and invalid payloads are logged
        and dropped.

        Returns:
            The new zone snapshot, or None if the event was dropped
        """
        if isinstance(topic, str):
            topic = parse_topic(topic)
        if topic is None or topic.kind is not TopicKind.PRESENCE:
            logger.warning(f"Not a presence topic: {topic}")
            return None

        zone_id = topic.zone_id
        if not self.state.is_known(zone_id):
            logger.warning(f"Dropped presence event for unknown zone '{zone_id}'")
            return None

        try:
            event = PresenceEvent.from_payload(zone_id, data)
        except ValueError as e:
            logger.warning(f"Dropped invalid presence event for zone {zone_id}: {e}")
            return None

        async with self._lock_for(zone_id):
            try:
                state = self.state.update(zone_id, event.present, event.people, source=event.device_id)
            except UnknownZoneError as e:
                logger.warning(f"Dropped presence event: {e}")
                return None

            logger.info(f"Presence update for zone {zone_id}: present={state.present} people={list(state.people)}")

            command = derive_command(state)
            try:
                await self.router.send_command(command)
            except HubError as e:
                logger.error(f"Failed to send derived command for zone {zone_id}: {e}")
            else:
                verb = "Starting" if command.action == "play" else "Stopping"
                logger.info(f"{verb} music for zone {zone_id}")

            if self.gateway:
                await self.gateway.broadcast_zone(
                    zone_id,
                    "presence-update",
                    {"zone": zone_id, "data": state.to_dict()},
                    revision=state.revision,
                )

        return state


class MessageDispatcher:
    """Transport message handler: global fan-out plus per-topic routing."""

    def __init__(self, presence_handler: PresenceEventHandler, gateway: Broadcaster = None):
        self.presence = presence_handler
        self.gateway = gateway

    def set_gateway(self, gateway: Broadcaster):
        self.gateway = gateway
        self.presence.set_gateway(gateway)

    async def __call__(self, message: InboundMessage):
        topic = message.topic
        data = message.data

        if self.gateway:
            await self.gateway.broadcast_all("mqtt-message", {"topic": topic.name, "data": data})

        if topic.kind is TopicKind.PRESENCE:
            await self.presence.handle(topic, data)
        elif topic.kind is TopicKind.MUSIC_CONTROL:
            await self._music_control(data)
        elif topic.kind is TopicKind.PLAYLIST:
            await self._playlist(data)

    def _zone_of(self, data: dict, topic: str) -> Optional[str]:
        zone = data.get("zone")
        if not isinstance(zone, str) or not zone:
            logger.warning(f"Message on {topic} has no zone, not forwarded: {data}")
            return None
        return zone

    async def _music_control(self, data: dict):
        zone = self._zone_of(data, "music/control")
        if zone is None or not self.gateway:
            return
        await self.gateway.broadcast_zone(zone, "music-control", {
            "action": data.get("action"),
            "track": data.get("track"),
            "volume": data.get("volume"),
        })
        logger.info(f"Music control for zone {zone}: {data.get('action')}")

    async def _playlist(self, data: dict):
        zone = self._zone_of(data, "music/playlist")
        if zone is None or not self.gateway:
            return
        await self.gateway.broadcast_zone(zone, "playlist-update", {
            "zone": zone,
            "playlist": data.get("playlist"),
        })
        logger.info(f"Playlist updated for zone {zone}")
