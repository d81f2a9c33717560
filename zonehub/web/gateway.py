"""
Realtime Broadcast Gateway

Tracks connected realtime clients and their zone group memberships and
fans zone-scoped updates out to group members only.

Client events:
- join-zone(zoneId) / leave-zone(zoneId)
- music-control(payload) and playlist-update(payload), forwarded to the CommandRouter

Server events:
- mqtt-message {topic, data} to every connection
- presence-update, music-control, playlist-update to the zone group
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Optional, TYPE_CHECKING

from zonehub.errors import HubError, InternalError, UnknownZoneError, ValidationError
from zonehub.obs import logger

if TYPE_CHECKING:
    from fastapi import WebSocket

    from zonehub.core.router import CommandRouter
    from zonehub.core.state import ZoneStateStore


class Subscriber:
    """
    A connected realtime client.

    Sends are serialized per client. For zone updates that carry a
    revision, anything older than what the client already received for
    that zone is dropped instead of sent.
    """

    def __init__(self, subscriber_id: str = None):
        self.id = subscriber_id or uuid.uuid4().hex[:12]
        self.zones: set[str] = set()
        self.closed = False
        self._send_lock = asyncio.Lock()
        self._last_revision: dict[str, int] = {}

    async def _send(self, message: dict):
        raise NotImplementedError

    async def _close(self, code: int):
        pass

    async def send(self, event: str, data: Any, zone_id: str = None, revision: int = None) -> bool:
        """
        Send one event frame.

        Returns:
            False if the client is closed or the update is stale
        """
        async with self._send_lock:
            if self.closed:
                return False
            if zone_id is not None and revision is not None:
                if revision < self._last_revision.get(zone_id, 0):
                    logger.debug(f"Skipped stale {event} rev {revision} for {self.id} in {zone_id}")
                    return False
                self._last_revision[zone_id] = revision
            await self._send({"event": event, "data": data})
            return True

    async def close(self, code: int = 1001):
        if self.closed:
            return
        self.closed = True
        await self._close(code)


class WebSocketSubscriber(Subscriber):
    """Subscriber backed by a FastAPI WebSocket, JSON frames {event, data}."""

    def __init__(self, websocket: WebSocket, subscriber_id: str = None):
        super().__init__(subscriber_id)
        self.websocket = websocket

    async def _send(self, message: dict):
        await self.websocket.send_json(message)

    async def _close(self, code: int):
        try:
            await self.websocket.close(code=code)
        except RuntimeError:
            # Already closed by the client
            pass


class BroadcastGateway:
    """Zone-grouped fan-out to realtime clients."""

    def __init__(self, router: CommandRouter, state_store: ZoneStateStore = None, send_timeout: float = 5.0):
        """
        Args:
            router: Where client control requests are forwarded
            state_store: When given, joins to unconfigured zones are rejected
            send_timeout: Seconds a client may take to accept one frame before it is dropped
        """
        self.router = router
        self.state = state_store
        self.send_timeout = send_timeout
        self._closing: set[asyncio.Task] = set()
        self._subscribers: dict[str, Subscriber] = {}
        self._groups: dict[str, set[str]] = {}

    # --- Membership ---

    @property
    def subscribers(self) -> list[Subscriber]:
        return list(self._subscribers.values())

    def get(self, subscriber_id: str) -> Optional[Subscriber]:
        return self._subscribers.get(subscriber_id)

    def connect(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers[subscriber.id] = subscriber
        logger.info(f"Client connected: {subscriber.id}")
        return subscriber

    async def disconnect(self, subscriber_id: str):
        """Remove a client from every group. No further deliveries are attempted."""
        subscriber = self._subscribers.pop(subscriber_id, None)
        if subscriber is None:
            return

        for zone_id in list(subscriber.zones):
            self._remove_member(zone_id, subscriber_id)
        subscriber.zones.clear()
        subscriber.closed = True
        logger.info(f"Client disconnected: {subscriber_id}")

    def join(self, subscriber_id: str, zone_id: str) -> bool:
        """
        Add a client to a zone group. Joining twice has no further effect.

        Returns:
            True if the client was newly added

        Raises:
            ValidationError: If zone_id is not a non-empty string
            UnknownZoneError: If the zone is not configured
        """
        if not isinstance(zone_id, str) or not zone_id:
            raise ValidationError("Zone is required", fields=["zone"])
        if self.state is not None and not self.state.is_known(zone_id):
            raise UnknownZoneError(zone_id)

        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return False

        members = self._groups.setdefault(zone_id, set())
        if subscriber_id in members:
            return False

        members.add(subscriber_id)
        subscriber.zones.add(zone_id)
        logger.info(f"Client {subscriber_id} joined zone {zone_id}")
        return True

    def leave(self, subscriber_id: str, zone_id: str) -> bool:
        """Remove a client from a zone group. Leaving a group you are not in is a no-op."""
        if not isinstance(zone_id, str) or not zone_id:
            raise ValidationError("Zone is required", fields=["zone"])

        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None or zone_id not in subscriber.zones:
            return False

        subscriber.zones.discard(zone_id)
        self._remove_member(zone_id, subscriber_id)
        logger.info(f"Client {subscriber_id} left zone {zone_id}")
        return True

    def _remove_member(self, zone_id: str, subscriber_id: str):
        members = self._groups.get(zone_id)
        if members is None:
            return
        members.discard(subscriber_id)
        if not members:
            del self._groups[zone_id]

    def members(self, zone_id: str) -> set[str]:
        return set(self._groups.get(zone_id, ()))

    # --- Fan-out ---

    async def _deliver(self, subscriber: Subscriber, event: str, data: Any, zone_id: str = None, revision: int = None) -> bool:
        try:
            return await asyncio.wait_for(
                subscriber.send(event, data, zone_id=zone_id, revision=revision),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Client {subscriber.id} did not accept {event} within {self.send_timeout}s, dropping client")
            await self.disconnect(subscriber.id)
            self._close_later(subscriber, code=1008)
            return False
        except Exception as e:
            logger.warning(f"Send to {subscriber.id} failed, dropping client: {e}")
            await self.disconnect(subscriber.id)
            return False

    def _close_later(self, subscriber: Subscriber, code: int):
        """Close a stalled client in the background so fan-out is not held up by it."""

        async def close():
            try:
                await asyncio.wait_for(subscriber._close(code), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Gave up closing stalled client {subscriber.id}")
            except Exception as e:
                logger.warning(f"Error closing client {subscriber.id}: {e}")

        task = asyncio.create_task(close())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def broadcast_zone(self, zone_id: str, event: str, data: Any, revision: int = None) -> int:
        """
        Send an event to exactly the members of a zone group.

        Returns:
            Number of clients the event was delivered to
        """
        targets = [self._subscribers[sid] for sid in self.members(zone_id) if sid in self._subscribers]
        if not targets:
            return 0

        results = await asyncio.gather(*(
            self._deliver(subscriber, event, data, zone_id=zone_id, revision=revision)
            for subscriber in targets
        ))
        return sum(1 for delivered in results if delivered)

    async def broadcast_all(self, event: str, data: Any) -> int:
        """Send an event to every connected client."""
        targets = self.subscribers
        if not targets:
            return 0

        results = await asyncio.gather(*(self._deliver(subscriber, event, data) for subscriber in targets))
        return sum(1 for delivered in results if delivered)

    # --- Client requests ---

    async def handle_client_event(self, subscriber_id: str, event: Any, data: Any):
        """
        Process one event received from a client.

        Rejections are reported back to that client as an 'error' event;
        they never affect other clients or close the connection.
        """
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return

        try:
            if event == "join-zone":
                self.join(subscriber_id, data)
                await self._deliver(subscriber, "joined-zone", {"zone": data})
            elif event == "leave-zone":
                self.leave(subscriber_id, data)
                await self._deliver(subscriber, "left-zone", {"zone": data})
            elif event == "music-control":
                await self.router.send_from_payload(data)
            elif event == "playlist-update":
                await self.router.send_playlist_from_payload(data)
            else:
                raise ValidationError(f"Unknown event '{event}'", fields=["event"])
        except HubError as e:
            logger.warning(f"Rejected {event} from {subscriber_id}: {e}")
            await self._deliver(subscriber, "error", {"event": event, "error": str(e)})
        except Exception:
            logger.exception(f"Error handling {event} from {subscriber_id}")
            error = InternalError("Internal server error")
            await self._deliver(subscriber, "error", {"event": event, "error": str(error)})

    async def close_all(self, code: int = 1001):
        """Close every client connection and forget all groups."""
        subscribers = self.subscribers
        for subscriber in subscribers:
            await self.disconnect(subscriber.id)

        results = await asyncio.gather(
            *(subscriber._close(code) for subscriber in subscribers),
            return_exceptions=True,
        )
        for subscriber, result in zip(subscribers, results):
            if isinstance(result, Exception):
                logger.warning(f"Error closing client {subscriber.id}: {result}")
        logger.info(f"Closed {len(subscribers)} client connection(s)")
