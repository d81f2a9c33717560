"""
Transport Adapter contract.

Backends own the broker connection; this base owns handler registration,
inbound decoding and delivery so every backend decodes the same way.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from zonehub.core.topics import InboundMessage, SUBSCRIPTIONS, decode_message
from zonehub.errors import DecodeError
from zonehub.obs import logger

MessageHandler = Callable[[InboundMessage], Awaitable[None]]
DecodeErrorHandler = Callable[[DecodeError], None]


def topic_matches(pattern: str, topic: str) -> bool:
    """MQTT wildcard match ('+' one level, '#' remaining levels)."""
    pattern_levels = pattern.split("/")
    topic_levels = topic.split("/")

    for index, level in enumerate(pattern_levels):
        if level == "#":
            return True
        if index >= len(topic_levels):
            return False
        if level != "+" and level != topic_levels[index]:
            return False

    return len(pattern_levels) == len(topic_levels)


class BaseTransport:
    """
    Publish/subscribe transport.

    Inbound messages are decoded once, then handed to every registered
    handler in arrival order. A handler is awaited before the next
    message is delivered, which keeps per-topic ordering intact.
    """

    name = "base"

    def __init__(self, subscriptions: tuple[str, ...] = SUBSCRIPTIONS):
        self._subscriptions: list[str] = list(subscriptions)
        self._handlers: list[MessageHandler] = []
        self._decode_error_handlers: list[DecodeErrorHandler] = []
        self._accepting = True

    @property
    def connected(self) -> bool:
        raise NotImplementedError

    @property
    def subscriptions(self) -> list[str]:
        return list(self._subscriptions)

    def on_message(self, handler: MessageHandler) -> Callable[[], None]:
        """
        Register an inbound message handler.

        Returns:
            Callable that unregisters the handler
        """
        self._handlers.append(handler)

        def remove():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return remove

    def on_decode_error(self, handler: DecodeErrorHandler) -> Callable[[], None]:
        """Register a callback for payloads dropped as undecodable."""
        self._decode_error_handlers.append(handler)

        def remove():
            if handler in self._decode_error_handlers:
                self._decode_error_handlers.remove(handler)

        return remove

    async def subscribe(self, pattern: str):
        if pattern not in self._subscriptions:
            self._subscriptions.append(pattern)

    async def publish(self, topic: str, payload: dict[str, Any]) -> bool:
        """Fire-and-forget publish. Returns False if the message was not handed to the broker."""
        raise NotImplementedError

    async def start(self):
        raise NotImplementedError

    async def stop(self):
        raise NotImplementedError

    def stop_accepting(self):
        """Drop any further inbound messages (first step of shutdown)."""
        self._accepting = False

    async def _deliver(self, topic_name: str, raw: Any):
        """Decode one inbound message and run it through every handler."""
        if not self._accepting:
            logger.debug(f"Transport closing, dropped message on {topic_name}")
            return

        try:
            message = decode_message(topic_name, raw)
        except DecodeError as e:
            logger.warning(f"Dropped malformed message on {topic_name}: {e}")
            for callback in list(self._decode_error_handlers):
                try:
                    callback(e)
                except Exception:
                    logger.exception("Decode error callback failed")
            return

        if message is None:
            logger.debug(f"Ignoring message on unhandled topic {topic_name}")
            return

        logger.debug(f"Message received on {topic_name}: {message.data}")

        for handler in list(self._handlers):
            try:
                await handler(message)
            except Exception:
                logger.exception(f"Error processing message on {topic_name}")
