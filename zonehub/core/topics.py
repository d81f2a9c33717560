"""
Topic parsing and payload decoding.

Topic strings are decoded once at the transport boundary into a
`Topic` value; everything downstream dispatches on `TopicKind`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from zonehub.errors import DecodeError

PRESENCE_PREFIX = "presence/"
MUSIC_CONTROL_TOPIC = "music/control"
MUSIC_PLAYLIST_TOPIC = "music/playlist"

# Subscriptions the hub needs on the broker
SUBSCRIPTIONS = (
    f"{PRESENCE_PREFIX}+",
    MUSIC_CONTROL_TOPIC,
    MUSIC_PLAYLIST_TOPIC,
)


class TopicKind(str, Enum):
    """Recognized topic families."""
    PRESENCE = "presence"
    MUSIC_CONTROL = "music_control"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class Topic:
    """A recognized topic. zone_id is only set for presence topics."""

    kind: TopicKind
    name: str
    zone_id: Optional[str] = None


@dataclass(frozen=True)
class InboundMessage:
    """A decoded message as handed from the transport to the dispatcher."""

    topic: Topic
    data: dict[str, Any]


def presence_topic(zone_id: str) -> str:
    return f"{PRESENCE_PREFIX}{zone_id}"


def parse_topic(name: str) -> Optional[Topic]:
    """
    Classify a topic string.

    Returns None for topics the hub does not handle. Presence topics must
    have exactly one non-empty level after the prefix.
    """
    if name == MUSIC_CONTROL_TOPIC:
        return Topic(kind=TopicKind.MUSIC_CONTROL, name=name)
    if name == MUSIC_PLAYLIST_TOPIC:
        return Topic(kind=TopicKind.PLAYLIST, name=name)
    if name.startswith(PRESENCE_PREFIX):
        zone_id = name[len(PRESENCE_PREFIX):]
        if zone_id and "/" not in zone_id:
            return Topic(kind=TopicKind.PRESENCE, name=name, zone_id=zone_id)
    return None


def decode_payload(raw: bytes | bytearray | str, topic: str = None) -> dict[str, Any]:
    """
    Decode a raw payload into a JSON object.

    Raises:
        DecodeError: If the payload is not UTF-8, not JSON, or not a JSON object
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Payload is not valid UTF-8: {e}", topic=topic) from e

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise DecodeError(f"Payload is not valid JSON: {e}", topic=topic) from e

    if not isinstance(data, dict):
        raise DecodeError(f"Payload must be a JSON object, got {type(data).__name__}", topic=topic)

    return data


def decode_message(topic_name: str, raw: bytes | bytearray | str) -> Optional[InboundMessage]:
    """
    Decode topic and payload together.

    Returns None when the topic is not one the hub handles.

    Raises:
        DecodeError: If the topic is recognized but the payload is malformed
    """
    topic = parse_topic(topic_name)
    if topic is None:
        return None
    return InboundMessage(topic=topic, data=decode_payload(raw, topic=topic_name))


def encode_payload(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"))
