"""
zonehub data model

Zone snapshots, presence events and the ephemeral commands derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class MusicAction(str, Enum):
    """Actions the automation engine derives from zone state."""
    PLAY = "play"
    STOP = "stop"


@dataclass(frozen=True)
class ZoneState:
    """
    Occupancy snapshot for one zone.

    Snapshots are immutable; the store swaps in a new instance on every
    update so readers never observe a half-applied event.
    """

    zone_id: str
    present: bool = False
    people: tuple[str, ...] = ()
    last_update: Optional[datetime] = None
    source: Optional[str] = None  # deviceId of the last reporting sensor
    revision: int = 0

    def to_dict(self) -> dict:
        return {
            "present": self.present,
            "people": list(self.people),
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
            "source": self.source,
            "revision": self.revision,
        }


@dataclass(frozen=True)
class PresenceEvent:
    """Presence assertion received from a sensor for one zone."""

    zone_id: str
    present: bool
    people: tuple[str, ...] = ()
    device_id: Optional[str] = None
    timestamp: Optional[str] = None  # sensor-side timestamp, informational only

    @classmethod
    def from_payload(cls, zone_id: str, data: dict) -> PresenceEvent:
        """
        Build an event from a decoded presence payload.

        Raises:
            ValueError: If present is not a boolean or people is not a list of strings
        """
        present = data.get("present")
        if not isinstance(present, bool):
            raise ValueError(f"'present' must be a boolean, got {type(present).__name__}")

        people = data.get("people")
        if people is None:
            people = []
        if not isinstance(people, list) or not all(isinstance(p, str) for p in people):
            raise ValueError("'people' must be a list of strings")

        device_id = data.get("deviceId")
        timestamp = data.get("timestamp")

        return cls(
            zone_id=zone_id,
            present=present,
            people=tuple(people),
            device_id=device_id if isinstance(device_id, str) else None,
            timestamp=timestamp if isinstance(timestamp, str) else None,
        )


@dataclass(frozen=True)
class MusicCommand:
    """Music playback command for a zone. Published, never stored."""

    zone: str
    action: str
    track: Optional[str] = None
    volume: Optional[float] = None
    people: Optional[tuple[str, ...]] = None

    def to_payload(self) -> dict:
        """Wire payload for the control topic; absent fields are omitted."""
        payload: dict[str, Any] = {"zone": self.zone, "action": self.action}
        if self.track is not None:
            payload["track"] = self.track
        if self.volume is not None:
            payload["volume"] = self.volume
        if self.people is not None:
            payload["people"] = list(self.people)
        return payload


@dataclass(frozen=True)
class PlaylistUpdate:
    """Playlist replacement for a zone. The playlist is passed through verbatim."""

    zone: str
    playlist: Any = field(default=None)

    def to_payload(self) -> dict:
        return {"zone": self.zone, "playlist": self.playlist}
