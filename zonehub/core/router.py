"""
Command Router

The only path onto the control and playlist topics. Automation-derived
commands, HTTP requests and WebSocket clients all go through the same
validation before anything is published.
"""

from __future__ import annotations

from typing import Any, Optional, TYPE_CHECKING

from zonehub.core.models import MusicCommand, PlaylistUpdate
from zonehub.core.topics import MUSIC_CONTROL_TOPIC, MUSIC_PLAYLIST_TOPIC
from zonehub.errors import UnknownZoneError, ValidationError
from zonehub.obs import logger

if TYPE_CHECKING:
    from zonehub.core.state import ZoneStateStore
    from zonehub.transport.base import BaseTransport


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _required_message(fields: list[str]) -> str:
    """'Zone and action are required' / 'Action is required'."""
    text = " and ".join(fields)
    verb = "are" if len(fields) > 1 else "is"
    return f"{text[0].upper()}{text[1:]} {verb} required"


class CommandRouter:
    """Validates control requests and republishes them on the transport."""

    def __init__(self, transport: BaseTransport, state_store: ZoneStateStore = None):
        """
        Args:
            transport: Transport used for publishing
            state_store: When given, requests naming unconfigured zones are rejected
        """
        self.transport = transport
        self.state = state_store

    def _check_zone(self, zone: Any):
        if not isinstance(zone, str):
            raise ValidationError("Zone must be a string", fields=["zone"])
        if self.state is not None and not self.state.is_known(zone):
            raise UnknownZoneError(zone)

    def build_music_control(
        self,
        zone: Any,
        action: Any,
        track: Any = None,
        volume: Any = None,
        people: Any = None,
    ) -> MusicCommand:
        """
        Validate a music control request.

        Raises:
            ValidationError: If zone or action is missing, or a field has the wrong type
            UnknownZoneError: If the zone is not configured
        """
        missing = [name for name, value in (("zone", zone), ("action", action)) if _is_missing(value)]
        if missing:
            raise ValidationError(_required_message(missing), fields=missing)

        self._check_zone(zone)

        if not isinstance(action, str):
            raise ValidationError("Action must be a string", fields=["action"])
        if track is not None and not isinstance(track, str):
            raise ValidationError("Track must be a string", fields=["track"])
        if volume is not None:
            if isinstance(volume, bool) or not isinstance(volume, (int, float)):
                raise ValidationError("Volume must be a number", fields=["volume"])
            if not 0 <= volume <= 100:
                raise ValidationError("Volume must be between 0 and 100", fields=["volume"])
        if people is not None:
            if not isinstance(people, (list, tuple)) or not all(isinstance(p, str) for p in people):
                raise ValidationError("People must be a list of strings", fields=["people"])
            people = tuple(people)

        return MusicCommand(zone=zone, action=action, track=track, volume=volume, people=people)

    async def send_music_control(
        self,
        zone: Any,
        action: Any,
        track: Any = None,
        volume: Any = None,
        people: Any = None,
    ) -> MusicCommand:
        """
        Validate and publish a music control command on the control topic.

        Nothing is published when validation fails.

        Returns:
            The published command
        """
        command = self.build_music_control(zone, action, track=track, volume=volume, people=people)
        await self.transport.publish(MUSIC_CONTROL_TOPIC, command.to_payload())
        logger.info(f"Music control for zone {command.zone}: {command.action}")
        return command

    async def send_command(self, command: MusicCommand) -> MusicCommand:
        """Publish an already-built command through the same validation as external requests."""
        return await self.send_music_control(
            command.zone,
            command.action,
            track=command.track,
            volume=command.volume,
            people=command.people,
        )

    async def send_playlist_update(self, zone: Any, playlist: Any) -> PlaylistUpdate:
        """
        Validate and publish a playlist update on the playlist topic.

        The playlist structure is published verbatim.

        Raises:
            ValidationError: If zone or playlist is missing
            UnknownZoneError: If the zone is not configured
        """
        missing = [name for name, value in (("zone", zone), ("playlist", playlist)) if _is_missing(value)]
        if missing:
            raise ValidationError(_required_message(missing), fields=missing)

        self._check_zone(zone)

        update = PlaylistUpdate(zone=zone, playlist=playlist)
        await self.transport.publish(MUSIC_PLAYLIST_TOPIC, update.to_payload())
        logger.info(f"Playlist update sent for zone {zone}")
        return update

    async def send_from_payload(self, data: Optional[dict]) -> MusicCommand:
        """Music control from a raw client payload ({zone, action, track?, volume?})."""
        if not isinstance(data, dict):
            raise ValidationError("Music control payload must be an object", fields=["zone", "action"])
        return await self.send_music_control(
            data.get("zone"),
            data.get("action"),
            track=data.get("track"),
            volume=data.get("volume"),
        )

    async def send_playlist_from_payload(self, data: Optional[dict]) -> PlaylistUpdate:
        """Playlist update from a raw client payload ({zone, playlist})."""
        if not isinstance(data, dict):
            raise ValidationError("Playlist payload must be an object", fields=["zone", "playlist"])
        return await self.send_playlist_update(data.get("zone"), data.get("playlist"))
