"""
zonehub core - zone state, topic decoding, automation rules and command routing.
"""

from zonehub.core.models import (
    MusicAction,
    MusicCommand,
    PlaylistUpdate,
    PresenceEvent,
    ZoneState,
)
from zonehub.core.state import ZoneStateStore
from zonehub.core.rules import derive_command
from zonehub.core.router import CommandRouter
from zonehub.core.handler import PresenceEventHandler, MessageDispatcher

__all__ = [
    "MusicAction",
    "MusicCommand",
    "PlaylistUpdate",
    "PresenceEvent",
    "ZoneState",
    "ZoneStateStore",
    "derive_command",
    "CommandRouter",
    "PresenceEventHandler",
    "MessageDispatcher",
]
