"""
Automation rules: zone occupancy -> music command.
"""

from __future__ import annotations

from zonehub.core.models import MusicAction, MusicCommand, ZoneState


def derive_command(state: ZoneState) -> MusicCommand:
    """
    Derive the music command for a zone snapshot.

    Music plays only when the zone is marked present AND at least one
    person is listed; everything else stops it. Play commands carry the
    people list so downstream players can personalize.
    """
    if state.present and state.people:
        return MusicCommand(
            zone=state.zone_id,
            action=MusicAction.PLAY.value,
            people=tuple(state.people),
        )
    return MusicCommand(zone=state.zone_id, action=MusicAction.STOP.value)
