"""Tests for the automation rule engine."""

from zonehub.core.models import MusicAction, ZoneState
from zonehub.core.rules import derive_command


def test_present_with_people_plays():
    command = derive_command(ZoneState(zone_id="zone1", present=True, people=("alice",)))

    assert command.action == MusicAction.PLAY.value
    assert command.zone == "zone1"
    assert command.people == ("alice",)


def test_absent_stops():
    command = derive_command(ZoneState(zone_id="zone1", present=False, people=()))

    assert command.action == MusicAction.STOP.value
    assert command.people is None


def test_present_without_people_stops():
    """Play needs at least one person, not just the present flag."""
    command = derive_command(ZoneState(zone_id="zone2", present=True, people=()))

    assert command.action == "stop"


def test_absent_with_stale_people_stops():
    command = derive_command(ZoneState(zone_id="zone2", present=False, people=("alice",)))

    assert command.action == "stop"


def test_pure():
    """Same input, same output, input untouched."""
    state = ZoneState(zone_id="zone3", present=True, people=("alice", "bob"))

    first = derive_command(state)
    second = derive_command(state)

    assert first == second
    assert state.people == ("alice", "bob")


def test_payloads():
    play = derive_command(ZoneState(zone_id="zone1", present=True, people=("alice",)))
    stop = derive_command(ZoneState(zone_id="zone1"))

    assert play.to_payload() == {"zone": "zone1", "action": "play", "people": ["alice"]}
    assert stop.to_payload() == {"zone": "zone1", "action": "stop"}
