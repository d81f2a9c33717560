"""
Zone State Store

Holds the current occupancy snapshot for each configured zone.

Concurrency: one coarse lock guards the snapshot map. Snapshots are
immutable, so an update is a single swap under the lock and readers
always see either the previous or the next snapshot, never a mix.
The lock is a threading.Lock so the store is safe from worker threads
as well as from the event loop; critical sections never await.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

from zonehub.core.models import ZoneState
from zonehub.errors import UnknownZoneError, ValidationError
from zonehub.obs import logger


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ZoneStateStore:
    """
    Single source of truth for zone occupancy.

    The zone set is fixed at construction; events cannot create zones.
    """

    def __init__(self, zone_ids: Iterable[str], clock: Callable[[], datetime] = utc_now):
        zone_ids = list(zone_ids)
        if not zone_ids:
            raise ValidationError("At least one zone must be configured", fields=["zones"])
        if len(set(zone_ids)) != len(zone_ids):
            raise ValidationError(f"Duplicate zone ids in {zone_ids}", fields=["zones"])

        self._clock = clock
        self._lock = threading.Lock()
        self._zones: dict[str, ZoneState] = {
            zone_id: ZoneState(zone_id=zone_id) for zone_id in zone_ids
        }
        logger.info(f"Zone store initialized with zones: {', '.join(zone_ids)}")

    @property
    def zone_ids(self) -> list[str]:
        return list(self._zones)

    def is_known(self, zone_id: str) -> bool:
        return zone_id in self._zones

    def get(self, zone_id: str) -> Optional[ZoneState]:
        """Get the current snapshot for a zone, or None if the zone is not configured."""
        with self._lock:
            return self._zones.get(zone_id)

    def update(
        self,
        zone_id: str,
        present: bool,
        people: Sequence[str],
        source: str = None,
    ) -> ZoneState:
        """
        Replace a zone's occupancy and stamp lastUpdate, as one atomic step.

        Returns:
            The new snapshot

        Raises:
            UnknownZoneError: If zone_id is not configured
        """
        with self._lock:
            current = self._zones.get(zone_id)
            if current is None:
                raise UnknownZoneError(zone_id)

            state = ZoneState(
                zone_id=zone_id,
                present=bool(present),
                people=tuple(people),
                last_update=self._clock(),
                source=source,
                revision=current.revision + 1,
            )
            self._zones[zone_id] = state

        logger.debug(f"Zone {zone_id} updated: present={state.present} people={list(state.people)} rev={state.revision}")
        return state

    def list_all(self) -> dict[str, ZoneState]:
        """Consistent copy of every zone's snapshot."""
        with self._lock:
            return dict(self._zones)

    def to_dict(self) -> dict[str, dict]:
        return {zone_id: state.to_dict() for zone_id, state in self.list_all().items()}
