"""
Live roster feed.

Observers subscribe to the registration collection and receive the FULL
current snapshot after every change, never a diff. Each delivery carries a
monotonically increasing version; a consumer replaces its local view
wholesale and drops anything older than what it already holds.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from symposium.services.roster_service import (
    RosterFilter,
    RosterStats,
    SortSpec,
    aggregate,
    query_roster,
)

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[int, Tuple[Any, ...]], Awaitable[None]]


class RegistrationFeed:
    """Versioned collection observer (push, full snapshot per change)."""

    def __init__(self) -> None:
        self._version = 0
        self._snapshot: Tuple[Any, ...] = ()
        self._subscribers: List[SnapshotCallback] = []

    @property
    def version(self) -> int:
        return self._version

    @property
    def snapshot(self) -> Tuple[Any, ...]:
        return self._snapshot

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, records: Sequence[Any]) -> int:
        """
        Replace the current snapshot and deliver it to every subscriber.
        A failing subscriber is logged and skipped; the others still receive it.
        """
        self._version += 1
        self._snapshot = tuple(records)
        version, snapshot = self._version, self._snapshot

        for callback in list(self._subscribers):
            try:
                await callback(version, snapshot)
            except Exception:
                logger.exception("Roster subscriber failed on snapshot v%d", version)
        return version


class LiveRoster:
    """
    Dashboard-side consumer: keeps the latest snapshot and derives views
    from it on demand. Subscribe an instance directly to a feed.
    """

    def __init__(self, fee: Optional[int] = None) -> None:
        self._fee = fee
        self.version = 0
        self.records: Tuple[Any, ...] = ()

    async def __call__(self, version: int, snapshot: Tuple[Any, ...]) -> None:
        if version <= self.version:
            logger.debug("Ignoring stale snapshot v%d (holding v%d)", version, self.version)
            return
        # One assignment: readers never see half of an update
        self.version, self.records = version, snapshot

    def view(
        self,
        spec: Optional[RosterFilter] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Any]:
        return query_roster(self.records, spec, sort)

    def stats(self) -> RosterStats:
        return aggregate(self.records, self._fee)
