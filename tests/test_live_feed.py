"""
Unit tests — Live roster feed (live_feed.py).

Coverage:
  - Full snapshot delivery with increasing versions
  - Unsubscribe
  - A failing subscriber does not starve the others
  - LiveRoster drops stale snapshots and derives views
"""
from __future__ import annotations

from symposium.services.live_feed import LiveRoster, RegistrationFeed
from symposium.services.roster_service import RosterFilter, SortSpec


def _rec(rid: int, event1: str = "Tech Quiz", fee_paid: bool = False) -> dict:
    return {"id": rid, "name": f"P{rid}", "roll_number": f"R{rid}", "event1": event1,
            "event2": None, "fee_paid": fee_paid, "department": "BCA", "year": "1st Year"}


class TestRegistrationFeed:
    async def test_subscribers_receive_full_snapshot(self) -> None:
        feed = RegistrationFeed()
        received = []

        async def on_snapshot(version, snapshot):
            received.append((version, snapshot))

        feed.subscribe(on_snapshot)
        await feed.publish([_rec(1)])
        await feed.publish([_rec(1), _rec(2)])

        assert [v for v, _ in received] == [1, 2]
        assert len(received[-1][1]) == 2
        assert feed.version == 2

    async def test_unsubscribe_stops_delivery(self) -> None:
        feed = RegistrationFeed()
        received = []

        async def on_snapshot(version, snapshot):
            received.append(version)

        unsubscribe = feed.subscribe(on_snapshot)
        await feed.publish([])
        unsubscribe()
        unsubscribe()  # second call is harmless
        await feed.publish([])
        assert received == [1]

    async def test_failing_subscriber_is_skipped(self) -> None:
        feed = RegistrationFeed()
        received = []

        async def broken(version, snapshot):
            raise RuntimeError("dashboard went away")

        async def healthy(version, snapshot):
            received.append(version)

        feed.subscribe(broken)
        feed.subscribe(healthy)
        assert await feed.publish([_rec(1)]) == 1
        assert received == [1]

    async def test_snapshot_is_immutable_copy(self) -> None:
        feed = RegistrationFeed()
        records = [_rec(1)]
        await feed.publish(records)
        records.append(_rec(2))
        assert len(feed.snapshot) == 1


class TestLiveRoster:
    async def test_replaces_view_wholesale(self) -> None:
        feed = RegistrationFeed()
        live = LiveRoster(fee=50)
        feed.subscribe(live)

        await feed.publish([_rec(1), _rec(2, fee_paid=True)])
        await feed.publish([_rec(2, fee_paid=True)])

        assert live.version == 2
        assert [r["id"] for r in live.records] == [2]
        assert live.stats().collected_revenue == 50

    async def test_stale_snapshot_ignored(self) -> None:
        live = LiveRoster()
        await live(3, (_rec(1), _rec(2)))
        await live(2, (_rec(9),))
        assert live.version == 3
        assert [r["id"] for r in live.records] == [1, 2]

    async def test_view_applies_filter_and_sort(self) -> None:
        live = LiveRoster()
        await live(1, (_rec(1), _rec(2, event1="Design Duel"), _rec(3)))
        view = live.view(RosterFilter(event="Tech Quiz"), SortSpec("name", "desc"))
        assert [r["id"] for r in view] == [3, 1]
