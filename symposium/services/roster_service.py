"""
Roster query engine for the admin dashboard.

Every function here is pure: it takes a snapshot of registrations (ORM
objects or plain mappings with the same keys) and derives a view from it
without touching the store. The dashboard re-runs them on every snapshot
delivered by the live feed.

Metrics computed
----------------
- Per-event fill counts (per slot: a two-event registrant counts twice)
- Department and year breakdowns
- Fee collection: paid / unpaid counts, collected / pending revenue, % collected
"""
from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from symposium.config import settings
from symposium.models.models import Department, EventName, Year

ALL = "all"

SORT_KEYS = (
    "name", "roll_number", "department", "year", "mobile_number",
    "event1", "event2", "fee_paid", "created_at",
)

CSV_HEADERS = [
    "Name", "Roll Number", "Department", "Year", "Mobile",
    "Event 1", "Event 2", "Team Member 2", "Fee Paid", "Registered At",
]


def _value(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _as_instant(value: Any) -> Any:
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


# ─────────────────────────── Filter ──────────────────────────────────────────

@dataclass(frozen=True)
class RosterFilter:
    """Dashboard filter bar. ``"all"`` disables a filter."""
    search_text: str = ""
    department:  str = ALL
    year:        str = ALL
    event:       str = ALL

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RosterFilter":
        data = data or {}
        return cls(
            search_text=data.get("search_text") or data.get("searchText") or "",
            department=data.get("department") or ALL,
            year=data.get("year") or ALL,
            event=data.get("event") or ALL,
        )

    def matches(self, record: Any) -> bool:
        term = self.search_text.strip().lower()
        if term:
            name = (_value(record, "name") or "").lower()
            roll = (_value(record, "roll_number") or "").lower()
            if term not in name and term not in roll:
                return False
        if self.department != ALL and _value(record, "department") != self.department:
            return False
        if self.year != ALL and _value(record, "year") != self.year:
            return False
        if self.event != ALL and self.event not in (
            _value(record, "event1"), _value(record, "event2")
        ):
            return False
        return True


def filter_records(records: Iterable[Any], spec: Optional[RosterFilter] = None) -> List[Any]:
    """Subset matching every active filter, in input order."""
    spec = spec or RosterFilter()
    return [r for r in records if spec.matches(r)]


# ─────────────────────────── Sort ────────────────────────────────────────────

@dataclass(frozen=True)
class SortSpec:
    key:       str = "created_at"
    direction: str = "desc"

    def __post_init__(self):
        if self.key not in SORT_KEYS:
            raise ValueError(f"Cannot sort by {self.key!r}")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {self.direction!r}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SortSpec":
        data = data or {}
        return cls(
            key=data.get("key") or "created_at",
            direction=data.get("direction") or "desc",
        )

    def toggle(self, key: str) -> "SortSpec":
        """Column header click: same key flips asc → desc, anything else starts at asc."""
        if key == self.key and self.direction == "asc":
            return replace(self, direction="desc")
        return SortSpec(key=key, direction="asc")


def sort_records(records: Iterable[Any], spec: Optional[SortSpec] = None) -> List[Any]:
    """
    Stable sort. Records without a value for the key always come last,
    whichever the direction.
    """
    spec = spec or SortSpec()
    present: List[Any] = []
    missing: List[Any] = []
    for r in records:
        v = _value(r, spec.key)
        (missing if v is None or v == "" else present).append(r)

    if spec.key == "created_at":
        key_fn = lambda r: _as_instant(_value(r, "created_at"))
    else:
        key_fn = lambda r: _value(r, spec.key)

    present.sort(key=key_fn, reverse=(spec.direction == "desc"))
    return present + missing


def query_roster(
    records: Iterable[Any],
    spec: Optional[RosterFilter] = None,
    sort: Optional[SortSpec] = None,
) -> List[Any]:
    return sort_records(filter_records(records, spec), sort)


# ─────────────────────────── Aggregate ───────────────────────────────────────

@dataclass
class EventStat:
    """Fill count for one event; share is this event's % of all taken slots."""
    name:  str
    count: int = 0
    share_pct: float = 0.0


@dataclass
class RosterStats:
    """Aggregated registration statistics payload."""
    fee: int

    total:        int = 0
    paid_count:   int = 0
    unpaid_count: int = 0

    by_event:      Dict[str, int] = field(default_factory=dict)
    by_department: Dict[str, int] = field(default_factory=dict)
    by_year:       Dict[str, int] = field(default_factory=dict)

    # ── Derived statistics ────────────────────────────────────────────────────

    @property
    def total_slots(self) -> int:
        return sum(self.by_event.values())

    @property
    def potential_revenue(self) -> int:
        return self.total * self.fee

    @property
    def collected_revenue(self) -> int:
        return self.paid_count * self.fee

    @property
    def pending_revenue(self) -> int:
        return self.unpaid_count * self.fee

    @property
    def collection_pct(self) -> float:
        if self.potential_revenue == 0:
            return 0.0
        return round(self.collected_revenue / self.potential_revenue * 100, 1)

    def event_popularity(self) -> List[EventStat]:
        """Events by fill count, most popular first."""
        slots = self.total_slots
        stats = [
            EventStat(
                name=name,
                count=count,
                share_pct=round(count / slots * 100, 1) if slots else 0.0,
            )
            for name, count in self.by_event.items()
        ]
        stats.sort(key=lambda s: s.count, reverse=True)
        return stats


def aggregate(records: Iterable[Any], fee: Optional[int] = None) -> RosterStats:
    """
    Compute dashboard statistics from a snapshot.

    Catalogue values start at zero so empty events still show up; values
    outside the catalogue are counted under their own name.
    """
    stats = RosterStats(
        fee=settings.REGISTRATION_FEE if fee is None else fee,
        by_event={e: 0 for e in EventName.ALL},
        by_department={d: 0 for d in Department.ALL},
        by_year={y: 0 for y in Year.ALL},
    )

    for r in records:
        stats.total += 1
        if _value(r, "fee_paid"):
            stats.paid_count += 1
        else:
            stats.unpaid_count += 1

        for slot in ("event1", "event2"):
            event = _value(r, slot)
            if event:
                stats.by_event[event] = stats.by_event.get(event, 0) + 1

        dept = _value(r, "department")
        if dept:
            stats.by_department[dept] = stats.by_department.get(dept, 0) + 1
        year = _value(r, "year")
        if year:
            stats.by_year[year] = stats.by_year.get(year, 0) + 1

    return stats


# ─────────────────────────── Export ──────────────────────────────────────────

def _format_timestamp(value: Any) -> str:
    if value is None or value == "":
        return ""
    return _as_instant(value).strftime("%Y-%m-%d %H:%M")


def _build_row(record: Any) -> List[str]:
    return [
        _value(record, "name") or "",
        _value(record, "roll_number") or "",
        _value(record, "department") or "",
        _value(record, "year") or "",
        _value(record, "mobile_number") or "",
        _value(record, "event1") or "",
        _value(record, "event2") or "",
        _value(record, "team_member2") or "",
        "Yes" if _value(record, "fee_paid") else "No",
        _format_timestamp(_value(record, "created_at")),
    ]


def export_delimited(records: Sequence[Any]) -> str:
    """
    CSV of the given view: one header row, then one fully quoted row per
    record in exactly the order received.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(_build_row(record))
    return output.getvalue()


def export_filename(event: str = ALL, today: Optional[date] = None) -> str:
    """<event-name>_<ISO-date>.csv, e.g. tech_quiz_2025-09-18.csv"""
    today = today or date.today()
    if event and event != ALL:
        stem = re.sub(r"[^a-z0-9]+", "_", event.lower()).strip("_")
    else:
        stem = settings.REPORT_PREFIX
    return f"{stem}_{today.isoformat()}.csv"
