"""
Unit tests — Roster query engine (roster_service.py).

Pure functions over plain mappings; no database session required.

Coverage:
  - Filtering: search text, department, year, event (either slot)
  - Sorting: direction, stability, missing values last, header toggle
  - Aggregates: counts, revenue, collection %, empty roster
  - CSV export: header, row order, quoting, filename
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime

import pytest

from symposium.services.roster_service import (
    CSV_HEADERS,
    RosterFilter,
    SortSpec,
    aggregate,
    export_delimited,
    export_filename,
    filter_records,
    query_roster,
    sort_records,
)


# ─────────────────────────── Helpers ──────────────────────────────────────────

def _rec(rid: int, name: str, roll: str, **kw) -> dict:
    data = {
        "id":            rid,
        "name":          name,
        "roll_number":   roll,
        "department":    "BCA",
        "year":          "1st Year",
        "mobile_number": "9876543210",
        "event1":        "Tech Quiz",
        "event2":        None,
        "team_member2":  None,
        "fee_paid":      False,
        "created_at":    datetime(2025, 9, 1, 10, rid),
    }
    data.update(kw)
    return data


@pytest.fixture
def roster() -> list[dict]:
    return [
        _rec(1, "Asha Raman", "22UCS01", department="B.Sc. Computer Science", fee_paid=True),
        _rec(2, "Vikram S", "22BCA07", event1="Panel Debate", event2="Tech Quiz",
             team_member2="Ravi K"),
        _rec(3, "Meena", "21MAT03", department="B.Sc. Maths", year="3rd Year",
             event1="Design Duel", event2="Web Wizards", fee_paid=True),
        _rec(4, "arjun p", "23BBA11", department="BBA", event1="Bug Blaster"),
    ]


# ─────────────────────────── Filter ───────────────────────────────────────────

class TestFilter:
    def test_no_filter_keeps_everything_in_order(self, roster) -> None:
        assert filter_records(roster) == roster

    def test_search_matches_name_case_insensitive(self, roster) -> None:
        result = filter_records(roster, RosterFilter(search_text="ASHA"))
        assert [r["id"] for r in result] == [1]

    def test_search_matches_roll_number(self, roster) -> None:
        result = filter_records(roster, RosterFilter(search_text="bca0"))
        assert [r["id"] for r in result] == [2]

    def test_department_filter(self, roster) -> None:
        result = filter_records(roster, RosterFilter(department="BBA"))
        assert [r["id"] for r in result] == [4]

    def test_year_filter(self, roster) -> None:
        result = filter_records(roster, RosterFilter(year="3rd Year"))
        assert [r["id"] for r in result] == [3]

    def test_event_filter_includes_second_slot(self, roster) -> None:
        result = filter_records(roster, RosterFilter(event="Web Wizards"))
        assert [r["id"] for r in result] == [3]

    def test_event_filter_matches_either_slot(self, roster) -> None:
        result = filter_records(roster, RosterFilter(event="Tech Quiz"))
        assert [r["id"] for r in result] == [1, 2]

    def test_filters_combine(self, roster) -> None:
        spec = RosterFilter(search_text="a", department="BCA", event="Panel Debate")
        assert [r["id"] for r in filter_records(roster, spec)] == [2]

    def test_from_mapping_accepts_form_keys(self) -> None:
        spec = RosterFilter.from_mapping({"searchText": "x", "department": "", "event": "Tech Quiz"})
        assert spec == RosterFilter(search_text="x", department="all", year="all", event="Tech Quiz")


# ─────────────────────────── Sort ─────────────────────────────────────────────

class TestSort:
    def test_default_is_newest_first(self, roster) -> None:
        assert [r["id"] for r in sort_records(roster)] == [4, 3, 2, 1]

    def test_ascending_by_name(self, roster) -> None:
        result = sort_records(roster, SortSpec("name", "asc"))
        assert [r["name"] for r in result] == ["Asha Raman", "Meena", "Vikram S", "arjun p"]

    def test_missing_values_last_in_both_directions(self, roster) -> None:
        asc = sort_records(roster, SortSpec("event2", "asc"))
        desc = sort_records(roster, SortSpec("event2", "desc"))
        assert [r["id"] for r in asc] == [2, 3, 1, 4]
        assert [r["id"] for r in desc] == [3, 2, 1, 4]

    def test_stable_for_equal_keys(self, roster) -> None:
        result = sort_records(roster, SortSpec("department", "asc"))
        assert [r["id"] for r in result if r["department"] == "BCA"] == [2]
        unpaid = sort_records(roster, SortSpec("fee_paid", "asc"))
        assert [r["id"] for r in unpaid] == [2, 4, 1, 3]

    def test_iso_timestamps_compared_as_instants(self) -> None:
        records = [
            _rec(1, "A", "R1", created_at="2025-09-01T10:00:00+05:30"),
            _rec(2, "B", "R2", created_at="2025-09-01T05:00:00Z"),
        ]
        # 10:00 IST is 04:30 UTC, earlier than 05:00 UTC
        result = sort_records(records, SortSpec("created_at", "asc"))
        assert [r["id"] for r in result] == [1, 2]

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValueError):
            SortSpec("payment_proof_ref")

    def test_bad_direction_rejected(self) -> None:
        with pytest.raises(ValueError):
            SortSpec("name", "up")

    def test_toggle_same_key_flips_to_desc(self) -> None:
        assert SortSpec("name", "asc").toggle("name") == SortSpec("name", "desc")

    def test_toggle_desc_goes_back_to_asc(self) -> None:
        assert SortSpec("name", "desc").toggle("name") == SortSpec("name", "asc")

    def test_toggle_new_key_starts_ascending(self) -> None:
        assert SortSpec("name", "desc").toggle("year") == SortSpec("year", "asc")

    def test_query_roster_filters_then_sorts(self, roster) -> None:
        result = query_roster(roster, RosterFilter(event="Tech Quiz"), SortSpec("name", "desc"))
        assert [r["id"] for r in result] == [2, 1]


# ─────────────────────────── Aggregate ────────────────────────────────────────

class TestAggregate:
    def test_empty_roster(self) -> None:
        stats = aggregate([], fee=50)
        assert stats.total == 0
        assert stats.paid_count == 0
        assert stats.collected_revenue == 0
        assert stats.potential_revenue == 0
        assert stats.collection_pct == 0.0
        assert all(count == 0 for count in stats.by_event.values())
        assert set(stats.by_event) == {
            "Tech Quiz", "Bug Blaster", "Panel Debate", "Web Wizards", "Design Duel",
        }

    def test_counts_and_revenue(self, roster) -> None:
        stats = aggregate(roster, fee=50)
        assert stats.total == 4
        assert stats.paid_count == 2
        assert stats.unpaid_count == 2
        assert stats.potential_revenue == 200
        assert stats.collected_revenue == 100
        assert stats.pending_revenue == 100
        assert stats.collection_pct == 50.0

    def test_slot_count_is_event1_plus_event2(self, roster) -> None:
        stats = aggregate(roster, fee=50)
        second_events = sum(1 for r in roster if r["event2"])
        assert stats.total_slots == len(roster) + second_events
        assert stats.by_event["Tech Quiz"] == 2

    def test_breakdowns(self, roster) -> None:
        stats = aggregate(roster, fee=50)
        assert stats.by_department["BCA"] == 1
        assert stats.by_department["BBA"] == 1
        assert stats.by_department["B.Com. General"] == 0
        assert stats.by_year == {"1st Year": 3, "2nd Year": 0, "3rd Year": 1}

    def test_collection_pct_rounded(self) -> None:
        records = [_rec(1, "A", "R1", fee_paid=True), _rec(2, "B", "R2"), _rec(3, "C", "R3")]
        assert aggregate(records, fee=50).collection_pct == 33.3

    def test_event_popularity_most_popular_first(self, roster) -> None:
        popularity = aggregate(roster, fee=50).event_popularity()
        assert popularity[0].name == "Tech Quiz"
        assert popularity[0].count == 2
        assert popularity[0].share_pct == pytest.approx(33.3)


# ─────────────────────────── Export ───────────────────────────────────────────

class TestExport:
    def test_header_and_one_row_per_record(self, roster) -> None:
        rows = list(csv.reader(io.StringIO(export_delimited(roster))))
        assert rows[0] == CSV_HEADERS
        assert len(rows) == len(roster) + 1

    def test_rows_keep_input_order(self, roster) -> None:
        view = sort_records(roster, SortSpec("name", "asc"))
        rows = list(csv.reader(io.StringIO(export_delimited(view))))
        assert [row[0] for row in rows[1:]] == [r["name"] for r in view]

    def test_row_formatting(self, roster) -> None:
        rows = list(csv.reader(io.StringIO(export_delimited(roster[1:2]))))
        assert rows[1] == [
            "Vikram S", "22BCA07", "BCA", "1st Year", "9876543210",
            "Panel Debate", "Tech Quiz", "Ravi K", "No", "2025-09-01 10:02",
        ]

    def test_every_field_quoted(self, roster) -> None:
        first_line = export_delimited(roster).splitlines()[1]
        assert first_line.startswith('"Asha Raman","22UCS01"')

    def test_embedded_quotes_and_commas_survive(self) -> None:
        content = export_delimited([_rec(1, 'Rao, "Sonu"', "R1")])
        assert list(csv.reader(io.StringIO(content)))[1][0] == 'Rao, "Sonu"'

    def test_empty_view_is_header_only(self) -> None:
        assert export_delimited([]).count("\n") == 1

    def test_filename_for_event(self) -> None:
        assert export_filename("Tech Quiz", date(2025, 9, 18)) == "tech_quiz_2025-09-18.csv"

    def test_filename_for_all_events(self) -> None:
        assert export_filename("all", date(2025, 9, 18)) == "symposium_report_2025-09-18.csv"

    def test_sort_from_mapping_defaults(self) -> None:
        assert SortSpec.from_mapping(None) == SortSpec("created_at", "desc")
        assert SortSpec.from_mapping({"key": "year"}) == SortSpec("year", "desc")
