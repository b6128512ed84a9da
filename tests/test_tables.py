"""Unit tests for admin table querying and exports.

Run with: pytest tests/test_tables.py -v
"""

import csv
import io
import json
from datetime import date

import pytest

from relevant_recovery.admin.tables import (
    DONATIONS,
    TICKET_BOOKINGS,
    TableQuery,
    event_stats,
    export_csv,
    export_filename,
    export_json,
    filter_rows,
    in_amount_bucket,
    registrations_spec,
    run_query,
)
from relevant_recovery.models import Donation, Event, Registration, TicketBooking

from .conftest import FREE_EVENT, INACTIVE_EVENT, PAID_EVENT


def _donation(i, **kw):
    row = {
        "_id": f"d{i}",
        "name": f"Donor {i}",
        "email": f"donor{i}@example.org",
        "amount": 1000 * i,
        "status": "succeeded",
        "createdAt": f"2026-01-{i:02d}T10:00:00Z",
    }
    row.update(kw)
    return Donation.from_api(row)


@pytest.fixture
def donations():
    return [_donation(i) for i in range(1, 13)]


class TestSearchAndFilter:
    """Tests for search, categorical filters and amount buckets."""

    def test_search_is_case_insensitive_substring(self, donations):
        """Search matches any configured field, ignoring case."""
        rows = filter_rows(donations, DONATIONS, TableQuery(search="DONOR1"))
        assert {d.id for d in rows} == {"d1", "d10", "d11", "d12"}

    def test_search_by_partial_name(self):
        """A partial name matches only the donors containing it."""
        rows = [_donation(1, name="Alice", email="a@x.org"), _donation(2, name="Bob", email="b@x.org")]
        assert [d.name for d in filter_rows(rows, DONATIONS, TableQuery(search="ali"))] == ["Alice"]

    def test_search_skips_missing_fields(self):
        """Rows with empty fields never crash the search."""
        rows = [Donation.from_api({"_id": "x", "amount": 100, "status": "failed"})]
        assert filter_rows(rows, DONATIONS, TableQuery(search="abc")) == []

    def test_status_filter(self, donations):
        """The pending filter keeps processing donations only."""
        donations.append(_donation(20, status="processing"))
        rows = filter_rows(donations, DONATIONS, TableQuery(filter="pending"))
        assert [d.id for d in rows] == ["d20"]

    def test_anonymous_filter(self, donations):
        """Anonymous and named filters split on the flag."""
        donations.append(_donation(21, anonymous=True))
        assert [d.id for d in filter_rows(donations, DONATIONS, TableQuery(filter="anonymous"))] == ["d21"]
        assert len(filter_rows(donations, DONATIONS, TableQuery(filter="named"))) == 12

    def test_unknown_filter_shows_all(self, donations):
        """An unrecognized filter is ignored."""
        assert len(filter_rows(donations, DONATIONS, TableQuery(filter="bogus"))) == 12

    @pytest.mark.parametrize(
        "cents, bucket, expected",
        [(4999, "small", True), (5000, "small", False), (5000, "medium", True), (100000, "major", True), (1, "nope", True)],
    )
    def test_amount_buckets_use_dollars(self, cents, bucket, expected):
        """Bucket bounds are dollars, amounts are cents."""
        assert in_amount_bucket(cents, bucket) is expected

    def test_registration_event_filter(self):
        """Registrations filter on the event id."""
        regs = [
            Registration.from_api({"_id": "r1", "name": "A", "email": "a@x.org", "event": "evt-free"}),
            Registration.from_api({"_id": "r2", "name": "B", "email": "b@x.org", "event": {"_id": "evt-paid"}}),
        ]
        spec = registrations_spec(["evt-free", "evt-paid"])
        assert [r.id for r in filter_rows(regs, spec, TableQuery(filter="evt-paid"))] == ["r2"]

    def test_booking_search_reaches_customer(self):
        """Booking search looks inside the customer."""
        booking = TicketBooking.from_api({"_id": "b1", "customer": {"phone": "555-0101"}, "status": "reserved"})
        assert filter_rows([booking], TICKET_BOOKINGS, TableQuery(search="0101")) == [booking]


class TestSortAndPaging:
    """Tests for sorting and pagination."""

    def test_default_sort_is_newest_first(self, donations):
        """Without a sort the table shows the most recent first."""
        page = run_query(donations, DONATIONS, TableQuery())
        assert page.rows[0].id == "d12"
        assert (page.sort, page.direction) == ("date", "desc")

    def test_toggle_same_column_flips_direction(self):
        """Clicking the sorted column flips its direction."""
        q = TableQuery().toggle_sort("amount", DONATIONS)
        assert (q.sort, q.direction) == ("amount", "asc")
        q = q.toggle_sort("amount", DONATIONS)
        assert q.direction == "desc"

    def test_toggle_new_column_starts_ascending(self):
        """A new column sorts ascending and resets the page."""
        q = TableQuery(sort="amount", direction="desc", page=3).toggle_sort("name", DONATIONS)
        assert (q.sort, q.direction, q.page) == ("name", "asc", 0)

    def test_changes_reset_page(self):
        """Search, filter and amount changes return to the first page."""
        q = TableQuery(page=4)
        assert q.with_search("x").page == 0
        assert q.with_filter("failed").page == 0
        assert q.with_amount("large").page == 0

    def test_pagination(self, donations):
        """Pages slice the filtered rows."""
        page = run_query(donations, DONATIONS, TableQuery(sort="amount", direction="asc", page=1, per_page=5))
        assert [d.id for d in page.rows] == ["d6", "d7", "d8", "d9", "d10"]
        assert page.pages == 3
        assert page.has_prev and page.has_next

    def test_page_past_end_clamps(self, donations):
        """A page beyond the data shows the last page."""
        page = run_query(donations, DONATIONS, TableQuery(page=99, per_page=5))
        assert page.page == 2
        assert len(page.rows) == 2

    def test_empty_table(self):
        """No rows gives one empty page."""
        page = run_query([], DONATIONS, TableQuery())
        assert page.rows == [] and page.pages == 1 and not page.has_next

    def test_from_args_parses_query_string(self):
        """Query string values parse with safe defaults."""
        q = TableQuery.from_args({"q": " gala ", "dir": "DESC", "page": "-2", "per_page": "abc"}, default_per_page=25)
        assert (q.search, q.direction, q.page, q.per_page) == ("gala", "desc", 0, 25)

    def test_to_args_drops_defaults(self):
        """Default values are left out of generated links."""
        assert TableQuery(search="x").to_args(page=2) == {"q": "x", "page": 2, "per_page": 10}


class TestExports:
    """Tests for JSON/CSV exports."""

    def test_filename(self):
        """Export names carry the table and date."""
        assert export_filename(DONATIONS, "csv", today=date(2026, 3, 4)) == "donations_export_2026-03-04.csv"

    def test_json_export(self, donations):
        """JSON export is a list of record dicts."""
        data = json.loads(export_json(donations[:2]))
        assert [d["id"] for d in data] == ["d1", "d2"]
        assert data[0]["amount"] == 1000

    def test_csv_export(self, donations):
        """CSV export writes a header row then one row per record."""
        body = export_csv(donations[:2], [("Name", lambda d: d.name), ("Amount", lambda d: d.amount)])
        rows = list(csv.reader(io.StringIO(body)))
        assert rows == [["Name", "Amount"], ["Donor 1", "1000"], ["Donor 2", "2000"]]

    def test_csv_neutralises_formulas(self):
        """Donor text that looks like a spreadsheet formula is written as plain text."""
        rows = [
            _donation(1, name="=HYPERLINK(\"http://x\")"),
            _donation(2, name="@SUM(A1)"),
            _donation(3, name="+1 555"),
            _donation(4, name="-2"),
        ]
        body = export_csv(rows, [("Name", lambda d: d.name), ("Amount", lambda d: d.amount)])
        parsed = list(csv.reader(io.StringIO(body)))[1:]
        assert [r[0] for r in parsed] == ["'=HYPERLINK(\"http://x\")", "'@SUM(A1)", "'+1 555", "'-2"]
        assert [r[1] for r in parsed] == ["1000", "2000", "3000", "4000"]


class TestEventStats:
    """Tests for the dashboard event counters."""

    def test_counts(self):
        """Stats count active, free and paid events."""
        events = [Event.from_api(r) for r in (FREE_EVENT, PAID_EVENT, INACTIVE_EVENT)]
        assert event_stats(events) == {"total": 3, "active": 2, "free": 1, "paid": 2}
