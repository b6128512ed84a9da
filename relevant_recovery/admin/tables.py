# relevant_recovery/admin/tables.py
"""
Search / filter / sort / paginate over a collection fetched wholesale from the
backend. One TableSpec per admin table; TableQuery carries the user's current
choices (normally parsed from the query string).
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

from relevant_recovery.models import Donation, Event, Registration, TicketBooking

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10
PAGE_SIZES = (5, 10, 25, 50)

# dollar thresholds; amounts are stored in cents
AMOUNT_BUCKETS: Dict[str, Tuple[float, Optional[float]]] = {
    "small": (0, 50),
    "medium": (50, 200),
    "large": (200, 1000),
    "major": (1000, None),
}


def _lower(v: Any) -> str:
    return "" if v is None else str(v).lower()


def _parse_date(v: Any) -> datetime:
    s = str(v or "").strip()
    if not s:
        return datetime.min
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    return parsed.replace(tzinfo=None)


def in_amount_bucket(cents: int, bucket: str) -> bool:
    bounds = AMOUNT_BUCKETS.get(bucket)
    if bounds is None:
        return True
    lo, hi = bounds
    dollars = (cents or 0) / 100
    return dollars >= lo and (hi is None or dollars < hi)


@dataclass(frozen=True)
class TableSpec(Generic[T]):
    name: str
    search_fields: Sequence[Callable[[T], Any]]
    sort_keys: Mapping[str, Callable[[T], Any]]
    filters: Mapping[str, Callable[[T], bool]] = field(default_factory=dict)
    amount_of: Optional[Callable[[T], int]] = None
    default_sort: str = "date"
    default_dir: str = "desc"


@dataclass(frozen=True)
class TableQuery:
    search: str = ""
    filter: str = "all"
    amount: str = "all"
    sort: str = ""
    direction: str = ""
    page: int = 0
    per_page: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_args(cls, args: Mapping[str, Any], default_per_page: int = DEFAULT_PAGE_SIZE) -> "TableQuery":
        def _int(name: str, default: int) -> int:
            try:
                return int(args.get(name, default))
            except (TypeError, ValueError):
                return default

        per_page = _int("per_page", default_per_page)
        direction = str(args.get("dir") or "").lower()
        return cls(
            search=str(args.get("q") or "").strip(),
            filter=str(args.get("filter") or "all"),
            amount=str(args.get("amount") or "all"),
            sort=str(args.get("sort") or ""),
            direction=direction if direction in ("asc", "desc") else "",
            page=max(0, _int("page", 0)),
            per_page=per_page if per_page > 0 else default_per_page,
        )

    def to_args(self, **overrides: Any) -> Dict[str, Any]:
        q = replace(self, **overrides) if overrides else self
        out: Dict[str, Any] = {
            "q": q.search,
            "filter": q.filter,
            "amount": q.amount,
            "sort": q.sort,
            "dir": q.direction,
            "page": q.page,
            "per_page": q.per_page,
        }
        return {k: v for k, v in out.items() if v not in ("", "all", None)}

    # changing what is shown always returns to the first page
    def with_search(self, text: str) -> "TableQuery":
        return replace(self, search=text.strip(), page=0)

    def with_filter(self, value: str) -> "TableQuery":
        return replace(self, filter=value or "all", page=0)

    def with_amount(self, value: str) -> "TableQuery":
        return replace(self, amount=value or "all", page=0)

    def toggle_sort(self, column: str, spec: TableSpec) -> "TableQuery":
        current, direction = self.effective_sort(spec)
        if column == current:
            direction = "desc" if direction == "asc" else "asc"
        else:
            direction = "asc"
        return replace(self, sort=column, direction=direction, page=0)

    def effective_sort(self, spec: TableSpec) -> Tuple[str, str]:
        if self.sort in spec.sort_keys:
            return self.sort, self.direction or "asc"
        return spec.default_sort, spec.default_dir


@dataclass(frozen=True)
class TablePage(Generic[T]):
    rows: List[T]
    total: int
    page: int
    per_page: int
    sort: str
    direction: str

    @property
    def pages(self) -> int:
        return max(1, -(-self.total // self.per_page))

    @property
    def has_prev(self) -> bool:
        return self.page > 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.pages


def filter_rows(rows: Sequence[T], spec: TableSpec[T], query: TableQuery) -> List[T]:
    """Search, categorical filter, amount bucket, then sort. No pagination."""
    out = list(rows)

    needle = query.search.lower()
    if needle:
        out = [r for r in out if any(needle in _lower(get(r)) for get in spec.search_fields)]

    pred = spec.filters.get(query.filter)
    if pred is not None:
        out = [r for r in out if pred(r)]

    if spec.amount_of is not None and query.amount in AMOUNT_BUCKETS:
        out = [r for r in out if in_amount_bucket(spec.amount_of(r), query.amount)]

    column, direction = query.effective_sort(spec)
    key = spec.sort_keys[column]
    out.sort(key=key, reverse=(direction == "desc"))
    return out


def run_query(rows: Sequence[T], spec: TableSpec[T], query: TableQuery) -> TablePage[T]:
    filtered = filter_rows(rows, spec, query)
    column, direction = query.effective_sort(spec)
    per_page = query.per_page or DEFAULT_PAGE_SIZE
    last_page = max(0, (len(filtered) - 1) // per_page)
    page = min(query.page, last_page)
    start = page * per_page
    return TablePage(
        rows=filtered[start:start + per_page],
        total=len(filtered),
        page=page,
        per_page=per_page,
        sort=column,
        direction=direction,
    )


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------
def export_filename(spec: TableSpec, ext: str, today: Optional[date] = None) -> str:
    day = (today or date.today()).isoformat()
    return f"{spec.name}_export_{day}.{ext}"


def export_json(rows: Sequence[Any]) -> str:
    return json.dumps([asdict(r) for r in rows], indent=2, default=str)


FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def csv_cell(value: Any) -> Any:
    """Text that a spreadsheet would read as a formula gets a leading quote."""
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value


def export_csv(rows: Sequence[T], columns: Sequence[Tuple[str, Callable[[T], Any]]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([label for label, _ in columns])
    for row in rows:
        writer.writerow([csv_cell(getter(row)) for _, getter in columns])
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Table specs
# ---------------------------------------------------------------------------
DONATIONS: TableSpec[Donation] = TableSpec(
    name="donations",
    search_fields=(
        lambda d: d.name,
        lambda d: d.email,
        lambda d: d.message,
        lambda d: d.payment_intent_id,
    ),
    sort_keys={
        "name": lambda d: _lower(d.name),
        "email": lambda d: _lower(d.email),
        "amount": lambda d: d.amount or 0,
        "date": lambda d: _parse_date(d.created_at),
        "status": lambda d: _lower(d.status),
    },
    filters={
        "completed": lambda d: d.status == "succeeded",
        "pending": lambda d: d.status == "processing",
        "failed": lambda d: d.status == "failed",
        "anonymous": lambda d: d.anonymous is True,
        "named": lambda d: d.anonymous is False,
    },
    amount_of=lambda d: d.amount,
)

TICKET_BOOKINGS: TableSpec[TicketBooking] = TableSpec(
    name="ticket_bookings",
    search_fields=(
        lambda b: b.customer.name,
        lambda b: b.customer.email,
        lambda b: b.customer.phone,
        lambda b: b.event.title,
        lambda b: b.payment_intent_id,
        lambda b: b.payment_status,
        lambda b: b.status,
    ),
    sort_keys={
        "name": lambda b: _lower(b.customer.name),
        "email": lambda b: _lower(b.customer.email),
        "amount": lambda b: b.total_amount or 0,
        "date": lambda b: _parse_date(b.created_at),
        "status": lambda b: _lower(b.status),
        "event": lambda b: _lower(b.event.title),
    },
    filters={s: (lambda b, s=s: b.status == s) for s in ("confirmed", "reserved", "cancelled", "used")},
    amount_of=lambda b: b.total_amount,
)


def registrations_spec(event_ids: Sequence[str] = ()) -> TableSpec[Registration]:
    """Registrations filter by event, so the filter set depends on the events on hand."""
    return TableSpec(
        name="registrations",
        search_fields=(
            lambda r: r.name,
            lambda r: r.email,
            lambda r: r.city,
            lambda r: r.state,
        ),
        sort_keys={
            "name": lambda r: _lower(r.name),
            "email": lambda r: _lower(r.email),
            "city": lambda r: _lower(r.city),
            "date": lambda r: _parse_date(r.created_at),
        },
        filters={eid: (lambda r, eid=eid: r.event.id == eid) for eid in event_ids if eid},
    )


EVENTS: TableSpec[Event] = TableSpec(
    name="events",
    search_fields=(lambda e: e.title, lambda e: e.place, lambda e: e.cost),
    sort_keys={
        "title": lambda e: _lower(e.title),
        "date": lambda e: _parse_date(e.date),
        "cost": lambda e: _lower(e.cost),
    },
    filters={
        "active": lambda e: e.is_active,
        "free": lambda e: e.is_free,
        "paid": lambda e: not e.is_free,
    },
)


def event_stats(events: Sequence[Event]) -> Dict[str, int]:
    total = len(events)
    free = sum(1 for e in events if e.is_free)
    return {
        "total": total,
        "active": sum(1 for e in events if e.is_active),
        "free": free,
        "paid": total - free,
    }
