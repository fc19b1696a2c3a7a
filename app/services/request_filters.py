"""Derivation of the admin request list from a newest-first snapshot.

Everything here is a pure function of its inputs: the snapshot delivered by
the store (already ordered by ``created_at`` descending), the filter
selections and the reference "today". Nothing reads the clock.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any, Iterable, Literal, Sequence

from app.services.request_status import STATUSES, normalize_status

STATUS_ALL = "all"

EMERGENCY_ALL = "all"
EMERGENCY_ONLY = "emergency"
EMERGENCY_NONE = "nonEmergency"
EMERGENCY_FILTERS = (EMERGENCY_ALL, EMERGENCY_ONLY, EMERGENCY_NONE)

DATE_TODAY = "today"
DATE_YESTERDAY = "yesterday"
DATE_ALL = "all"
DATE_RANGE = "range"
DATE_FILTERS = (DATE_TODAY, DATE_YESTERDAY, DATE_ALL, DATE_RANGE)

SORT_DESC = "desc"
SORT_ASC = "asc"

EMPTY_NO_REQUESTS = "no_requests"
EMPTY_NO_MATCHES = "no_matches"

EMPTY_MESSAGES = {
    EMPTY_NO_REQUESTS: "Δεν υπάρχουν αιτήματα.",
    EMPTY_NO_MATCHES: "Κανένα αίτημα δεν ταιριάζει με τα φίλτρα.",
}


class InvalidFilter(ValueError):
    pass


@dataclass(frozen=True)
class RequestFilters:
    status: str = STATUS_ALL
    emergency: str = EMERGENCY_ALL
    date_filter: str = DATE_TODAY
    date_from: str | None = None
    date_to: str | None = None
    sort: Literal["desc", "asc"] = SORT_DESC

    def validated(self) -> "RequestFilters":
        status = str(self.status or STATUS_ALL).strip().lower()
        if status != STATUS_ALL and status not in STATUSES:
            raise InvalidFilter(f"unknown status filter: {self.status}")
        emergency = str(self.emergency or EMERGENCY_ALL).strip()
        if emergency not in EMERGENCY_FILTERS:
            raise InvalidFilter(f"unknown emergency filter: {self.emergency}")
        date_filter = str(self.date_filter or DATE_TODAY).strip().lower()
        if date_filter not in DATE_FILTERS:
            raise InvalidFilter(f"unknown date filter: {self.date_filter}")
        sort = str(self.sort or SORT_DESC).strip().lower()
        if sort not in {SORT_DESC, SORT_ASC}:
            raise InvalidFilter(f"unknown sort direction: {self.sort}")
        return RequestFilters(
            status=status,
            emergency=emergency,
            date_filter=date_filter,
            date_from=_date_bound(self.date_from, "date_from"),
            date_to=_date_bound(self.date_to, "date_to"),
            sort=sort,  # type: ignore[arg-type]
        )

    def with_sort_toggled(self) -> "RequestFilters":
        return replace(self, sort=SORT_ASC if self.sort == SORT_DESC else SORT_DESC)


@dataclass(frozen=True)
class FilteredView:
    rows: list[Any] = field(default_factory=list)
    total: int = 0
    matched: int = 0
    empty_reason: str | None = None

    @property
    def empty_message(self) -> str | None:
        if self.empty_reason is None:
            return None
        return EMPTY_MESSAGES[self.empty_reason]


def _date_bound(value: str | None, name: str) -> str | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        date.fromisoformat(text[:10])
    except ValueError:
        raise InvalidFilter(f"{name} must be YYYY-MM-DD")
    return text[:10]


def _field(row: Any, name: str) -> Any:
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def row_status(row: Any) -> str:
    return normalize_status(_field(row, "status"))


def row_is_emergency(row: Any) -> bool:
    return bool(_field(row, "is_emergency"))


def row_transport_date(row: Any) -> str:
    return str(_field(row, "date") or "")[:10]


def matches_status(row: Any, status: str) -> bool:
    return status == STATUS_ALL or row_status(row) == status


def matches_emergency(row: Any, emergency: str) -> bool:
    if emergency == EMERGENCY_ONLY:
        return row_is_emergency(row)
    if emergency == EMERGENCY_NONE:
        return not row_is_emergency(row)
    return True


def matches_date(row: Any, filters: RequestFilters, *, today: date) -> bool:
    kind = filters.date_filter
    if kind == DATE_ALL:
        return True
    day = row_transport_date(row)
    if kind == DATE_TODAY:
        return day == today.isoformat()
    if kind == DATE_YESTERDAY:
        return day == (today - timedelta(days=1)).isoformat()
    if kind == DATE_RANGE:
        if not filters.date_from and not filters.date_to:
            return True
        if not day:
            return False
        if filters.date_from and day < filters.date_from:
            return False
        if filters.date_to and day > filters.date_to:
            return False
        return True
    return True


def filter_requests(rows: Sequence[Any] | Iterable[Any], filters: RequestFilters, *, today: date) -> FilteredView:
    snapshot = list(rows)
    checked = filters.validated()
    result = [
        row
        for row in snapshot
        if matches_status(row, checked.status)
        and matches_emergency(row, checked.emergency)
        and matches_date(row, checked, today=today)
    ]
    # The snapshot is newest-first; ascending order is its reverse.
    if checked.sort == SORT_ASC:
        result.reverse()

    empty_reason = None
    if not snapshot:
        empty_reason = EMPTY_NO_REQUESTS
    elif not result:
        empty_reason = EMPTY_NO_MATCHES
    return FilteredView(rows=result, total=len(snapshot), matched=len(result), empty_reason=empty_reason)
