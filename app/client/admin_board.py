from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable, Optional

from app.services.request_feed import RequestFeed, Snapshot
from app.services.request_filters import FilteredView, RequestFilters, filter_requests
from app.services.request_status import is_known_status

_LOG = logging.getLogger("app.client.admin_board")

LOAD_ERROR_MESSAGE = "Σφάλμα κατά τη φόρτωση των αιτημάτων."
STATUS_ERROR_MESSAGE = "Αποτυχία ενημέρωσης κατάστασης."

StatusChanger = Callable[[str, str], object]


class AdminBoard:
    """Admin dashboard state fed by a live ``RequestFeed`` subscription.

    ``snapshot`` is replaced only by the subscription callback. Status changes
    never touch it; the stored value comes back through the next snapshot.
    """

    def __init__(self, feed: RequestFeed, change_status: StatusChanger):
        self._feed = feed
        self._change_status = change_status
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.snapshot: Snapshot = ()
        self.loading = True
        self.error_message: Optional[str] = None
        self.updating_ids: set[str] = set()
        self.filters = RequestFilters()

    def open(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._feed.subscribe(self._on_snapshot, self._on_error)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def is_open(self) -> bool:
        return self._unsubscribe is not None

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.loading = False

    def _on_error(self, exc: Exception) -> None:
        _LOG.error("admin feed error: %s", exc)
        self.loading = False
        self.error_message = LOAD_ERROR_MESSAGE

    def dismiss_error(self) -> None:
        self.error_message = None

    def set_filters(self, filters: RequestFilters) -> None:
        self.filters = filters.validated()

    def toggle_sort(self) -> None:
        self.filters = self.filters.with_sort_toggled()

    def view(self, today: date, filters: Optional[RequestFilters] = None) -> FilteredView:
        return filter_requests(self.snapshot, filters or self.filters, today=today)

    def can_edit(self, request_id: str) -> bool:
        return str(request_id) not in self.updating_ids

    async def change_status(self, request_id: str, status: str) -> bool:
        key = str(request_id)
        if key in self.updating_ids or not is_known_status(status):
            return False
        self.updating_ids.add(key)
        try:
            await asyncio.to_thread(self._change_status, key, status)
        except Exception as exc:
            _LOG.error("status change failed request_id=%s: %s", key, exc)
            self.error_message = STATUS_ERROR_MESSAGE
            return False
        finally:
            self.updating_ids.discard(key)
        return True
