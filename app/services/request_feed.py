from __future__ import annotations

import itertools
import json
import logging
import queue
from datetime import date
from threading import Lock, RLock
from typing import Callable, Iterator, Sequence

from app.services.request_filters import FilteredView, RequestFilters, filter_requests
from app.services.request_store import RequestSnapshot

_LOG = logging.getLogger("app.feed")

Snapshot = tuple[RequestSnapshot, ...]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]
Loader = Callable[[], Sequence[RequestSnapshot]]


class RequestFeed:
    """Live newest-first view of all requests.

    ``notify_changed`` reloads the list through ``loader`` and hands the same
    immutable tuple to every subscriber. Loads and deliveries happen under one
    lock, so every subscriber sees snapshots in the order they were loaded.
    """

    def __init__(self, loader: Loader):
        self._loader = loader
        self._deliver_lock = RLock()
        self._subs_lock = Lock()
        self._subscribers: dict[int, tuple[SnapshotCallback, ErrorCallback | None]] = {}
        self._ids = itertools.count(1)
        self.version = 0

    @property
    def subscriber_count(self) -> int:
        with self._subs_lock:
            return len(self._subscribers)

    def _load(self) -> Snapshot:
        snapshot = tuple(self._loader())
        self.version += 1
        return snapshot

    def subscribe(self, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None) -> Callable[[], None]:
        sub_id = next(self._ids)
        with self._deliver_lock:
            with self._subs_lock:
                self._subscribers[sub_id] = (on_snapshot, on_error)
            try:
                snapshot = self._load()
            except Exception as exc:
                _LOG.error("initial feed load failed: %s", exc)
                self._call_error(on_error, exc)
            else:
                self._call_snapshot(on_snapshot, snapshot)

        def unsubscribe() -> None:
            with self._subs_lock:
                self._subscribers.pop(sub_id, None)

        return unsubscribe

    def notify_changed(self) -> None:
        with self._deliver_lock:
            with self._subs_lock:
                subscribers = list(self._subscribers.values())
            if not subscribers:
                return
            try:
                snapshot = self._load()
            except Exception as exc:
                _LOG.error("feed reload failed: %s", exc)
                for _, on_error in subscribers:
                    self._call_error(on_error, exc)
                return
            for on_snapshot, _ in subscribers:
                self._call_snapshot(on_snapshot, snapshot)

    @staticmethod
    def _call_snapshot(callback: SnapshotCallback, snapshot: Snapshot) -> None:
        try:
            callback(snapshot)
        except Exception:
            _LOG.exception("feed subscriber failed on snapshot")

    @staticmethod
    def _call_error(callback: ErrorCallback | None, exc: Exception) -> None:
        if callback is None:
            return
        try:
            callback(exc)
        except Exception:
            _LOG.exception("feed subscriber failed on error")


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


def view_payload(view: FilteredView) -> dict:
    return {
        "rows": [row.as_dict() for row in view.rows],
        "total": view.total,
        "matched": view.matched,
        "empty_reason": view.empty_reason,
        "empty_message": view.empty_message,
    }


def stream_filtered_views(
    feed: RequestFeed,
    filters: RequestFilters,
    *,
    today: Callable[[], date],
    heartbeat_seconds: float = 15.0,
    max_events: int | None = None,
) -> Iterator[str]:
    """Server-Sent Events for one admin view; unsubscribes when the consumer stops.

    ``today`` is called for every snapshot, so a view left open past midnight
    follows the new day.
    """
    inbox: "queue.Queue[tuple[str, object]]" = queue.Queue()
    unsubscribe = feed.subscribe(
        lambda snapshot: inbox.put(("snapshot", snapshot)),
        lambda exc: inbox.put(("error", exc)),
    )
    sent = 0
    try:
        while max_events is None or sent < max_events:
            try:
                kind, item = inbox.get(timeout=heartbeat_seconds)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            if kind == "error":
                yield _sse("error", {"detail": "Σφάλμα κατά τη φόρτωση των αιτημάτων."})
            else:
                view = filter_requests(item, filters, today=today())
                yield _sse("snapshot", view_payload(view))
            sent += 1
    finally:
        unsubscribe()


_feed: RequestFeed | None = None


def _load_from_database() -> list[RequestSnapshot]:
    from app.db.session import SessionLocal
    from app.services.request_store import list_requests_newest_first

    db = SessionLocal()
    try:
        return list_requests_newest_first(db)
    finally:
        db.close()


def get_request_feed() -> RequestFeed:
    global _feed
    if _feed is None:
        _feed = RequestFeed(_load_from_database)
    return _feed
