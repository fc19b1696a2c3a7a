from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator


class StatusChangeInFlight(Exception):
    pass


class StatusChangeGuard:
    """One in-flight status change per request id; other ids proceed freely."""

    def __init__(self):
        self._lock = Lock()
        self._in_flight: set[str] = set()

    def is_in_flight(self, request_id: str) -> bool:
        with self._lock:
            return str(request_id) in self._in_flight

    @contextmanager
    def hold(self, request_id: str) -> Iterator[None]:
        key = str(request_id)
        with self._lock:
            if key in self._in_flight:
                raise StatusChangeInFlight(key)
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)


_guard = StatusChangeGuard()


def get_status_guard() -> StatusChangeGuard:
    return _guard
