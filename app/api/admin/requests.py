from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_clock, get_feed, get_guard, get_today
from app.db.session import get_db
from app.schemas.admin import AdminRequestList, AdminRequestRow, RequestStatusChange, RequestStatusChanged
from app.schemas.public import Problem
from app.services.request_feed import RequestFeed, stream_filtered_views, view_payload
from app.services.request_filters import InvalidFilter, RequestFilters, filter_requests
from app.services.request_status import is_known_status, is_terminal, normalize_status, transition_allowed
from app.services.request_store import StoreError, get_request, list_requests_newest_first, snapshot_from_row, update_status
from app.services.status_guard import StatusChangeGuard, StatusChangeInFlight

router = APIRouter()

_LOG = logging.getLogger("app.admin")

LIST_FAILED_MESSAGE = "Σφάλμα κατά τη φόρτωση των αιτημάτων."
STATUS_FAILED_MESSAGE = "Αποτυχία ενημέρωσης κατάστασης."


def _filters(
    status: str = Query(default="all"),
    emergency: str = Query(default="all"),
    date_filter: str = Query(default="today"),
    date_from: str | None = Query(default=None),
    date_to: str | None = Query(default=None),
    sort: str = Query(default="desc"),
) -> RequestFilters:
    filters = RequestFilters(
        status=status,
        emergency=emergency,
        date_filter=date_filter,
        date_from=date_from,
        date_to=date_to,
        sort=sort,  # type: ignore[arg-type]
    )
    try:
        return filters.validated()
    except InvalidFilter as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("", response_model=AdminRequestList, responses={503: {"model": Problem}})
def list_requests(
    filters: RequestFilters = Depends(_filters),
    today: date = Depends(get_today),
    db: Session = Depends(get_db),
):
    try:
        snapshot = list_requests_newest_first(db)
    except StoreError:
        raise HTTPException(status_code=503, detail=LIST_FAILED_MESSAGE)
    return view_payload(filter_requests(snapshot, filters, today=today))


@router.get("/stream")
def stream_requests(
    filters: RequestFilters = Depends(_filters),
    clock: Callable[[], date] = Depends(get_clock),
    feed: RequestFeed = Depends(get_feed),
):
    events = stream_filtered_views(
        feed,
        filters,
        today=clock,
        heartbeat_seconds=settings.FEED_HEARTBEAT_SECONDS,
    )
    return StreamingResponse(events, media_type="text/event-stream")


@router.get("/{request_id}", response_model=AdminRequestRow, responses={404: {"model": Problem}})
def get_request_detail(request_id: str, db: Session = Depends(get_db)):
    try:
        row = get_request(db, request_id)
    except StoreError:
        raise HTTPException(status_code=503, detail=LIST_FAILED_MESSAGE)
    if row is None:
        raise HTTPException(status_code=404, detail="Το αίτημα δεν βρέθηκε.")
    return snapshot_from_row(row).as_dict()


@router.patch(
    "/{request_id}/status",
    response_model=RequestStatusChanged,
    responses={400: {"model": Problem}, 404: {"model": Problem}, 409: {"model": Problem}, 503: {"model": Problem}},
)
def change_request_status(
    request_id: str,
    payload: RequestStatusChange,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    feed: RequestFeed = Depends(get_feed),
    guard: StatusChangeGuard = Depends(get_guard),
):
    next_status = str(payload.status or "").strip().lower()
    if not is_known_status(next_status):
        raise HTTPException(status_code=400, detail="Άγνωστη κατάσταση αιτήματος.")

    try:
        with guard.hold(request_id):
            current = get_request(db, request_id)
            if current is None:
                raise HTTPException(status_code=404, detail="Το αίτημα δεν βρέθηκε.")
            previous = normalize_status(current.status)
            if not transition_allowed(previous, next_status):
                raise HTTPException(status_code=400, detail="Η αλλαγή κατάστασης δεν επιτρέπεται.")
            row = update_status(db, request_id, next_status)
    except StatusChangeInFlight:
        raise HTTPException(status_code=409, detail="Η κατάσταση του αιτήματος ενημερώνεται ήδη.")
    except StoreError:
        raise HTTPException(status_code=503, detail=STATUS_FAILED_MESSAGE)
    if row is None:
        raise HTTPException(status_code=404, detail="Το αίτημα δεν βρέθηκε.")

    _LOG.info("status changed request_id=%s %s -> %s", request_id, previous, next_status)
    if is_terminal(previous) and not is_terminal(next_status):
        _LOG.warning("closed request reopened request_id=%s %s -> %s", request_id, previous, next_status)
    background_tasks.add_task(feed.notify_changed)
    return RequestStatusChanged(status="ok", request_id=str(row.id), new_status=row.status)
