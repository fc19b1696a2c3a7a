from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_feed, get_geocoding_provider, limit_create_request
from app.db.session import get_db
from app.schemas.public import FieldError, Problem, PublicRequestCreate, PublicRequestCreated, PublicRequestView
from app.services.geocoding import GeocodingProvider
from app.services.notifications import dispatch_new_request_notifications, status_url_for_token
from app.services.public_lookup import NOT_FOUND_MESSAGE, lookup_public_request
from app.services.request_feed import RequestFeed
from app.services.request_store import StoreError
from app.services.request_submission import SubmissionValidationError, submit_request

router = APIRouter()


SUBMIT_FAILED_MESSAGE = "Παρουσιάστηκε σφάλμα κατά την αποστολή. Δοκίμασε ξανά."
LOOKUP_FAILED_MESSAGE = "Παρουσιάστηκε σφάλμα κατά τη φόρτωση του αιτήματος."


def _notification_scheduler(background_tasks: BackgroundTasks):
    def _schedule(payload: dict[str, Any]) -> None:
        if settings.NOTIFICATIONS_VIA_CELERY:
            from app.workers.tasks.notify import send_new_request_notifications

            send_new_request_notifications.delay(payload)
            return
        background_tasks.add_task(dispatch_new_request_notifications, payload)

    return _schedule


@router.post(
    "",
    response_model=PublicRequestCreated,
    status_code=201,
    responses={422: {"model": Problem}, 503: {"model": Problem}},
)
def create_request(
    payload: PublicRequestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    geocoder: GeocodingProvider = Depends(get_geocoding_provider),
    feed: RequestFeed = Depends(get_feed),
    _limit: None = Depends(limit_create_request),
):
    try:
        result = submit_request(
            db,
            payload.model_dump(),
            geocoder=geocoder,
            schedule_notifications=_notification_scheduler(background_tasks),
        )
    except SubmissionValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=[FieldError(**error).model_dump() for error in exc.errors],
        )
    except StoreError:
        raise HTTPException(status_code=503, detail=SUBMIT_FAILED_MESSAGE)

    background_tasks.add_task(feed.notify_changed)
    return PublicRequestCreated(
        request_id=result.request.id,
        public_token=result.public_token,
        status=result.request.status,
        status_url=status_url_for_token(result.public_token),
    )


@router.get("/{token}", response_model=PublicRequestView, responses={404: {"model": Problem}, 503: {"model": Problem}})
def get_request_by_token(token: str, db: Session = Depends(get_db)):
    try:
        view = lookup_public_request(db, token)
    except StoreError:
        raise HTTPException(status_code=503, detail=LOOKUP_FAILED_MESSAGE)
    if view is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return view
