"""New request intake: validate -> resolve coordinates -> write -> notify.

Only the first three steps can fail a submission. Notification runs after the
write has been committed and is handed to ``schedule_notifications``, whose
failures are logged and discarded.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.request import AmbulanceRequest
from app.services.geocoding import GeocodingProvider, resolve_coordinates
from app.services.notifications import notification_payload
from app.services.public_token import generate_public_token
from app.services.request_status import AMBULANCE_TYPES, STATUS_PENDING
from app.services.request_store import insert_request

_LOG = logging.getLogger("app.submission")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_TEXT_FIELDS = (
    "pickup_text",
    "dest_text",
    "date",
    "time_from",
    "time_to",
    "ambulance_type",
    "email",
    "full_name",
    "phone",
    "comments",
)


class SubmissionValidationError(Exception):
    def __init__(self, errors: list[dict[str, str]]):
        super().__init__("; ".join(f"{e['field']}: {e['message']}" for e in errors))
        self.errors = errors


@dataclass
class SubmissionResult:
    request: AmbulanceRequest
    public_token: str
    notifications_scheduled: bool


def _clean_text(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _clean_coordinate(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_submission(
    raw: dict[str, Any],
    *,
    require_ambulance_type: bool | None = None,
    require_email: bool | None = None,
) -> dict[str, Any]:
    """Trim and check the form; raise ``SubmissionValidationError`` listing every bad field."""
    need_type = settings.REQUIRE_AMBULANCE_TYPE if require_ambulance_type is None else require_ambulance_type
    need_email = settings.REQUIRE_EMAIL if require_email is None else require_email

    cleaned: dict[str, Any] = {name: _clean_text(raw.get(name)) for name in _TEXT_FIELDS}
    errors: list[dict[str, str]] = []

    if not cleaned["pickup_text"]:
        errors.append({"field": "pickup_text", "message": "Συμπλήρωσε διεύθυνση παραλαβής."})
    if not cleaned["dest_text"]:
        errors.append({"field": "dest_text", "message": "Συμπλήρωσε διεύθυνση προορισμού."})

    if not cleaned["date"]:
        errors.append({"field": "date", "message": "Συμπλήρωσε ημερομηνία μεταφοράς."})
    else:
        try:
            date.fromisoformat(cleaned["date"])
        except ValueError:
            errors.append({"field": "date", "message": "Η ημερομηνία πρέπει να είναι στη μορφή YYYY-MM-DD."})
        else:
            if len(cleaned["date"]) != 10:
                errors.append({"field": "date", "message": "Η ημερομηνία πρέπει να είναι στη μορφή YYYY-MM-DD."})

    for name in ("time_from", "time_to"):
        value = cleaned[name]
        if value and not _TIME_RE.fullmatch(value):
            errors.append({"field": name, "message": "Η ώρα πρέπει να είναι στη μορφή HH:MM."})

    ambulance_type = cleaned["ambulance_type"]
    if ambulance_type:
        cleaned["ambulance_type"] = ambulance_type = ambulance_type.lower()
    if not ambulance_type:
        if need_type:
            errors.append({"field": "ambulance_type", "message": "Επίλεξε είδος ασθενοφόρου."})
    elif ambulance_type not in AMBULANCE_TYPES:
        errors.append({"field": "ambulance_type", "message": "Μη έγκυρο είδος ασθενοφόρου."})

    email = cleaned["email"]
    if not email:
        if need_email:
            errors.append({"field": "email", "message": "Συμπλήρωσε email επικοινωνίας."})
    elif not _EMAIL_RE.fullmatch(email):
        errors.append({"field": "email", "message": "Μη έγκυρη διεύθυνση email."})

    if errors:
        raise SubmissionValidationError(errors)

    cleaned["is_emergency"] = bool(raw.get("is_emergency"))
    for name in ("pickup_lat", "pickup_lng", "dest_lat", "dest_lng"):
        cleaned[name] = _clean_coordinate(raw.get(name))
    return cleaned


def submit_request(
    db: Session,
    raw: dict[str, Any],
    *,
    geocoder: GeocodingProvider | None,
    schedule_notifications: Callable[[dict[str, Any]], None] | None = None,
    rng: random.Random | None = None,
) -> SubmissionResult:
    cleaned = validate_submission(raw)

    pickup_lat, pickup_lng = resolve_coordinates(
        geocoder, cleaned["pickup_text"], cleaned["pickup_lat"], cleaned["pickup_lng"]
    )
    dest_lat, dest_lng = resolve_coordinates(
        geocoder, cleaned["dest_text"], cleaned["dest_lat"], cleaned["dest_lng"]
    )

    token = generate_public_token(settings.PUBLIC_TOKEN_LENGTH, rng=rng)
    row = insert_request(
        db,
        {
            "pickup_text": cleaned["pickup_text"],
            "pickup_lat": pickup_lat,
            "pickup_lng": pickup_lng,
            "dest_text": cleaned["dest_text"],
            "dest_lat": dest_lat,
            "dest_lng": dest_lng,
            "date": cleaned["date"],
            "time_from": cleaned["time_from"],
            "time_to": cleaned["time_to"],
            "ambulance_type": cleaned["ambulance_type"],
            "is_emergency": cleaned["is_emergency"],
            "email": cleaned["email"],
            "full_name": cleaned["full_name"],
            "phone": cleaned["phone"],
            "comments": cleaned["comments"],
            "status": STATUS_PENDING,
            "source": settings.REQUEST_SOURCE_TAG,
            "public_token": token,
        },
    )
    _LOG.info("request created id=%s emergency=%s date=%s", row.id, row.is_emergency, row.date)

    scheduled = False
    if schedule_notifications is not None:
        try:
            schedule_notifications(notification_payload(row))
            scheduled = True
        except Exception:
            _LOG.exception("could not schedule notifications for request %s", row.id)
    return SubmissionResult(request=row, public_token=token, notifications_scheduled=scheduled)
