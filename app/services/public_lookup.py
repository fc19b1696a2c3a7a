from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.core.config import settings
from app.services.notifications import time_window_label
from app.services.public_token import is_well_formed_token
from app.services.request_status import ambulance_type_label, normalize_status, public_status_label
from app.services.request_store import find_by_public_token, snapshot_from_row

NOT_FOUND_MESSAGE = "Δεν βρέθηκε αίτημα με αυτόν τον σύνδεσμο."
PLACEHOLDER = "-"


def _or_placeholder(value: Any) -> str:
    text = str(value or "").strip()
    return text or PLACEHOLDER


def format_created_at(value: datetime | None) -> str:
    if value is None:
        return PLACEHOLDER
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo("UTC"))
    local = value.astimezone(ZoneInfo(settings.APP_TIMEZONE))
    return local.strftime("%d/%m/%Y %H:%M")


def lookup_public_request(db: Session, token: str | None) -> dict[str, Any] | None:
    """Read-only customer view for a token, or ``None`` for any unknown/malformed token."""
    normalized = str(token or "").strip()
    if not is_well_formed_token(normalized):
        return None
    row = find_by_public_token(db, normalized)
    if row is None:
        return None
    snap = snapshot_from_row(row)
    status = normalize_status(snap.status)
    return {
        "status": status,
        "status_label": public_status_label(status),
        "created_at": snap.created_at.isoformat() if snap.created_at else None,
        "created_at_label": format_created_at(snap.created_at),
        "date": _or_placeholder(snap.date),
        "time_from": _or_placeholder(snap.time_from),
        "time_to": _or_placeholder(snap.time_to),
        "time_window_label": time_window_label(snap.time_from, snap.time_to),
        "ambulance_type": _or_placeholder(snap.ambulance_type),
        "ambulance_type_label": ambulance_type_label(snap.ambulance_type),
        "is_emergency": snap.is_emergency,
        "emergency_label": "Ναι (επείγον περιστατικό)" if snap.is_emergency else "Όχι (συνήθες)",
        "pickup_text": _or_placeholder(snap.pickup_text),
        "dest_text": _or_placeholder(snap.dest_text),
        "comments": _or_placeholder(snap.comments),
        # Reserved for the offers feature; clients render the section only when non-empty.
        "offers": [],
    }
