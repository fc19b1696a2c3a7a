from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.request import AmbulanceRequest
from app.services.request_status import STATUS_PENDING, normalize_status

_LOG = logging.getLogger("app.store")


class StoreError(Exception):
    pass


@dataclass(frozen=True)
class RequestSnapshot:
    id: str
    pickup_text: str
    dest_text: str
    date: str
    time_from: str | None
    time_to: str | None
    ambulance_type: str | None
    is_emergency: bool
    email: str | None
    full_name: str | None
    phone: str | None
    comments: str | None
    status: str
    source: str | None
    public_token: str | None
    created_at: datetime | None
    pickup_lat: float | None = None
    pickup_lng: float | None = None
    dest_lat: float | None = None
    dest_lng: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pickup_text": self.pickup_text,
            "pickup_lat": self.pickup_lat,
            "pickup_lng": self.pickup_lng,
            "dest_text": self.dest_text,
            "dest_lat": self.dest_lat,
            "dest_lng": self.dest_lng,
            "date": self.date,
            "time_from": self.time_from,
            "time_to": self.time_to,
            "ambulance_type": self.ambulance_type,
            "is_emergency": self.is_emergency,
            "email": self.email,
            "full_name": self.full_name,
            "phone": self.phone,
            "comments": self.comments,
            "status": self.status,
            "source": self.source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def snapshot_from_row(row: AmbulanceRequest) -> RequestSnapshot:
    return RequestSnapshot(
        id=str(row.id),
        pickup_text=row.pickup_text or "",
        dest_text=row.dest_text or "",
        date=row.date or "",
        time_from=row.time_from or None,
        time_to=row.time_to or None,
        ambulance_type=row.ambulance_type or None,
        is_emergency=bool(row.is_emergency),
        email=row.email or None,
        full_name=row.full_name or None,
        phone=row.phone or None,
        comments=row.comments or None,
        status=normalize_status(row.status),
        source=row.source or None,
        public_token=row.public_token or None,
        created_at=row.created_at,
        pickup_lat=row.pickup_lat,
        pickup_lng=row.pickup_lng,
        dest_lat=row.dest_lat,
        dest_lng=row.dest_lng,
    )


def _as_uuid_or_none(value: Any) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def insert_request(db: Session, fields: dict[str, Any]) -> AmbulanceRequest:
    row = AmbulanceRequest(**fields)
    if not row.status:
        row.status = STATUS_PENDING
    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        _LOG.error("request insert failed: %s", exc)
        raise StoreError("insert failed") from exc
    return row


def list_requests_newest_first(db: Session) -> list[RequestSnapshot]:
    try:
        rows = (
            db.query(AmbulanceRequest)
            .order_by(AmbulanceRequest.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        _LOG.error("request list failed: %s", exc)
        raise StoreError("list failed") from exc
    return [snapshot_from_row(row) for row in rows]


def get_request(db: Session, request_id: Any) -> AmbulanceRequest | None:
    request_uuid = _as_uuid_or_none(request_id)
    if request_uuid is None:
        return None
    try:
        return db.get(AmbulanceRequest, request_uuid)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("read failed") from exc


def find_by_public_token(db: Session, token: str) -> AmbulanceRequest | None:
    # A collision would leave several rows; the earliest one wins.
    try:
        return (
            db.query(AmbulanceRequest)
            .filter(AmbulanceRequest.public_token == token)
            .order_by(AmbulanceRequest.created_at.asc())
            .limit(1)
            .first()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        _LOG.error("public token lookup failed: %s", exc)
        raise StoreError("lookup failed") from exc


def update_status(db: Session, request_id: Any, status: str) -> AmbulanceRequest | None:
    row = get_request(db, request_id)
    if row is None:
        return None
    try:
        row.status = status
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as exc:
        db.rollback()
        _LOG.error("status update failed request_id=%s: %s", request_id, exc)
        raise StoreError("update failed") from exc
    return row
