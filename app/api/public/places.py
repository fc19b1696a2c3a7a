from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.deps import get_geocoding_provider, limit_places
from app.schemas.public import PlaceRead, PlaceSuggestionRead
from app.services.geocoding import (
    AUTOCOMPLETE_MIN_LENGTH,
    GeocodingError,
    GeocodingProvider,
    coordinates_text,
)

router = APIRouter()

_LOG = logging.getLogger("app.geocoding")

PROVIDER_UNAVAILABLE = "Η υπηρεσία διευθύνσεων δεν είναι διαθέσιμη."


@router.get("/autocomplete", response_model=list[PlaceSuggestionRead])
def autocomplete(
    input: str = Query(default="", max_length=200),
    session_token: str | None = Query(default=None, max_length=100),
    geocoder: GeocodingProvider = Depends(get_geocoding_provider),
    _limit: None = Depends(limit_places),
):
    text = input.strip()
    if len(text) < AUTOCOMPLETE_MIN_LENGTH:
        return []
    try:
        suggestions = geocoder.autocomplete(text, session_token=session_token)
    except GeocodingError as exc:
        _LOG.warning("autocomplete failed: %s", exc)
        raise HTTPException(status_code=502, detail=PROVIDER_UNAVAILABLE)
    return [
        PlaceSuggestionRead(description=item.description, place_id=item.place_id)
        for item in suggestions
        if item.description and item.place_id
    ]


@router.get("/reverse", response_model=PlaceRead)
def reverse_geocode(
    lat: float = Query(ge=-90, le=90),
    lng: float = Query(ge=-180, le=180),
    geocoder: GeocodingProvider = Depends(get_geocoding_provider),
    _limit: None = Depends(limit_places),
):
    try:
        place = geocoder.reverse_geocode(lat, lng)
    except GeocodingError as exc:
        _LOG.warning("reverse geocoding failed: %s", exc)
        return PlaceRead(text=coordinates_text(lat, lng), lat=lat, lng=lng)
    return PlaceRead(text=place.text, lat=place.lat, lng=place.lng)


@router.get("/details/{place_id}", response_model=PlaceRead)
def place_details(
    place_id: str,
    session_token: str | None = Query(default=None, max_length=100),
    geocoder: GeocodingProvider = Depends(get_geocoding_provider),
    _limit: None = Depends(limit_places),
):
    try:
        place = geocoder.place_details(place_id, session_token=session_token)
    except GeocodingError as exc:
        _LOG.warning("place details failed: %s", exc)
        raise HTTPException(status_code=502, detail=PROVIDER_UNAVAILABLE)
    if place is None:
        raise HTTPException(status_code=404, detail="Η τοποθεσία δεν βρέθηκε.")
    return PlaceRead(text=place.text, lat=place.lat, lng=place.lng)
