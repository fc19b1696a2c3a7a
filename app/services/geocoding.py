from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from app.core.config import settings

_LOG = logging.getLogger("app.geocoding")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"
PLACE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

AUTOCOMPLETE_MIN_LENGTH = 3

# Plus Codes ("8G6X+2M Athens") are what the provider returns when it has no
# street address for a point.
_PLUS_CODE_RE = re.compile(r"\b[23456789CFGHJMPQRVWX]{4,8}\+[23456789CFGHJMPQRVWX]{0,3}", re.IGNORECASE)


class GeocodingError(Exception):
    pass


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lng: float
    formatted: str | None = None


@dataclass(frozen=True)
class PlaceSuggestion:
    description: str
    place_id: str


@dataclass(frozen=True)
class PlaceDetails:
    text: str
    lat: float | None
    lng: float | None


class GeocodingProvider(Protocol):
    def geocode(self, text: str) -> GeocodeResult | None:
        ...

    def reverse_geocode(self, lat: float, lng: float) -> PlaceDetails:
        ...

    def autocomplete(self, text: str, *, session_token: str | None = None) -> list[PlaceSuggestion]:
        ...

    def place_details(self, place_id: str, *, session_token: str | None = None) -> PlaceDetails | None:
        ...


def is_plus_code_address(value: str | None) -> bool:
    return bool(_PLUS_CODE_RE.search(str(value or "")))


def coordinates_text(lat: float, lng: float) -> str:
    return f"{lat:.6f}, {lng:.6f}"


def _location_of(result: dict[str, Any]) -> tuple[float | None, float | None]:
    location = ((result or {}).get("geometry") or {}).get("location") or {}
    lat = location.get("lat")
    lng = location.get("lng")
    if lat is None or lng is None:
        return None, None
    try:
        return float(lat), float(lng)
    except (TypeError, ValueError):
        return None, None


class GoogleMapsGeocoder:
    """Thin client for the Google Geocoding and Places web services."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        language: str | None = None,
        countries: list[str] | None = None,
        timeout: float | None = None,
    ):
        self.api_key = str(api_key if api_key is not None else settings.GOOGLE_MAPS_API_KEY).strip()
        self.language = language or settings.GEOCODING_LANGUAGE
        self.countries = countries if countries is not None else settings.geocoding_countries_list
        self.timeout = float(timeout if timeout is not None else settings.GEOCODING_TIMEOUT_SECONDS)

    def _get(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.api_key:
            raise GeocodingError("GOOGLE_MAPS_API_KEY is not configured")
        query = {**params, "key": self.api_key, "language": self.language}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, params=query)
        except httpx.HTTPError as exc:
            raise GeocodingError(f"geocoding request failed: {exc}") from exc
        if response.status_code >= 400:
            raise GeocodingError(f"geocoding HTTP {response.status_code}")
        try:
            payload = response.json() if response.content else {}
        except ValueError as exc:
            raise GeocodingError("geocoding response is not JSON") from exc
        if not isinstance(payload, dict):
            raise GeocodingError("geocoding response is not an object")
        status = str(payload.get("status") or "")
        if status not in {"OK", "ZERO_RESULTS"}:
            detail = payload.get("error_message") or status or "unknown"
            raise GeocodingError(f"geocoding status {detail}")
        return payload

    def _components(self, separator: str = "|") -> str | None:
        if not self.countries:
            return None
        return separator.join(f"country:{code}" for code in self.countries)

    def geocode(self, text: str) -> GeocodeResult | None:
        address = str(text or "").strip()
        if not address:
            return None
        params: dict[str, Any] = {"address": address}
        components = self._components()
        if components:
            params["components"] = components
        payload = self._get(GEOCODE_URL, params)
        for result in payload.get("results") or []:
            lat, lng = _location_of(result)
            if lat is None or lng is None:
                continue
            return GeocodeResult(lat=lat, lng=lng, formatted=result.get("formatted_address") or None)
        return None

    def reverse_geocode(self, lat: float, lng: float) -> PlaceDetails:
        payload = self._get(GEOCODE_URL, {"latlng": f"{lat},{lng}"})
        for result in payload.get("results") or []:
            formatted = str(result.get("formatted_address") or "").strip()
            if not formatted or is_plus_code_address(formatted):
                continue
            if "plus_code" in (result.get("types") or []):
                continue
            return PlaceDetails(text=formatted, lat=lat, lng=lng)
        return PlaceDetails(text=coordinates_text(lat, lng), lat=lat, lng=lng)

    def autocomplete(self, text: str, *, session_token: str | None = None) -> list[PlaceSuggestion]:
        value = str(text or "").strip()
        if len(value) < AUTOCOMPLETE_MIN_LENGTH:
            return []
        params: dict[str, Any] = {"input": value}
        components = self._components()
        if components:
            params["components"] = components
        if session_token:
            params["sessiontoken"] = session_token
        payload = self._get(AUTOCOMPLETE_URL, params)
        suggestions: list[PlaceSuggestion] = []
        for item in payload.get("predictions") or []:
            description = str(item.get("description") or "").strip()
            place_id = str(item.get("place_id") or "").strip()
            if not description or not place_id:
                continue
            suggestions.append(PlaceSuggestion(description=description, place_id=place_id))
        return suggestions

    def place_details(self, place_id: str, *, session_token: str | None = None) -> PlaceDetails | None:
        normalized = str(place_id or "").strip()
        if not normalized:
            return None
        params: dict[str, Any] = {"place_id": normalized, "fields": "formatted_address,geometry,name"}
        if session_token:
            params["sessiontoken"] = session_token
        payload = self._get(PLACE_DETAILS_URL, params)
        result = payload.get("result") or {}
        if not result:
            return None
        lat, lng = _location_of(result)
        text = str(result.get("formatted_address") or result.get("name") or "").strip()
        return PlaceDetails(text=text, lat=lat, lng=lng)


def resolve_coordinates(
    provider: GeocodingProvider | None,
    text: str,
    lat: float | None,
    lng: float | None,
) -> tuple[float | None, float | None]:
    """Known coordinates win; otherwise geocode the text, never failing."""
    if lat is not None and lng is not None:
        return float(lat), float(lng)
    if provider is None:
        return None, None
    try:
        result = provider.geocode(text)
    except Exception as exc:
        _LOG.warning("geocoding skipped for %r: %s", text, exc)
        return None, None
    if result is None:
        return None, None
    return result.lat, result.lng


_cached_geocoder: GeocodingProvider | None = None


def get_geocoder() -> GeocodingProvider:
    global _cached_geocoder
    if _cached_geocoder is None:
        _cached_geocoder = GoogleMapsGeocoder()
    return _cached_geocoder
