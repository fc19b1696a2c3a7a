from datetime import date, datetime
from typing import Callable
from zoneinfo import ZoneInfo

from fastapi import Request

from app.core.config import settings
from app.services.geocoding import GeocodingProvider, get_geocoder
from app.services.rate_limit import SCOPE_CREATE_REQUEST, SCOPE_PLACES, rate_limit_or_429
from app.services.request_feed import RequestFeed, get_request_feed
from app.services.status_guard import StatusChangeGuard, get_status_guard

def get_today() -> date:
    return datetime.now(ZoneInfo(settings.APP_TIMEZONE)).date()

def get_clock() -> Callable[[], date]:
    return get_today

def get_geocoding_provider() -> GeocodingProvider:
    return get_geocoder()

def get_feed() -> RequestFeed:
    return get_request_feed()

def get_guard() -> StatusChangeGuard:
    return get_status_guard()

def limit_create_request(request: Request) -> None:
    rate_limit_or_429(request, SCOPE_CREATE_REQUEST)

def limit_places(request: Request) -> None:
    rate_limit_or_429(request, SCOPE_PLACES)
