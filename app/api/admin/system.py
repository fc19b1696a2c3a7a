from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.deps import get_feed
from app.services.email_service import email_provider_health
from app.services.rate_limit import get_rate_limiter
from app.services.request_feed import RequestFeed

router = APIRouter()


@router.get("/email-health")
def get_email_provider_health():
    return email_provider_health()


@router.get("/feed")
def get_feed_state(feed: RequestFeed = Depends(get_feed)):
    return {
        "subscribers": feed.subscriber_count,
        "version": feed.version,
        "rate_limiter": type(get_rate_limiter()).__name__,
    }
