from fastapi import APIRouter
from app.api.public import requests, places

router = APIRouter()
router.include_router(requests.router, prefix="/requests", tags=["Public"])
router.include_router(places.router, prefix="/places", tags=["PublicPlaces"])
