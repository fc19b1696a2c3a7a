from fastapi import APIRouter
from app.api.admin import meta, requests, system

router = APIRouter()
router.include_router(requests.router, prefix="/requests", tags=["AdminRequests"])
router.include_router(meta.router, prefix="/meta", tags=["AdminMeta"])
router.include_router(system.router, prefix="/system", tags=["AdminSystem"])
