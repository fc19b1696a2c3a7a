from fastapi import APIRouter

from app.schemas.public import StatusOption
from app.services.request_filters import DATE_FILTERS, EMERGENCY_FILTERS, SORT_ASC, SORT_DESC
from app.services.request_status import AMBULANCE_TYPE_LABELS, AMBULANCE_TYPES, status_options

router = APIRouter()


@router.get("/statuses", response_model=list[StatusOption])
def get_status_options():
    return status_options()


@router.get("/filters")
def get_filter_options():
    return {
        "statuses": ["all", *[item["value"] for item in status_options()]],
        "emergency": list(EMERGENCY_FILTERS),
        "date_filter": list(DATE_FILTERS),
        "sort": [SORT_DESC, SORT_ASC],
        "ambulance_types": [{"value": code, "label": AMBULANCE_TYPE_LABELS[code]} for code in AMBULANCE_TYPES],
    }
