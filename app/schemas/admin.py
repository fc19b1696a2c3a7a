from pydantic import BaseModel
from typing import Optional, List, Literal

class AdminRequestRow(BaseModel):
    id: str
    pickup_text: str
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dest_text: str
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    date: str
    time_from: Optional[str] = None
    time_to: Optional[str] = None
    ambulance_type: Optional[str] = None
    is_emergency: bool = False
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    comments: Optional[str] = None
    status: str
    source: Optional[str] = None
    created_at: Optional[str] = None

class AdminRequestList(BaseModel):
    rows: List[AdminRequestRow]
    total: int
    matched: int
    empty_reason: Optional[Literal["no_requests", "no_matches"]] = None
    empty_message: Optional[str] = None

class RequestStatusChange(BaseModel):
    status: str

class RequestStatusChanged(BaseModel):
    status: str
    request_id: str
    new_status: str
