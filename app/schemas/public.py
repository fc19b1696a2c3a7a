from pydantic import BaseModel, Field
from typing import Optional, List, Any
from uuid import UUID

class PublicRequestCreate(BaseModel):
    # trimmed and checked in validate_submission
    pickup_text: Optional[str] = None
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dest_text: Optional[str] = None
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    date: Optional[str] = None
    time_from: Optional[str] = None
    time_to: Optional[str] = None
    ambulance_type: Optional[str] = None
    is_emergency: bool = False
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    comments: Optional[str] = None

class PublicRequestCreated(BaseModel):
    request_id: UUID
    public_token: str
    status: str
    status_url: Optional[str] = None

class PublicOffer(BaseModel):
    company: str
    price: Optional[float] = None
    note: Optional[str] = None

class PublicRequestView(BaseModel):
    status: str
    status_label: str
    created_at: Optional[str] = None
    created_at_label: str
    date: str
    time_from: str
    time_to: str
    time_window_label: str
    ambulance_type: str
    ambulance_type_label: str
    is_emergency: bool
    emergency_label: str
    pickup_text: str
    dest_text: str
    comments: str
    offers: List[PublicOffer] = Field(default_factory=list)

class FieldError(BaseModel):
    field: str
    message: str

class PlaceSuggestionRead(BaseModel):
    description: str
    place_id: str

class PlaceRead(BaseModel):
    text: str
    lat: Optional[float] = None
    lng: Optional[float] = None

class StatusOption(BaseModel):
    value: str
    label: str
    public_label: str
    terminal: bool

class Problem(BaseModel):
    detail: Any
