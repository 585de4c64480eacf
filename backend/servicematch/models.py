from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ProviderStatus = Literal["pending", "approved", "suspended", "rejected"]

MatchType = Literal[
    "exact-service",
    "skill-based",
    "fuzzy-match",
    "location-expanded",
    "synthesized",
]

AssignmentMethod = Literal["user-selected", "auto-assigned", "synthesized-fallback"]

BookingStatus = Literal["pending", "confirmed", "in_progress", "completed", "cancelled", "rejected"]


class Provider(BaseModel):
    id: str
    name: str
    status: ProviderStatus = "pending"
    skills: list[str] = Field(default_factory=list)
    service_areas: list[str] = Field(default_factory=list)
    rating: float = Field(default=0.0, ge=0, le=5)
    completed_jobs: int = 0
    default_price: Optional[int] = None
    default_duration_minutes: Optional[int] = None


class ServiceListing(BaseModel):
    id: str
    provider_id: str
    category: str
    title: str
    description: str = ""
    price: int
    duration_minutes: int = 120
    is_active: bool = True
    origin: Literal["onboarding", "synthesized"] = "onboarding"


class Location(BaseModel):
    area: str
    address: Optional[str] = None

    @field_validator("area")
    @classmethod
    def _area_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("location.area is required")
        return value.strip()


class Schedule(BaseModel):
    date: str
    time: str

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError as exc:
            raise ValueError("schedule.date must be YYYY-MM-DD") from exc
        return value

    @field_validator("time")
    @classmethod
    def _clock_time(cls, value: str) -> str:
        try:
            datetime.strptime(value, "%H:%M")
        except ValueError as exc:
            raise ValueError("schedule.time must be HH:MM") from exc
        return value


class Budget(BaseModel):
    min: Optional[float] = None
    max: Optional[float] = None


def normalize_category(value: Any) -> str:
    """Accepts a bare string or an ``{id, name}`` object and returns the lowercase key."""
    if isinstance(value, dict):
        value = value.get("id") or value.get("name") or ""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("category is required")
    return value.strip().lower()


class DiscoveryRequest(BaseModel):
    # Mobile and web clients send camelCase (selectedProvider, providersNeeded); both spellings are accepted.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category: str
    location: Location
    schedule: Schedule
    urgency: Literal["normal", "urgent", "emergency"] = "normal"
    budget: Optional[Budget] = None
    providers_needed: int = Field(default=1, ge=1, le=20)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> str:
        return normalize_category(value)


class BookingCreateRequest(DiscoveryRequest):
    client_id: str
    description: str = ""
    payment_method: Literal["cash", "card", "mpesa", "bank-transfer"] = "cash"
    payment_timing: Literal["pay-now", "pay-after"] = "pay-after"
    total_amount: Optional[int] = Field(default=None, gt=0)
    selected_provider: Optional[Dict[str, Any]] = None


class MatchCandidate(BaseModel):
    provider_id: str
    name: str
    service_id: Optional[str] = None
    match_type: MatchType
    score: float
    rationale: Optional[str] = None
    tier: int = 0


class StrategyCounts(BaseModel):
    exact_services: int = 0
    skill_based: int = 0
    fuzzy_match: int = 0
    location_expanded: int = 0


class DiscoveryResponse(BaseModel):
    providers: list[MatchCandidate]
    total_found: int
    search_strategies: StrategyCounts
    category: str
    location: str


class SelectionRef(BaseModel):
    provider_id: str
    service_id: Optional[str] = None


class ResolvedAssignment(BaseModel):
    provider_id: str
    service_id: str
    assignment_method: AssignmentMethod
    match_type: Optional[MatchType] = None
    score: Optional[float] = None


class BookingPricing(BaseModel):
    base_price: int
    urgency_multiplier: float = 1.0
    total_amount: int
    currency: str = "KES"


class BookingPayment(BaseModel):
    method: str
    status: Literal["pending", "completed"] = "pending"


class Booking(BaseModel):
    id: str
    booking_number: str
    client_id: str
    provider_id: str
    service_id: str
    category: str
    status: BookingStatus = "pending"
    assignment_method: AssignmentMethod
    scheduled_date: str
    start_time: str
    end_time: str
    location: Location
    pricing: BookingPricing
    payment: BookingPayment
    description: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str


class BookingStatusUpdateRequest(BaseModel):
    actor_user_id: str
    status: Literal["confirmed", "in_progress", "completed", "cancelled", "rejected"]
    note: str = ""


class SelectionErrorDetail(BaseModel):
    message: str
    field: str


class AuthLoginRequest(BaseModel):
    user_id: str
    password: str = "servicematch-demo"
    role: Literal["client", "provider"] = "client"


class AuthLoginResponse(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"
    user_id: str
    role: Literal["client", "provider"]
    expires_at: str


class AuthMeResponse(BaseModel):
    user_id: str
    role: Literal["client", "provider"]
    expires_at: str


class DeviceTokenRegisterRequest(BaseModel):
    user_id: str
    device_token: str
    platform: Literal["android", "ios", "web"] = "android"


class NotificationRecord(BaseModel):
    id: str
    user_id: str
    title: str
    body: str
    category: Literal["booking", "system"] = "system"
    read: bool = False
    created_at: str
    deep_link: Optional[str] = None
