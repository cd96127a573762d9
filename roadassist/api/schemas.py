"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from roadassist.domain.enums import (
    DEFAULT_GARAGE_SERVICES,
    DEFAULT_GARAGE_VEHICLE_TYPES,
    AccountKind,
    RequestStatus,
    ServiceType,
    VehicleType,
)


# ── Auth ──────────────────────────────────────────────────────────────


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=120)
    user_type: AccountKind = AccountKind.CUSTOMER

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RefreshRequest(BaseModel):
    refresh_token: str


class SignOutRequest(BaseModel):
    refresh_token: Optional[str] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# ── Profiles & garages ────────────────────────────────────────────────


class ProfileResponse(BaseModel):
    id: int
    user_id: int
    user_type: AccountKind
    full_name: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=120)
    phone: Optional[str] = Field(None, max_length=32)
    avatar_url: Optional[str] = Field(None, max_length=512)


class GarageResponse(BaseModel):
    id: int
    profile_id: int
    garage_name: str
    description: Optional[str] = None
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    services_offered: list[ServiceType] = []
    vehicle_types_serviced: list[VehicleType] = []
    is_available: bool
    rating: float
    total_reviews: int

    model_config = {"from_attributes": True}


class GarageSetupRequest(BaseModel):
    garage_name: str
    description: Optional[str] = None
    address: str
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    services_offered: list[ServiceType] = Field(
        default_factory=lambda: list(DEFAULT_GARAGE_SERVICES)
    )
    vehicle_types_serviced: list[VehicleType] = Field(
        default_factory=lambda: list(DEFAULT_GARAGE_VEHICLE_TYPES)
    )

    @field_validator("garage_name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please enter your garage name.")
        return v.strip()

    @field_validator("address")
    @classmethod
    def _address_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please enter your garage address.")
        return v.strip()

    @field_validator("services_offered")
    @classmethod
    def _at_least_one_service(cls, v: list[ServiceType]) -> list[ServiceType]:
        if not v:
            raise ValueError("Please select at least one service.")
        return list(dict.fromkeys(v))


class AvailabilityUpdate(BaseModel):
    is_available: bool


class SessionResponse(BaseModel):
    account_id: int
    email: str
    expires_at: datetime
    profile: Optional[ProfileResponse] = None


class MeResponse(BaseModel):
    profile: ProfileResponse
    garage: Optional[GarageResponse] = None
    needs_garage_setup: bool = False


# ── Vehicles ──────────────────────────────────────────────────────────


class VehicleCreate(BaseModel):
    vehicle_type: VehicleType
    brand: str
    model: str
    registration_number: Optional[str] = None

    @field_validator("brand", "model")
    @classmethod
    def _required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please fill in all required fields.")
        return v.strip()

    @field_validator("registration_number")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class VehicleResponse(BaseModel):
    id: int
    profile_id: int
    vehicle_type: VehicleType
    brand: str
    model: str
    registration_number: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Service requests ──────────────────────────────────────────────────


class ServiceRequestCreate(BaseModel):
    # Optional here so a missing choice gets the field-scoped message from
    # the domain validation instead of a generic "field required".
    service_type: Optional[ServiceType] = None
    problem_description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    address: Optional[str] = None
    vehicle_id: Optional[int] = None
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent duplicate submissions on retries.",
    )


class ServiceRequestResponse(BaseModel):
    id: int
    customer_id: int
    garage_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    service_type: ServiceType
    status: RequestStatus
    address: Optional[str] = None
    latitude: float
    longitude: float
    problem_description: Optional[str] = None
    estimated_arrival: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CustomerRequestList(BaseModel):
    active: list[ServiceRequestResponse]
    past: list[ServiceRequestResponse]


class GarageFeedItem(ServiceRequestResponse):
    customer_name: str
    customer_phone: Optional[str] = None
    distance_km: Optional[float] = None
    next_status: Optional[RequestStatus] = None


class StatusUpdate(BaseModel):
    status: RequestStatus


class RequestEventResponse(BaseModel):
    id: int
    request_id: int
    from_status: Optional[RequestStatus] = None
    to_status: RequestStatus
    actor_profile_id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Reviews ───────────────────────────────────────────────────────────


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: int
    customer_id: int
    garage_id: int
    service_request_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ── Misc ──────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
