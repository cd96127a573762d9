"""
Domain value objects and the validation rules that build them.

``RequestDraft`` is what a customer submits, already checked: a service
type and somewhere to send the garage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import ServiceType


class InvalidDraft(ValueError):
    """Raised when a submitted form fails validation; names the field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    def describe(self) -> str:
        return f"Lat: {self.latitude:.6f}, Lng: {self.longitude:.6f}"


@dataclass(frozen=True)
class RequestDraft:
    service_type: ServiceType
    latitude: float
    longitude: float
    address: str
    problem_description: Optional[str] = None


def draft_request(
    service_type: Optional[ServiceType],
    location: Optional[Location] = None,
    address: Optional[str] = None,
    description: Optional[str] = None,
) -> RequestDraft:
    """
    Validate a new service request.

    A captured location wins for coordinates; the address defaults to one
    derived from it.  With only a typed address the coordinates are stored
    as 0, 0.
    """
    if service_type is None:
        raise InvalidDraft("service_type", "Please select a service type.")

    address = (address or "").strip()
    if location is None and not address:
        raise InvalidDraft("address", "Please provide your location or address.")

    if location is not None:
        lat, lng = location.latitude, location.longitude
        address = address or location.describe()
    else:
        lat, lng = 0.0, 0.0

    return RequestDraft(
        service_type=ServiceType(service_type),
        latitude=lat,
        longitude=lng,
        address=address,
        problem_description=(description or "").strip() or None,
    )

