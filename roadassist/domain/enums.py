"""Domain enumerations and state-transition rules."""

import enum


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    ON_THE_WAY = "on_the_way"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AccountKind(str, enum.Enum):
    CUSTOMER = "customer"
    GARAGE = "garage"


class ServiceType(str, enum.Enum):
    PUNCTURE = "puncture"
    ENGINE_ISSUE = "engine_issue"
    BATTERY = "battery"
    TOWING = "towing"
    OIL_CHANGE = "oil_change"
    BRAKE_ISSUE = "brake_issue"
    OTHER = "other"


class VehicleType(str, enum.Enum):
    BIKE = "bike"
    CAR = "car"
    TRUCK = "truck"
    AUTO_RICKSHAW = "auto_rickshaw"
    OTHER = "other"


# State machine: (current, next) -> the only role allowed to make that move
TRANSITION_ACTORS: dict[tuple[RequestStatus, RequestStatus], AccountKind] = {
    (RequestStatus.PENDING, RequestStatus.ACCEPTED): AccountKind.GARAGE,
    (RequestStatus.PENDING, RequestStatus.CANCELLED): AccountKind.CUSTOMER,
    (RequestStatus.ACCEPTED, RequestStatus.ON_THE_WAY): AccountKind.GARAGE,
    (RequestStatus.ON_THE_WAY, RequestStatus.IN_PROGRESS): AccountKind.GARAGE,
    (RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED): AccountKind.GARAGE,
}

# Maps current status -> set of valid next statuses
REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    status: {nxt for (cur, nxt) in TRANSITION_ACTORS if cur == status}
    for status in RequestStatus
}

TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})

DEFAULT_GARAGE_SERVICES = [
    ServiceType.PUNCTURE,
    ServiceType.ENGINE_ISSUE,
    ServiceType.BATTERY,
]
DEFAULT_GARAGE_VEHICLE_TYPES = [VehicleType.BIKE, VehicleType.CAR]
