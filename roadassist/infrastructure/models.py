"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``accounts``          -- sign-in identities (email + password hash)
* ``profiles``          -- one person per account, customer or garage
* ``garages``           -- service providers, one per garage-kind profile
* ``vehicles``          -- customers' vehicles
* ``service_requests``  -- the central work item
* ``request_events``    -- audit trail of status transitions
* ``reviews``           -- one per completed request

Indexes
-------
* **B-Tree** on ``service_requests.status``, ``customer_id``, ``garage_id``
  and ``created_at`` for the pending feed and the per-owner listings.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base
from roadassist.domain.enums import AccountKind, RequestStatus, ServiceType, VehicleType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _str_enum(enum_cls, name: str) -> Enum:
    # VARCHAR holding the lowercase values, no native DB enum type
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda e: [m.value for m in e],
    )


class AccountModel(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("accounts.id"), unique=True, nullable=False)
    user_type = Column(_str_enum(AccountKind, "user_type"), nullable=False)
    full_name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    avatar_url = Column(String(512), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class GarageModel(Base):
    __tablename__ = "garages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), unique=True, nullable=False)
    garage_name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    services_offered = Column(JSON, nullable=False, default=list)
    vehicle_types_serviced = Column(JSON, nullable=False, default=list)
    is_available = Column(Boolean, default=True, nullable=False)
    rating = Column(Float, default=0.0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    vehicle_type = Column(_str_enum(VehicleType, "vehicle_type"), nullable=False)
    brand = Column(String(120), nullable=False)
    model = Column(String(120), nullable=False)
    registration_number = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_vehicles_profile", "profile_id"),)


class ServiceRequestModel(Base):
    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    garage_id = Column(Integer, ForeignKey("garages.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True)

    service_type = Column(_str_enum(ServiceType, "service_type"), nullable=False)
    status = Column(
        _str_enum(RequestStatus, "request_status"),
        default=RequestStatus.PENDING,
        nullable=False,
    )
    address = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    problem_description = Column(Text, nullable=True)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)
    idempotency_key = Column(String(64), unique=True, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_requests_status", "status"),
        Index("idx_requests_customer", "customer_id"),
        Index("idx_requests_garage", "garage_id"),
        Index("idx_requests_created", "created_at"),
    )


class RequestEventModel(Base):
    __tablename__ = "request_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(Integer, ForeignKey("service_requests.id"), nullable=False)
    from_status = Column(_str_enum(RequestStatus, "request_status"), nullable=True)
    to_status = Column(_str_enum(RequestStatus, "request_status"), nullable=False)
    actor_profile_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (Index("idx_request_events_request", "request_id"),)


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    garage_id = Column(Integer, ForeignKey("garages.id"), nullable=False)
    service_request_id = Column(
        Integer, ForeignKey("service_requests.id"), unique=True, nullable=False
    )
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
