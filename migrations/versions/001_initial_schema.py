"""Initial schema: accounts, profiles, garages, vehicles, requests, events, reviews.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


REQUEST_STATUS = (
    "pending",
    "accepted",
    "on_the_way",
    "in_progress",
    "completed",
    "cancelled",
)
SERVICE_TYPE = (
    "puncture",
    "engine_issue",
    "battery",
    "towing",
    "oil_change",
    "brake_issue",
    "other",
)
VEHICLE_TYPE = ("bike", "car", "truck", "auto_rickshaw", "other")
USER_TYPE = ("customer", "garage")


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade() -> None:
    # ── accounts ──────────────────────────────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        *_timestamps(updated=False),
    )

    # ── profiles ──────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("accounts.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("user_type", _enum(*USER_TYPE, name="user_type"), nullable=False),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("avatar_url", sa.String(512), nullable=True),
        *_timestamps(),
    )

    # ── garages ───────────────────────────────────────────────────────
    op.create_table(
        "garages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id",
            sa.Integer,
            sa.ForeignKey("profiles.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("garage_name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("address", sa.String(500), nullable=False),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("services_offered", sa.JSON, nullable=False),
        sa.Column("vehicle_types_serviced", sa.JSON, nullable=False),
        sa.Column("is_available", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "profile_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column(
            "vehicle_type", _enum(*VEHICLE_TYPE, name="vehicle_type"), nullable=False
        ),
        sa.Column("brand", sa.String(120), nullable=False),
        sa.Column("model", sa.String(120), nullable=False),
        sa.Column("registration_number", sa.String(32), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("idx_vehicles_profile", "vehicles", ["profile_id"])

    # ── service_requests ──────────────────────────────────────────────
    op.create_table(
        "service_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("garage_id", sa.Integer, sa.ForeignKey("garages.id"), nullable=True),
        sa.Column(
            "vehicle_id",
            sa.Integer,
            sa.ForeignKey("vehicles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "service_type", _enum(*SERVICE_TYPE, name="service_type"), nullable=False
        ),
        sa.Column(
            "status",
            _enum(*REQUEST_STATUS, name="request_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("problem_description", sa.Text, nullable=True),
        sa.Column("estimated_arrival", sa.DateTime(timezone=True), nullable=True),
        sa.Column("idempotency_key", sa.String(64), unique=True, nullable=True),
        *_timestamps(),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_requests_status", "service_requests", ["status"])
    op.create_index("idx_requests_customer", "service_requests", ["customer_id"])
    op.create_index("idx_requests_garage", "service_requests", ["garage_id"])
    op.create_index("idx_requests_created", "service_requests", ["created_at"])

    # ── request_events ────────────────────────────────────────────────
    op.create_table(
        "request_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id",
            sa.Integer,
            sa.ForeignKey("service_requests.id"),
            nullable=False,
        ),
        sa.Column(
            "from_status", _enum(*REQUEST_STATUS, name="request_status"), nullable=True
        ),
        sa.Column(
            "to_status", _enum(*REQUEST_STATUS, name="request_status"), nullable=False
        ),
        sa.Column(
            "actor_profile_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        *_timestamps(updated=False),
    )
    op.create_index("idx_request_events_request", "request_events", ["request_id"])

    # ── reviews ───────────────────────────────────────────────────────
    op.create_table(
        "reviews",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("profiles.id"), nullable=False
        ),
        sa.Column("garage_id", sa.Integer, sa.ForeignKey("garages.id"), nullable=False),
        sa.Column(
            "service_request_id",
            sa.Integer,
            sa.ForeignKey("service_requests.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        *_timestamps(updated=False),
    )


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_table("request_events")
    op.drop_table("service_requests")
    op.drop_table("vehicles")
    op.drop_table("garages")
    op.drop_table("profiles")
    op.drop_table("accounts")
