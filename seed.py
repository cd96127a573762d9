"""
Seed script -- populates the database with sample data for local development.

Run after migrations:
    python seed.py

Creates:
  - 4 customers, each with one vehicle
  - 3 garages around Bengaluru (one of them offline)
  - 6 service requests (mix of PENDING, ACCEPTED, ON_THE_WAY, COMPLETED, CANCELLED)
  - 1 review on the completed request

Every seeded account signs in with the password ``password123``.
"""

import asyncio
import logging
import sys

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.domain.entities import Location, draft_request
from roadassist.domain.enums import (
    AccountKind,
    RequestStatus,
    ServiceType,
    VehicleType,
)
from roadassist.infrastructure.database import async_session_factory, engine
from roadassist.infrastructure.models import (
    AccountModel,
    GarageModel,
    ReviewModel,
    VehicleModel,
    utcnow,
)
from roadassist.infrastructure.repositories import (
    AccountRepository,
    GarageRepository,
    ProfileRepository,
    ReviewRepository,
    ServiceRequestRepository,
    VehicleRepository,
)
from roadassist.infrastructure.security import hash_password

logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"

CUSTOMERS = [
    {"name": "Aarav Sharma", "email": "aarav@example.com", "phone": "+91 98450 11111"},
    {"name": "Priya Patel", "email": "priya@example.com", "phone": "+91 98450 22222"},
    {"name": "Rohan Mehta", "email": "rohan@example.com", "phone": None},
    {"name": "Sneha Gupta", "email": "sneha@example.com", "phone": "+91 98450 44444"},
]

VEHICLES = [
    {"vehicle_type": VehicleType.CAR, "brand": "Maruti", "model": "Swift", "reg": "KA01AB1234"},
    {"vehicle_type": VehicleType.BIKE, "brand": "Honda", "model": "Activa", "reg": "KA05XY9876"},
    {"vehicle_type": VehicleType.CAR, "brand": "Hyundai", "model": "i20", "reg": None},
    {"vehicle_type": VehicleType.AUTO_RICKSHAW, "brand": "Bajaj", "model": "RE", "reg": "KA03C4455"},
]

GARAGES = [
    {
        "owner": "Ravi Kumar",
        "email": "ravi.garage@example.com",
        "garage_name": "Ravi Auto Works",
        "address": "12 MG Road, Bengaluru",
        "lat": 12.9756,
        "lng": 77.6050,
        "services": [ServiceType.PUNCTURE, ServiceType.BATTERY, ServiceType.TOWING],
        "vehicle_types": [VehicleType.BIKE, VehicleType.CAR],
        "available": True,
    },
    {
        "owner": "Lakshmi Rao",
        "email": "lakshmi.garage@example.com",
        "garage_name": "Lakshmi Motors",
        "address": "45 Indiranagar 100ft Road, Bengaluru",
        "lat": 12.9719,
        "lng": 77.6412,
        "services": [ServiceType.ENGINE_ISSUE, ServiceType.OIL_CHANGE, ServiceType.BRAKE_ISSUE],
        "vehicle_types": [VehicleType.CAR, VehicleType.TRUCK],
        "available": True,
    },
    {
        "owner": "Imran Khan",
        "email": "imran.garage@example.com",
        "garage_name": "Night Owl Garage",
        "address": "Koramangala 5th Block, Bengaluru",
        "lat": None,
        "lng": None,
        "services": [ServiceType.PUNCTURE],
        "vehicle_types": [VehicleType.BIKE],
        "available": False,
    },
]

# (customer index, service type, location or None, address, description, final status, garage index)
REQUESTS = [
    (0, ServiceType.PUNCTURE, (12.9716, 77.5946), None, "Front tyre flat", RequestStatus.PENDING, None),
    (1, ServiceType.BATTERY, None, "Near Forum Mall, Koramangala", None, RequestStatus.PENDING, None),
    (2, ServiceType.ENGINE_ISSUE, (12.9352, 77.6245), None, "Smoke from bonnet", RequestStatus.ACCEPTED, 1),
    (3, ServiceType.TOWING, (12.9591, 77.6974), None, None, RequestStatus.ON_THE_WAY, 0),
    (0, ServiceType.OIL_CHANGE, (12.9716, 77.5946), None, None, RequestStatus.COMPLETED, 1),
    (1, ServiceType.OTHER, None, "Whitefield main road", "Strange noise", RequestStatus.CANCELLED, None),
]

_GARAGE_PATH = [RequestStatus.ON_THE_WAY, RequestStatus.IN_PROGRESS, RequestStatus.COMPLETED]


async def seed(session: AsyncSession) -> bool:
    """Populate *session*.  Returns False if the database already has accounts."""
    count = await session.scalar(select(func.count()).select_from(AccountModel))
    if count:
        logger.info("Database already seeded. Skipping.")
        return False

    accounts = AccountRepository(session)
    profiles = ProfileRepository(session)
    garages = GarageRepository(session)
    vehicles = VehicleRepository(session)
    requests = ServiceRequestRepository(session)
    reviews = ReviewRepository(session)
    password_hash = hash_password(SEED_PASSWORD)

    # ── Customers + vehicles ──────────────────────────────────────────
    customer_profiles = []
    customer_vehicles = []
    for c, v in zip(CUSTOMERS, VEHICLES):
        account = await accounts.create(email=c["email"], password_hash=password_hash)
        profile = await profiles.create(
            user_id=account.id, user_type=AccountKind.CUSTOMER, full_name=c["name"]
        )
        profile.phone = c["phone"]
        customer_profiles.append(profile)
        customer_vehicles.append(
            await vehicles.create(
                VehicleModel(
                    profile_id=profile.id,
                    vehicle_type=v["vehicle_type"],
                    brand=v["brand"],
                    model=v["model"],
                    registration_number=v["reg"],
                )
            )
        )
    logger.info("Created %d customers", len(customer_profiles))

    # ── Garages ───────────────────────────────────────────────────────
    garage_models = []
    for g in GARAGES:
        account = await accounts.create(email=g["email"], password_hash=password_hash)
        profile = await profiles.create(
            user_id=account.id, user_type=AccountKind.GARAGE, full_name=g["owner"]
        )
        garage_models.append(
            await garages.create(
                GarageModel(
                    profile_id=profile.id,
                    garage_name=g["garage_name"],
                    address=g["address"],
                    latitude=g["lat"],
                    longitude=g["lng"],
                    services_offered=[s.value for s in g["services"]],
                    vehicle_types_serviced=[t.value for t in g["vehicle_types"]],
                    is_available=g["available"],
                )
            )
        )
    logger.info("Created %d garages", len(garage_models))

    # ── Requests, walked through the same guarded writes the API uses ─
    for cust_idx, service, loc, address, desc, final, garage_idx in REQUESTS:
        customer = customer_profiles[cust_idx]
        draft = draft_request(
            service,
            location=Location(*loc) if loc else None,
            address=address,
            description=desc,
        )
        req = await requests.create_request(
            customer_id=customer.id,
            draft=draft,
            vehicle_id=customer_vehicles[cust_idx].id,
        )

        if final == RequestStatus.CANCELLED:
            await requests.cancel(req.id, customer.id)
            await requests.record_event(
                request_id=req.id,
                from_status=RequestStatus.PENDING,
                to_status=RequestStatus.CANCELLED,
                actor_profile_id=customer.id,
            )
            continue
        if garage_idx is None:
            continue

        garage = garage_models[garage_idx]
        await requests.accept(req.id, garage.id)
        await requests.record_event(
            request_id=req.id,
            from_status=RequestStatus.PENDING,
            to_status=RequestStatus.ACCEPTED,
            actor_profile_id=garage.profile_id,
        )
        current = RequestStatus.ACCEPTED
        for step in _GARAGE_PATH:
            if current == final:
                break
            await requests.advance(
                req.id, garage_id=garage.id, expected=current, new_status=step
            )
            await requests.record_event(
                request_id=req.id,
                from_status=current,
                to_status=step,
                actor_profile_id=garage.profile_id,
            )
            current = step

        if final == RequestStatus.COMPLETED:
            await reviews.create(
                ReviewModel(
                    customer_id=customer.id,
                    garage_id=garage.id,
                    service_request_id=req.id,
                    rating=5,
                    comment="Quick and friendly.",
                    created_at=utcnow(),
                )
            )
            await garages.apply_review(garage.id, 5)
    logger.info("Created %d service requests", len(REQUESTS))

    await session.commit()
    return True


async def main():
    logging.basicConfig(level=logging.INFO)
    logger.info("Seeding database...")
    try:
        async with async_session_factory() as session:
            await seed(session)
    except Exception:
        logger.exception("Seeding failed")
        sys.exit(1)
    finally:
        await engine.dispose()
    logger.info("Done.")


if __name__ == "__main__":
    asyncio.run(main())
