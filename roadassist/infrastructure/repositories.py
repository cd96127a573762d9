"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Status changes on ``service_requests`` are compare-and-swap UPDATEs: the
WHERE clause repeats the status the caller saw, and the returned boolean says
whether this caller won.  A ``False`` means somebody else changed the row
first.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Numeric, cast, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AccountModel,
    GarageModel,
    ProfileModel,
    RequestEventModel,
    ReviewModel,
    ServiceRequestModel,
    VehicleModel,
    utcnow,
)
from roadassist.domain.entities import RequestDraft
from roadassist.domain.enums import (
    TERMINAL_STATUSES,
    AccountKind,
    RequestStatus,
)


class AccountRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, *, email: str, password_hash: str) -> AccountModel:
        account = AccountModel(email=email.lower(), password_hash=password_hash)
        self.session.add(account)
        await self.session.flush()
        return account

    async def get_by_id(self, account_id: int) -> Optional[AccountModel]:
        return await self.session.get(AccountModel, account_id)

    async def get_by_email(self, email: str) -> Optional[AccountModel]:
        result = await self.session.execute(
            select(AccountModel).where(AccountModel.email == email.lower())
        )
        return result.scalar_one_or_none()


class ProfileRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self, *, user_id: int, user_type: AccountKind, full_name: str
    ) -> ProfileModel:
        profile = ProfileModel(
            user_id=user_id, user_type=user_type, full_name=full_name
        )
        self.session.add(profile)
        await self.session.flush()
        return profile

    async def get_by_user_id(self, user_id: int) -> Optional[ProfileModel]:
        result = await self.session.execute(
            select(ProfileModel).where(ProfileModel.user_id == user_id)
        )
        return result.scalar_one_or_none()


class GarageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, garage: GarageModel) -> GarageModel:
        self.session.add(garage)
        await self.session.flush()
        return garage

    async def get_by_id(self, garage_id: int) -> Optional[GarageModel]:
        return await self.session.get(GarageModel, garage_id)

    async def get_by_profile_id(self, profile_id: int) -> Optional[GarageModel]:
        result = await self.session.execute(
            select(GarageModel).where(GarageModel.profile_id == profile_id)
        )
        return result.scalar_one_or_none()

    async def set_availability(self, garage: GarageModel, value: bool) -> GarageModel:
        garage.is_available = value
        await self.session.flush()
        return garage

    async def apply_review(self, garage_id: int, rating: int) -> Optional[GarageModel]:
        """
        Fold one review into the running mean, rounded to 2 places.

        Both columns are computed from the row's current values inside the
        UPDATE, so overlapping reviews of the same garage all count.
        """
        count = GarageModel.total_reviews
        await self.session.execute(
            update(GarageModel)
            .where(GarageModel.id == garage_id)
            .values(
                total_reviews=count + 1,
                rating=func.round(
                    cast((GarageModel.rating * count + rating) / (count + 1), Numeric),
                    2,
                ),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return await self.session.get(GarageModel, garage_id, populate_existing=True)


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, vehicle: VehicleModel) -> VehicleModel:
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def list_for_profile(self, profile_id: int) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.profile_id == profile_id)
            .order_by(VehicleModel.created_at.desc(), VehicleModel.id.desc())
        )
        return list(result.scalars().all())

    async def get_owned(self, vehicle_id: int, profile_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel).where(
                VehicleModel.id == vehicle_id,
                VehicleModel.profile_id == profile_id,
            )
        )
        return result.scalar_one_or_none()

    async def delete_owned(self, vehicle_id: int, profile_id: int) -> bool:
        """Delete only if *profile_id* owns the vehicle.  Returns True if deleted."""
        result = await self.session.execute(
            delete(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.profile_id == profile_id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class ServiceRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_request(
        self,
        *,
        customer_id: int,
        draft: RequestDraft,
        vehicle_id: int | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceRequestModel:
        req = ServiceRequestModel(
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            service_type=draft.service_type,
            status=RequestStatus.PENDING,
            garage_id=None,
            address=draft.address,
            latitude=draft.latitude,
            longitude=draft.longitude,
            problem_description=draft.problem_description,
            idempotency_key=idempotency_key,
        )
        self.session.add(req)
        await self.session.flush()
        await self.record_event(
            request_id=req.id,
            from_status=None,
            to_status=RequestStatus.PENDING,
            actor_profile_id=customer_id,
        )
        return req

    async def get_by_id(
        self, request_id: int, *, fresh: bool = False
    ) -> Optional[ServiceRequestModel]:
        return await self.session.get(
            ServiceRequestModel, request_id, populate_existing=fresh
        )

    async def get_by_idempotency_key(self, key: str) -> Optional[ServiceRequestModel]:
        result = await self.session.execute(
            select(ServiceRequestModel).where(
                ServiceRequestModel.idempotency_key == key
            )
        )
        return result.scalar_one_or_none()

    async def list_for_customer(
        self, customer_id: int, limit: int = 10
    ) -> list[ServiceRequestModel]:
        result = await self.session.execute(
            select(ServiceRequestModel)
            .where(ServiceRequestModel.customer_id == customer_id)
            .order_by(
                ServiceRequestModel.created_at.desc(), ServiceRequestModel.id.desc()
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def pending_feed(
        self,
    ) -> list[tuple[ServiceRequestModel, str, Optional[str]]]:
        """Every pending request, newest first, with the customer's name and phone."""
        result = await self.session.execute(
            select(ServiceRequestModel, ProfileModel.full_name, ProfileModel.phone)
            .join(ProfileModel, ProfileModel.id == ServiceRequestModel.customer_id)
            .where(ServiceRequestModel.status == RequestStatus.PENDING)
            .order_by(
                ServiceRequestModel.created_at.desc(), ServiceRequestModel.id.desc()
            )
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    async def assigned_active(
        self, garage_id: int
    ) -> list[tuple[ServiceRequestModel, str, Optional[str]]]:
        result = await self.session.execute(
            select(ServiceRequestModel, ProfileModel.full_name, ProfileModel.phone)
            .join(ProfileModel, ProfileModel.id == ServiceRequestModel.customer_id)
            .where(
                ServiceRequestModel.garage_id == garage_id,
                ServiceRequestModel.status.notin_(list(TERMINAL_STATUSES)),
            )
            .order_by(
                ServiceRequestModel.created_at.desc(), ServiceRequestModel.id.desc()
            )
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

    # ── Guarded writes ────────────────────────────────────────────────

    async def accept(self, request_id: int, garage_id: int) -> bool:
        """Assign *garage_id* and mark accepted, only if still pending."""
        result = await self.session.execute(
            update(ServiceRequestModel)
            .where(
                ServiceRequestModel.id == request_id,
                ServiceRequestModel.status == RequestStatus.PENDING,
                ServiceRequestModel.garage_id.is_(None),
            )
            .values(
                garage_id=garage_id,
                status=RequestStatus.ACCEPTED,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def advance(
        self,
        request_id: int,
        *,
        garage_id: int,
        expected: RequestStatus,
        new_status: RequestStatus,
        at: datetime | None = None,
    ) -> bool:
        """Move an assigned request from *expected* to *new_status*."""
        now = at or utcnow()
        values: dict = {"status": new_status, "updated_at": now}
        if new_status == RequestStatus.COMPLETED:
            values["completed_at"] = now

        result = await self.session.execute(
            update(ServiceRequestModel)
            .where(
                ServiceRequestModel.id == request_id,
                ServiceRequestModel.garage_id == garage_id,
                ServiceRequestModel.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def cancel(self, request_id: int, customer_id: int) -> bool:
        result = await self.session.execute(
            update(ServiceRequestModel)
            .where(
                ServiceRequestModel.id == request_id,
                ServiceRequestModel.customer_id == customer_id,
                ServiceRequestModel.status == RequestStatus.PENDING,
            )
            .values(status=RequestStatus.CANCELLED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ── Audit trail ───────────────────────────────────────────────────

    async def record_event(
        self,
        *,
        request_id: int,
        from_status: RequestStatus | None,
        to_status: RequestStatus,
        actor_profile_id: int,
    ) -> RequestEventModel:
        event = RequestEventModel(
            request_id=request_id,
            from_status=from_status,
            to_status=to_status,
            actor_profile_id=actor_profile_id,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def events_for(self, request_id: int) -> list[RequestEventModel]:
        result = await self.session.execute(
            select(RequestEventModel)
            .where(RequestEventModel.request_id == request_id)
            .order_by(RequestEventModel.id)
        )
        return list(result.scalars().all())


class ReviewRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, review: ReviewModel) -> ReviewModel:
        self.session.add(review)
        await self.session.flush()
        return review

    async def get_for_request(self, request_id: int) -> Optional[ReviewModel]:
        result = await self.session.execute(
            select(ReviewModel).where(ReviewModel.service_request_id == request_id)
        )
        return result.scalar_one_or_none()
