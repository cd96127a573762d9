"""The sample-data script runs against a fresh database and is re-runnable."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from roadassist.domain.enums import RequestStatus
from roadassist.infrastructure.models import (
    GarageModel,
    ProfileModel,
    RequestEventModel,
    ReviewModel,
    ServiceRequestModel,
)
from roadassist.infrastructure.repositories import AccountRepository
from roadassist.infrastructure.security import verify_password
from seed import GARAGES, REQUESTS, SEED_PASSWORD, seed


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


@pytest.mark.asyncio
async def test_seed_populates_and_skips_second_run(db_session):
    assert await seed(db_session) is True

    assert await _count(db_session, ServiceRequestModel) == len(REQUESTS)
    assert await _count(db_session, GarageModel) == len(GARAGES)
    assert await _count(db_session, ReviewModel) == 1

    assert await seed(db_session) is False
    assert await _count(db_session, ServiceRequestModel) == len(REQUESTS)


@pytest.mark.asyncio
async def test_seeded_requests_follow_the_lifecycle(db_session):
    await seed(db_session)

    rows = (await db_session.execute(select(ServiceRequestModel))).scalars().all()
    by_status = {}
    for r in rows:
        by_status.setdefault(RequestStatus(r.status), []).append(r)

    assert len(by_status[RequestStatus.PENDING]) == 2
    assert all(r.garage_id is None for r in by_status[RequestStatus.PENDING])
    assert all(r.garage_id is not None for r in by_status[RequestStatus.ON_THE_WAY])

    (done,) = by_status[RequestStatus.COMPLETED]
    assert done.completed_at is not None

    events = (
        await db_session.execute(
            select(RequestEventModel)
            .where(RequestEventModel.request_id == done.id)
            .order_by(RequestEventModel.id)
        )
    ).scalars().all()
    assert [e.to_status for e in events] == [
        RequestStatus.PENDING,
        RequestStatus.ACCEPTED,
        RequestStatus.ON_THE_WAY,
        RequestStatus.IN_PROGRESS,
        RequestStatus.COMPLETED,
    ]

    garage = await db_session.get(GarageModel, done.garage_id)
    assert garage.rating == 5.0
    assert garage.total_reviews == 1


@pytest.mark.asyncio
async def test_seeded_accounts_can_sign_in(db_session):
    await seed(db_session)

    account = await AccountRepository(db_session).get_by_email("ravi.garage@example.com")
    assert verify_password(SEED_PASSWORD, account.password_hash)
    assert await _count(db_session, ProfileModel) == 7
