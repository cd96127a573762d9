"""
Concurrency safety tests.

Demonstrates:
1. Accept is compare-and-swap: of two garages that both saw a request as
   pending, exactly one wins, also across separate sessions.
2. Status advances only land from the status the caller saw.
3. Cancellation loses cleanly to an earlier accept.
4. Reviews update the garage aggregate in the database, so overlapping
   reviews from separate sessions are both counted.
5. The revoked-token store (mocked Redis) sets a TTL and skips dead tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from roadassist.domain.entities import Location, draft_request
from roadassist.domain.enums import AccountKind, RequestStatus, ServiceType
from roadassist.infrastructure.models import GarageModel
from roadassist.infrastructure.redis_client import TokenRevocationStore
from roadassist.infrastructure.repositories import (
    AccountRepository,
    GarageRepository,
    ProfileRepository,
    ServiceRequestRepository,
)


async def _build_world(session):
    """One customer, two garages, one pending request, committed."""
    accounts = AccountRepository(session)
    profiles = ProfileRepository(session)
    garages = GarageRepository(session)

    cust_acc = await accounts.create(email="cust@example.com", password_hash="x")
    customer = await profiles.create(
        user_id=cust_acc.id, user_type=AccountKind.CUSTOMER, full_name="Customer"
    )

    garage_rows = []
    for i in range(2):
        acc = await accounts.create(email=f"g{i}@example.com", password_hash="x")
        prof = await profiles.create(
            user_id=acc.id, user_type=AccountKind.GARAGE, full_name=f"Owner {i}"
        )
        garage_rows.append(
            await garages.create(
                GarageModel(
                    profile_id=prof.id,
                    garage_name=f"Garage {i}",
                    address="Somewhere",
                    services_offered=["puncture"],
                    vehicle_types_serviced=["car"],
                )
            )
        )

    repo = ServiceRequestRepository(session)
    req = await repo.create_request(
        customer_id=customer.id,
        draft=draft_request(ServiceType.PUNCTURE, location=Location(12.97, 77.59)),
    )
    await session.commit()
    return {"customer": customer, "garages": garage_rows, "request": req, "repo": repo}


@pytest_asyncio.fixture
async def world(db_session):
    return await _build_world(db_session)


@pytest_asyncio.fixture
async def shared_world(file_session_factory):
    """The same world in a file-backed database that several sessions can open."""
    async with file_session_factory() as session:
        built = await _build_world(session)
    built.pop("repo")
    built["sessions"] = file_session_factory
    return built


class TestAcceptCompareAndSwap:
    @pytest.mark.asyncio
    async def test_exactly_one_of_two_accepts_wins(self, world):
        repo = world["repo"]
        req_id = world["request"].id
        garage_a, garage_b = world["garages"]

        # both garages read the row while it is still pending
        seen_a = await repo.get_by_id(req_id, fresh=True)
        seen_b = await repo.get_by_id(req_id, fresh=True)
        assert seen_a.status == seen_b.status == RequestStatus.PENDING

        won_a = await repo.accept(req_id, garage_a.id)
        won_b = await repo.accept(req_id, garage_b.id)
        assert (won_a, won_b) == (True, False)

        final = await repo.get_by_id(req_id, fresh=True)
        assert final.status == RequestStatus.ACCEPTED
        assert final.garage_id == garage_a.id

    @pytest.mark.asyncio
    async def test_separate_sessions_one_accept_wins(self, shared_world):
        req_id = shared_world["request"].id
        garage_a, garage_b = shared_world["garages"]
        sessions = shared_world["sessions"]

        async with sessions() as session_a, sessions() as session_b:
            repo_a = ServiceRequestRepository(session_a)
            repo_b = ServiceRequestRepository(session_b)

            seen_a = await repo_a.get_by_id(req_id)
            seen_b = await repo_b.get_by_id(req_id)
            assert seen_a.status == seen_b.status == RequestStatus.PENDING

            assert await repo_a.accept(req_id, garage_a.id) is True
            await session_a.commit()

            # B still holds its pending snapshot but the row has moved on
            assert seen_b.status == RequestStatus.PENDING
            assert await repo_b.accept(req_id, garage_b.id) is False
            await session_b.rollback()

        async with sessions() as session:
            final = await ServiceRequestRepository(session).get_by_id(req_id)
            assert final.status == RequestStatus.ACCEPTED
            assert final.garage_id == garage_a.id

    @pytest.mark.asyncio
    async def test_cancel_after_accept_loses(self, world):
        repo = world["repo"]
        req_id = world["request"].id

        assert await repo.accept(req_id, world["garages"][0].id)
        assert await repo.cancel(req_id, world["customer"].id) is False

        final = await repo.get_by_id(req_id, fresh=True)
        assert final.status == RequestStatus.ACCEPTED


class TestAdvanceCompareAndSwap:
    @pytest.mark.asyncio
    async def test_stale_expected_status_is_rejected(self, world):
        repo = world["repo"]
        req_id = world["request"].id
        garage = world["garages"][0]
        await repo.accept(req_id, garage.id)

        first = await repo.advance(
            req_id,
            garage_id=garage.id,
            expected=RequestStatus.ACCEPTED,
            new_status=RequestStatus.ON_THE_WAY,
        )
        # a second click from a stale page still thinks it is accepted
        second = await repo.advance(
            req_id,
            garage_id=garage.id,
            expected=RequestStatus.ACCEPTED,
            new_status=RequestStatus.ON_THE_WAY,
        )
        assert (first, second) == (True, False)

    @pytest.mark.asyncio
    async def test_other_garage_cannot_advance(self, world):
        repo = world["repo"]
        req_id = world["request"].id
        owner, other = world["garages"]
        await repo.accept(req_id, owner.id)

        assert not await repo.advance(
            req_id,
            garage_id=other.id,
            expected=RequestStatus.ACCEPTED,
            new_status=RequestStatus.ON_THE_WAY,
        )

    @pytest.mark.asyncio
    async def test_completion_stamps_completed_at(self, world):
        repo = world["repo"]
        req_id = world["request"].id
        garage = world["garages"][0]
        await repo.accept(req_id, garage.id)

        steps = [
            (RequestStatus.ACCEPTED, RequestStatus.ON_THE_WAY),
            (RequestStatus.ON_THE_WAY, RequestStatus.IN_PROGRESS),
        ]
        for expected, new in steps:
            assert await repo.advance(
                req_id, garage_id=garage.id, expected=expected, new_status=new
            )
        assert (await repo.get_by_id(req_id, fresh=True)).completed_at is None

        assert await repo.advance(
            req_id,
            garage_id=garage.id,
            expected=RequestStatus.IN_PROGRESS,
            new_status=RequestStatus.COMPLETED,
        )
        done = await repo.get_by_id(req_id, fresh=True)
        assert done.status == RequestStatus.COMPLETED
        assert done.completed_at is not None


class TestReviewAggregate:
    @pytest.mark.asyncio
    async def test_running_mean_rounds_to_two_places(self, world):
        garages = GarageRepository(world["repo"].session)
        garage_id = world["garages"][0].id

        for rating in (5, 5, 4):
            garage = await garages.apply_review(garage_id, rating)

        assert garage.total_reviews == 3
        assert garage.rating == pytest.approx(4.67)

    @pytest.mark.asyncio
    async def test_overlapping_reviews_from_separate_sessions_both_count(
        self, shared_world
    ):
        garage_id = shared_world["garages"][0].id
        sessions = shared_world["sessions"]

        async with sessions() as session_a, sessions() as session_b:
            garages_a = GarageRepository(session_a)
            garages_b = GarageRepository(session_b)

            # both load the garage before either review lands
            stale_a = await garages_a.get_by_id(garage_id)
            stale_b = await garages_b.get_by_id(garage_id)
            assert stale_a.total_reviews == stale_b.total_reviews == 0

            await garages_a.apply_review(garage_id, 5)
            await session_a.commit()
            await garages_b.apply_review(garage_id, 1)
            await session_b.commit()

        async with sessions() as session:
            garage = await GarageRepository(session).get_by_id(garage_id)
            assert garage.total_reviews == 2
            assert garage.rating == 3.0


class TestTokenRevocationStore:
    """Tests the Redis deny-list logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_revoke_sets_ttl_to_remaining_lifetime(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        store = TokenRevocationStore(mock_redis)
        expires = datetime.now(timezone.utc) + timedelta(minutes=10)
        await store.revoke("abc", expires)

        mock_redis.set.assert_called_once()
        args, kwargs = mock_redis.set.call_args
        assert args[0] == "revoked:abc"
        assert 590 <= kwargs["ex"] <= 600

    @pytest.mark.asyncio
    async def test_expired_token_is_not_stored(self):
        mock_redis = AsyncMock()

        store = TokenRevocationStore(mock_redis)
        await store.revoke("abc", datetime.now(timezone.utc) - timedelta(seconds=1))

        mock_redis.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_is_revoked_checks_key(self):
        mock_redis = AsyncMock()
        mock_redis.exists = AsyncMock(side_effect=[1, 0])

        store = TokenRevocationStore(mock_redis, prefix="deny")
        assert await store.is_revoked("abc") is True
        assert await store.is_revoked("def") is False
        mock_redis.exists.assert_any_call("deny:abc")
