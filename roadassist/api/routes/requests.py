"""
Customer request endpoints
==========================

POST  /api/v1/requests                -- raise a service request (status pending)
GET   /api/v1/requests                -- my latest requests, split active / past
GET   /api/v1/requests/{id}           -- one request
GET   /api/v1/requests/{id}/events    -- its status history
PATCH /api/v1/requests/{id}/cancel    -- cancel while still pending
POST  /api/v1/requests/{id}/review    -- rate the garage after completion
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.api.dependencies import get_db, get_resolved_profile, require_customer
from roadassist.api.middleware import limiter
from roadassist.api.schemas import (
    CustomerRequestList,
    ErrorResponse,
    RequestEventResponse,
    ReviewCreate,
    ReviewResponse,
    ServiceRequestCreate,
    ServiceRequestResponse,
)
from roadassist.config import settings
from roadassist.domain.entities import InvalidDraft, Location, draft_request
from roadassist.domain.enums import AccountKind, RequestStatus
from roadassist.domain.lifecycle import partition_by_activity, transition
from roadassist.infrastructure.models import ProfileModel, ReviewModel, ServiceRequestModel
from roadassist.infrastructure.repositories import (
    GarageRepository,
    ReviewRepository,
    ServiceRequestRepository,
    VehicleRepository,
)
from roadassist.services.profile_resolver import ResolvedProfile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])


async def _visible_request(
    repo: ServiceRequestRepository, request_id: int, resolved: ResolvedProfile
) -> ServiceRequestModel:
    """Owner, assigned garage, or any garage while the request is pending."""
    req = await repo.get_by_id(request_id)
    if not req:
        raise HTTPException(status_code=404, detail="Request not found")

    if AccountKind(resolved.profile.user_type) == AccountKind.CUSTOMER:
        visible = req.customer_id == resolved.profile.id
    else:
        garage = resolved.garage
        visible = garage is not None and (
            req.garage_id == garage.id or req.status == RequestStatus.PENDING
        )
    if not visible:
        # don't reveal that the id exists
        raise HTTPException(status_code=404, detail="Request not found")
    return req


def _replayed(existing: ServiceRequestModel, customer_id: int) -> ServiceRequestModel:
    if existing.customer_id != customer_id:
        raise HTTPException(status_code=409, detail="Idempotency key already used")
    return existing


@router.post(
    "",
    status_code=201,
    response_model=ServiceRequestResponse,
    summary="Raise a service request",
    responses={409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_request(
    request: Request,
    body: ServiceRequestCreate,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    repo = ServiceRequestRepository(db)
    customer_id = customer.id

    # ── Idempotency guard ─────────────────────────────────────────
    if body.idempotency_key:
        existing = await repo.get_by_idempotency_key(body.idempotency_key)
        if existing:
            return _replayed(existing, customer_id)

    if (body.latitude is None) != (body.longitude is None):
        raise InvalidDraft("latitude", "Latitude and longitude must be given together.")
    location = (
        Location(body.latitude, body.longitude) if body.latitude is not None else None
    )
    draft = draft_request(
        body.service_type,
        location=location,
        address=body.address,
        description=body.problem_description,
    )

    if body.vehicle_id is not None:
        vehicle = await VehicleRepository(db).get_owned(body.vehicle_id, customer_id)
        if not vehicle:
            raise InvalidDraft("vehicle_id", "Vehicle not found.")

    try:
        async with db.begin_nested():
            req = await repo.create_request(
                customer_id=customer_id,
                draft=draft,
                vehicle_id=body.vehicle_id,
                idempotency_key=body.idempotency_key,
            )
    except IntegrityError:
        # a concurrent submission with the same key committed first
        existing = (
            await repo.get_by_idempotency_key(body.idempotency_key)
            if body.idempotency_key
            else None
        )
        if existing is None:
            raise
        return _replayed(existing, customer_id)
    logger.info(
        "Request %s raised by customer %s (%s)",
        req.id, customer_id, draft.service_type.value,
    )
    return req


@router.get("", response_model=CustomerRequestList, summary="My recent requests")
@limiter.limit(settings.rate_limit)
async def list_my_requests(
    request: Request,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    rows = await ServiceRequestRepository(db).list_for_customer(
        customer.id, limit=settings.customer_request_page_size
    )
    active, past = partition_by_activity(rows)
    return CustomerRequestList(
        active=[ServiceRequestResponse.model_validate(r) for r in active],
        past=[ServiceRequestResponse.model_validate(r) for r in past],
    )


@router.get(
    "/{request_id}",
    response_model=ServiceRequestResponse,
    summary="Get one request",
    responses={404: {"model": ErrorResponse}},
)
async def get_request(
    request_id: int,
    resolved: ResolvedProfile = Depends(get_resolved_profile),
    db: AsyncSession = Depends(get_db),
):
    return await _visible_request(ServiceRequestRepository(db), request_id, resolved)


@router.get(
    "/{request_id}/events",
    response_model=list[RequestEventResponse],
    summary="Status history of a request",
    responses={404: {"model": ErrorResponse}},
)
async def get_request_events(
    request_id: int,
    resolved: ResolvedProfile = Depends(get_resolved_profile),
    db: AsyncSession = Depends(get_db),
):
    repo = ServiceRequestRepository(db)
    await _visible_request(repo, request_id, resolved)
    return await repo.events_for(request_id)


@router.patch(
    "/{request_id}/cancel",
    response_model=ServiceRequestResponse,
    summary="Cancel a request",
    description="Only the customer who raised it, and only while it is pending.",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def cancel_request(
    request_id: int,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    repo = ServiceRequestRepository(db)
    req = await repo.get_by_id(request_id)
    if not req or req.customer_id != customer.id:
        raise HTTPException(status_code=404, detail="Request not found")

    current = RequestStatus(req.status)
    transition(current, RequestStatus.CANCELLED, AccountKind.CUSTOMER)

    if not await repo.cancel(request_id, customer.id):
        raise HTTPException(
            status_code=409,
            detail="Request was accepted by a garage before it could be cancelled",
        )
    await repo.record_event(
        request_id=request_id,
        from_status=current,
        to_status=RequestStatus.CANCELLED,
        actor_profile_id=customer.id,
    )
    return await repo.get_by_id(request_id, fresh=True)


@router.post(
    "/{request_id}/review",
    status_code=201,
    response_model=ReviewResponse,
    summary="Review the garage that completed a request",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def review_request(
    request_id: int,
    body: ReviewCreate,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    req = await ServiceRequestRepository(db).get_by_id(request_id)
    if not req or req.customer_id != customer.id:
        raise HTTPException(status_code=404, detail="Request not found")
    if RequestStatus(req.status) != RequestStatus.COMPLETED or req.garage_id is None:
        raise HTTPException(
            status_code=409, detail="Only completed requests can be reviewed"
        )

    reviews = ReviewRepository(db)
    if await reviews.get_for_request(request_id):
        raise HTTPException(status_code=409, detail="Request already reviewed")

    try:
        async with db.begin_nested():
            review = await reviews.create(
                ReviewModel(
                    customer_id=customer.id,
                    garage_id=req.garage_id,
                    service_request_id=req.id,
                    rating=body.rating,
                    comment=(body.comment or "").strip() or None,
                )
            )
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Request already reviewed")

    await GarageRepository(db).apply_review(req.garage_id, body.rating)
    return review
