"""
Garage endpoints
================

POST  /api/v1/garage/setup                   -- create my garage record
GET   /api/v1/garage/me                      -- my garage record
PATCH /api/v1/garage/me/availability         -- go online / offline
GET   /api/v1/garage/requests/pending        -- every pending request
GET   /api/v1/garage/requests/assigned       -- my open jobs
POST  /api/v1/garage/requests/{id}/accept    -- take a pending request
PATCH /api/v1/garage/requests/{id}/status    -- move my job one step forward

Accepting is first-come-first-served: the write only lands if the request
is still pending, so of two garages racing for it exactly one wins and the
other gets 409.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.api.dependencies import (
    GarageActor,
    get_db,
    require_garage,
    require_garage_profile,
)
from roadassist.api.middleware import limiter
from roadassist.api.schemas import (
    AvailabilityUpdate,
    ErrorResponse,
    GarageFeedItem,
    GarageResponse,
    GarageSetupRequest,
    ServiceRequestResponse,
    StatusUpdate,
)
from roadassist.config import settings
from roadassist.domain.distance import garage_distance_km
from roadassist.domain.enums import AccountKind, RequestStatus
from roadassist.domain.lifecycle import next_status, transition
from roadassist.infrastructure.models import GarageModel, ProfileModel, ServiceRequestModel
from roadassist.infrastructure.repositories import GarageRepository, ServiceRequestRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/garage", tags=["garage"])


def _feed_item(
    req: ServiceRequestModel,
    customer_name: str,
    customer_phone: Optional[str],
    garage: GarageModel,
) -> GarageFeedItem:
    base = ServiceRequestResponse.model_validate(req).model_dump()
    return GarageFeedItem(
        **base,
        customer_name=customer_name,
        customer_phone=customer_phone,
        distance_km=garage_distance_km(
            garage.latitude, garage.longitude, req.latitude, req.longitude
        ),
        next_status=next_status(RequestStatus(req.status)),
    )


# ── Garage record ─────────────────────────────────────────────────────


@router.post(
    "/setup",
    status_code=201,
    response_model=GarageResponse,
    summary="Set up my garage",
)
async def setup_garage(
    body: GarageSetupRequest,
    profile: ProfileModel = Depends(require_garage_profile),
    db: AsyncSession = Depends(get_db),
):
    repo = GarageRepository(db)
    if await repo.get_by_profile_id(profile.id):
        raise HTTPException(status_code=409, detail="Garage already set up")

    garage = await repo.create(
        GarageModel(
            profile_id=profile.id,
            garage_name=body.garage_name,
            description=(body.description or "").strip() or None,
            address=body.address,
            latitude=body.latitude,
            longitude=body.longitude,
            services_offered=[s.value for s in body.services_offered],
            vehicle_types_serviced=[v.value for v in body.vehicle_types_serviced],
            is_available=True,
            rating=0.0,
            total_reviews=0,
        )
    )
    logger.info("Garage %s set up for profile %s", garage.id, profile.id)
    return garage


@router.get("/me", response_model=GarageResponse, summary="My garage")
async def get_my_garage(actor: GarageActor = Depends(require_garage)):
    return actor.garage


@router.patch(
    "/me/availability",
    response_model=GarageResponse,
    summary="Go online or offline",
    description="An offline garage still sees pending requests but cannot accept them.",
)
async def set_availability(
    body: AvailabilityUpdate,
    actor: GarageActor = Depends(require_garage),
    db: AsyncSession = Depends(get_db),
):
    garage = await GarageRepository(db).set_availability(actor.garage, body.is_available)
    logger.info(
        "Garage %s is now %s", garage.id, "available" if body.is_available else "offline"
    )
    return garage


# ── Request feeds ─────────────────────────────────────────────────────


@router.get(
    "/requests/pending",
    response_model=list[GarageFeedItem],
    summary="All pending requests, newest first",
)
@limiter.limit(settings.rate_limit)
async def pending_requests(
    request: Request,
    actor: GarageActor = Depends(require_garage),
    db: AsyncSession = Depends(get_db),
):
    rows = await ServiceRequestRepository(db).pending_feed()
    return [_feed_item(req, name, phone, actor.garage) for req, name, phone in rows]


@router.get(
    "/requests/assigned",
    response_model=list[GarageFeedItem],
    summary="My open jobs, newest first",
)
@limiter.limit(settings.rate_limit)
async def assigned_requests(
    request: Request,
    actor: GarageActor = Depends(require_garage),
    db: AsyncSession = Depends(get_db),
):
    rows = await ServiceRequestRepository(db).assigned_active(actor.garage.id)
    return [_feed_item(req, name, phone, actor.garage) for req, name, phone in rows]


# ── Transitions ───────────────────────────────────────────────────────


@router.post(
    "/requests/{request_id}/accept",
    response_model=ServiceRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Accept a pending request",
)
async def accept_request(
    request_id: int,
    actor: GarageActor = Depends(require_garage),
    db: AsyncSession = Depends(get_db),
):
    repo = ServiceRequestRepository(db)
    req = await repo.get_by_id(request_id)
    if not req:
        raise HTTPException(status_code=404, detail="Request not found")

    if not actor.garage.is_available:
        raise HTTPException(
            status_code=409,
            detail="Your garage is offline. Go online to accept requests.",
        )

    current = RequestStatus(req.status)
    if current != RequestStatus.PENDING:
        raise HTTPException(status_code=409, detail="Request already taken")
    transition(current, RequestStatus.ACCEPTED, AccountKind.GARAGE)

    if not await repo.accept(request_id, actor.garage.id):
        logger.info(
            "Garage %s lost the race for request %s", actor.garage.id, request_id
        )
        raise HTTPException(status_code=409, detail="Request already taken")

    await repo.record_event(
        request_id=request_id,
        from_status=current,
        to_status=RequestStatus.ACCEPTED,
        actor_profile_id=actor.profile.id,
    )
    logger.info("Request %s accepted by garage %s", request_id, actor.garage.id)
    return await repo.get_by_id(request_id, fresh=True)


@router.patch(
    "/requests/{request_id}/status",
    response_model=ServiceRequestResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Advance one of my jobs",
    description=(
        "accepted -> on_the_way -> in_progress -> completed, one step at a "
        "time.  Completing stamps completed_at."
    ),
)
async def update_request_status(
    request_id: int,
    body: StatusUpdate,
    actor: GarageActor = Depends(require_garage),
    db: AsyncSession = Depends(get_db),
):
    repo = ServiceRequestRepository(db)
    req = await repo.get_by_id(request_id)
    if not req:
        raise HTTPException(status_code=404, detail="Request not found")
    if req.garage_id != actor.garage.id:
        raise HTTPException(
            status_code=403, detail="Request is not assigned to your garage"
        )

    current = RequestStatus(req.status)
    new_status = transition(current, body.status, AccountKind.GARAGE)

    if not await repo.advance(
        request_id,
        garage_id=actor.garage.id,
        expected=current,
        new_status=new_status,
    ):
        raise HTTPException(
            status_code=409, detail="Request changed meanwhile, reload and retry"
        )

    await repo.record_event(
        request_id=request_id,
        from_status=current,
        to_status=new_status,
        actor_profile_id=actor.profile.id,
    )
    logger.info(
        "Request %s: %s -> %s by garage %s",
        request_id, current.value, new_status.value, actor.garage.id,
    )
    return await repo.get_by_id(request_id, fresh=True)
