"""
Vehicle endpoints
=================

GET    /api/v1/vehicles       -- my vehicles, newest first
POST   /api/v1/vehicles       -- add a vehicle
DELETE /api/v1/vehicles/{id}  -- remove one of my vehicles
"""

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.api.dependencies import get_db, require_customer
from roadassist.api.schemas import VehicleCreate, VehicleResponse
from roadassist.infrastructure.models import ProfileModel, VehicleModel
from roadassist.infrastructure.repositories import VehicleRepository

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=list[VehicleResponse], summary="List my vehicles")
async def list_vehicles(
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).list_for_profile(customer.id)


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    summary="Add a vehicle",
)
async def add_vehicle(
    body: VehicleCreate,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    return await VehicleRepository(db).create(
        VehicleModel(
            profile_id=customer.id,
            vehicle_type=body.vehicle_type,
            brand=body.brand,
            model=body.model,
            registration_number=body.registration_number,
        )
    )


@router.delete("/{vehicle_id}", status_code=204, summary="Remove a vehicle")
async def delete_vehicle(
    vehicle_id: int,
    customer: ProfileModel = Depends(require_customer),
    db: AsyncSession = Depends(get_db),
):
    if not await VehicleRepository(db).delete_owned(vehicle_id, customer.id):
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return Response(status_code=204)
