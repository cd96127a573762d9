"""
Profile endpoints
=================

GET   /api/v1/profiles/me -- person record, garage record (if any), setup flag
PATCH /api/v1/profiles/me -- edit name / phone / avatar
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.api.dependencies import get_db, get_resolved_profile
from roadassist.api.schemas import GarageResponse, MeResponse, ProfileResponse, ProfileUpdate
from roadassist.services.profile_resolver import ResolvedProfile

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _me(resolved: ResolvedProfile) -> MeResponse:
    return MeResponse(
        profile=ProfileResponse.model_validate(resolved.profile),
        garage=(
            GarageResponse.model_validate(resolved.garage) if resolved.garage else None
        ),
        needs_garage_setup=resolved.needs_garage_setup,
    )


@router.get("/me", response_model=MeResponse, summary="Resolve my profile")
async def get_me(resolved: ResolvedProfile = Depends(get_resolved_profile)):
    return _me(resolved)


@router.patch("/me", response_model=MeResponse, summary="Update my profile")
async def update_me(
    body: ProfileUpdate,
    resolved: ResolvedProfile = Depends(get_resolved_profile),
    db: AsyncSession = Depends(get_db),
):
    for field, value in body.model_dump(exclude_unset=True).items():
        if isinstance(value, str):
            value = value.strip() or None
        if field == "full_name" and value is None:
            continue  # name is required; ignore a blanked-out value
        setattr(resolved.profile, field, value)
    await db.flush()
    return _me(resolved)
