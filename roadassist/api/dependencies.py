"""FastAPI dependency injection helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.domain.enums import AccountKind
from roadassist.infrastructure.database import async_session_factory
from roadassist.infrastructure.models import GarageModel, ProfileModel
from roadassist.infrastructure.redis_client import TokenRevocationStore, get_redis
from roadassist.infrastructure.security import ACCESS, InvalidToken, TokenClaims, decode_token
from roadassist.services.profile_resolver import ProfileResolver, ResolvedProfile

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_token_store(
    client: aioredis.Redis = Depends(get_redis),
) -> TokenRevocationStore:
    return TokenRevocationStore(client)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenRevocationStore = Depends(get_token_store),
) -> TokenClaims:
    """Validate the bearer access token and reject revoked ones."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        claims = decode_token(credentials.credentials, ACCESS)
    except InvalidToken as e:
        raise _unauthorized(str(e))
    if await tokens.is_revoked(claims.jti):
        raise _unauthorized("Session has been signed out")
    return claims


async def get_resolved_profile(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
) -> ResolvedProfile:
    state = await ProfileResolver(db).resolve(claims.account_id)
    if state.failed:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load your profile, please try again",
        )
    resolved = state.value
    if resolved is None or resolved.profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return resolved


async def require_customer(
    resolved: ResolvedProfile = Depends(get_resolved_profile),
) -> ProfileModel:
    if AccountKind(resolved.profile.user_type) != AccountKind.CUSTOMER:
        raise HTTPException(status_code=403, detail="Customer account required")
    return resolved.profile


@dataclass
class GarageActor:
    profile: ProfileModel
    garage: GarageModel


async def require_garage_profile(
    resolved: ResolvedProfile = Depends(get_resolved_profile),
) -> ProfileModel:
    if not resolved.is_garage:
        raise HTTPException(status_code=403, detail="Garage account required")
    return resolved.profile


async def require_garage(
    resolved: ResolvedProfile = Depends(get_resolved_profile),
) -> GarageActor:
    if not resolved.is_garage:
        raise HTTPException(status_code=403, detail="Garage account required")
    if resolved.garage is None:
        raise HTTPException(status_code=404, detail="Garage profile not set up")
    return GarageActor(profile=resolved.profile, garage=resolved.garage)
