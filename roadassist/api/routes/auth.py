"""
Auth endpoints
==============

POST /api/v1/auth/sign-up   -- create account + profile, returns tokens
POST /api/v1/auth/sign-in   -- email + password, returns tokens
POST /api/v1/auth/refresh   -- swap a refresh token for a new pair
POST /api/v1/auth/sign-out  -- revoke the current access (and refresh) token
GET  /api/v1/auth/session   -- who am I
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roadassist.api.dependencies import get_current_claims, get_db, get_token_store
from roadassist.api.middleware import limiter
from roadassist.api.schemas import (
    ErrorResponse,
    ProfileResponse,
    RefreshRequest,
    SessionResponse,
    SignInRequest,
    SignOutRequest,
    SignUpRequest,
    TokenPair,
)
from roadassist.config import settings
from roadassist.infrastructure.redis_client import TokenRevocationStore
from roadassist.infrastructure.repositories import AccountRepository, ProfileRepository
from roadassist.infrastructure.security import (
    REFRESH,
    InvalidToken,
    TokenClaims,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _email_taken() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail="This email is already registered. Please sign in instead.",
    )


@router.post(
    "/sign-up",
    status_code=201,
    response_model=TokenPair,
    summary="Create a customer or garage account",
    responses={409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def sign_up(
    request: Request,
    body: SignUpRequest,
    db: AsyncSession = Depends(get_db),
):
    accounts = AccountRepository(db)
    if await accounts.get_by_email(body.email):
        raise _email_taken()

    try:
        async with db.begin_nested():
            account = await accounts.create(
                email=body.email, password_hash=hash_password(body.password)
            )
            await ProfileRepository(db).create(
                user_id=account.id, user_type=body.user_type, full_name=body.full_name
            )
    except IntegrityError:
        # lost a race with a concurrent sign-up for the same email
        raise _email_taken()
    logger.info("Account %s signed up as %s", account.id, body.user_type.value)

    access, refresh = create_token_pair(account.id)
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post("/sign-in", response_model=TokenPair, summary="Sign in")
@limiter.limit(settings.rate_limit)
async def sign_in(
    request: Request,
    body: SignInRequest,
    db: AsyncSession = Depends(get_db),
):
    account = await AccountRepository(db).get_by_email(body.email)
    if not account or not verify_password(body.password, account.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    access, refresh = create_token_pair(account.id)
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post("/refresh", response_model=TokenPair, summary="Refresh a session")
@limiter.limit(settings.rate_limit)
async def refresh(
    request: Request,
    body: RefreshRequest,
    tokens: TokenRevocationStore = Depends(get_token_store),
):
    try:
        claims = decode_token(body.refresh_token, REFRESH)
    except InvalidToken as e:
        raise HTTPException(status_code=401, detail=str(e))
    if await tokens.is_revoked(claims.jti):
        raise HTTPException(status_code=401, detail="Session has been signed out")

    # single use: the old refresh token dies with this call
    await tokens.revoke(claims.jti, claims.expires_at)
    access, refresh_token = create_token_pair(claims.account_id)
    return TokenPair(access_token=access, refresh_token=refresh_token)


@router.post("/sign-out", status_code=204, summary="Sign out")
async def sign_out(
    body: Optional[SignOutRequest] = None,
    claims: TokenClaims = Depends(get_current_claims),
    tokens: TokenRevocationStore = Depends(get_token_store),
):
    await tokens.revoke(claims.jti, claims.expires_at)
    if body and body.refresh_token:
        try:
            refresh_claims = decode_token(body.refresh_token, REFRESH)
        except InvalidToken:
            logger.info("Ignoring invalid refresh token on sign-out")
        else:
            if refresh_claims.account_id == claims.account_id:
                await tokens.revoke(refresh_claims.jti, refresh_claims.expires_at)
    logger.info("Account %s signed out", claims.account_id)


@router.get("/session", response_model=SessionResponse, summary="Current session")
async def session(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountRepository(db).get_by_id(claims.account_id)
    if not account:
        raise HTTPException(status_code=401, detail="Account no longer exists")
    profile = await ProfileRepository(db).get_by_user_id(account.id)
    return SessionResponse(
        account_id=account.id,
        email=account.email,
        expires_at=claims.expires_at,
        profile=ProfileResponse.model_validate(profile) if profile else None,
    )
