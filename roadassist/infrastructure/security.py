"""
Password hashing and JWT issue / verify.

Tokens are HS256 JWTs with ``sub`` (account id), ``type`` (access or
refresh), a random ``jti`` used for revocation, and ``exp``.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from jwt.exceptions import PyJWTError

from roadassist.config import settings

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(Exception):
    """Token is malformed, expired, badly signed or of the wrong type."""


@dataclass(frozen=True)
class TokenClaims:
    account_id: int
    token_type: str
    jti: str
    expires_at: datetime


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hash_: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hash_.encode())
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def _create_token(account_id: int, token_type: str, lifetime: timedelta) -> str:
    expire = datetime.now(timezone.utc) + lifetime
    payload = {
        "sub": str(account_id),
        "type": token_type,
        "jti": secrets.token_hex(16),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(account_id: int, lifetime: Optional[timedelta] = None) -> str:
    return _create_token(
        account_id,
        ACCESS,
        lifetime or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(account_id: int, lifetime: Optional[timedelta] = None) -> str:
    return _create_token(
        account_id,
        REFRESH,
        lifetime or timedelta(days=settings.refresh_token_expire_days),
    )


def create_token_pair(account_id: int) -> tuple[str, str]:
    return create_access_token(account_id), create_refresh_token(account_id)


def decode_token(token: str, expected_type: str = ACCESS) -> TokenClaims:
    try:
        payload = jwt.decode(
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except PyJWTError as e:
        logger.info("Rejected JWT: %s", e)
        raise InvalidToken("Invalid or expired token") from e

    if payload.get("type") != expected_type:
        raise InvalidToken(f"Expected a {expected_type} token")
    try:
        return TokenClaims(
            account_id=int(payload["sub"]),
            token_type=payload["type"],
            jti=payload["jti"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken("Token is missing required claims") from e
