"""
Rate limiting and exception handlers shared by every router.

* ``limiter``: slowapi limiter keyed on client address.
* Domain lifecycle rejections become 409 / 403.
* Database failures become a generic 503; details go to the log only.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from roadassist.domain.entities import InvalidDraft
from roadassist.domain.lifecycle import InvalidStateTransition, TransitionNotPermitted

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)


async def _invalid_transition_handler(request: Request, exc: InvalidStateTransition):
    code = 403 if isinstance(exc, TransitionNotPermitted) else 409
    return JSONResponse(status_code=code, content={"detail": str(exc)})


async def _invalid_draft_handler(request: Request, exc: InvalidDraft):
    return JSONResponse(
        status_code=422,
        content={
            "detail": [
                {"loc": ["body", exc.field], "msg": exc.message, "type": "value_error"}
            ]
        },
    )


async def _database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "Database error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable, please try again"},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(InvalidStateTransition, _invalid_transition_handler)
    app.add_exception_handler(InvalidDraft, _invalid_draft_handler)
    app.add_exception_handler(SQLAlchemyError, _database_error_handler)
