"""
FastAPI application factory.

* Registers routes for auth, profiles, customer requests, the garage
  dashboard, vehicles and health.
* Applies rate-limiting and the shared exception handlers.
* Disposes the DB engine on shutdown.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from roadassist.api.middleware import install_error_handlers
from roadassist.api.routes import auth, garage, health, profiles, requests, vehicles
from roadassist.config import settings
from roadassist.infrastructure.database import engine

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("RoadAssist API starting")
    yield
    await engine.dispose()
    logger.info("RoadAssist API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="RoadAssist API",
        description=(
            "Roadside-assistance marketplace.  Customers raise service "
            "requests with their location; garages accept them and move "
            "them through pending, accepted, on the way, in progress and "
            "completed."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    install_error_handlers(app)

    # Routers
    for module in (auth, profiles, requests, garage, vehicles, health):
        app.include_router(module.router, prefix="/api/v1")

    return app
