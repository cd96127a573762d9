"""GET /api/v1/health -- liveness check."""

from fastapi import APIRouter

from roadassist.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
