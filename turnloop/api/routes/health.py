"""Health check endpoints."""

from fastapi import APIRouter

from ... import __version__
from ..schemas import MODEL_ID, HealthResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the API server is running and healthy.",
)
def health_check() -> HealthResponse:
    """Return health status of the API server."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        model=MODEL_ID,
    )
