"""Health check endpoints."""

from fastapi import APIRouter

from schemas import HealthResponse

router = APIRouter(tags=["health"])

SERVICE_NAME = "render-gateway"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)
