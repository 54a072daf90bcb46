"""
Module 09D - Health Check Route

GET /health - Returns service health status.
"""

from fastapi import APIRouter

from api.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(ok=True, service="idreg-api", version="v1")


@router.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - same as health check."""
    return HealthResponse(ok=True, service="idreg-api", version="v1")
