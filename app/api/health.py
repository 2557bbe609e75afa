"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.catalog.repository import CatalogRepository
from app.search.engine import get_catalog_repository

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    from app.infrastructure.config import settings

    return HealthResponse(
        status="healthy",
        service="storefront-search",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check(
    repository: Annotated[CatalogRepository, Depends(get_catalog_repository)],
) -> dict[str, str]:
    """Check the catalog store answers before accepting traffic.

    Returns:
        Readiness status.

    Raises:
        CatalogUnavailableError: If the store is unreachable (mapped to 503).
    """
    await repository.ping()
    return {"status": "ready"}
