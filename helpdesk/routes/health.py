"""
Health check endpoints

Provides two endpoints:
- GET /api/health - Basic health check
- GET /api/health/dependencies - List store reachability check
"""
import time
import asyncio
from datetime import datetime
from typing import Dict, Optional
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from helpdesk import __version__
from helpdesk.config import get_settings
from helpdesk.dependencies import get_list_store
from helpdesk.services.list_store import ListQuery
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()

CHECK_TIMEOUT_SECONDS = 5.0


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str = Field(..., description="Dependency name")
    status: str = Field(..., description="Status: healthy, unhealthy")
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    error_message: Optional[str] = Field(None, description="Error message if unhealthy")


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    dependencies: Dict[str, DependencyStatus] = Field(..., description="Individual dependency statuses")
    checked_at: datetime = Field(default_factory=datetime.utcnow, description="Check timestamp")


# ============================================================================
# Dependency Check Functions
# ============================================================================

async def check_list(list_name: str) -> DependencyStatus:
    """
    Read one id from a list to confirm the store answers

    Returns:
        DependencyStatus with health information
    """
    try:
        start = time.time()
        store = get_list_store()

        await asyncio.wait_for(
            store.list_items(list_name, ListQuery(select=("id",), top=1)),
            timeout=CHECK_TIMEOUT_SECONDS
        )

        latency = (time.time() - start) * 1000
        return DependencyStatus(
            name=list_name,
            status="healthy",
            latency_ms=round(latency, 2)
        )

    except asyncio.TimeoutError:
        logger.error(f"List store check for {list_name} timed out")
        return DependencyStatus(
            name=list_name,
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:.0f} seconds"
        )
    except Exception as e:
        logger.error(f"List store check for {list_name} failed: {e}")
        return DependencyStatus(
            name=list_name,
            status="unhealthy",
            error_message=str(e)
        )


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Tickets list unhealthy -> "unhealthy"; only categories unhealthy ->
    "degraded" (search still works); otherwise "healthy"
    """
    tickets = dependencies.get(settings.tickets_list)
    if tickets is not None and tickets.status == "unhealthy":
        return "unhealthy"
    if any(dep.status == "unhealthy" for dep in dependencies.values()):
        return "degraded"
    return "healthy"


# ============================================================================
# API Endpoints
# ============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check"
)
async def basic_health_check() -> HealthResponse:
    """
    Basic health check endpoint

    Always returns 200 OK; does not touch the list store.
    """
    uptime = time.time() - APP_START_TIME

    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
        uptime_seconds=round(uptime, 2)
    )


@router.get(
    "/dependencies",
    response_model=DependencyHealth,
    status_code=status.HTTP_200_OK,
    summary="Dependency health check"
)
async def dependency_health_check() -> DependencyHealth:
    """
    Check that the tickets and categories lists are readable
    """
    names = [settings.tickets_list, settings.categories_list]
    results = await asyncio.gather(*(check_list(name) for name in names))
    dependencies = {dep.name: dep for dep in results}

    overall_status = determine_overall_status(dependencies)
    if overall_status != "healthy":
        logger.warning(f"List store status: {overall_status}")

    return DependencyHealth(
        overall_status=overall_status,
        dependencies=dependencies,
        checked_at=datetime.utcnow()
    )
