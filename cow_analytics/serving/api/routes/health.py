"""
Health Check Endpoints

Liveness, readiness and a summary of the ingestion pipeline state.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Response
from pydantic import BaseModel

from cow_analytics.config import get_settings
from cow_analytics.exceptions import CowAnalyticsError
from cow_analytics.ingestion.pipeline import IngestionPipeline
from cow_analytics.serving.api.dependencies import get_pipeline

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


def _pipeline_check() -> Dict[str, Any]:
    try:
        pipeline = get_pipeline()
    except CowAnalyticsError as e:
        return {"status": "unconfigured", "error": str(e)}
    return {
        "status": "healthy",
        "source": pipeline.source.source_id if pipeline.source else None,
        "cached_snapshots": len(pipeline.cache) if pipeline.cache is not None else None,
    }


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Reports whether a snapshot source is configured and how many snapshots
    are cached. Does not fetch the source.
    """
    settings = get_settings()
    checks = {"pipeline": _pipeline_check()}
    overall_status = "healthy" if checks["pipeline"]["status"] == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """Returns 200 while the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
def readiness_check(response: Response) -> Dict[str, str]:
    """
    Ready once a snapshot can be produced.

    Loads the snapshot through the cache, so a warm process answers without
    fetching.
    """
    try:
        pipeline: IngestionPipeline = get_pipeline()
        pipeline.load()
    except CowAnalyticsError as e:
        response.status_code = 503
        return {"status": "not_ready", "reason": str(e)}
    return {"status": "ready"}
