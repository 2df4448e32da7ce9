"""
FastAPI dependencies shared by the route modules.

The pipeline is built once per process from settings; tests swap it out
through ``app.dependency_overrides[get_pipeline]``.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Query

from cow_analytics.analytics.filters import DashboardFilters, normalize_filters
from cow_analytics.config import get_settings
from cow_analytics.ingestion.cache import SnapshotCache
from cow_analytics.ingestion.fetcher import source_from_settings
from cow_analytics.ingestion.pipeline import IngestionPipeline, Snapshot


@lru_cache()
def get_pipeline() -> IngestionPipeline:
    """
    Process-wide ingestion pipeline.

    Raises:
        SourceFetchError: no snapshot source is configured
    """
    settings = get_settings()
    cache = None
    if settings.cache.enabled:
        cache = SnapshotCache(
            namespace=settings.cache.namespace,
            default_ttl=settings.cache.ttl_seconds,
        )
    return IngestionPipeline(source=source_from_settings(settings.source), cache=cache)


def get_snapshot(
    refresh: bool = Query(False, description="Bypass the snapshot cache"),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> Snapshot:
    return pipeline.load(refresh=refresh)


def get_filters(
    year: Optional[int] = Query(None, description="Departure year"),
    region: Optional[str] = Query(None, description="Destination region"),
    vendor: Optional[str] = Query(None),
    movement_type: Optional[str] = Query(None, alias="movementType", description="Full, Half or Zero"),
    event_type: Optional[str] = Query(None, alias="eventType"),
) -> DashboardFilters:
    """Dashboard filters from query parameters; unknown values are ignored"""
    return normalize_filters({
        "year": year,
        "region": region,
        "vendor": vendor,
        "movementType": movement_type,
        "eventType": event_type,
    })
