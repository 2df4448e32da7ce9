"""
Dashboard Endpoints

Aggregated views over the current snapshot. Every endpoint accepts the same
filter query parameters.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
import structlog

from cow_analytics.analytics import (
    DashboardFilters,
    apply_filters,
    build_dashboard,
    calculate_all_warehouse_metrics,
)
from cow_analytics.ingestion.pipeline import Snapshot
from cow_analytics.serving.api.dependencies import get_filters, get_snapshot
from cow_analytics.serving.frames import movements_by_month

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/dashboard")
def get_dashboard(
    snapshot: Snapshot = Depends(get_snapshot),
    filters: DashboardFilters = Depends(get_filters),
) -> Dict[str, Any]:
    """
    Full dashboard: filtered movements, dimensions, per-asset, per-warehouse
    and per-region metrics and KPIs.
    """
    return build_dashboard(snapshot, filters).to_document()


@router.get("/warehouses")
def get_warehouses(
    snapshot: Snapshot = Depends(get_snapshot),
    filters: DashboardFilters = Depends(get_filters),
) -> List[Dict[str, Any]]:
    """Traffic and dwell-time metrics for every warehouse"""
    locations = snapshot.locations_by_id
    facts = apply_filters(snapshot.facts, filters, locations, snapshot.events_by_id)
    return [m.to_document() for m in calculate_all_warehouse_metrics(facts, locations)]


@router.get("/movements/monthly")
def get_monthly_movements(
    snapshot: Snapshot = Depends(get_snapshot),
    filters: DashboardFilters = Depends(get_filters),
) -> List[Dict[str, Any]]:
    """Movement count and distance per departure month and movement type"""
    facts = apply_filters(snapshot.facts, filters, snapshot.locations_by_id, snapshot.events_by_id)
    return movements_by_month(facts).to_dicts()
