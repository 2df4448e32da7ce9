"""
Dashboard assembly: filter the snapshot's facts, then run every aggregator
over the filtered set.
"""

from typing import TYPE_CHECKING, Optional

import structlog

from cow_analytics.analytics.category_metrics import (
    calculate_category_metrics,
    calculate_event_type_metrics,
    calculate_royal_comparison,
)
from cow_analytics.analytics.cow_metrics import calculate_all_cow_metrics, metrics_by_cow
from cow_analytics.analytics.filters import DashboardFilters, apply_filters
from cow_analytics.analytics.kpis import calculate_kpis
from cow_analytics.analytics.region_metrics import calculate_all_region_metrics
from cow_analytics.analytics.warehouse_metrics import calculate_all_warehouse_metrics
from cow_analytics.models import DashboardData

if TYPE_CHECKING:
    from cow_analytics.ingestion.pipeline import Snapshot

logger = structlog.get_logger(__name__)


def build_dashboard(snapshot: "Snapshot", filters: Optional[DashboardFilters] = None) -> DashboardData:
    """
    Aggregate a snapshot for one filter setting.

    Dimensions are returned whole; facts and every metric reflect only the
    filtered facts. Asset metrics cover every asset in the dimension.
    """
    filters = filters or DashboardFilters()
    locations = snapshot.locations_by_id
    events = snapshot.events_by_id

    facts = apply_filters(snapshot.facts, filters, locations, events)
    cow_metrics = calculate_all_cow_metrics(snapshot.cows, facts, locations, events)

    dashboard = DashboardData(
        movements=facts,
        cows=snapshot.cows,
        locations=snapshot.locations,
        events=snapshot.events,
        cow_metrics=cow_metrics,
        warehouse_metrics=calculate_all_warehouse_metrics(facts, locations),
        region_metrics=calculate_all_region_metrics(facts, locations, metrics_by_cow(cow_metrics)),
        category_metrics=calculate_category_metrics(facts),
        royal_comparison=calculate_royal_comparison(facts),
        event_type_metrics=calculate_event_type_metrics(facts, events),
        kpis=calculate_kpis(facts, snapshot.cows, cow_metrics),
        filters=filters.to_dict(),
    )

    logger.info(
        "Dashboard built",
        filters=filters.to_dict(),
        movements=len(facts),
        total_movements=len(snapshot.facts),
    )
    return dashboard
