"""
Per-region deployment metrics.

A region's movements are the facts whose origin or destination lies in it.
Assets count as deployed into a region when one of those facts ends there.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from cow_analytics.analytics.utils import days_between, round2, safe_div
from cow_analytics.models import (
    CowMetrics,
    CowMovementFact,
    DimLocation,
    MovementType,
    Region,
    RegionMetrics,
)


def _region_of(location_id: str, locations: Mapping[str, DimLocation]) -> Optional[Region]:
    location = locations.get(location_id)
    return location.region if location else None


def calculate_region_metrics(
    region: Region,
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
    cow_metrics: Mapping[str, CowMetrics],
) -> RegionMetrics:
    """
    Calculate deployment metrics for one region.

    Args:
        region: Region to summarize
        facts: Filtered fact set
        locations: Location dimension by id
        cow_metrics: Per-asset metrics by asset id, for the static flag

    Returns:
        RegionMetrics with distance and duration rounded to 2 decimals
    """
    region_facts = []
    deployed: Dict[str, None] = {}
    cross_region = 0

    for fact in facts:
        origin = _region_of(fact.from_location_id, locations)
        destination = _region_of(fact.to_location_id, locations)
        if region not in (origin, destination):
            continue

        region_facts.append(fact)
        if destination == region:
            deployed.setdefault(fact.cow_id)
        # Unresolved endpoints are not counted as crossings
        if origin is not None and destination is not None and origin != destination:
            cross_region += 1

    static = [
        cow_id for cow_id in deployed
        if cow_id in cow_metrics and cow_metrics[cow_id].is_static
    ]

    durations = [
        duration
        for duration in (
            days_between(fact.moved_datetime, fact.reached_datetime)
            for fact in region_facts
            if fact.movement_type == MovementType.FULL
        )
        if duration is not None
    ]

    return RegionMetrics(
        region=region,
        total_cows_deployed=len(deployed),
        active_cows=len(deployed) - len(static),
        static_cows=len(static),
        cross_region_movements=cross_region,
        total_distance_km=round2(sum(fact.distance_km for fact in region_facts)),
        avg_deployment_duration_days=round2(safe_div(sum(durations), len(durations))),
    )


def calculate_all_region_metrics(
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
    cow_metrics: Mapping[str, CowMetrics],
) -> List[RegionMetrics]:
    return [
        calculate_region_metrics(region, facts, locations, cow_metrics)
        for region in Region
    ]
