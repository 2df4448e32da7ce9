"""
Per-COW Utilization Metrics

For each asset, over its (possibly filtered) movements in chronological
order:
- Movement count, total and average distance
- Full/Half/Zero mix
- Average idle days between consecutive movements
- Static flag (at most one movement in the window)
- Regions served and the first associated event type
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from cow_analytics.analytics.utils import (
    days_between,
    group_by_cow,
    round2,
    safe_div,
    sort_chronologically,
)
from cow_analytics.models import (
    CowMetrics,
    CowMovementFact,
    DimCow,
    DimEvent,
    DimLocation,
    EventType,
    MovementMix,
    MovementType,
)

logger = structlog.get_logger(__name__)


def idle_gaps(ordered: Sequence[CowMovementFact]) -> List[float]:
    """
    Days between each movement's arrival and the next movement's departure.

    Pairs with an unknown timestamp are skipped. Negative gaps are kept here;
    callers decide how to treat them.
    """
    gaps: List[float] = []
    for previous, current in zip(ordered, ordered[1:]):
        gap = days_between(previous.reached_datetime, current.moved_datetime)
        if gap is not None:
            gaps.append(gap)
    return gaps


def calculate_cow_metrics(
    cow_id: str,
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
    events: Optional[Mapping[str, DimEvent]] = None,
) -> CowMetrics:
    """
    Calculate utilization metrics for one asset.

    Args:
        cow_id: Asset id
        facts: Fact set; only this asset's facts are used
        locations: Location dimension by id
        events: Event dimension by id

    Returns:
        CowMetrics with distances and averages rounded to 2 decimals
    """
    events = events or {}
    ordered = sort_chronologically(fact for fact in facts if fact.cow_id == cow_id)

    total_movements = len(ordered)
    total_distance = sum(fact.distance_km for fact in ordered)

    mix = MovementMix(
        full=sum(1 for fact in ordered if fact.movement_type == MovementType.FULL),
        half=sum(1 for fact in ordered if fact.movement_type == MovementType.HALF),
        zero=sum(1 for fact in ordered if fact.movement_type == MovementType.ZERO),
    )

    gaps = idle_gaps(ordered)
    valid_gaps = [gap for gap in gaps if gap >= 0]
    negative_gaps = len(gaps) - len(valid_gaps)

    regions = {
        locations[fact.to_location_id].region
        for fact in ordered
        if fact.to_location_id in locations
    }

    last_movement_date = None
    if ordered:
        last = ordered[-1]
        last_seen = last.reached_datetime or last.moved_datetime
        last_movement_date = last_seen.date() if last_seen else None

    return CowMetrics(
        cow_id=cow_id,
        total_movements=total_movements,
        total_distance_km=round2(total_distance),
        avg_distance_per_move=round2(safe_div(total_distance, total_movements)),
        movement_mix=mix,
        avg_idle_duration_days=round2(safe_div(sum(valid_gaps), len(valid_gaps))),
        negative_idle_gaps=negative_gaps,
        is_static=total_movements <= 1,
        last_movement_date=last_movement_date,
        regions_served=sorted(regions, key=lambda region: region.value),
        top_event_type=top_event_type(ordered, events),
    )


def top_event_type(
    ordered: Sequence[CowMovementFact],
    events: Mapping[str, DimEvent],
) -> Optional[EventType]:
    """Event type of the first movement, in chronological order, linked to a known event"""
    for fact in ordered:
        if fact.event_id and fact.event_id in events:
            return events[fact.event_id].event_type
    return None


def calculate_all_cow_metrics(
    cows: Sequence[DimCow],
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
    events: Optional[Mapping[str, DimEvent]] = None,
) -> List[CowMetrics]:
    """Metrics for every asset in the dimension, in dimension order"""
    by_cow = group_by_cow(facts)
    metrics = [
        calculate_cow_metrics(cow.cow_id, by_cow.get(cow.cow_id, []), locations, events)
        for cow in cows
    ]

    negative = sum(m.negative_idle_gaps for m in metrics)
    if negative:
        logger.warning("Negative idle gaps excluded from averages", count=negative)

    return metrics


def metrics_by_cow(metrics: Sequence[CowMetrics]) -> Dict[str, CowMetrics]:
    return {m.cow_id: m for m in metrics}
