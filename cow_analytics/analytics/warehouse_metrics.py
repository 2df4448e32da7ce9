"""
Warehouse Dwell-Time Reconciliation

For a warehouse, facts arriving there are *incoming* and facts leaving it are
*outgoing*. Each incoming fact is paired with the earliest outgoing fact of
the same asset that departs strictly after it arrived; the interval between
the two is one stay. Idle accumulation is the sum of all stays.

Pairing is a greedy nearest-successor match per asset, not an optimal
assignment: repeated in/out cycles pair consecutively in time.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional, Sequence

import structlog

from cow_analytics.analytics.utils import SECONDS_PER_DAY, group_by_cow, round2, safe_div
from cow_analytics.models import CowMovementFact, DimLocation, RegionCount, WarehouseMetrics

logger = structlog.get_logger(__name__)

TOP_REGIONS = 5


@dataclass(frozen=True)
class Stay:
    """One idle interval of an asset at a warehouse"""
    cow_id: str
    incoming_sn: int
    outgoing_sn: int
    arrived_at: datetime
    departed_at: datetime

    @property
    def days(self) -> float:
        return (self.departed_at - self.arrived_at).total_seconds() / SECONDS_PER_DAY


def match_stays(
    incoming: Sequence[CowMovementFact],
    outgoing: Sequence[CowMovementFact],
) -> List[Stay]:
    """
    Pair arrivals with the next departure of the same asset.

    Per asset, arrivals are sorted by reached time and departures by moved
    time, then walked with two indices. The departure index only moves
    forward, so each arrival gets the earliest departure strictly after it.
    Departures are not consumed: two arrivals with no departure between them
    share the same successor. Arrivals with no later departure, or with an
    unknown timestamp, produce no stay.

    Args:
        incoming: Facts whose destination is the warehouse
        outgoing: Facts whose origin is the warehouse

    Returns:
        Stays grouped by asset (first-seen order), chronological within each
    """
    departures_by_cow = group_by_cow(f for f in outgoing if f.moved_datetime is not None)
    stays: List[Stay] = []

    for cow_id, arrivals in group_by_cow(f for f in incoming if f.reached_datetime is not None).items():
        departures = sorted(departures_by_cow.get(cow_id, []), key=lambda f: (f.moved_datetime, f.sn))
        if not departures:
            continue

        arrivals = sorted(arrivals, key=lambda f: (f.reached_datetime, f.sn))
        j = 0
        for arrival in arrivals:
            while j < len(departures) and departures[j].moved_datetime <= arrival.reached_datetime:
                j += 1
            if j == len(departures):
                break
            departure = departures[j]
            stays.append(Stay(
                cow_id=cow_id,
                incoming_sn=arrival.sn,
                outgoing_sn=departure.sn,
                arrived_at=arrival.reached_datetime,
                departed_at=departure.moved_datetime,
            ))

    return stays


def top_regions_served(
    outgoing: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
    limit: int = TOP_REGIONS,
) -> List[RegionCount]:
    """Destination regions of outgoing facts by count; ties keep first-seen order"""
    counts: Counter = Counter()
    for fact in outgoing:
        destination = locations.get(fact.to_location_id)
        if destination is not None:
            counts[destination.region] += 1

    # sorted() is stable and Counter keeps insertion order
    ranked = sorted(counts.items(), key=lambda item: -item[1])[:limit]
    return [RegionCount(region=region, count=count) for region, count in ranked]


def calculate_warehouse_metrics(
    location: DimLocation,
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
) -> Optional[WarehouseMetrics]:
    """
    Traffic and dwell-time metrics for one warehouse.

    Returns:
        WarehouseMetrics, or None when the location is not a warehouse
    """
    if not location.is_warehouse:
        return None

    incoming = [f for f in facts if f.to_location_id == location.location_id]
    outgoing = [f for f in facts if f.from_location_id == location.location_id]
    stays = match_stays(incoming, outgoing)

    outgoing_distance = sum(f.distance_km for f in outgoing)
    incoming_distance = sum(f.distance_km for f in incoming)

    return WarehouseMetrics(
        location_id=location.location_id,
        location_name=location.location_name,
        outgoing_movements=len(outgoing),
        avg_outgoing_distance=round2(safe_div(outgoing_distance, len(outgoing))),
        top_regions_served=top_regions_served(outgoing, locations),
        incoming_movements=len(incoming),
        avg_incoming_distance=round2(safe_div(incoming_distance, len(incoming))),
        idle_accumulation_days=round2(sum(stay.days for stay in stays)),
        matched_stays=len(stays),
    )


def calculate_all_warehouse_metrics(
    facts: Sequence[CowMovementFact],
    locations: Mapping[str, DimLocation],
) -> List[WarehouseMetrics]:
    """Metrics for every warehouse in the location dimension"""
    metrics: List[WarehouseMetrics] = []
    for location in locations.values():
        result = calculate_warehouse_metrics(location, facts, locations)
        if result is not None:
            metrics.append(result)

    logger.debug("Warehouse metrics calculated", warehouses=len(metrics))
    return metrics

