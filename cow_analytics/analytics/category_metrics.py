"""
Royal/EBU and event-type breakdowns of the filtered fact set.

Every category and every event type is reported, with zeros when no fact
falls into it, in enum order.
"""

from typing import Dict, List, Mapping, Sequence, Tuple

from cow_analytics.analytics.utils import round2, safe_div
from cow_analytics.models import (
    CategoryMetrics,
    CowMovementFact,
    DimEvent,
    EbuRoyalCategory,
    EventType,
    EventTypeMetrics,
    RoyalComparison,
)


def _totals(facts: Sequence[CowMovementFact]) -> Tuple[int, float]:
    return len(facts), sum(fact.distance_km for fact in facts)


def calculate_category_metrics(facts: Sequence[CowMovementFact]) -> List[CategoryMetrics]:
    """
    Count and distance per Royal/EBU category.

    Args:
        facts: Filtered fact set

    Returns:
        One CategoryMetrics per category; share is a percentage of all facts
    """
    grouped: Dict[EbuRoyalCategory, List[CowMovementFact]] = {category: [] for category in EbuRoyalCategory}
    for fact in facts:
        grouped[fact.ebu_royal_category].append(fact)

    metrics = []
    for category, members in grouped.items():
        count, distance = _totals(members)
        metrics.append(
            CategoryMetrics(
                category=category,
                movements=count,
                share_pct=round2(safe_div(count * 100.0, len(facts))),
                total_distance_km=round2(distance),
                avg_distance_km=round2(safe_div(distance, count)),
            )
        )
    return metrics


def calculate_royal_comparison(facts: Sequence[CowMovementFact]) -> RoyalComparison:
    """Royal moves against every other move (EBU and NON EBU together)"""
    royal = [fact for fact in facts if fact.is_royal]
    others = [fact for fact in facts if not fact.is_royal]
    royal_count, royal_distance = _totals(royal)
    other_count, other_distance = _totals(others)

    return RoyalComparison(
        royal_movements=royal_count,
        non_royal_movements=other_count,
        royal_avg_distance_km=round2(safe_div(royal_distance, royal_count)),
        non_royal_avg_distance_km=round2(safe_div(other_distance, other_count)),
    )


def calculate_event_type_metrics(
    facts: Sequence[CowMovementFact],
    events: Mapping[str, DimEvent],
) -> List[EventTypeMetrics]:
    """
    Count and distance per event type.

    Facts without a resolvable event link are counted as Normal Coverage.
    """
    grouped: Dict[EventType, List[CowMovementFact]] = {event_type: [] for event_type in EventType}
    for fact in facts:
        event = events.get(fact.event_id) if fact.event_id else None
        grouped[event.event_type if event else EventType.NORMAL_COVERAGE].append(fact)

    metrics = []
    for event_type, members in grouped.items():
        count, distance = _totals(members)
        metrics.append(
            EventTypeMetrics(
                event_type=event_type,
                movements=count,
                total_distance_km=round2(distance),
                avg_distance_km=round2(safe_div(distance, count)),
            )
        )
    return metrics
