"""
Shared helpers for the aggregators.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from cow_analytics.models import CowMovementFact

SECONDS_PER_DAY = 86400.0

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def round2(value: float) -> float:
    return round(value, 2)


def safe_div(numerator: float, denominator: float) -> float:
    """Division that yields 0 for a zero denominator"""
    if not denominator:
        return 0.0
    return numerator / denominator


def days_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Signed days from start to end, or None when either is unknown"""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / SECONDS_PER_DAY


def chronological_key(fact: CowMovementFact) -> Tuple[bool, datetime, int]:
    """Sort key: moved time ascending, unknown times last, SN breaks ties"""
    moved = fact.moved_datetime
    return moved is None, moved or _EARLIEST, fact.sn


def sort_chronologically(facts: Iterable[CowMovementFact]) -> List[CowMovementFact]:
    return sorted(facts, key=chronological_key)


def group_by_cow(facts: Iterable[CowMovementFact]) -> Dict[str, List[CowMovementFact]]:
    """Facts per asset id, preserving first-seen order of ids and facts"""
    groups: Dict[str, List[CowMovementFact]] = {}
    for fact in facts:
        groups.setdefault(fact.cow_id, []).append(fact)
    return groups
