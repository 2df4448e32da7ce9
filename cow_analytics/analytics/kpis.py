"""
Dashboard-wide KPI totals.
"""

from typing import Sequence

from cow_analytics.analytics.utils import round2, safe_div
from cow_analytics.models import CowMetrics, CowMovementFact, DimCow, KPIs


def calculate_kpis(
    facts: Sequence[CowMovementFact],
    cows: Sequence[DimCow],
    cow_metrics: Sequence[CowMetrics],
) -> KPIs:
    """
    Reduce the current fact set to headline numbers.

    The asset count is the size of the asset dimension, so average moves per
    asset is taken over every known asset, moved or not.
    """
    total_cows = len(cows)
    total_movements = len(facts)
    static_cows = sum(1 for m in cow_metrics if m.is_static)

    return KPIs(
        total_cows=total_cows,
        total_movements=total_movements,
        total_distance_km=round2(sum(fact.distance_km for fact in facts)),
        active_cows=len(cow_metrics) - static_cows,
        static_cows=static_cows,
        avg_moves_per_cow=round2(safe_div(total_movements, total_cows)),
    )
