"""
Analytics Module
"""
from .category_metrics import (
    calculate_category_metrics,
    calculate_event_type_metrics,
    calculate_royal_comparison,
)
from .cow_metrics import calculate_all_cow_metrics, calculate_cow_metrics
from .dashboard import build_dashboard
from .filters import DashboardFilters, apply_filters, normalize_filters
from .kpis import calculate_kpis
from .region_metrics import calculate_all_region_metrics, calculate_region_metrics
from .warehouse_metrics import (
    Stay,
    calculate_all_warehouse_metrics,
    calculate_warehouse_metrics,
    match_stays,
)

__all__ = [
    "calculate_category_metrics",
    "calculate_royal_comparison",
    "calculate_event_type_metrics",
    "calculate_cow_metrics",
    "calculate_all_cow_metrics",
    "build_dashboard",
    "DashboardFilters",
    "apply_filters",
    "normalize_filters",
    "calculate_kpis",
    "calculate_region_metrics",
    "calculate_all_region_metrics",
    "Stay",
    "match_stays",
    "calculate_warehouse_metrics",
    "calculate_all_warehouse_metrics",
]
