"""
Unit Tests - Royal/EBU and Event-Type Breakdowns
"""
import pytest

from cow_analytics.analytics import build_dashboard, normalize_filters
from cow_analytics.analytics.category_metrics import (
    calculate_category_metrics,
    calculate_event_type_metrics,
    calculate_royal_comparison,
)
from cow_analytics.models import DimEvent, EbuRoyalCategory, EventType

ROYAL = EbuRoyalCategory.ROYAL
EBU = EbuRoyalCategory.EBU
NON_EBU = EbuRoyalCategory.NON_EBU


@pytest.fixture
def facts(fact_factory):
    return [
        fact_factory(1, "C1", "A", "B", distance_km=100.0, event_id="EV-hajj", category=ROYAL),
        fact_factory(2, "C1", "B", "C", distance_km=50.0, event_id="EV-hajj", category=ROYAL),
        fact_factory(3, "C2", "A", "C", distance_km=30.0, event_id="EV-expo", category=EBU),
        fact_factory(4, "C3", "C", "A", distance_km=20.0),
        fact_factory(5, "C3", "A", "B", distance_km=0.0, event_id="EV-missing"),
    ]


@pytest.fixture
def events():
    return {
        "EV-hajj": DimEvent(event_id="EV-hajj", event_type=EventType.HAJJ),
        "EV-expo": DimEvent(event_id="EV-expo", event_type=EventType.EVENT),
    }


class TestCategoryMetrics:
    """Tests for calculate_category_metrics"""

    def test_counts_and_distance_per_category(self, facts):
        by_category = {m.category: m for m in calculate_category_metrics(facts)}

        assert by_category[ROYAL].movements == 2
        assert by_category[ROYAL].total_distance_km == 150.0
        assert by_category[ROYAL].avg_distance_km == 75.0
        assert by_category[EBU].movements == 1
        assert by_category[NON_EBU].movements == 2
        assert by_category[NON_EBU].avg_distance_km == 10.0

    def test_shares_are_percentages(self, facts):
        by_category = {m.category: m for m in calculate_category_metrics(facts)}

        assert by_category[ROYAL].share_pct == 40.0
        assert by_category[EBU].share_pct == 20.0
        assert sum(m.share_pct for m in by_category.values()) == pytest.approx(100.0)

    def test_every_category_reported_for_empty_set(self):
        metrics = calculate_category_metrics([])

        assert [m.category for m in metrics] == list(EbuRoyalCategory)
        assert all(m.movements == 0 and m.share_pct == 0.0 and m.avg_distance_km == 0.0 for m in metrics)


class TestRoyalComparison:
    """Tests for calculate_royal_comparison"""

    def test_royal_against_everything_else(self, facts):
        comparison = calculate_royal_comparison(facts)

        assert comparison.royal_movements == 2
        assert comparison.non_royal_movements == 3
        assert comparison.royal_avg_distance_km == 75.0
        assert comparison.non_royal_avg_distance_km == pytest.approx(16.67)

    def test_no_royal_moves(self, fact_factory):
        comparison = calculate_royal_comparison([fact_factory(1, "C1", "A", "B", distance_km=12.0)])

        assert comparison.royal_movements == 0
        assert comparison.royal_avg_distance_km == 0.0
        assert comparison.non_royal_avg_distance_km == 12.0


class TestEventTypeMetrics:
    """Tests for calculate_event_type_metrics"""

    def test_counts_per_event_type(self, facts, events):
        by_type = {m.event_type: m for m in calculate_event_type_metrics(facts, events)}

        assert by_type[EventType.HAJJ].movements == 2
        assert by_type[EventType.HAJJ].total_distance_km == 150.0
        assert by_type[EventType.EVENT].movements == 1
        assert by_type[EventType.UMRAH].movements == 0

    def test_unlinked_and_unknown_events_count_as_normal_coverage(self, facts, events):
        by_type = {m.event_type: m for m in calculate_event_type_metrics(facts, events)}

        normal = by_type[EventType.NORMAL_COVERAGE]
        assert normal.movements == 2
        assert normal.total_distance_km == 20.0
        assert normal.avg_distance_km == 10.0

    def test_totals_cover_every_fact(self, facts, events):
        metrics = calculate_event_type_metrics(facts, events)

        assert [m.event_type for m in metrics] == list(EventType)
        assert sum(m.movements for m in metrics) == len(facts)


class TestDashboardBreakdowns:
    """Breakdowns attached to the dashboard follow the filters"""

    def test_sample_snapshot(self, snapshot):
        dashboard = build_dashboard(snapshot)

        by_category = {m.category: m.movements for m in dashboard.category_metrics}
        assert by_category == {ROYAL: 1, EBU: 1, NON_EBU: 3}
        assert dashboard.royal_comparison.royal_movements == 1

        by_type = {m.event_type: m.movements for m in dashboard.event_type_metrics}
        assert by_type[EventType.HAJJ] == 1
        assert by_type[EventType.NORMAL_COVERAGE] == 4

    def test_filtered_by_year(self, snapshot):
        dashboard = build_dashboard(snapshot, normalize_filters({"year": 2023}))

        by_category = {m.category: m.movements for m in dashboard.category_metrics}
        assert by_category == {ROYAL: 0, EBU: 0, NON_EBU: 2}

    def test_serialized_names(self, snapshot):
        document = build_dashboard(snapshot).to_document()

        assert {"categoryMetrics", "royalComparison", "eventTypeMetrics"} <= set(document)
        assert document["categoryMetrics"][0]["Category"] == "ROYAL"
        assert document["royalComparison"]["Royal_Movements"] == 1
