"""
Unit Tests - Ingestion Pipeline and Snapshot Cache
"""
from datetime import date

import pytest

from cow_analytics.analytics import build_dashboard, normalize_filters
from cow_analytics.config.settings import SourceSettings
from cow_analytics.exceptions import PayloadShapeError, SourceFetchError
from cow_analytics.ingestion.cache import SnapshotCache
from cow_analytics.ingestion.fetcher import FileSource, source_from_settings
from cow_analytics.ingestion.pipeline import IngestionPipeline
from cow_analytics.models import AirStatus, EventType, MovementType, Region

from conftest import AS_OF


class CountingSource:
    """In-memory source that counts reads"""

    source_id = "memory://sample"

    def __init__(self, payload: str):
        self.payload = payload
        self.reads = 0

    def read(self) -> str:
        self.reads += 1
        return self.payload


class TestBuild:
    """Tests for IngestionPipeline.build"""

    def test_accepts_valid_rows_only(self, snapshot):
        diagnostics = snapshot.diagnostics

        assert [fact.sn for fact in snapshot.facts] == [1, 2, 3, 4, 5]
        assert diagnostics.total_rows == 7
        assert diagnostics.accepted_rows == 5
        assert dict(diagnostics.rejected) == {"missing_cow_id": 1, "missing_to_location": 1}
        assert not diagnostics.schema_drifted
        assert diagnostics.fallback_fields == []

    def test_rejected_row_absent_downstream(self, snapshot):
        assert "COW003" not in {fact.cow_id for fact in snapshot.facts}
        assert "COW003" not in snapshot.cows_by_id
        assert "COW003" not in {cow.cow_id for cow in snapshot.never_moved}

        dashboard = build_dashboard(snapshot)
        assert "COW003" not in {m.cow_id for m in dashboard.cow_metrics}

    def test_movement_types(self, snapshot):
        assert [fact.movement_type for fact in snapshot.facts] == [
            MovementType.HALF,
            MovementType.FULL,
            MovementType.HALF,
            MovementType.ZERO,
            MovementType.HALF,
        ]

    def test_dimensions(self, snapshot):
        locations = snapshot.locations_by_id

        assert locations["LOC-stc-jeddah-wh"].is_warehouse
        assert locations["LOC-stc-jeddah-wh"].region == Region.WEST
        assert locations["LOC-aces-dammam-wh"].region == Region.EAST
        assert locations["LOC-site-beta"].region == Region.CENTRAL
        assert [cow.cow_id for cow in snapshot.cows] == ["COW001", "COW002"]
        assert snapshot.events_by_id["EV-hajj-2024"].event_type == EventType.HAJJ
        assert snapshot.facts[0].recorded_distance_km == 1234.5
        assert snapshot.facts[0].is_royal

    def test_never_moved(self, snapshot):
        never_moved = {cow.cow_id: cow for cow in snapshot.never_moved}

        assert list(never_moved) == ["COW777", "COW999"]
        assert never_moved["COW777"].status == AirStatus.ON_AIR
        assert never_moved["COW777"].days_on_air == 517
        assert never_moved["COW999"].days_on_air == 31

    def test_as_of_overrides_today(self, pipeline, sample_payload):
        snapshot = pipeline.build(sample_payload, as_of=date(2024, 5, 2))

        assert {c.cow_id: c.days_on_air for c in snapshot.never_moved}["COW999"] == 1

    def test_quality_reports_attached(self, snapshot):
        diagnostics = snapshot.diagnostics.to_dict()

        assert diagnostics["validation"]["status"] == "passed"
        assert diagnostics["anomalies"]["anomalies_found"] == 0
        assert diagnostics["rejected_rows"] == 2

    def test_rebuild_is_idempotent(self, pipeline, sample_payload):
        first = pipeline.build(sample_payload, as_of=AS_OF)
        second = pipeline.build(sample_payload, as_of=AS_OF)

        assert [f.to_document() for f in first.facts] == [f.to_document() for f in second.facts]
        assert first.locations == second.locations
        assert first.diagnostics.to_dict() == second.diagnostics.to_dict()

    def test_html_payload_produces_nothing(self, pipeline):
        with pytest.raises(PayloadShapeError):
            pipeline.build("<!DOCTYPE html><html><body>Sign in</body></html>")

    @pytest.mark.parametrize("payload", ["\ufeff", "\ufeff\n\n", "\ufeff\r\n"])
    def test_bom_only_payload_rejected(self, pipeline, payload):
        with pytest.raises(PayloadShapeError):
            pipeline.build(payload, as_of=AS_OF)

    def test_dashboard_year_filter(self, snapshot):
        dashboard = build_dashboard(snapshot, normalize_filters({"year": 2023}))

        assert [fact.sn for fact in dashboard.movements] == [4, 5]
        assert dashboard.kpis.total_movements == 2
        assert dashboard.kpis.total_cows == 2
        assert dashboard.filters == {"year": 2023}

    def test_dashboard_warehouse_dwell(self, snapshot):
        dashboard = build_dashboard(snapshot)
        jeddah = {m.location_id: m for m in dashboard.warehouse_metrics}["LOC-stc-jeddah-wh"]

        assert jeddah.incoming_movements == 2
        assert jeddah.outgoing_movements == 2
        assert jeddah.matched_stays == 1
        assert jeddah.idle_accumulation_days == 10.0

    def test_dashboard_cow_metrics(self, snapshot):
        metrics = {m.cow_id: m for m in build_dashboard(snapshot).cow_metrics}["COW001"]

        assert metrics.total_movements == 3
        assert metrics.avg_idle_duration_days == 14.75
        assert metrics.regions_served == [Region.CENTRAL, Region.WEST]
        assert metrics.top_event_type == EventType.HAJJ


class TestLoad:
    """Tests for IngestionPipeline.load and the snapshot cache"""

    def test_without_source(self):
        with pytest.raises(SourceFetchError):
            IngestionPipeline().load()

    def test_without_cache_fetches_every_time(self, sample_payload):
        source = CountingSource(sample_payload)
        pipeline = IngestionPipeline(source=source)

        pipeline.load()
        pipeline.load()

        assert source.reads == 2

    def test_cached_until_ttl_expires(self, sample_payload, fake_clock):
        source = CountingSource(sample_payload)
        pipeline = IngestionPipeline(source=source, cache=SnapshotCache(default_ttl=300, clock=fake_clock))

        first = pipeline.load()
        fake_clock.advance(299)
        assert pipeline.load() is first
        assert source.reads == 1

        fake_clock.advance(1)
        pipeline.load()
        assert source.reads == 2

    def test_refresh_bypasses_cache(self, sample_payload, fake_clock):
        source = CountingSource(sample_payload)
        pipeline = IngestionPipeline(source=source, cache=SnapshotCache(clock=fake_clock))

        first = pipeline.load()
        second = pipeline.load(refresh=True)

        assert source.reads == 2
        assert second is not first
        assert second.source_id == "memory://sample"

    def test_file_source(self, tmp_path, sample_payload):
        path = tmp_path / "movements.csv"
        path.write_text(sample_payload, encoding="utf-8")

        snapshot = IngestionPipeline(source=FileSource(path)).load()

        assert snapshot.source_id == str(path)
        assert len(snapshot.facts) == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceFetchError):
            FileSource(tmp_path / "absent.csv").read()


class TestSnapshotCache:
    """Tests for SnapshotCache"""

    def test_namespaced_entries(self, fake_clock):
        cache = SnapshotCache("snap", clock=fake_clock)
        cache.set("a", 1)

        assert cache.get("a") == 1
        assert cache._key("a") == "snap:a"

    def test_zero_ttl_never_expires(self, fake_clock):
        cache = SnapshotCache(default_ttl=10, clock=fake_clock)
        cache.set("a", 1, ttl=0)
        fake_clock.advance(10_000)

        assert cache.get("a") == 1

    def test_delete_and_invalidate(self, fake_clock):
        cache = SnapshotCache(clock=fake_clock)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.invalidate_all() == 1
        assert len(cache) == 0


class TestSourceFromSettings:
    """Tests for source selection"""

    def test_path_wins_over_url(self):
        source = source_from_settings(SourceSettings(csv_path="a.csv", csv_url="https://example.com/x.csv"))

        assert isinstance(source, FileSource)

    def test_nothing_configured(self):
        with pytest.raises(SourceFetchError):
            source_from_settings(SourceSettings(csv_path=None, csv_url=None))
