"""
Ingestion Pipeline

Orchestrates one snapshot run:
    payload -> HTML guard -> rows -> column resolution -> normalization
            -> facts + dimensions + never-moved assets + diagnostics

``build`` is a pure function of the payload (and the reference date used
for days-on-air). ``load`` adds fetching and the injected TTL cache keyed by
source identity.
"""

import time
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional

import structlog

from cow_analytics.exceptions import PayloadShapeError, SourceFetchError
from cow_analytics.ingestion.cache import SnapshotCache
from cow_analytics.ingestion.csv_parser import iter_rows
from cow_analytics.ingestion.diagnostics import IngestionDiagnostics
from cow_analytics.ingestion.fetcher import SnapshotSource
from cow_analytics.ingestion.schema import COW_ID, LEGACY_SCHEMA, ColumnSchema
from cow_analytics.models import (
    CowMovementFact,
    DimCow,
    DimEvent,
    DimLocation,
    NeverMovedCow,
)
from cow_analytics.quality.anomalies import TemporalAnomalyDetector
from cow_analytics.quality.validators import create_movements_validator
from cow_analytics.serving.frames import facts_frame
from cow_analytics.transformation.normalizer import RecordNormalizer, extract_never_moved

logger = structlog.get_logger(__name__)


@dataclass
class Snapshot:
    """Typed model of one spreadsheet snapshot"""
    source_id: str
    facts: List[CowMovementFact] = field(default_factory=list)
    cows: List[DimCow] = field(default_factory=list)
    locations: List[DimLocation] = field(default_factory=list)
    events: List[DimEvent] = field(default_factory=list)
    never_moved: List[NeverMovedCow] = field(default_factory=list)
    diagnostics: IngestionDiagnostics = field(default_factory=IngestionDiagnostics)

    @property
    def locations_by_id(self) -> Dict[str, DimLocation]:
        return {loc.location_id: loc for loc in self.locations}

    @property
    def events_by_id(self) -> Dict[str, DimEvent]:
        return {event.event_id: event for event in self.events}

    @property
    def cows_by_id(self) -> Dict[str, DimCow]:
        return {cow.cow_id: cow for cow in self.cows}


class IngestionPipeline:
    """
    Snapshot ingestion orchestrator.

    Example:
        pipeline = IngestionPipeline(source=FileSource("movements.csv"),
                                     cache=SnapshotCache(default_ttl=300))
        snapshot = pipeline.load()
    """

    def __init__(
        self,
        source: Optional[SnapshotSource] = None,
        cache: Optional[SnapshotCache] = None,
        schema: ColumnSchema = LEGACY_SCHEMA,
        today: Callable[[], date] = date.today,
        detector: Optional[TemporalAnomalyDetector] = None,
    ):
        self.source = source
        self.cache = cache
        self.schema = schema
        self.today = today
        self.detector = detector or TemporalAnomalyDetector()

    def build(self, payload: str, source_id: str = "inline", as_of: Optional[date] = None) -> Snapshot:
        """
        Parse and normalize one payload.

        Args:
            payload: Raw CSV text, header row first
            source_id: Identity recorded on the snapshot
            as_of: Reference date for never-moved days on air (default: today)

        Returns:
            Snapshot

        Raises:
            PayloadShapeError: payload is empty or an HTML page
        """
        started = time.perf_counter()
        rows = list(iter_rows(payload))
        if not rows:
            raise PayloadShapeError("Snapshot payload has no header row")
        header, data_rows = rows[0], rows[1:]

        column_map = self.schema.resolve(header)
        diagnostics = IngestionDiagnostics(
            schema_version=column_map.schema_version,
            schema_drifted=column_map.drifted,
            fallback_fields=sorted(column_map.fallbacks),
        )

        normalized = RecordNormalizer(column_map, diagnostics).normalize(data_rows)

        moving_ids = {column_map.get(row, COW_ID) for row in data_rows} - {""}
        never_moved = extract_never_moved(
            data_rows,
            column_map,
            moving_ids,
            as_of or self.today(),
        )

        diagnostics.anomalies = self.detector.detect(normalized.facts).to_dict()
        validator = create_movements_validator(loc.location_id for loc in normalized.locations)
        diagnostics.validation = validator.validate(facts_frame(normalized.facts)).to_dict()

        snapshot = Snapshot(
            source_id=source_id,
            facts=normalized.facts,
            cows=normalized.cows,
            locations=normalized.locations,
            events=normalized.events,
            never_moved=never_moved,
            diagnostics=diagnostics,
        )

        logger.info(
            "Snapshot built",
            source_id=source_id,
            rows=diagnostics.total_rows,
            facts=len(snapshot.facts),
            rejected=diagnostics.rejected_rows,
            never_moved=len(never_moved),
            duration_seconds=round(time.perf_counter() - started, 3),
        )
        return snapshot

    def _fetch_and_build(self) -> Snapshot:
        payload = self.source.read()
        return self.build(payload, source_id=self.source.source_id)

    def load(self, refresh: bool = False) -> Snapshot:
        """
        Fetch and build the configured source, through the cache if any.

        Args:
            refresh: Drop the cached snapshot first

        Raises:
            SourceFetchError: no source configured, or the fetch failed
            PayloadShapeError: the source returned a non-tabular payload
        """
        if self.source is None:
            raise SourceFetchError("IngestionPipeline has no source")

        if self.cache is None:
            return self._fetch_and_build()

        key = self.source.source_id
        if refresh:
            self.cache.delete(key)
        return self.cache.get_or_set(key, self._fetch_and_build)
