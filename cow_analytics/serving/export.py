"""
JSON Export

Writes a snapshot as static JSON documents and reads them back:
- movement-data.json: movements, cows, locations and events
- never-moved-cows.json: static-section assets without movements
- diagnostics.json: ingestion counters
- dashboard.json: aggregated dashboard for one filter setting (optional)

Numbers stay numbers and dates are ISO-8601 strings, so documents load back
into identical records.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

from cow_analytics.ingestion.pipeline import Snapshot
from cow_analytics.models import (
    CowMovementFact,
    DashboardData,
    DimCow,
    DimEvent,
    DimLocation,
    NeverMovedCow,
)

logger = structlog.get_logger(__name__)

MOVEMENT_DATA_FILE = "movement-data.json"
NEVER_MOVED_FILE = "never-moved-cows.json"
DIAGNOSTICS_FILE = "diagnostics.json"
DASHBOARD_FILE = "dashboard.json"


def snapshot_document(snapshot: Snapshot) -> Dict[str, List[dict]]:
    """The movement-data document of a snapshot"""
    return {
        "movements": [fact.to_document() for fact in snapshot.facts],
        "cows": [cow.to_document() for cow in snapshot.cows],
        "locations": [loc.to_document() for loc in snapshot.locations],
        "events": [event.to_document() for event in snapshot.events],
    }


def _write_json(path: Path, document: Any, indent: Optional[int]) -> Path:
    path.write_text(json.dumps(document, indent=indent, ensure_ascii=False), encoding="utf-8")
    return path


def export_snapshot(
    snapshot: Snapshot,
    output_dir: Union[str, Path],
    dashboard: Optional[DashboardData] = None,
    indent: Optional[int] = 2,
) -> List[Path]:
    """
    Write a snapshot's documents to a directory.

    Args:
        snapshot: Snapshot to export
        output_dir: Target directory, created if needed
        dashboard: Aggregated dashboard to write alongside
        indent: JSON indentation, None for compact output

    Returns:
        Paths written
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    written = [
        _write_json(out / MOVEMENT_DATA_FILE, snapshot_document(snapshot), indent),
        _write_json(out / NEVER_MOVED_FILE, [cow.to_document() for cow in snapshot.never_moved], indent),
        _write_json(out / DIAGNOSTICS_FILE, snapshot.diagnostics.to_dict(), indent),
    ]
    if dashboard is not None:
        written.append(_write_json(out / DASHBOARD_FILE, dashboard.to_document(), indent))

    logger.info(
        "Snapshot exported",
        output_dir=str(out),
        files=[p.name for p in written],
        movements=len(snapshot.facts),
    )
    return written


def load_snapshot_json(input_dir: Union[str, Path]) -> Snapshot:
    """
    Rebuild a snapshot from exported documents.

    Diagnostics are not restored; the loaded snapshot carries empty counters.
    """
    directory = Path(input_dir)
    document = json.loads((directory / MOVEMENT_DATA_FILE).read_text(encoding="utf-8"))

    never_moved_path = directory / NEVER_MOVED_FILE
    never_moved = []
    if never_moved_path.exists():
        never_moved = [
            NeverMovedCow.model_validate(doc)
            for doc in json.loads(never_moved_path.read_text(encoding="utf-8"))
        ]

    return Snapshot(
        source_id=str(directory),
        facts=[CowMovementFact.model_validate(doc) for doc in document.get("movements", [])],
        cows=[DimCow.model_validate(doc) for doc in document.get("cows", [])],
        locations=[DimLocation.model_validate(doc) for doc in document.get("locations", [])],
        events=[DimEvent.model_validate(doc) for doc in document.get("events", [])],
        never_moved=never_moved,
    )
