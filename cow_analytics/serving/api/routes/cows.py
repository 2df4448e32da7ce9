"""
Asset Endpoints
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from cow_analytics.analytics import calculate_cow_metrics
from cow_analytics.analytics.utils import sort_chronologically
from cow_analytics.ingestion.pipeline import Snapshot
from cow_analytics.serving.api.dependencies import get_snapshot

router = APIRouter()


@router.get("/never-moved")
def get_never_moved(snapshot: Snapshot = Depends(get_snapshot)) -> List[Dict[str, Any]]:
    """Assets listed in the static section with no movement on record"""
    return [cow.to_document() for cow in snapshot.never_moved]


@router.get("/cows/{cow_id}")
def get_cow(cow_id: str, snapshot: Snapshot = Depends(get_snapshot)) -> Dict[str, Any]:
    """One asset with its metrics and chronological movement history"""
    cow = snapshot.cows_by_id.get(cow_id)
    if cow is None:
        raise HTTPException(status_code=404, detail=f"COW {cow_id} not found")

    movements = sort_chronologically(f for f in snapshot.facts if f.cow_id == cow_id)
    metrics = calculate_cow_metrics(cow_id, movements, snapshot.locations_by_id, snapshot.events_by_id)
    return {
        "cow": cow.to_document(),
        "metrics": metrics.to_document(),
        "movements": [f.to_document() for f in movements],
    }
