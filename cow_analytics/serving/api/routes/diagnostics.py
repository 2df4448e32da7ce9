"""
Ingestion Diagnostics Endpoint
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from cow_analytics.ingestion.pipeline import Snapshot
from cow_analytics.serving.api.dependencies import get_snapshot

router = APIRouter()


@router.get("/diagnostics")
def get_diagnostics(snapshot: Snapshot = Depends(get_snapshot)) -> Dict[str, Any]:
    """Skip, fallback, anomaly and validation counters of the current snapshot"""
    return {"source": snapshot.source_id, **snapshot.diagnostics.to_dict()}
