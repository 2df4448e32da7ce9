"""
Ingestion diagnostics.

Every skip and fallback taken while normalizing a snapshot is counted here.
Counting never changes the produced records.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class IngestionDiagnostics:
    """Counters collected over one ingestion run"""
    schema_version: str = ""
    schema_drifted: bool = False
    fallback_fields: List[str] = field(default_factory=list)
    total_rows: int = 0
    accepted_rows: int = 0
    # Row rejections by reason (missing_cow_id, missing_from_location...)
    rejected: Counter = field(default_factory=Counter)
    # Unparseable numeric/date cells by logical field
    fallbacks: Counter = field(default_factory=Counter)
    unresolved_location: int = 0
    anomalies: Optional[Dict[str, Any]] = None
    validation: Optional[Dict[str, Any]] = None

    def reject(self, reason: str) -> None:
        self.rejected[reason] += 1

    def fallback(self, field_name: str) -> None:
        self.fallbacks[field_name] += 1

    @property
    def rejected_rows(self) -> int:
        return sum(self.rejected.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "schema_drifted": self.schema_drifted,
            "fallback_fields": sorted(self.fallback_fields),
            "total_rows": self.total_rows,
            "accepted_rows": self.accepted_rows,
            "rejected_rows": self.rejected_rows,
            "rejected": dict(sorted(self.rejected.items())),
            "fallbacks": dict(sorted(self.fallbacks.items())),
            "unresolved_location": self.unresolved_location,
            "anomalies": self.anomalies,
            "validation": self.validation,
        }
