"""
Temporal Anomaly Detection

Surfaces movement records whose timing cannot be taken at face value:
- Arrival recorded before departure
- Next departure recorded before the previous arrival (negative idle gap)
- Missing departure or arrival timestamp
- Computed distance far outside the fleet's usual range (IQR)

Anomalies are reported, never corrected; aggregations see the facts as
recorded.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import polars as pl
import structlog

from cow_analytics.analytics.utils import days_between, group_by_cow, sort_chronologically
from cow_analytics.models import CowMovementFact

logger = structlog.get_logger(__name__)


class AnomalyType(str, Enum):
    """Types of anomalies detected"""
    REACHED_BEFORE_MOVED = "reached_before_moved"
    NEGATIVE_IDLE_GAP = "negative_idle_gap"
    MISSING_TIMESTAMP = "missing_timestamp"
    DISTANCE_OUTLIER = "distance_outlier"


class AnomalySeverity(str, Enum):
    """Severity levels for anomalies"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class AnomalyResult:
    """Single anomaly on one movement record"""
    anomaly_type: AnomalyType
    severity: AnomalySeverity
    cow_id: str
    sn: int
    message: str
    value: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AnomalyReport:
    """Complete anomaly detection report"""
    facts_checked: int
    anomalies: List[AnomalyResult] = field(default_factory=list)

    @property
    def anomalies_found(self) -> int:
        return len(self.anomalies)

    @property
    def counts(self) -> Dict[str, int]:
        return dict(Counter(a.anomaly_type.value for a in self.anomalies))

    def of_type(self, anomaly_type: AnomalyType) -> List[AnomalyResult]:
        return [a for a in self.anomalies if a.anomaly_type == anomaly_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "facts_checked": self.facts_checked,
            "anomalies_found": self.anomalies_found,
            "counts": dict(sorted(self.counts.items())),
            "anomalies": [
                {
                    "type": a.anomaly_type.value,
                    "severity": a.severity.value,
                    "cow_id": a.cow_id,
                    "sn": a.sn,
                    "message": a.message,
                    "value": a.value,
                }
                for a in self.anomalies
            ],
        }


class TemporalAnomalyDetector:
    """
    Anomaly detector for the movement fact table.

    Example:
        detector = TemporalAnomalyDetector(iqr_multiplier=3.0)
        report = detector.detect(facts)
    """

    def __init__(self, iqr_multiplier: float = 3.0):
        self.iqr_multiplier = iqr_multiplier

    def _detect_reached_before_moved(self, facts: Sequence[CowMovementFact]) -> List[AnomalyResult]:
        anomalies = []
        for fact in facts:
            duration = days_between(fact.moved_datetime, fact.reached_datetime)
            if duration is not None and duration < 0:
                anomalies.append(AnomalyResult(
                    anomaly_type=AnomalyType.REACHED_BEFORE_MOVED,
                    severity=AnomalySeverity.HIGH,
                    cow_id=fact.cow_id,
                    sn=fact.sn,
                    value=round(duration, 2),
                    message=f"{fact.cow_id} reached {abs(duration):.2f} days before it moved",
                ))
        return anomalies

    def _detect_negative_idle_gaps(self, facts: Sequence[CowMovementFact]) -> List[AnomalyResult]:
        anomalies = []
        for cow_id, cow_facts in group_by_cow(facts).items():
            ordered = sort_chronologically(cow_facts)
            for previous, current in zip(ordered, ordered[1:]):
                gap = days_between(previous.reached_datetime, current.moved_datetime)
                if gap is not None and gap < 0:
                    anomalies.append(AnomalyResult(
                        anomaly_type=AnomalyType.NEGATIVE_IDLE_GAP,
                        severity=AnomalySeverity.MEDIUM,
                        cow_id=cow_id,
                        sn=current.sn,
                        value=round(gap, 2),
                        message=f"{cow_id} moved again {abs(gap):.2f} days before its previous arrival",
                        details={"previous_sn": previous.sn},
                    ))
        return anomalies

    def _detect_missing_timestamps(self, facts: Sequence[CowMovementFact]) -> List[AnomalyResult]:
        anomalies = []
        for fact in facts:
            missing = [
                name for name, value in (
                    ("moved_datetime", fact.moved_datetime),
                    ("reached_datetime", fact.reached_datetime),
                )
                if value is None
            ]
            if missing:
                anomalies.append(AnomalyResult(
                    anomaly_type=AnomalyType.MISSING_TIMESTAMP,
                    severity=AnomalySeverity.LOW,
                    cow_id=fact.cow_id,
                    sn=fact.sn,
                    message=f"{fact.cow_id} movement {fact.sn} has no {' or '.join(missing)}",
                    details={"fields": missing},
                ))
        return anomalies

    def _detect_distance_outliers(self, facts: Sequence[CowMovementFact]) -> List[AnomalyResult]:
        """Flag distances outside the IQR bounds of the non-zero distances"""
        distances = pl.Series("distance_km", [f.distance_km for f in facts], dtype=pl.Float64)
        measured = distances.filter(distances > 0)
        if measured.len() < 4:
            return []

        q1 = measured.quantile(0.25)
        q3 = measured.quantile(0.75)
        iqr = q3 - q1
        if not iqr:
            return []

        lower_bound = q1 - self.iqr_multiplier * iqr
        upper_bound = q3 + self.iqr_multiplier * iqr

        anomalies = []
        for fact in facts:
            value = fact.distance_km
            if value > 0 and (value < lower_bound or value > upper_bound):
                anomalies.append(AnomalyResult(
                    anomaly_type=AnomalyType.DISTANCE_OUTLIER,
                    severity=AnomalySeverity.LOW,
                    cow_id=fact.cow_id,
                    sn=fact.sn,
                    value=round(value, 2),
                    message=f"distance {value:.2f} km is outside IQR bounds [{lower_bound:.2f}, {upper_bound:.2f}]",
                    details={"q1": q1, "q3": q3},
                ))
        return anomalies

    def detect(self, facts: Sequence[CowMovementFact]) -> AnomalyReport:
        """
        Run every check over the fact table.

        Returns:
            AnomalyReport, anomalies ordered by check then by record
        """
        anomalies: List[AnomalyResult] = []
        anomalies.extend(self._detect_reached_before_moved(facts))
        anomalies.extend(self._detect_negative_idle_gaps(facts))
        anomalies.extend(self._detect_missing_timestamps(facts))
        anomalies.extend(self._detect_distance_outliers(facts))

        report = AnomalyReport(facts_checked=len(facts), anomalies=anomalies)

        if report.anomalies_found:
            logger.warning(
                "Temporal anomalies detected",
                total=report.anomalies_found,
                **report.counts,
            )
        else:
            logger.info("Anomaly detection complete: no anomalies found")

        return report
