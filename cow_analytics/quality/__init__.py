"""
Data Quality Module
"""
from .anomalies import AnomalyReport, AnomalyType, TemporalAnomalyDetector
from .validators import DataValidator, ValidationResult, create_movements_validator

__all__ = [
    "AnomalyReport",
    "AnomalyType",
    "TemporalAnomalyDetector",
    "DataValidator",
    "ValidationResult",
    "create_movements_validator",
]
