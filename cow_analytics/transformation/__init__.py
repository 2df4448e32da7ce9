"""
Data Transformation Module
"""
from .classifier import classify_movement, parse_movement_type, resolve_movement_type
from .geo import haversine_km, movement_distance_km
from .normalizer import (
    NormalizedSnapshot,
    RecordNormalizer,
    classify_ebu_royal,
    extract_never_moved,
)

__all__ = [
    "classify_movement",
    "parse_movement_type",
    "resolve_movement_type",
    "haversine_km",
    "movement_distance_km",
    "NormalizedSnapshot",
    "RecordNormalizer",
    "classify_ebu_royal",
    "extract_never_moved",
]
