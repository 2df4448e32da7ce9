"""
Great-circle distances between locations.
"""

import math
from typing import Optional

from cow_analytics.models import DimLocation

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance in kilometres between two lat/lon points (degrees).

    Symmetric in its endpoints and exactly 0 for identical points.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Rounding can push a marginally above 1 for antipodal points
    a = min(1.0, a)
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def movement_distance_km(
    from_location: Optional[DimLocation],
    to_location: Optional[DimLocation],
) -> float:
    """Distance between two locations; 0.0 when either one or a coordinate is missing"""
    if from_location is None or to_location is None:
        return 0.0
    if not (from_location.has_coordinates and to_location.has_coordinates):
        return 0.0
    return haversine_km(
        from_location.latitude,
        from_location.longitude,
        to_location.latitude,
        to_location.longitude,
    )
