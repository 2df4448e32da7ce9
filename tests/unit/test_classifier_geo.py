"""
Unit Tests - Movement Classification and Distance
"""
import pytest

from cow_analytics.models import DimLocation, LocationType, MovementType
from cow_analytics.transformation.classifier import (
    classify_movement,
    parse_movement_type,
    resolve_movement_type,
)
from cow_analytics.transformation.geo import haversine_km, movement_distance_km

SITE = LocationType.SITE
WAREHOUSE = LocationType.WAREHOUSE


class TestClassifyMovement:
    """Tests for the movement rule engine"""

    @pytest.mark.parametrize("origin,destination,expected", [
        (SITE, SITE, MovementType.FULL),
        (SITE, WAREHOUSE, MovementType.HALF),
        (WAREHOUSE, SITE, MovementType.HALF),
        (WAREHOUSE, WAREHOUSE, MovementType.ZERO),
        (None, SITE, MovementType.ZERO),
        (SITE, None, MovementType.ZERO),
    ])
    def test_rules(self, origin, destination, expected):
        assert classify_movement(origin, destination) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Full", MovementType.FULL),
        (" half move ", MovementType.HALF),
        ("ZERO", MovementType.ZERO),
        ("", None),
        ("relocation", None),
    ])
    def test_parse_explicit_type(self, text, expected):
        assert parse_movement_type(text) == expected

    def test_explicit_type_wins(self):
        assert resolve_movement_type(MovementType.ZERO, SITE, SITE) == MovementType.ZERO

    def test_rules_used_without_explicit_type(self):
        assert resolve_movement_type(None, SITE, WAREHOUSE) == MovementType.HALF


class TestHaversine:
    """Tests for great-circle distance"""

    def test_identical_points_are_zero(self):
        assert haversine_km(21.5, 39.2, 21.5, 39.2) == 0.0

    def test_symmetric(self):
        assert haversine_km(21.5, 39.2, 24.7, 46.7) == pytest.approx(haversine_km(24.7, 46.7, 21.5, 39.2))

    def test_one_degree_of_latitude(self):
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)

    def test_antipodal_points(self):
        assert haversine_km(0, 0, 0, 180) == pytest.approx(3.141592653589793 * 6371.0)

    def test_missing_coordinates_give_zero(self):
        located = DimLocation(location_id="LOC-a", location_name="A", latitude=21.5, longitude=39.2)
        unlocated = DimLocation(location_id="LOC-b", location_name="B")

        assert movement_distance_km(located, unlocated) == 0.0
        assert movement_distance_km(None, located) == 0.0
