"""
Movement type rule engine.

Full  - site to site
Half  - exactly one endpoint is a warehouse
Zero  - warehouse to warehouse, or an endpoint that could not be resolved

A movement type entered on the sheet takes precedence over the rule result.
"""

from typing import Optional

from cow_analytics.models import LocationType, MovementType


def classify_movement(
    from_kind: Optional[LocationType],
    to_kind: Optional[LocationType],
) -> MovementType:
    """Movement type from endpoint kinds; None means unresolved"""
    if from_kind is None or to_kind is None:
        return MovementType.ZERO

    warehouses = (from_kind == LocationType.WAREHOUSE) + (to_kind == LocationType.WAREHOUSE)
    if warehouses == 0:
        return MovementType.FULL
    if warehouses == 1:
        return MovementType.HALF
    return MovementType.ZERO


def parse_movement_type(text: Optional[str]) -> Optional[MovementType]:
    """Explicit movement type from a sheet cell, or None when it names none"""
    lowered = (text or "").strip().lower()
    if not lowered:
        return None
    if "full" in lowered:
        return MovementType.FULL
    if "half" in lowered:
        return MovementType.HALF
    if "zero" in lowered:
        return MovementType.ZERO
    return None


def resolve_movement_type(
    explicit: Optional[MovementType],
    from_kind: Optional[LocationType],
    to_kind: Optional[LocationType],
) -> MovementType:
    if explicit is not None:
        return explicit
    return classify_movement(from_kind, to_kind)
