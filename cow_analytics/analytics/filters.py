"""
Dashboard filter engine.

A filter is a conjunction of optional predicates over the fact set. An unset
field imposes no constraint, so applying the same filter twice changes
nothing.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from cow_analytics.models import (
    CowMovementFact,
    DimEvent,
    DimLocation,
    EventType,
    MovementType,
    Region,
)

E = TypeVar("E")


@dataclass(frozen=True)
class DashboardFilters:
    year: Optional[int] = None
    region: Optional[Region] = None
    vendor: Optional[str] = None
    movement_type: Optional[MovementType] = None
    event_type: Optional[EventType] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())

    def to_dict(self) -> Dict[str, Any]:
        """Serialized form, camelCase keys, unset fields omitted"""
        out: Dict[str, Any] = {}
        if self.year is not None:
            out["year"] = self.year
        if self.region is not None:
            out["region"] = self.region.value
        if self.vendor is not None:
            out["vendor"] = self.vendor
        if self.movement_type is not None:
            out["movementType"] = self.movement_type.value
        if self.event_type is not None:
            out["eventType"] = self.event_type.value
        return out


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_enum(enum_cls: Type[E], value: Any) -> Optional[E]:
    """Enum member by value or name, case-insensitive; None when unknown"""
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    for member in enum_cls:
        if text in (member.value.lower(), member.name.lower()):
            return member
    return None


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_filters(raw: Optional[Mapping[str, Any]]) -> DashboardFilters:
    """
    Build filters from a loose mapping (query params, JSON body, CLI args).

    Accepts camelCase or snake_case keys. Values that cannot be interpreted
    leave the corresponding filter unset.
    """
    raw = raw or {}
    vendor = _first(raw, "vendor")
    vendor = str(vendor).strip() if vendor is not None else None

    return DashboardFilters(
        year=_as_int(_first(raw, "year")),
        region=_as_enum(Region, _first(raw, "region")),
        vendor=vendor or None,
        movement_type=_as_enum(MovementType, _first(raw, "movementType", "movement_type")),
        event_type=_as_enum(EventType, _first(raw, "eventType", "event_type")),
    )


def matches(
    fact: CowMovementFact,
    filters: DashboardFilters,
    locations: Mapping[str, DimLocation],
    events: Mapping[str, DimEvent],
) -> bool:
    if filters.year is not None:
        if fact.moved_datetime is None or fact.moved_datetime.year != filters.year:
            return False

    if filters.region is not None:
        destination = locations.get(fact.to_location_id)
        if destination is None or destination.region != filters.region:
            return False

    if filters.movement_type is not None and fact.movement_type != filters.movement_type:
        return False

    if filters.vendor is not None and fact.vendor != filters.vendor:
        return False

    if filters.event_type is not None:
        event = events.get(fact.event_id) if fact.event_id else None
        if event is None or event.event_type != filters.event_type:
            return False

    return True


def apply_filters(
    facts: Sequence[CowMovementFact],
    filters: DashboardFilters,
    locations: Mapping[str, DimLocation],
    events: Optional[Mapping[str, DimEvent]] = None,
) -> List[CowMovementFact]:
    """Facts satisfying every set predicate, in their original order"""
    if filters.is_empty:
        return list(facts)
    events = events or {}
    return [fact for fact in facts if matches(fact, filters, locations, events)]
