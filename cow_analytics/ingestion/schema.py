"""
Column Schema Resolution

Maps logical field names to column positions of a spreadsheet export.

Each logical field is described by a ``FieldRule``: a header-match predicate
(exact lowercase names and/or keyword groups) plus the fallback position it
had in the legacy fixed layout. Resolution never fails - a field whose header
is not found falls back to its legacy position, and cells beyond the end of a
row read as empty strings.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

import structlog

from cow_analytics.exceptions import SchemaDefinitionError

logger = structlog.get_logger(__name__)

MOVEMENT_SECTION = "movement"
STATIC_SECTION = "static"


@dataclass(frozen=True)
class FieldRule:
    """Header-match predicate and fallback position for one logical field"""
    name: str
    fallback: int
    exact: Tuple[str, ...] = ()
    # Each group matches when every keyword is a substring of the header
    contains: Tuple[Tuple[str, ...], ...] = ()
    excludes: Tuple[str, ...] = ()
    section: str = MOVEMENT_SECTION

    def matches_exact(self, header: str) -> bool:
        return header in self.exact

    def matches_contains(self, header: str) -> bool:
        if any(word in header for word in self.excludes):
            return False
        return any(
            all(keyword in header for keyword in group)
            for group in self.contains
        )


@dataclass(frozen=True)
class ColumnMap:
    """Resolved position per logical field"""
    schema_version: str
    indices: Dict[str, int]
    matched: FrozenSet[str] = frozenset()
    header_width: int = 0

    @property
    def fallbacks(self) -> FrozenSet[str]:
        """Fields resolved through their legacy position"""
        return frozenset(self.indices) - self.matched

    @property
    def drifted(self) -> bool:
        """True when no header matched at all"""
        return not self.matched

    @property
    def collisions(self) -> Dict[int, List[str]]:
        """Positions read by more than one field"""
        by_position: Dict[int, List[str]] = defaultdict(list)
        for name, idx in self.indices.items():
            by_position[idx].append(name)
        return {idx: names for idx, names in by_position.items() if len(names) > 1}

    def index(self, name: str) -> int:
        return self.indices[name]

    def get(self, row: Sequence[str], name: str) -> str:
        """Trimmed cell for a logical field, or "" when the row is too short"""
        idx = self.indices[name]
        if idx >= len(row):
            return ""
        return (row[idx] or "").strip()


@dataclass(frozen=True)
class ColumnSchema:
    """
    Versioned schema descriptor.

    Consistency is validated once at construction; ``resolve`` is then a pure
    function of the header row.

    Example:
        column_map = LEGACY_SCHEMA.resolve(header_cells)
        cow_id = column_map.get(row, COW_ID)
    """
    version: str
    rules: Tuple[FieldRule, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        names = [rule.name for rule in self.rules]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaDefinitionError(f"Duplicate field names in schema {self.version}: {duplicates}")

        positions = [rule.fallback for rule in self.rules]
        if any(p < 0 for p in positions):
            raise SchemaDefinitionError(f"Negative fallback position in schema {self.version}")
        clashes = sorted({p for p in positions if positions.count(p) > 1})
        if clashes:
            raise SchemaDefinitionError(f"Fallback positions used twice in schema {self.version}: {clashes}")

        for rule in self.rules:
            if not rule.exact and not rule.contains:
                raise SchemaDefinitionError(f"Field '{rule.name}' has no header-match rule")
            if rule.section not in (MOVEMENT_SECTION, STATIC_SECTION):
                raise SchemaDefinitionError(f"Field '{rule.name}' has unknown section '{rule.section}'")

    @property
    def field_names(self) -> List[str]:
        return [rule.name for rule in self.rules]

    @property
    def static_boundary(self) -> Optional[int]:
        """Legacy position where the static-asset section starts"""
        positions = [rule.fallback for rule in self.rules if rule.section == STATIC_SECTION]
        return min(positions) if positions else None

    def rule(self, name: str) -> Optional[FieldRule]:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def resolve(self, header: Sequence[str]) -> ColumnMap:
        """
        Resolve positions from a header row.

        Rules are applied in schema order. Each takes the first unclaimed
        header whose lowercase text matches exactly, then the first unclaimed
        header matching its keyword groups; otherwise its fallback position.
        Claiming lets a repeated header (e.g. the COW id heading of the
        static section) resolve to its second occurrence. When the header
        reaches the static section, movement fields only match columns left
        of it, so a renamed movement heading cannot claim its static twin.

        Args:
            header: Header row cells

        Returns:
            ColumnMap with a position for every field in the schema
        """
        normalized = [(cell or "").strip().lower() for cell in header]
        claimed: set = set()
        indices: Dict[str, int] = {}
        matched: set = set()

        boundary = self.static_boundary
        movement_limit = boundary if boundary is not None and len(normalized) > boundary else len(normalized)

        for rule in self.rules:
            limit = movement_limit if rule.section == MOVEMENT_SECTION else len(normalized)
            position = self._find(rule, normalized, claimed, limit)
            if position is None:
                indices[rule.name] = rule.fallback
                continue
            claimed.add(position)
            indices[rule.name] = position
            matched.add(rule.name)

        column_map = ColumnMap(
            schema_version=self.version,
            indices=indices,
            matched=frozenset(matched),
            header_width=len(header),
        )

        if column_map.drifted:
            logger.warning(
                "Schema drift: no header matched, using legacy positions",
                schema_version=self.version,
                header_width=len(header),
            )
        else:
            logger.debug(
                "Columns resolved",
                schema_version=self.version,
                matched=len(matched),
                fallbacks=len(column_map.fallbacks),
            )

        collisions = column_map.collisions
        if collisions:
            logger.warning(
                "Columns read by more than one field",
                schema_version=self.version,
                collisions={str(idx): names for idx, names in sorted(collisions.items())},
            )

        return column_map

    @staticmethod
    def _find(rule: FieldRule, headers: List[str], claimed: set, limit: int) -> Optional[int]:
        candidates = list(enumerate(headers[:limit]))
        for idx, text in candidates:
            if idx not in claimed and text and rule.matches_exact(text):
                return idx
        for idx, text in candidates:
            if idx not in claimed and text and rule.matches_contains(text):
                return idx
        return None


# =============================================================================
# LOGICAL FIELDS
# =============================================================================

# Movement section
COW_ID = "cow_id"
SITE_LABEL = "site_label"
LAST_DEPLOY_DATE = "last_deploy_date"
FIRST_DEPLOY_DATE = "first_deploy_date"
EBU_ROYAL_FLAG = "ebu_royal_flag"
SHELTER_TYPE = "shelter_type"
TOWER_TYPE = "tower_type"
TOWER_SYSTEM = "tower_system"
TOWER_HEIGHT = "tower_height"
NETWORK_TYPES = "network_types"
VEHICLE_MAKE = "vehicle_make"
TOP_EVENT = "top_event"
MOVED_DATETIME = "moved_datetime"
MOVED_MONTH_YEAR = "moved_month_year"
REACHED_DATETIME = "reached_datetime"
REACHED_MONTH_YEAR = "reached_month_year"
FROM_LOCATION = "from_location"
FROM_SUB_LOCATION = "from_sub_location"
FROM_LATITUDE = "from_latitude"
FROM_LONGITUDE = "from_longitude"
TO_LOCATION = "to_location"
TO_SUB_LOCATION = "to_sub_location"
TO_LATITUDE = "to_latitude"
TO_LONGITUDE = "to_longitude"
DISTANCE_KM = "distance_km"
MOVEMENT_TYPE = "movement_type"
REGION_FROM = "region_from"
REGION_TO = "region_to"
VENDOR = "vendor"
GOVERNORATE = "governorate"
REMARKS = "remarks"

# Static-asset section, co-located in the same rows
STATIC_COW_ID = "static_cow_id"
STATIC_REGION = "static_region"
STATIC_DISTRICT = "static_district"
STATIC_CITY = "static_city"
STATIC_LOCATION = "static_location"
STATIC_LATITUDE = "static_latitude"
STATIC_LONGITUDE = "static_longitude"
STATIC_STATUS = "static_status"
STATIC_LAST_DEPLOY_DATE = "static_last_deploy_date"
STATIC_FIRST_DEPLOY_DATE = "static_first_deploy_date"
STATIC_VENDOR = "static_vendor"

_COW_ID_NAMES = ("cow", "cows id", "cow id", "cow_id", "cows_id")

LEGACY_SCHEMA = ColumnSchema(
    version="legacy-2",
    rules=(
        FieldRule(COW_ID, 0, exact=_COW_ID_NAMES, contains=(("cow", "id"),)),
        FieldRule(SITE_LABEL, 1, exact=("site", "site label", "site_label"), contains=(("site", "label"),)),
        FieldRule(LAST_DEPLOY_DATE, 2, contains=(("last", "deploy"),)),
        FieldRule(FIRST_DEPLOY_DATE, 3, contains=(("first", "deploy"), ("1st", "deploy"))),
        FieldRule(EBU_ROYAL_FLAG, 4, exact=("ebu_royal", "ebu/royal", "ebu royal"), contains=(("ebu",), ("royal",))),
        FieldRule(SHELTER_TYPE, 5, contains=(("shelter",),)),
        FieldRule(TOWER_TYPE, 6, contains=(("tower", "type"),)),
        FieldRule(TOWER_SYSTEM, 7, contains=(("tower", "system"),)),
        FieldRule(TOWER_HEIGHT, 8, contains=(("tower", "height"), ("tower", "hieght"))),
        FieldRule(NETWORK_TYPES, 9, contains=(("2g",), ("network",))),
        FieldRule(VEHICLE_MAKE, 10, contains=(("vehicle", "make"),)),
        FieldRule(TOP_EVENT, 11, exact=("top events", "top event", "top_events"), contains=(("event",),)),
        FieldRule(MOVED_DATETIME, 12, contains=(("moved", "date"),), excludes=("month",)),
        FieldRule(MOVED_MONTH_YEAR, 13, contains=(("moved", "month"),)),
        FieldRule(REACHED_DATETIME, 14, contains=(("reached", "date"),), excludes=("month",)),
        FieldRule(REACHED_MONTH_YEAR, 15, contains=(("reached", "month"),)),
        FieldRule(FROM_LOCATION, 16, exact=("from", "origin", "from location"), contains=(("from", "locat"),), excludes=("sub",)),
        FieldRule(FROM_SUB_LOCATION, 17, contains=(("from", "sub"),)),
        FieldRule(FROM_LATITUDE, 18, contains=(("from", "lat"),)),
        FieldRule(FROM_LONGITUDE, 19, contains=(("from", "lon"), ("from", "lng"))),
        FieldRule(TO_LOCATION, 20, exact=("to", "destination", "to location"), contains=(("to", "locat"),), excludes=("sub", "from")),
        FieldRule(TO_SUB_LOCATION, 21, contains=(("to", "sub"),), excludes=("from",)),
        FieldRule(TO_LATITUDE, 22, contains=(("to", "lat"),), excludes=("from",)),
        FieldRule(TO_LONGITUDE, 23, contains=(("to", "lon"), ("to", "lng")), excludes=("from",)),
        FieldRule(DISTANCE_KM, 24, exact=("km", "distance", "distance (km)"), contains=(("distance",),)),
        FieldRule(MOVEMENT_TYPE, 25, exact=("type", "movement type"), contains=(("movement", "type"),)),
        FieldRule(REGION_FROM, 26, contains=(("region", "from"),)),
        FieldRule(REGION_TO, 27, contains=(("region", "to"),), excludes=("from",)),
        FieldRule(VENDOR, 28, exact=("vendor",), contains=(("vendor",),)),
        FieldRule(GOVERNORATE, 29, contains=(("gover",),)),
        FieldRule(REMARKS, 30, contains=(("remark",),)),
        FieldRule(STATIC_COW_ID, 31, exact=_COW_ID_NAMES, contains=(("cow", "id"),), section=STATIC_SECTION),
        FieldRule(STATIC_REGION, 34, exact=("region",), section=STATIC_SECTION),
        FieldRule(STATIC_DISTRICT, 35, contains=(("district",),), section=STATIC_SECTION),
        FieldRule(STATIC_CITY, 36, exact=("city",), contains=(("city",),), section=STATIC_SECTION),
        FieldRule(STATIC_LOCATION, 38, exact=("location",), section=STATIC_SECTION),
        FieldRule(STATIC_LATITUDE, 39, exact=("latitude", "lat"), section=STATIC_SECTION),
        FieldRule(STATIC_LONGITUDE, 40, exact=("longitude", "long", "lon", "lng"), section=STATIC_SECTION),
        FieldRule(STATIC_STATUS, 41, contains=(("status",), ("on-air",), ("onair",)), section=STATIC_SECTION),
        FieldRule(STATIC_LAST_DEPLOY_DATE, 42, contains=(("last", "deploy"),), section=STATIC_SECTION),
        FieldRule(STATIC_FIRST_DEPLOY_DATE, 43, contains=(("first", "deploy"), ("1st", "deploy")), section=STATIC_SECTION),
        FieldRule(STATIC_VENDOR, 44, exact=("vendor",), contains=(("vendor",),), section=STATIC_SECTION),
    ),
)
