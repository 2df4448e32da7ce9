"""
Record Normalization Module

Turns resolved spreadsheet rows into the star-schema records:
- Field parsers (NaN-safe numbers, multi-format datetimes)
- Royal/EBU, tower, network, event and region classification
- Location name canonicalization and id derivation
- Fact and dimension construction with per-row rejection counting
- Never-moved asset extraction from the static section
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import structlog

from cow_analytics.ingestion import schema as f
from cow_analytics.ingestion.diagnostics import IngestionDiagnostics
from cow_analytics.ingestion.schema import ColumnMap
from cow_analytics.models import (
    AirStatus,
    CowMovementFact,
    DimCow,
    DimEvent,
    DimLocation,
    EbuRoyalCategory,
    EventType,
    LocationType,
    NeverMovedCow,
    Region,
    ShelterType,
    TowerType,
)
from cow_analytics.transformation.classifier import parse_movement_type, resolve_movement_type
from cow_analytics.transformation.geo import movement_distance_km

logger = structlog.get_logger(__name__)

UNKNOWN = "Unknown"

_DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%Y-%m-%d %I:%M:%S %p",
    "%Y-%m-%d %I:%M %p",
    "%m/%d/%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
)

_WAREHOUSE_TOKEN = re.compile(r"\bWH\b", re.IGNORECASE)
_NON_SLUG = re.compile(r"[^a-z0-9]")
_WHITESPACE = re.compile(r"\s+")

# Known spellings and orderings of warehouse names, keyed by lowercase form
WAREHOUSE_ALIASES: Dict[str, str] = {
    "stc jeddah wh": "stc Jeddah WH",
    "stc al ula wh": "stc Al Ula WH",
    "stc sharma wh": "stc Sharma WH",
    "stc madinah wh": "stc Madinah WH",
    "stc madina wh": "stc Madinah WH",
    "stc abha wh": "stc Abha WH",
    "stc al kharaj wh": "stc Al Kharaj WH",
    "stc jizan wh": "stc Jizan WH",
    "stc arar wh": "stc Arar WH",
    "stc umluj wh": "stc Umluj WH",
    "stc sakaka wh": "stc Sakaka WH",
    "stc tabouk wh": "stc Tabouk WH",
    "stc taboulk wh": "stc Tabouk WH",
    "stc buraidah wh": "stc Buraidah WH",
    "stc burida wh": "stc Buraidah WH",
    "stc riyadh exit 18 wh": "stc Riyadh Exit 18 WH",
    "aces makkah wh": "ACES Makkah WH",
    "aces muzahmiya wh": "ACES Muzahmiya WH",
    "aces dammam wh": "ACES Dammam WH",
    "madaf wh": "Madaf WH",
    "madaf huraymila wh": "Madaf WH",
    "hoi al kharaj wh": "HOI Al Kharaj WH",
    "stc wh jeddah": "stc Jeddah WH",
    "stc wh al ula": "stc Al Ula WH",
    "stc wh sharma": "stc Sharma WH",
    "stc wh madinah": "stc Madinah WH",
    "stc wh madina": "stc Madinah WH",
    "stc wh abha": "stc Abha WH",
    "stc wh al kharaj": "stc Al Kharaj WH",
    "stc wh jizan": "stc Jizan WH",
    "stc wh arar": "stc Arar WH",
    "stc wh umluj": "stc Umluj WH",
    "stc wh sakaka": "stc Sakaka WH",
    "stc wh tabouk": "stc Tabouk WH",
    "stc wh buraidah": "stc Buraidah WH",
    "stc wh exit 18 riyadh": "stc Riyadh Exit 18 WH",
    "stc wh exit 18 riyad": "stc Riyadh Exit 18 WH",
}

# Checked in order; first region with a matching keyword wins
REGION_KEYWORDS: Tuple[Tuple[Region, Tuple[str, ...]], ...] = (
    (Region.WEST, ("west", "makkah", "mecca", "medina", "madinah", "madina", "jeddah", "taif")),
    (Region.EAST, ("east", "dammam", "sharqiyah", "khobar", "ahsa")),
    (Region.CENTRAL, ("central", "riyadh", "qassim", "buraidah")),
    (Region.SOUTH, ("south", "asir", "jizan", "jazan", "najran", "abha", "baha")),
    (Region.NORTH, ("north", "hail", "ha'il", "tabuk", "tabouk", "jouf", "arar", "sakaka")),
)

EVENT_KEYWORDS: Tuple[Tuple[EventType, Tuple[str, ...]], ...] = (
    (EventType.HAJJ, ("hajj",)),
    (EventType.UMRAH, ("umrah", "ramadan")),
    (EventType.ROYAL, ("royal",)),
    (EventType.NATIONAL_EVENT, ("national", "founding")),
    (EventType.SEASONAL, ("season", "festival")),
    (EventType.NORMAL_COVERAGE, ("normal",)),
)


# =============================================================================
# FIELD PARSERS
# =============================================================================

def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a numeric cell; empty, non-numeric, NaN and infinite values give None"""
    text = (value or "").strip().replace(",", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a spreadsheet timestamp.

    ISO-8601 is tried first, then the formats the sheet has used over time.
    Naive values are taken as UTC.

    Returns:
        Timezone-aware datetime, or None when the cell is empty or unparseable
    """
    text = (value or "").strip()
    if not text:
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _DATETIME_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Optional[str]) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


# =============================================================================
# CLASSIFIERS
# =============================================================================

def classify_ebu_royal(flag: Optional[str]) -> EbuRoyalCategory:
    """
    Map the Royal/EBU flag cell to its category.

    Case-insensitive exact match: "royal" and "ebu" select their category,
    everything else (including "non ebu" and empty) is NON EBU.
    """
    text = (flag or "").strip().lower()
    if text == "royal":
        return EbuRoyalCategory.ROYAL
    if text == "ebu":
        return EbuRoyalCategory.EBU
    return EbuRoyalCategory.NON_EBU


def normalize_region(text: Optional[str]) -> Optional[Region]:
    """Region for a free-text region cell, or None when no keyword matches"""
    lowered = (text or "").strip().lower()
    if not lowered:
        return None
    for region, keywords in REGION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return region
    return None


def classify_event_type(text: Optional[str]) -> EventType:
    lowered = (text or "").strip().lower()
    if not lowered:
        return EventType.NORMAL_COVERAGE
    for event_type, keywords in EVENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return event_type
    return EventType.EVENT


def classify_tower_type(text: Optional[str]) -> TowerType:
    value = text or ""
    if "Small" in value:
        return TowerType.SMALL_CELL
    if "Micro" in value:
        return TowerType.MICRO_CELL
    return TowerType.MACRO


def parse_network_flags(text: Optional[str]) -> Tuple[bool, bool, bool]:
    """(2G, 4G, 5G) capability flags; LTE counts as 4G"""
    value = (text or "").upper()
    return "2G" in value, ("4G" in value or "LTE" in value), "5G" in value


def classify_shelter(text: Optional[str]) -> ShelterType:
    return ShelterType.SHELTER if "shelter" in (text or "").lower() else ShelterType.OUTDOOR


# =============================================================================
# LOCATIONS AND EVENTS
# =============================================================================

def canonicalize_location_name(name: Optional[str]) -> str:
    """Collapse whitespace and unify known warehouse name variants"""
    collapsed = _WHITESPACE.sub(" ", (name or "").strip())
    return WAREHOUSE_ALIASES.get(collapsed.lower(), collapsed)


def slugify(text: str) -> str:
    return _NON_SLUG.sub("-", text.lower())


def location_id(name: str) -> str:
    return f"LOC-{slugify(canonicalize_location_name(name))}"


def event_id(text: str) -> str:
    return f"EV-{slugify(_WHITESPACE.sub(' ', text.strip()))}"


def location_kind(name: str) -> LocationType:
    """Warehouse when the name carries a standalone WH token"""
    return LocationType.WAREHOUSE if _WAREHOUSE_TOKEN.search(name) else LocationType.SITE


# =============================================================================
# ROW NORMALIZATION
# =============================================================================

@dataclass
class _StagedMovement:
    """Accepted row held until every location of the snapshot is known"""
    sn: int
    cow_id: str
    from_location_id: str
    from_sub_location: Optional[str]
    to_location_id: str
    to_sub_location: Optional[str]
    moved_datetime: Optional[datetime]
    reached_datetime: Optional[datetime]
    explicit_type: Optional[str]
    recorded_distance_km: Optional[float]
    ebu_royal_category: EbuRoyalCategory
    event_id: Optional[str]
    vendor: str


@dataclass
class NormalizedSnapshot:
    """Facts and dimensions built from one payload"""
    facts: List[CowMovementFact]
    cows: List[DimCow]
    locations: List[DimLocation]
    events: List[DimEvent]


class RecordNormalizer:
    """
    Builds immutable facts and dimensions from resolved rows.

    Rows are staged first so that movement classification and distance see
    the complete location dimension, whatever the row order. Rejections and
    parse fallbacks are counted in the supplied diagnostics.

    Example:
        normalizer = RecordNormalizer(column_map, diagnostics)
        snapshot = normalizer.normalize(data_rows)
    """

    def __init__(self, column_map: ColumnMap, diagnostics: Optional[IngestionDiagnostics] = None):
        self.column_map = column_map
        self.diagnostics = diagnostics or IngestionDiagnostics()
        self._cows: Dict[str, DimCow] = {}
        self._locations: Dict[str, DimLocation] = {}
        self._events: Dict[str, str] = {}
        self._staged: List[_StagedMovement] = []

    def _cell(self, row: Sequence[str], name: str) -> str:
        return self.column_map.get(row, name)

    def _float(self, row: Sequence[str], name: str) -> Optional[float]:
        raw = self._cell(row, name)
        value = parse_float(raw)
        if raw and value is None:
            self.diagnostics.fallback(name)
        return value

    def _datetime(self, row: Sequence[str], name: str) -> Optional[datetime]:
        raw = self._cell(row, name)
        value = parse_datetime(raw)
        if raw and value is None:
            self.diagnostics.fallback(name)
        return value

    def _date(self, row: Sequence[str], name: str) -> Optional[date]:
        value = self._datetime(row, name)
        return value.date() if value else None

    def _rejection_reason(self, row: Sequence[str]) -> Optional[str]:
        if not self._cell(row, f.COW_ID):
            return "missing_cow_id"
        if not self._cell(row, f.FROM_LOCATION):
            return "missing_from_location"
        if not self._cell(row, f.TO_LOCATION):
            return "missing_to_location"
        return None

    def stage_row(self, sn: int, row: Sequence[str]) -> bool:
        """
        Stage one data row.

        Args:
            sn: Sequence number (1-based data row position)
            row: Parsed cells

        Returns:
            True if the row was accepted
        """
        self.diagnostics.total_rows += 1
        reason = self._rejection_reason(row)
        if reason:
            self.diagnostics.reject(reason)
            return False

        cow_id = self._cell(row, f.COW_ID)
        vendor = self._cell(row, f.VENDOR) or UNKNOWN

        from_id = self._register_location(
            self._cell(row, f.FROM_LOCATION),
            sub_location=self._cell(row, f.FROM_SUB_LOCATION) or None,
            latitude=self._float(row, f.FROM_LATITUDE),
            longitude=self._float(row, f.FROM_LONGITUDE),
            region_text=self._cell(row, f.REGION_FROM),
            governorate=None,
            owner=vendor,
        )
        to_id = self._register_location(
            self._cell(row, f.TO_LOCATION),
            sub_location=self._cell(row, f.TO_SUB_LOCATION) or None,
            latitude=self._float(row, f.TO_LATITUDE),
            longitude=self._float(row, f.TO_LONGITUDE),
            region_text=self._cell(row, f.REGION_TO),
            governorate=self._cell(row, f.GOVERNORATE) or None,
            owner=vendor,
        )

        if cow_id not in self._cows:
            self._cows[cow_id] = self._build_cow(cow_id, row, vendor)

        top_event = self._cell(row, f.TOP_EVENT)
        linked_event: Optional[str] = None
        if top_event:
            linked_event = event_id(top_event)
            self._events.setdefault(linked_event, _WHITESPACE.sub(" ", top_event))

        self._staged.append(_StagedMovement(
            sn=sn,
            cow_id=cow_id,
            from_location_id=from_id,
            from_sub_location=self._cell(row, f.FROM_SUB_LOCATION) or None,
            to_location_id=to_id,
            to_sub_location=self._cell(row, f.TO_SUB_LOCATION) or None,
            moved_datetime=self._datetime(row, f.MOVED_DATETIME),
            reached_datetime=self._datetime(row, f.REACHED_DATETIME),
            explicit_type=self._cell(row, f.MOVEMENT_TYPE) or None,
            recorded_distance_km=self._float(row, f.DISTANCE_KM),
            ebu_royal_category=classify_ebu_royal(self._cell(row, f.EBU_ROYAL_FLAG)),
            event_id=linked_event,
            vendor=vendor,
        ))
        self.diagnostics.accepted_rows += 1
        return True

    def _build_cow(self, cow_id: str, row: Sequence[str], vendor: str) -> DimCow:
        network_2g, network_4g, network_5g = parse_network_flags(self._cell(row, f.NETWORK_TYPES))
        first_deploy = self._date(row, f.FIRST_DEPLOY_DATE)
        return DimCow(
            cow_id=cow_id,
            tower_type=classify_tower_type(self._cell(row, f.TOWER_TYPE)),
            tower_height=self._float(row, f.TOWER_HEIGHT),
            network_2g=network_2g,
            network_4g=network_4g,
            network_5g=network_5g,
            shelter_type=classify_shelter(self._cell(row, f.SHELTER_TYPE)),
            vendor=vendor,
            installation_date=first_deploy,
            last_deploy_date=self._date(row, f.LAST_DEPLOY_DATE),
            first_deploy_date=first_deploy,
            remarks=self._cell(row, f.REMARKS) or None,
        )

    def _register_location(
        self,
        raw_name: str,
        sub_location: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
        region_text: str,
        governorate: Optional[str],
        owner: str,
    ) -> str:
        name = canonicalize_location_name(raw_name)
        loc_id = f"LOC-{slugify(name)}"
        region = normalize_region(region_text)
        existing = self._locations.get(loc_id)

        if existing is None:
            self._locations[loc_id] = DimLocation(
                location_id=loc_id,
                location_name=name,
                sub_location=sub_location,
                latitude=latitude,
                longitude=longitude,
                region=region or Region.CENTRAL,
                governorate=governorate,
                location_type=location_kind(name),
                owner=owner,
            )
            return loc_id

        # First sighting wins; later rows only fill what it left at the default
        updates = {}
        if region is not None and region != Region.CENTRAL and existing.region == Region.CENTRAL:
            updates["region"] = region
        if not existing.has_coordinates and latitude is not None and longitude is not None:
            updates["latitude"] = latitude
            updates["longitude"] = longitude
        if existing.governorate is None and governorate:
            updates["governorate"] = governorate
        if updates:
            self._locations[loc_id] = existing.model_copy(update=updates)
        return loc_id

    def build(self) -> NormalizedSnapshot:
        """Resolve staged rows into facts against the final location dimension"""
        facts = [build_fact(staged, self._locations, self.diagnostics) for staged in self._staged]
        events = build_events(self._events, facts)

        logger.info(
            "Rows normalized",
            accepted=self.diagnostics.accepted_rows,
            rejected=self.diagnostics.rejected_rows,
            cows=len(self._cows),
            locations=len(self._locations),
            events=len(events),
        )

        return NormalizedSnapshot(
            facts=facts,
            cows=list(self._cows.values()),
            locations=list(self._locations.values()),
            events=events,
        )

    def normalize(self, rows: Iterable[Sequence[str]]) -> NormalizedSnapshot:
        """Stage every data row (header excluded) and build the snapshot"""
        for sn, row in enumerate(rows, start=1):
            self.stage_row(sn, row)
        return self.build()


def build_fact(
    staged: _StagedMovement,
    locations: Mapping[str, DimLocation],
    diagnostics: IngestionDiagnostics,
) -> CowMovementFact:
    """
    Classify and measure one staged movement.

    An endpoint missing from ``locations`` is unresolved: the movement falls
    back to Zero (unless the sheet states a type) with distance 0.
    """
    from_loc = locations.get(staged.from_location_id)
    to_loc = locations.get(staged.to_location_id)
    if from_loc is None or to_loc is None:
        diagnostics.unresolved_location += 1

    explicit = parse_movement_type(staged.explicit_type)
    if staged.explicit_type and explicit is None:
        diagnostics.fallback(f.MOVEMENT_TYPE)

    movement_type = resolve_movement_type(
        explicit,
        from_loc.location_type if from_loc else None,
        to_loc.location_type if to_loc else None,
    )

    return CowMovementFact(
        sn=staged.sn,
        cow_id=staged.cow_id,
        from_location_id=staged.from_location_id,
        from_sub_location=staged.from_sub_location,
        to_location_id=staged.to_location_id,
        to_sub_location=staged.to_sub_location,
        moved_datetime=staged.moved_datetime,
        reached_datetime=staged.reached_datetime,
        movement_type=movement_type,
        distance_km=movement_distance_km(from_loc, to_loc),
        recorded_distance_km=staged.recorded_distance_km,
        ebu_royal_category=staged.ebu_royal_category,
        event_id=staged.event_id,
        vendor=staged.vendor,
    )


def build_events(descriptions: Mapping[str, str], facts: Sequence[CowMovementFact]) -> List[DimEvent]:
    """Event dimension; each event spans its linked facts' moved..reached dates"""
    starts: Dict[str, date] = {}
    ends: Dict[str, date] = {}
    for fact in facts:
        if fact.event_id is None:
            continue
        if fact.moved_datetime is not None:
            moved = fact.moved_datetime.date()
            if fact.event_id not in starts or moved < starts[fact.event_id]:
                starts[fact.event_id] = moved
        if fact.reached_datetime is not None:
            reached = fact.reached_datetime.date()
            if fact.event_id not in ends or reached > ends[fact.event_id]:
                ends[fact.event_id] = reached

    return [
        DimEvent(
            event_id=ev_id,
            event_type=classify_event_type(description),
            description=description,
            start_date=starts.get(ev_id),
            end_date=ends.get(ev_id),
        )
        for ev_id, description in descriptions.items()
    ]


# =============================================================================
# NEVER-MOVED ASSETS
# =============================================================================

def normalize_air_status(text: Optional[str]) -> AirStatus:
    value = (text or "").strip()
    if value.upper() == "ON-AIR" or value == "1":
        return AirStatus.ON_AIR
    return AirStatus.OFF_AIR


def extract_never_moved(
    rows: Iterable[Sequence[str]],
    column_map: ColumnMap,
    moving_ids: Set[str],
    as_of: date,
) -> List[NeverMovedCow]:
    """
    Assets listed in the static section that have no movement record.

    Args:
        rows: Data rows (header excluded)
        column_map: Resolved column positions
        moving_ids: Asset ids present in the movement section
        as_of: Reference date for days on air

    Returns:
        First static record per id whose id is not in ``moving_ids``
    """
    seen: Set[str] = set()
    never_moved: List[NeverMovedCow] = []

    for row in rows:
        cow_id = column_map.get(row, f.STATIC_COW_ID)
        if not cow_id or cow_id in moving_ids or cow_id in seen:
            continue
        seen.add(cow_id)

        first_deploy = parse_date(column_map.get(row, f.STATIC_FIRST_DEPLOY_DATE))
        days_on_air = (as_of - first_deploy).days if first_deploy else None

        never_moved.append(NeverMovedCow(
            cow_id=cow_id,
            region=column_map.get(row, f.STATIC_REGION) or UNKNOWN,
            district=column_map.get(row, f.STATIC_DISTRICT) or UNKNOWN,
            city=column_map.get(row, f.STATIC_CITY) or UNKNOWN,
            location=column_map.get(row, f.STATIC_LOCATION) or UNKNOWN,
            latitude=parse_float(column_map.get(row, f.STATIC_LATITUDE)),
            longitude=parse_float(column_map.get(row, f.STATIC_LONGITUDE)),
            status=normalize_air_status(column_map.get(row, f.STATIC_STATUS)),
            last_deploy_date=parse_date(column_map.get(row, f.STATIC_LAST_DEPLOY_DATE)),
            first_deploy_date=first_deploy,
            days_on_air=days_on_air,
            vendor=column_map.get(row, f.STATIC_VENDOR) or UNKNOWN,
        ))

    return never_moved
