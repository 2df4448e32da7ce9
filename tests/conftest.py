"""
Test Suite Configuration

The sample payload follows the legacy 45-column export: the movement section
in columns 0-30 and the static asset section in columns 31-44 of the same
rows.
"""
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional

import pytest

from cow_analytics.config import Settings
from cow_analytics.ingestion.pipeline import IngestionPipeline, Snapshot
from cow_analytics.models import (
    CowMovementFact,
    DimLocation,
    EbuRoyalCategory,
    LocationType,
    MovementType,
    Region,
)

AS_OF = date(2024, 6, 1)

HEADER = [
    "COW_ID", "Site Label", "Last Deploy Date", "First Deploy Date", "EBU/Royal",
    "Shelter", "Tower Type", "Tower System", "Tower Height", "Network",
    "Vehicle Make", "Top Events", "Moved Date", "Moved Month Year", "Reached Date",
    "Reached Month Year", "From Location", "From Sub Location", "From Latitude", "From Longitude",
    "To Location", "To Sub Location", "To Latitude", "To Longitude", "Distance",
    "Movement Type", "Region From", "Region To", "Vendor", "Governorate",
    "Remarks", "COW_ID", "", "", "Region",
    "District", "City", "", "Location", "Latitude",
    "Longitude", "Status", "Last Deploy Date", "First Deploy Date", "Vendor",
]

# Logical cell name -> column position in HEADER
COLUMNS: Dict[str, int] = {
    "cow_id": 0, "site_label": 1, "last_deploy": 2, "first_deploy": 3, "ebu_royal": 4,
    "shelter": 5, "tower_type": 6, "tower_system": 7, "tower_height": 8, "network": 9,
    "vehicle": 10, "event": 11, "moved": 12, "moved_month": 13, "reached": 14,
    "reached_month": 15, "from_location": 16, "from_sub": 17, "from_lat": 18, "from_lon": 19,
    "to_location": 20, "to_sub": 21, "to_lat": 22, "to_lon": 23, "distance": 24,
    "movement_type": 25, "region_from": 26, "region_to": 27, "vendor": 28, "governorate": 29,
    "remarks": 30, "static_cow_id": 31, "static_region": 34, "static_district": 35,
    "static_city": 36, "static_location": 38, "static_lat": 39, "static_lon": 40,
    "static_status": 41, "static_last_deploy": 42, "static_first_deploy": 43, "static_vendor": 44,
}

JEDDAH_WH = ("stc Jeddah WH", "21.5433", "39.1728")
DAMMAM_WH = ("ACES Dammam WH", "26.4207", "50.0888")
SITE_ALPHA = ("Site Alpha", "21.4225", "39.8262")
SITE_BETA = ("Site Beta", "24.7136", "46.6753")


def make_row(**cells: str) -> List[str]:
    row = [""] * len(HEADER)
    for name, value in cells.items():
        row[COLUMNS[name]] = value
    return row


def movement(cow_id: str, origin: tuple, destination: tuple, moved: str, reached: str, **extra: str) -> List[str]:
    return make_row(
        cow_id=cow_id,
        from_location=origin[0], from_lat=origin[1], from_lon=origin[2],
        to_location=destination[0], to_lat=destination[1], to_lon=destination[2],
        moved=moved, reached=reached,
        **extra,
    )


def to_csv(rows: List[List[str]]) -> str:
    def cell(value: str) -> str:
        if "," in value or '"' in value:
            return '"' + value.replace('"', '""') + '"'
        return value

    return "\n".join(",".join(cell(value) for value in row) for row in rows) + "\n"


def sample_rows() -> List[List[str]]:
    return [
        HEADER,
        # SN 1: warehouse -> site (Half)
        movement(
            "COW001", JEDDAH_WH, SITE_ALPHA, "2024-01-01 08:00:00", "2024-01-01 12:00:00",
            region_from="Makkah", region_to="Makkah", vendor="Nokia", ebu_royal="Royal",
            event="Hajj 2024", tower_type="Macro", network="2G/4G", shelter="Shelter",
            first_deploy="2022-03-01", last_deploy="2024-01-01", distance="1,234.5",
            static_cow_id="COW001", static_region="WEST", static_first_deploy="2022-03-01",
        ),
        # SN 2: site -> site (Full), crosses WEST -> CENTRAL
        movement(
            "COW001", SITE_ALPHA, SITE_BETA, "2024-01-11 12:00:00", "2024-01-12 12:00:00",
            region_from="Makkah", region_to="Riyadh", vendor="Nokia", ebu_royal="EBU",
        ),
        # SN 3: site -> warehouse (Half)
        movement(
            "COW001", SITE_BETA, JEDDAH_WH, "2024-02-01 00:00:00", "2024-02-03 00:00:00",
            region_from="Riyadh", region_to="Makkah", vendor="Nokia",
        ),
        # SN 4: warehouse -> warehouse (Zero)
        movement(
            "COW002", DAMMAM_WH, JEDDAH_WH, "2023-06-01 00:00:00", "2023-06-05 00:00:00",
            region_from="Eastern Province", region_to="Makkah", vendor="Ericsson",
            tower_type="Small Cell", network="LTE",
        ),
        # SN 5: warehouse -> site (Half), ten days after arriving at Jeddah WH
        movement(
            "COW002", JEDDAH_WH, SITE_ALPHA, "2023-06-15 00:00:00", "2023-06-16 00:00:00",
            region_from="Makkah", region_to="Makkah", vendor="Ericsson",
            static_cow_id="COW777", static_region="EAST", static_district="Dammam",
            static_city="Dammam", static_location="Corniche", static_lat="26.43",
            static_lon="50.10", static_status="ON-AIR", static_first_deploy="2023-01-01",
            static_last_deploy="2023-01-01", static_vendor="Huawei",
        ),
        # SN 6: no destination, rejected
        make_row(cow_id="COW003", from_location="Site Alpha", moved="2024-03-01 00:00:00"),
        # SN 7: static section only
        make_row(
            static_cow_id="COW999", static_region="NORTH", static_city="Tabuk",
            static_status="OFF-AIR", static_first_deploy="2024-05-01", static_vendor="Nokia",
        ),
    ]


class FakeClock:
    """Monotonic clock driven by the test"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def sample_payload() -> str:
    """Legacy-layout CSV export"""
    return to_csv(sample_rows())


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pipeline() -> IngestionPipeline:
    return IngestionPipeline(today=lambda: AS_OF)


@pytest.fixture
def snapshot(pipeline: IngestionPipeline, sample_payload: str) -> Snapshot:
    return pipeline.build(sample_payload, source_id="sample.csv")


@pytest.fixture
def location_factory() -> Callable[..., DimLocation]:
    """Build a location with an id derived from its name"""

    def build(
        name: str,
        kind: LocationType = LocationType.SITE,
        region: Region = Region.CENTRAL,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> DimLocation:
        return DimLocation(
            location_id=f"LOC-{name.lower()}",
            location_name=name,
            location_type=kind,
            region=region,
            latitude=latitude,
            longitude=longitude,
        )

    return build


@pytest.fixture
def fact_factory() -> Callable[..., CowMovementFact]:
    """Build a fact; timestamps are given as (year, month, day[, hour]) tuples"""

    def build(
        sn: int,
        cow_id: str,
        origin: str,
        destination: str,
        moved: Optional[tuple] = None,
        reached: Optional[tuple] = None,
        movement_type: MovementType = MovementType.FULL,
        distance_km: float = 0.0,
        vendor: str = "Unknown",
        event_id: Optional[str] = None,
        category: EbuRoyalCategory = EbuRoyalCategory.NON_EBU,
    ) -> CowMovementFact:
        return CowMovementFact(
            sn=sn,
            cow_id=cow_id,
            from_location_id=f"LOC-{origin.lower()}",
            to_location_id=f"LOC-{destination.lower()}",
            moved_datetime=datetime(*moved, tzinfo=timezone.utc) if moved else None,
            reached_datetime=datetime(*reached, tzinfo=timezone.utc) if reached else None,
            movement_type=movement_type,
            distance_km=distance_km,
            vendor=vendor,
            event_id=event_id,
            ebu_royal_category=category,
        )

    return build
