"""
Domain Models

Star-schema records for COW (cell-on-wheels) movement analytics:
- Dimension tables: DimCow, DimLocation, DimEvent
- Fact table: CowMovementFact (append-only, immutable)
- Derived metrics: CowMetrics, WarehouseMetrics, RegionMetrics, KPIs

Python attributes are snake_case; serialized documents use the historical
column-style names (``COW_ID``, ``Moved_DateTime``...) via aliases, so
``model_dump(by_alias=True, mode="json")`` and ``model_validate`` round-trip.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# =============================================================================
# ENUMS
# =============================================================================

class Region(str, Enum):
    """Geographic region of a location"""
    WEST = "WEST"
    EAST = "EAST"
    CENTRAL = "CENTRAL"
    SOUTH = "SOUTH"
    NORTH = "NORTH"


class LocationType(str, Enum):
    """Kind of location a COW can be moved to"""
    SITE = "Site"
    WAREHOUSE = "Warehouse"


class MovementType(str, Enum):
    """Movement classification"""
    FULL = "Full"  # Site -> Site
    HALF = "Half"  # Site <-> Warehouse
    ZERO = "Zero"  # Warehouse -> Warehouse, or unresolvable endpoint


class EbuRoyalCategory(str, Enum):
    """Mutually exclusive priority category of a movement"""
    ROYAL = "ROYAL"
    EBU = "EBU"
    NON_EBU = "NON EBU"


class EventType(str, Enum):
    """Categorical event type"""
    HAJJ = "Hajj"
    UMRAH = "Umrah"
    SEASONAL = "Seasonal"
    ROYAL = "Royal"
    NATIONAL_EVENT = "National Event"
    EVENT = "Event"
    NORMAL_COVERAGE = "Normal Coverage"


class TowerType(str, Enum):
    MACRO = "Macro"
    SMALL_CELL = "Small Cell"
    MICRO_CELL = "Micro Cell"


class ShelterType(str, Enum):
    SHELTER = "Shelter"
    OUTDOOR = "Outdoor"


class AirStatus(str, Enum):
    ON_AIR = "ON-AIR"
    OFF_AIR = "OFF-AIR"


class Record(BaseModel):
    """Immutable record with alias-based serialization"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_document(self) -> dict:
        """JSON-compatible dict using the serialized field names"""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class DimCow(Record):
    """COW (asset) dimension"""

    cow_id: str = Field(alias="COW_ID")
    tower_type: TowerType = Field(default=TowerType.MACRO, alias="Tower_Type")
    tower_height: Optional[float] = Field(default=None, alias="Tower_Height")
    network_2g: bool = Field(default=False, alias="Network_2G")
    network_4g: bool = Field(default=False, alias="Network_4G")
    network_5g: bool = Field(default=False, alias="Network_5G")
    shelter_type: ShelterType = Field(default=ShelterType.OUTDOOR, alias="Shelter_Type")
    vendor: str = Field(default="Unknown", alias="Vendor")
    installation_date: Optional[date] = Field(default=None, alias="Installation_Date")
    last_deploy_date: Optional[date] = Field(default=None, alias="Last_Deploy_Date")
    first_deploy_date: Optional[date] = Field(default=None, alias="First_Deploy_Date")
    remarks: Optional[str] = Field(default=None, alias="Remarks")


class DimLocation(Record):
    """Location dimension - deployment sites and warehouses"""

    location_id: str = Field(alias="Location_ID")
    location_name: str = Field(alias="Location_Name")
    sub_location: Optional[str] = Field(default=None, alias="Sub_Location")
    latitude: Optional[float] = Field(default=None, alias="Latitude")
    longitude: Optional[float] = Field(default=None, alias="Longitude")
    region: Region = Field(default=Region.CENTRAL, alias="Region")
    governorate: Optional[str] = Field(default=None, alias="Governorate")
    location_type: LocationType = Field(default=LocationType.SITE, alias="Location_Type")
    owner: str = Field(default="Unknown", alias="Owner")

    @property
    def is_warehouse(self) -> bool:
        return self.location_type == LocationType.WAREHOUSE

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class DimEvent(Record):
    """Event dimension"""

    event_id: str = Field(alias="Event_ID")
    event_type: EventType = Field(alias="Event_Type")
    description: str = Field(default="", alias="Description")
    start_date: Optional[date] = Field(default=None, alias="Start_Date")
    end_date: Optional[date] = Field(default=None, alias="End_Date")


# =============================================================================
# FACT TABLE
# =============================================================================

class CowMovementFact(Record):
    """
    One recorded relocation of a COW.

    ``reached_datetime >= moved_datetime`` is expected but not enforced;
    violations are reported by the temporal anomaly detector.
    """

    sn: int = Field(alias="SN")
    cow_id: str = Field(alias="COW_ID")
    from_location_id: str = Field(alias="From_Location_ID")
    from_sub_location: Optional[str] = Field(default=None, alias="From_Sub_Location")
    to_location_id: str = Field(alias="To_Location_ID")
    to_sub_location: Optional[str] = Field(default=None, alias="To_Sub_Location")
    moved_datetime: Optional[datetime] = Field(default=None, alias="Moved_DateTime")
    reached_datetime: Optional[datetime] = Field(default=None, alias="Reached_DateTime")
    movement_type: MovementType = Field(default=MovementType.ZERO, alias="Movement_Type")
    distance_km: float = Field(default=0.0, alias="Distance_KM")
    recorded_distance_km: Optional[float] = Field(default=None, alias="Recorded_Distance_KM")
    ebu_royal_category: EbuRoyalCategory = Field(default=EbuRoyalCategory.NON_EBU, alias="EbuRoyalCategory")
    event_id: Optional[str] = Field(default=None, alias="Event_ID")
    vendor: str = Field(default="Unknown", alias="Vendor")

    @computed_field(alias="Is_Royal")
    @property
    def is_royal(self) -> bool:
        return self.ebu_royal_category == EbuRoyalCategory.ROYAL

    @computed_field(alias="Is_EBU")
    @property
    def is_ebu(self) -> bool:
        return self.ebu_royal_category == EbuRoyalCategory.EBU


class NeverMovedCow(Record):
    """Asset listed in the static section with no movement record"""

    cow_id: str = Field(alias="COW_ID")
    region: str = Field(default="Unknown", alias="Region")
    district: str = Field(default="Unknown", alias="District")
    city: str = Field(default="Unknown", alias="City")
    location: str = Field(default="Unknown", alias="Location")
    latitude: Optional[float] = Field(default=None, alias="Latitude")
    longitude: Optional[float] = Field(default=None, alias="Longitude")
    status: AirStatus = Field(default=AirStatus.OFF_AIR, alias="Status")
    last_deploy_date: Optional[date] = Field(default=None, alias="Last_Deploy_Date")
    first_deploy_date: Optional[date] = Field(default=None, alias="First_Deploy_Date")
    days_on_air: Optional[int] = Field(default=None, alias="Days_On_Air")
    vendor: str = Field(default="Unknown", alias="Vendor")


# =============================================================================
# DERIVED METRICS
# =============================================================================

class MovementMix(Record):
    full: int = Field(default=0, alias="Full")
    half: int = Field(default=0, alias="Half")
    zero: int = Field(default=0, alias="Zero")

    @property
    def total(self) -> int:
        return self.full + self.half + self.zero


class CowMetrics(Record):
    """Per-COW utilization metrics"""

    cow_id: str = Field(alias="COW_ID")
    total_movements: int = Field(alias="Total_Movements")
    total_distance_km: float = Field(alias="Total_Distance_KM")
    avg_distance_per_move: float = Field(alias="Avg_Distance_Per_Move")
    movement_mix: MovementMix = Field(alias="Movement_Mix")
    avg_idle_duration_days: float = Field(alias="Avg_Idle_Duration_Days")
    negative_idle_gaps: int = Field(default=0, alias="Negative_Idle_Gaps")
    is_static: bool = Field(alias="Is_Static")
    last_movement_date: Optional[date] = Field(default=None, alias="Last_Movement_Date")
    regions_served: List[Region] = Field(default_factory=list, alias="Regions_Served")
    top_event_type: Optional[EventType] = Field(default=None, alias="Top_Event_Type")


class RegionCount(Record):
    region: Region = Field(alias="Region")
    count: int = Field(alias="Count")


class WarehouseMetrics(Record):
    """Per-warehouse traffic and dwell-time metrics"""

    location_id: str = Field(alias="Location_ID")
    location_name: str = Field(alias="Location_Name")
    outgoing_movements: int = Field(alias="Outgoing_Movements")
    avg_outgoing_distance: float = Field(alias="Avg_Outgoing_Distance")
    top_regions_served: List[RegionCount] = Field(default_factory=list, alias="Top_Regions_Served")
    incoming_movements: int = Field(alias="Incoming_Movements")
    avg_incoming_distance: float = Field(alias="Avg_Incoming_Distance")
    idle_accumulation_days: float = Field(alias="Idle_Accumulation_Days")
    matched_stays: int = Field(default=0, alias="Matched_Stays")


class RegionMetrics(Record):
    """Per-region deployment metrics"""

    region: Region = Field(alias="Region")
    total_cows_deployed: int = Field(alias="Total_COWs_Deployed")
    active_cows: int = Field(alias="Active_COWs")
    static_cows: int = Field(alias="Static_COWs")
    cross_region_movements: int = Field(alias="Cross_Region_Movements")
    total_distance_km: float = Field(alias="Total_Distance_KM")
    avg_deployment_duration_days: float = Field(alias="Avg_Deployment_Duration_Days")


class CategoryMetrics(Record):
    """Movement count and distance for one Royal/EBU category"""

    category: EbuRoyalCategory = Field(alias="Category")
    movements: int = Field(alias="Movements")
    share_pct: float = Field(alias="Share_Pct")
    total_distance_km: float = Field(alias="Total_Distance_KM")
    avg_distance_km: float = Field(alias="Avg_Distance_KM")


class RoyalComparison(Record):
    royal_movements: int = Field(default=0, alias="Royal_Movements")
    non_royal_movements: int = Field(default=0, alias="Non_Royal_Movements")
    royal_avg_distance_km: float = Field(default=0.0, alias="Royal_Avg_Distance_KM")
    non_royal_avg_distance_km: float = Field(default=0.0, alias="Non_Royal_Avg_Distance_KM")


class EventTypeMetrics(Record):
    """Movement count and distance for one event type"""

    event_type: EventType = Field(alias="Event_Type")
    movements: int = Field(alias="Movements")
    total_distance_km: float = Field(alias="Total_Distance_KM")
    avg_distance_km: float = Field(alias="Avg_Distance_KM")


class KPIs(Record):
    """Dashboard-wide totals"""

    total_cows: int = Field(alias="totalCOWs")
    total_movements: int = Field(alias="totalMovements")
    total_distance_km: float = Field(alias="totalDistanceKM")
    active_cows: int = Field(alias="activeCOWs")
    static_cows: int = Field(alias="staticCOWs")
    avg_moves_per_cow: float = Field(alias="avgMovesPerCOW")


class DashboardData(Record):
    """Aggregated dashboard state for one filter setting"""

    movements: List[CowMovementFact] = Field(default_factory=list)
    cows: List[DimCow] = Field(default_factory=list)
    locations: List[DimLocation] = Field(default_factory=list)
    events: List[DimEvent] = Field(default_factory=list)
    cow_metrics: List[CowMetrics] = Field(default_factory=list, alias="cowMetrics")
    warehouse_metrics: List[WarehouseMetrics] = Field(default_factory=list, alias="warehouseMetrics")
    region_metrics: List[RegionMetrics] = Field(default_factory=list, alias="regionMetrics")
    category_metrics: List[CategoryMetrics] = Field(default_factory=list, alias="categoryMetrics")
    royal_comparison: RoyalComparison = Field(default_factory=RoyalComparison, alias="royalComparison")
    event_type_metrics: List[EventTypeMetrics] = Field(default_factory=list, alias="eventTypeMetrics")
    kpis: KPIs
    filters: Dict[str, Any] = Field(default_factory=dict)
