"""
Polars views of the star schema.

Columns use the serialized field names; enums become their string values and
timestamps stay UTC datetimes.
"""

from typing import Sequence

import polars as pl

from cow_analytics.models import CowMovementFact, DimLocation

FACT_SCHEMA = {
    "SN": pl.Int64,
    "COW_ID": pl.Utf8,
    "From_Location_ID": pl.Utf8,
    "To_Location_ID": pl.Utf8,
    "Moved_DateTime": pl.Datetime("us", "UTC"),
    "Reached_DateTime": pl.Datetime("us", "UTC"),
    "Movement_Type": pl.Utf8,
    "Distance_KM": pl.Float64,
    "Recorded_Distance_KM": pl.Float64,
    "EbuRoyalCategory": pl.Utf8,
    "Event_ID": pl.Utf8,
    "Vendor": pl.Utf8,
}

LOCATION_SCHEMA = {
    "Location_ID": pl.Utf8,
    "Location_Name": pl.Utf8,
    "Latitude": pl.Float64,
    "Longitude": pl.Float64,
    "Region": pl.Utf8,
    "Location_Type": pl.Utf8,
    "Owner": pl.Utf8,
}


def facts_frame(facts: Sequence[CowMovementFact]) -> pl.DataFrame:
    """Movement fact table as a DataFrame"""
    return pl.DataFrame(
        {
            "SN": [f.sn for f in facts],
            "COW_ID": [f.cow_id for f in facts],
            "From_Location_ID": [f.from_location_id for f in facts],
            "To_Location_ID": [f.to_location_id for f in facts],
            "Moved_DateTime": [f.moved_datetime for f in facts],
            "Reached_DateTime": [f.reached_datetime for f in facts],
            "Movement_Type": [f.movement_type.value for f in facts],
            "Distance_KM": [f.distance_km for f in facts],
            "Recorded_Distance_KM": [f.recorded_distance_km for f in facts],
            "EbuRoyalCategory": [f.ebu_royal_category.value for f in facts],
            "Event_ID": [f.event_id for f in facts],
            "Vendor": [f.vendor for f in facts],
        },
        schema=FACT_SCHEMA,
    )


def locations_frame(locations: Sequence[DimLocation]) -> pl.DataFrame:
    """Location dimension as a DataFrame"""
    return pl.DataFrame(
        {
            "Location_ID": [loc.location_id for loc in locations],
            "Location_Name": [loc.location_name for loc in locations],
            "Latitude": [loc.latitude for loc in locations],
            "Longitude": [loc.longitude for loc in locations],
            "Region": [loc.region.value for loc in locations],
            "Location_Type": [loc.location_type.value for loc in locations],
            "Owner": [loc.owner for loc in locations],
        },
        schema=LOCATION_SCHEMA,
    )


def movements_by_month(facts: Sequence[CowMovementFact]) -> pl.DataFrame:
    """Movement count and distance per month of departure and movement type"""
    df = facts_frame(facts).filter(pl.col("Moved_DateTime").is_not_null())
    return (
        df.with_columns(pl.col("Moved_DateTime").dt.strftime("%Y-%m").alias("Month"))
        .group_by(["Month", "Movement_Type"])
        .agg([
            pl.len().alias("Movements"),
            pl.col("Distance_KM").sum().round(2).alias("Distance_KM"),
        ])
        .sort(["Month", "Movement_Type"])
    )
