"""
Data models for bike-share trip records
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd


class RiderType(Enum):
    """Rider category as published in the `member_casual` column"""
    MEMBER = "member"
    CASUAL = "casual"


# Bucket used by views without a null filter when `member_casual` is missing
UNKNOWN_RIDER_TYPE = "unknown"


class Weekday(Enum):
    """
    Fixed calendar order used by every day-of-week branch in the pipeline

    Values are the `ride_day_of_week_num` codes (Sunday=1 ... Saturday=7).
    Names come from this table, never from the process locale.
    """
    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @property
    def display_name(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_pandas_dayofweek(cls, dayofweek: int) -> 'Weekday':
        """Map pandas' Monday=0 ... Sunday=6 convention onto this table"""
        return cls((dayofweek + 1) % 7 + 1)

    @classmethod
    def ordered_names(cls) -> List[str]:
        """Weekday names Sunday through Saturday"""
        return [day.display_name for day in sorted(cls, key=lambda d: d.value)]


@dataclass(frozen=True)
class ColumnSpec:
    """One column of the trip record schema"""
    name: str
    kind: str  # "text", "temporal" or "numeric"
    nullable: bool = True


TRIP_COLUMNS: List[ColumnSpec] = [
    ColumnSpec("ride_id", "text", nullable=False),
    ColumnSpec("rideable_type", "text"),
    ColumnSpec("started_at", "temporal"),
    ColumnSpec("ended_at", "temporal"),
    ColumnSpec("start_station_name", "text"),
    ColumnSpec("start_station_id", "text"),
    ColumnSpec("end_station_name", "text"),
    ColumnSpec("end_station_id", "text"),
    ColumnSpec("start_lat", "numeric"),
    ColumnSpec("start_lng", "numeric"),
    ColumnSpec("end_lat", "numeric"),
    ColumnSpec("end_lng", "numeric"),
    ColumnSpec("member_casual", "text"),
]

TRIP_COLUMN_NAMES: List[str] = [column.name for column in TRIP_COLUMNS]

TIMESTAMP_COLUMNS = ("started_at", "ended_at")

DERIVED_COLUMNS = (
    "ride_length_seconds",
    "ride_length_minutes",
    "ride_length_hours",
    "ride_day_of_week",
    "ride_day_of_week_num",
    "ride_day_of_month",
    "ride_start_hour",
)


def raw_read_dtypes() -> Dict[str, str]:
    """
    pandas dtypes for reading raw batches

    Text and timestamp columns stay as strings; timestamps are parsed later
    by the feature deriver so unparsable values surface as validation errors.
    """
    dtypes = {}
    for column in TRIP_COLUMNS:
        dtypes[column.name] = "float64" if column.kind == "numeric" else "object"
    return dtypes


@dataclass
class TripBatch:
    """A named batch of raw trip records, typically one month"""
    name: str
    frame: pd.DataFrame
    source_path: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.frame)

    @property
    def columns(self) -> List[str]:
        return list(self.frame.columns)
