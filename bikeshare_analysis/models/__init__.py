"""Data models"""

from .trip_record import (
    RiderType, Weekday, ColumnSpec, TripBatch, TRIP_COLUMNS, TRIP_COLUMN_NAMES,
    TIMESTAMP_COLUMNS, DERIVED_COLUMNS, UNKNOWN_RIDER_TYPE, raw_read_dtypes
)

__all__ = [
    'RiderType', 'Weekday', 'ColumnSpec', 'TripBatch', 'TRIP_COLUMNS', 'TRIP_COLUMN_NAMES',
    'TIMESTAMP_COLUMNS', 'DERIVED_COLUMNS', 'UNKNOWN_RIDER_TYPE', 'raw_read_dtypes'
]
