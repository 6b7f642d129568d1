"""
Row-level cleaning and derived temporal fields for trip records
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np
import pandas as pd

from bikeshare_analysis.models.trip_record import TIMESTAMP_COLUMNS, Weekday
from bikeshare_analysis.utils.logger import get_logger, PerformanceLogger
from bikeshare_analysis.utils.exceptions import ConfigurationError, ValidationError


SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# Checked in this order; a dropped row is counted under the first reason it fails
EXCLUSION_REASONS = (
    'missing_started_at',
    'missing_ended_at',
    'non_positive_duration',
    'exceeds_max_duration',
)

_WEEKDAY_NAMES = {day.value: day.display_name for day in Weekday}

# pandas dayofweek (Monday=0) to ride_day_of_week_num (Sunday=1)
_WEEKDAY_NUMBERS = {dayofweek: Weekday.from_pandas_dayofweek(dayofweek).value for dayofweek in range(7)}


@dataclass
class DerivationResult:
    """Enriched frame plus the bookkeeping of what was dropped"""
    frame: pd.DataFrame
    input_rows: int
    excluded_rows: int
    exclusion_reasons: Dict[str, int] = field(default_factory=dict)

    @property
    def enriched_rows(self) -> int:
        return len(self.frame)


class FeatureDeriver:
    """
    Turns merged trip records into enriched records

    Adds ride lengths (seconds, minutes, hours; each truncated toward zero),
    the weekday name and number (Sunday=1 ... Saturday=7), the day of month
    and the start hour, then drops rows with a missing timestamp, a
    non-positive duration or a duration over the cap.
    """

    def __init__(self, max_ride_hours: int = 24):
        if max_ride_hours <= 0:
            raise ConfigurationError(f"max_ride_hours must be positive, got {max_ride_hours}")
        self.max_ride_hours = max_ride_hours
        self.logger = get_logger(__name__)
        self.performance_logger = PerformanceLogger(__name__)

    def _parse_timestamps(self, frame: pd.DataFrame, column: str) -> pd.Series:
        if column not in frame.columns:
            raise ValidationError(
                f"Required timestamp column '{column}' is missing",
                error_code="MISSING_COLUMN",
                context={'column': column}
            )

        raw = frame[column]
        if pd.api.types.is_datetime64_any_dtype(raw):
            return raw

        # Blank strings count as missing values, not parse failures
        if pd.api.types.is_object_dtype(raw) or pd.api.types.is_string_dtype(raw):
            raw = raw.replace(r"^\s*$", np.nan, regex=True)

        try:
            parsed = pd.to_datetime(raw, errors="coerce", format="ISO8601")
        except (ValueError, TypeError) as e:
            raise ValidationError(
                f"Column '{column}' cannot be parsed as timestamps: {str(e)}",
                error_code="UNPARSABLE_TIMESTAMP",
                context={'column': column},
                cause=e
            ) from e

        if not pd.api.types.is_datetime64_any_dtype(parsed):
            raise ValidationError(
                f"Column '{column}' mixes incompatible timezones",
                error_code="UNPARSABLE_TIMESTAMP",
                context={'column': column}
            )

        unparsable = parsed.isna() & raw.notna()
        if unparsable.any():
            samples = raw[unparsable].astype(str).head(3).tolist()
            raise ValidationError(
                f"Column '{column}' has {int(unparsable.sum())} unparsable timestamp values",
                error_code="UNPARSABLE_TIMESTAMP",
                context={'column': column, 'count': int(unparsable.sum()), 'samples': samples}
            )

        return parsed

    def derive(self, merged: pd.DataFrame) -> DerivationResult:
        """
        Derive ride features and apply the validity filter

        Args:
            merged: Merged trip records

        Returns:
            DerivationResult holding the enriched frame and exclusion counts

        Raises:
            ValidationError: If a timestamp column is missing or unparsable
        """
        started_at = self._parse_timestamps(merged, 'started_at')
        ended_at = self._parse_timestamps(merged, 'ended_at')

        try:
            total_seconds = (ended_at - started_at).dt.total_seconds()
        except TypeError as e:
            raise ValidationError(
                f"Timestamps cannot be compared: {str(e)}",
                error_code="INCOMPATIBLE_TIMESTAMPS",
                context={"columns": list(TIMESTAMP_COLUMNS)},
                cause=e
            ) from e
        ride_length_seconds = np.trunc(total_seconds)

        masks = {
            'missing_started_at': started_at.isna(),
            'missing_ended_at': ended_at.isna(),
            'non_positive_duration': ride_length_seconds <= 0,
            # Compared on the exact duration so 24h30m is over a 24 hour cap
            'exceeds_max_duration': total_seconds > self.max_ride_hours * SECONDS_PER_HOUR,
        }

        excluded = pd.Series(False, index=merged.index)
        exclusion_reasons = {}
        for reason in EXCLUSION_REASONS:
            newly_excluded = masks[reason].fillna(False).astype(bool) & ~excluded
            exclusion_reasons[reason] = int(newly_excluded.sum())
            excluded |= newly_excluded

        keep = ~excluded
        enriched = merged.loc[keep].copy()
        enriched['started_at'] = started_at[keep]
        enriched['ended_at'] = ended_at[keep]

        seconds = ride_length_seconds[keep].astype('int64')
        enriched['ride_length_seconds'] = seconds
        enriched['ride_length_minutes'] = seconds // SECONDS_PER_MINUTE
        enriched['ride_length_hours'] = seconds // SECONDS_PER_HOUR

        kept_start = started_at[keep]
        weekday_num = kept_start.dt.dayofweek.map(_WEEKDAY_NUMBERS).astype('int64')
        enriched['ride_day_of_week'] = weekday_num.map(_WEEKDAY_NAMES).astype(object)
        enriched['ride_day_of_week_num'] = weekday_num
        enriched['ride_day_of_month'] = kept_start.dt.day.astype('int64')
        enriched['ride_start_hour'] = kept_start.dt.hour.astype('int64')

        enriched = enriched.reset_index(drop=True)

        result = DerivationResult(
            frame=enriched,
            input_rows=len(merged),
            excluded_rows=int(excluded.sum()),
            exclusion_reasons=exclusion_reasons
        )

        self.performance_logger.log_data_metrics(
            stage='derive_features',
            input_rows=result.input_rows,
            enriched_rows=result.enriched_rows,
            excluded_rows=result.excluded_rows,
            **{f"excluded_{reason}": count for reason, count in exclusion_reasons.items()}
        )
        self.logger.info(
            f"Derived features for {result.enriched_rows:,} rows, "
            f"excluded {result.excluded_rows:,} of {result.input_rows:,}"
        )

        return result
