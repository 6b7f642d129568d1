"""
Union of monthly trip batches into one dataset
"""

from typing import List, Optional, Sequence

import pandas as pd
from pandas.api import types as ptypes

from bikeshare_analysis.models.trip_record import TripBatch
from bikeshare_analysis.utils.logger import get_logger, PerformanceLogger
from bikeshare_analysis.utils.exceptions import ProcessingError, SchemaMismatchError


# Kinds that may share a column across batches; raw CSV timestamps are text.
# Timezone-aware timestamps only merge with timestamps in the same zone.
_COMPATIBLE_KINDS = {
    'numeric': {'numeric'},
    'temporal': {'temporal', 'text'},
    'temporal_tz': {'temporal_tz'},
    'text': {'text', 'temporal'},
    'boolean': {'boolean'},
}


def column_kind(series: pd.Series) -> Optional[str]:
    """
    Classify a column for schema compatibility checks

    Returns None for an all-null column, which is compatible with any kind.
    """
    if series.isna().all():
        return None
    if ptypes.is_bool_dtype(series):
        return 'boolean'
    if ptypes.is_numeric_dtype(series):
        return 'numeric'
    if isinstance(series.dtype, pd.DatetimeTZDtype):
        return 'temporal_tz'
    if ptypes.is_datetime64_any_dtype(series):
        return 'temporal'
    return 'text'


def _timezone(series: pd.Series) -> Optional[str]:
    if isinstance(series.dtype, pd.DatetimeTZDtype):
        return str(series.dtype.tz)
    return None


class TripMerger:
    """
    Unions same-schema trip batches

    The merged frame keeps the first batch's column order, preserves
    duplicates and lists rows batch by batch in input order. Inputs are
    never mutated.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.performance_logger = PerformanceLogger(__name__)

    def validate_schemas(self, batches: Sequence[TripBatch]) -> None:
        """
        Check that every batch matches the first one

        Raises:
            SchemaMismatchError: Naming the first offending batch and column
        """
        reference = batches[0]
        reference_columns = reference.columns
        reference_kinds = {
            name: column_kind(reference.frame[name]) for name in reference_columns
        }
        reference_zones = {
            name: _timezone(reference.frame[name]) for name in reference_columns
        }

        for batch in batches[1:]:
            columns = set(batch.columns)

            for name in reference_columns:
                if name not in columns:
                    raise SchemaMismatchError(
                        f"Batch '{batch.name}' is missing column '{name}'",
                        batch_name=batch.name,
                        column=name,
                        context={'reference_batch': reference.name}
                    )

            for name in batch.columns:
                if name not in reference_kinds:
                    raise SchemaMismatchError(
                        f"Batch '{batch.name}' has unexpected column '{name}'",
                        batch_name=batch.name,
                        column=name,
                        context={'reference_batch': reference.name}
                    )

            for name in reference_columns:
                expected = reference_kinds[name]
                actual = column_kind(batch.frame[name])
                if expected is None or actual is None:
                    continue
                if actual not in _COMPATIBLE_KINDS[expected]:
                    raise SchemaMismatchError(
                        f"Batch '{batch.name}' column '{name}' is {actual}, expected {expected}",
                        batch_name=batch.name,
                        column=name,
                        context={
                            'reference_batch': reference.name,
                            'expected_kind': expected,
                            'actual_kind': actual
                        }
                    )
                actual_zone = _timezone(batch.frame[name])
                if actual_zone != reference_zones[name]:
                    raise SchemaMismatchError(
                        f"Batch '{batch.name}' column '{name}' is in timezone "
                        f"{actual_zone}, expected {reference_zones[name]}",
                        batch_name=batch.name,
                        column=name,
                        context={
                            'reference_batch': reference.name,
                            'expected_timezone': reference_zones[name],
                            'actual_timezone': actual_zone
                        }
                    )

            # Later batches may settle the kind of a column that was all-null so far
            for name in reference_columns:
                if reference_kinds[name] is None:
                    reference_kinds[name] = column_kind(batch.frame[name])
                    reference_zones[name] = _timezone(batch.frame[name])

    def merge(self, batches: Sequence[TripBatch]) -> pd.DataFrame:
        """
        Merge batches into one frame

        Args:
            batches: Batches in merge order

        Returns:
            Combined frame with row count equal to the sum of the inputs

        Raises:
            ProcessingError: If no batches are given
            SchemaMismatchError: If the batches disagree on columns or types
        """
        if not batches:
            raise ProcessingError("No trip batches to merge", error_code="EMPTY_MERGE")

        self.validate_schemas(batches)

        columns = batches[0].columns
        frames: List[pd.DataFrame] = [batch.frame.loc[:, columns] for batch in batches]
        merged = pd.concat(frames, ignore_index=True)

        expected_rows = sum(batch.row_count for batch in batches)
        if len(merged) != expected_rows:
            raise ProcessingError(
                f"Merged row count {len(merged)} does not match input total {expected_rows}",
                error_code="MERGE_COUNT_MISMATCH"
            )

        self.performance_logger.log_data_metrics(
            stage='merge',
            batches=len(batches),
            merged_rows=len(merged),
            batch_rows={batch.name: batch.row_count for batch in batches}
        )
        self.logger.info(f"Merged {len(batches)} batches into {len(merged):,} rows")

        return merged


def merge_batches(batches: Sequence[TripBatch]) -> pd.DataFrame:
    """Merge batches with a default TripMerger"""
    return TripMerger().merge(batches)
