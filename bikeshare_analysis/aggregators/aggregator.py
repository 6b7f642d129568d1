"""
Grouping engine and runner for the summary views
"""

import concurrent.futures
from typing import Dict, List, Optional, Sequence

import pandas as pd

from bikeshare_analysis.aggregators.views import COUNT, ViewDefinition, standard_views
from bikeshare_analysis.utils.logger import get_logger, PerformanceLogger
from bikeshare_analysis.utils.exceptions import AggregationError, ErrorCollector


def _apply_filters(frame: pd.DataFrame, view: ViewDefinition) -> pd.DataFrame:
    for column, value in view.filters.items():
        # isin never matches null, so a filter also excludes null values
        frame = frame[frame[column].isin([value])]

    if view.drop_null_keys:
        frame = frame.dropna(subset=list(view.group_by))

    if view.null_key_buckets:
        frame = frame.assign(**{
            column: frame[column].astype(object).where(frame[column].notna(), bucket)
            for column, bucket in view.null_key_buckets.items()
        })

    return frame


def _sort(result: pd.DataFrame, view: ViewDefinition) -> pd.DataFrame:
    positions = {
        key.column: {value: index for index, value in enumerate(key.sequence)}
        for key in view.order_by if key.sequence
    }

    def sort_key(series: pd.Series) -> pd.Series:
        if series.name in positions:
            lookup = positions[series.name]
            return series.map(lookup).fillna(len(lookup))
        return series

    return result.sort_values(
        by=[key.column for key in view.order_by],
        ascending=[key.ascending for key in view.order_by],
        key=sort_key,
        kind="mergesort"
    )


def _empty_result(data: pd.DataFrame, view: ViewDefinition) -> pd.DataFrame:
    columns = {column: pd.Series(dtype=data[column].dtype) for column in view.group_by}
    for metric in view.metrics:
        columns[metric.name] = pd.Series(dtype='int64' if metric.function == COUNT else 'float64')
    return pd.DataFrame(columns)[view.output_columns]


def compute_view(enriched: pd.DataFrame, view: ViewDefinition) -> pd.DataFrame:
    """
    Evaluate one view over the enriched dataset

    Filters, then groups by the composite key, aggregates, sorts and
    truncates. The input frame is not modified.

    Args:
        enriched: Enriched trip records
        view: View definition

    Returns:
        Result table with the view's output columns
    """
    missing = [column for column in view.required_columns if column not in enriched.columns]
    if missing:
        raise AggregationError(
            f"View {view.name} needs missing columns: {', '.join(missing)}",
            error_code="MISSING_COLUMN",
            context={'view': view.name, 'missing': missing}
        )

    data = _apply_filters(enriched, view)

    if data.empty:
        return _empty_result(data, view)

    grouped = data.groupby(list(view.group_by), sort=False, dropna=False)

    aggregates = {}
    for metric in view.metrics:
        if metric.function == COUNT:
            aggregates[metric.name] = grouped.size()
        else:
            aggregates[metric.name] = grouped[metric.column].agg(metric.function)

    result = pd.DataFrame(aggregates).reset_index()
    result = _sort(result, view)

    if view.limit is not None:
        result = result.head(view.limit)

    return result.reset_index(drop=True)[view.output_columns]


class TripAggregator:
    """
    Computes the summary views over one enriched dataset

    Views are independent reads of the same frame, so with more than one
    worker they run on a thread pool. Results always come back in view
    declaration order; failures of individual views are collected and
    raised together.
    """

    def __init__(
        self,
        views: Optional[Sequence[ViewDefinition]] = None,
        max_workers: int = 1
    ):
        """
        Initialize the aggregator

        Args:
            views: View definitions (the seven standard views by default)
            max_workers: Thread pool size; 1 runs the views sequentially
        """
        self.views: List[ViewDefinition] = list(views) if views is not None else standard_views()
        self.max_workers = max(1, max_workers)
        self.logger = get_logger(__name__)
        self.performance_logger = PerformanceLogger(__name__)

        names = [view.name for view in self.views]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate view names: {', '.join(duplicates)}")

    def run(self, enriched: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        """
        Compute every view

        Args:
            enriched: Enriched trip records

        Returns:
            Mapping of view name to result table, in declaration order

        Raises:
            AggregationError: If any view failed
        """
        error_collector = ErrorCollector()

        if self.max_workers > 1 and len(self.views) > 1:
            results = self._run_parallel(enriched, error_collector)
        else:
            results = self._run_sequential(enriched, error_collector)

        error_collector.raise_if_errors("View aggregation failed", AggregationError)

        ordered = {view.name: results[view.name] for view in self.views}

        for name, table in ordered.items():
            if table.empty:
                error_collector.add_warning(f"View {name} has no rows", {'view': name})

        if error_collector.has_warnings:
            self.logger.warning(
                f"{error_collector.warning_count} views are empty: "
                f"{', '.join(w['context']['view'] for w in error_collector.warnings)}"
            )

        self.performance_logger.log_data_metrics(
            stage='aggregate',
            views=len(ordered),
            view_rows={name: len(table) for name, table in ordered.items()}
        )
        self.logger.info(f"Computed {len(ordered)} views over {len(enriched):,} enriched rows")

        return ordered

    def _run_sequential(
        self,
        enriched: pd.DataFrame,
        error_collector: ErrorCollector
    ) -> Dict[str, pd.DataFrame]:
        results = {}

        for view in self.views:
            try:
                results[view.name] = compute_view(enriched, view)
            except Exception as e:
                error_collector.add_error(e, {'view': view.name})
                self.logger.error(f"Failed to compute view {view.name}: {str(e)}")

        return results

    def _run_parallel(
        self,
        enriched: pd.DataFrame,
        error_collector: ErrorCollector
    ) -> Dict[str, pd.DataFrame]:
        results = {}

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_view = {
                executor.submit(compute_view, enriched, view): view
                for view in self.views
            }

            for future in concurrent.futures.as_completed(future_to_view):
                view = future_to_view[future]

                try:
                    results[view.name] = future.result()
                except Exception as e:
                    error_collector.add_error(e, {'view': view.name})
                    self.logger.error(f"Failed to compute view {view.name}: {str(e)}")

        return results
