"""
Declarative definitions of the rider comparison views
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bikeshare_analysis.models.trip_record import RiderType, Weekday, UNKNOWN_RIDER_TYPE


COUNT = "count"
MEAN = "mean"
SUPPORTED_FUNCTIONS = (COUNT, MEAN)


@dataclass(frozen=True)
class MetricSpec:
    """An aggregate column of a view"""
    name: str
    function: str
    column: Optional[str] = None


@dataclass(frozen=True)
class OrderKey:
    """
    One sort key of a view

    When `sequence` is given, values sort by their position in it instead
    of their natural order.
    """
    column: str
    ascending: bool = True
    sequence: Optional[Tuple[str, ...]] = None


@dataclass
class ViewDefinition:
    """
    Grouping contract of one summary view

    Attributes:
        name: Output table name
        group_by: Grouping key columns
        metrics: Aggregates computed per group
        order_by: Sort keys, applied in order
        filters: Column equality filters applied before grouping
        drop_null_keys: Drop rows whose grouping keys are null
        null_key_buckets: Replacement value per key column for null keys
        limit: Maximum number of rows kept after sorting
    """
    name: str
    group_by: Tuple[str, ...]
    metrics: Tuple[MetricSpec, ...]
    order_by: Tuple[OrderKey, ...]
    filters: Dict[str, str] = field(default_factory=dict)
    drop_null_keys: bool = False
    null_key_buckets: Dict[str, str] = field(default_factory=dict)
    limit: Optional[int] = None
    description: str = ""

    def __post_init__(self):
        for metric in self.metrics:
            if metric.function not in SUPPORTED_FUNCTIONS:
                raise ValueError(f"Unsupported aggregate '{metric.function}' in view {self.name}")
            if metric.function != COUNT and not metric.column:
                raise ValueError(f"Metric '{metric.name}' in view {self.name} needs a column")
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"View {self.name} limit must be positive, got {self.limit}")

    @property
    def output_columns(self) -> List[str]:
        return list(self.group_by) + [metric.name for metric in self.metrics]

    @property
    def required_columns(self) -> List[str]:
        columns = list(self.group_by) + list(self.filters)
        columns += [metric.column for metric in self.metrics if metric.column]
        return list(dict.fromkeys(columns))


RIDE_COUNT = MetricSpec("ride_count", COUNT)
AVG_RIDE_LENGTH_MINUTES = MetricSpec("avg_ride_length_minutes", MEAN, "ride_length_minutes")

_RIDER_TYPE_BUCKETS = {"member_casual": UNKNOWN_RIDER_TYPE}


def _top_stations_view(
    station_column: str,
    rider_type: RiderType,
    top_n: int
) -> ViewDefinition:
    endpoint = station_column.split('_', 1)[0]
    return ViewDefinition(
        name=f"top_{endpoint}_stations_{rider_type.value}",
        group_by=(station_column,),
        metrics=(RIDE_COUNT,),
        order_by=(
            OrderKey("ride_count", ascending=False),
            OrderKey(station_column),
        ),
        filters={"member_casual": rider_type.value},
        drop_null_keys=True,
        limit=top_n,
        description=f"Most used {endpoint} stations of {rider_type.value} riders"
    )


def standard_views(top_n: int = 10) -> List[ViewDefinition]:
    """
    The seven rider comparison views, in output order

    Ties are broken by the grouping keys ascending so top-N results are
    reproducible.

    Args:
        top_n: Row limit of the station views
    """
    views = [
        ViewDefinition(
            name="rides_by_rider_type",
            group_by=("member_casual",),
            metrics=(RIDE_COUNT,),
            order_by=(
                OrderKey("ride_count", ascending=False),
                OrderKey("member_casual"),
            ),
            null_key_buckets=dict(_RIDER_TYPE_BUCKETS),
            description="Ride count per rider type"
        ),
        ViewDefinition(
            name="rides_by_day_of_week",
            group_by=("member_casual", "ride_day_of_week"),
            metrics=(RIDE_COUNT, AVG_RIDE_LENGTH_MINUTES),
            order_by=(
                OrderKey("member_casual"),
                OrderKey("ride_day_of_week", sequence=tuple(Weekday.ordered_names())),
            ),
            null_key_buckets=dict(_RIDER_TYPE_BUCKETS),
            description="Ride count and mean ride length per rider type and weekday"
        ),
        ViewDefinition(
            name="rides_by_start_hour",
            group_by=("member_casual", "ride_start_hour"),
            metrics=(RIDE_COUNT,),
            order_by=(
                OrderKey("member_casual"),
                OrderKey("ride_start_hour"),
            ),
            null_key_buckets=dict(_RIDER_TYPE_BUCKETS),
            description="Ride count per rider type and start hour"
        ),
    ]

    for station_column in ("end_station_name", "start_station_name"):
        for rider_type in (RiderType.CASUAL, RiderType.MEMBER):
            views.append(_top_stations_view(station_column, rider_type, top_n))

    return views


def view_names(views: Sequence[ViewDefinition]) -> List[str]:
    return [view.name for view in views]
