"""Summary view aggregation"""

from .views import ViewDefinition, MetricSpec, OrderKey, standard_views, view_names
from .aggregator import TripAggregator, compute_view

__all__ = [
    'ViewDefinition', 'MetricSpec', 'OrderKey', 'standard_views', 'view_names',
    'TripAggregator', 'compute_view'
]
