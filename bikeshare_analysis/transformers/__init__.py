"""Merge and feature derivation stages"""

from .merger import TripMerger, merge_batches, column_kind
from .feature_deriver import FeatureDeriver, DerivationResult, EXCLUSION_REASONS

__all__ = [
    'TripMerger', 'merge_batches', 'column_kind',
    'FeatureDeriver', 'DerivationResult', 'EXCLUSION_REASONS'
]
