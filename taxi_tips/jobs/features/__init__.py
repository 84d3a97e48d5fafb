"""
Feature Preparation

Loading of the trip/fare table, column-wise feature transformations,
structured feature specifications and the seeded train/test partitioner.
"""

from .feature_spec import FeatureColumn, FeatureSpec, FeatureSpecError
from .loader import DataLoadError, load_trip_table
from .partitioner import partition_table
from .transformers import add_trip_features

__all__ = [
    "FeatureColumn",
    "FeatureSpec",
    "FeatureSpecError",
    "DataLoadError",
    "load_trip_table",
    "partition_table",
    "add_trip_features",
]
