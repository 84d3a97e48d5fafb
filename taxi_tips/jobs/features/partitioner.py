"""
Seeded train/test partitioning.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Mapping, Tuple
from pyspark.sql import DataFrame

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = OrderedDict([("training", 0.75), ("test", 0.25)])

# Tolerance for floating point sums such as 0.1 + 0.2 + 0.7
_WEIGHT_EPSILON = 1e-9


def split_weights(weights: Mapping[str, float]) -> Tuple[List[str], List[float]]:
    """
    Validate partition weights and append the dropped remainder, if any.

    :returns: (partition names, weights passed to randomSplit)
    :raises ValueError: If a weight is not positive or the total exceeds 1
    """
    if not weights:
        raise ValueError("At least one partition weight is required")

    names = list(weights.keys())
    values = [float(w) for w in weights.values()]
    for name, value in zip(names, values):
        if value <= 0:
            raise ValueError(f"Weight for partition '{name}' must be > 0, got {value}")

    total = sum(values)
    if total > 1 + _WEIGHT_EPSILON:
        raise ValueError(f"Partition weights must sum to <= 1, got {total}")

    remainder = 1.0 - total
    if remainder > _WEIGHT_EPSILON:
        values.append(remainder)
    return names, values


def partition_table(
        df: DataFrame,
        weights: Mapping[str, float] = DEFAULT_WEIGHTS,
        seed: int = 1234,
) -> Dict[str, DataFrame]:
    """
    Split a table into named, disjoint row subsets.

    The split is reproducible for the same table, weights and seed. When the
    weights sum to less than 1 the remaining rows belong to no partition.

    :returns: Ordered mapping partition name -> DataFrame
    """
    names, values = split_weights(weights)
    logger.info(f"Partitioning with weights {dict(zip(names, values))} and seed {seed}")

    splits = df.randomSplit(values, seed=seed)
    return OrderedDict(zip(names, splits[:len(names)]))
