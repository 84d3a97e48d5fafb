"""
Column-wise feature transformations for the trip table.

Two feature pairs are derived from the categorical columns:

    payment_type    -> pt_ind         (frequency index)
                    -> pt_bin         (binarized at 0.5)
    TrafficTimeBins -> TrafficTimeInd (frequency index)
                    -> TrafficTimeBuc (bucketized by fixed splits)

Frequency indexing assigns code 0 to the most frequent value. Ties are broken
by the position at which a value is first seen, so the same input always gets
the same codes. Spark's StringIndexer breaks ties alphabetically, so the label
order is computed here and handed to StringIndexerModel.from_labels.
"""
import bisect
import logging
from typing import Iterable, List, Sequence, Tuple
from pyspark.ml.feature import Binarizer, Bucketizer, StringIndexerModel
from pyspark.sql import DataFrame
from pyspark.sql import functions as F

logger = logging.getLogger(__name__)

BINARIZE_THRESHOLD = 0.5
TRAFFIC_TIME_SPLITS = [-1.0, 0.5, 1.5, 2.5, 3.5]

# value, frequency, first-seen position
LabelStats = Tuple[str, int, int]


def rank_labels(stats: Iterable[LabelStats]) -> List[str]:
    """
    Order category values by descending frequency, ties by first appearance.

    >>> rank_labels([("CRD", 2, 1), ("CSH", 2, 0), ("NOC", 1, 2)])
    ['CSH', 'CRD', 'NOC']
    """
    ordered = sorted(stats, key=lambda s: (-s[1], s[2]))
    return [value for value, _, _ in ordered]


def collect_label_stats(df: DataFrame, input_col: str) -> List[LabelStats]:
    """Count each non-null value of a column and record where it first appears."""
    rows = (
        df.select(
            F.col(input_col).cast("string").alias("value"),
            F.monotonically_increasing_id().alias("position"),
        )
        .where(F.col("value").isNotNull())
        .groupBy("value")
        .agg(
            F.count(F.lit(1)).alias("frequency"),
            F.min("position").alias("first_seen"),
        )
        .collect()
    )
    return [(row["value"], row["frequency"], row["first_seen"]) for row in rows]


def fit_frequency_indexer(df: DataFrame, input_col: str, output_col: str) -> StringIndexerModel:
    """
    Build a StringIndexerModel whose codes follow rank_labels ordering.

    :raises ValueError: If the column holds no non-null values
    """
    labels = rank_labels(collect_label_stats(df, input_col))
    if not labels:
        raise ValueError(f"Column '{input_col}' has no values to index")

    logger.info(f"Indexed {input_col} -> {output_col}: {labels}")
    return StringIndexerModel.from_labels(
        labels,
        inputCol=input_col,
        outputCol=output_col,
        handleInvalid="error",
    )


def index_column(df: DataFrame, input_col: str, output_col: str) -> DataFrame:
    """Append the frequency index of input_col as output_col."""
    return fit_frequency_indexer(df, input_col, output_col).transform(df)


def binarize(
        df: DataFrame,
        input_col: str,
        output_col: str,
        threshold: float = BINARIZE_THRESHOLD,
) -> DataFrame:
    """Append 1.0 where input_col > threshold, else 0.0."""
    binarizer = Binarizer(threshold=threshold, inputCol=input_col, outputCol=output_col)
    return binarizer.transform(df)


def bucketize(
        df: DataFrame,
        input_col: str,
        output_col: str,
        splits: Sequence[float] = TRAFFIC_TIME_SPLITS,
) -> DataFrame:
    """
    Append bucket i where splits[i] <= input_col < splits[i + 1].

    Values outside [splits[0], splits[-1]) fail when the plan executes.
    """
    upper = splits[-1]
    # Bucketizer maps a value equal to the last split into the last bucket
    df = df.withColumn(
        input_col,
        F.when(
            F.col(input_col) >= upper,
            F.raise_error(
                F.concat(
                    F.lit(f"{input_col} value "),
                    F.col(input_col).cast("string"),
                    F.lit(f" outside bucket range [{splits[0]}, {upper})"),
                )
            ),
        ).otherwise(F.col(input_col)),
    )
    bucketizer = Bucketizer(
        splits=list(splits),
        inputCol=input_col,
        outputCol=output_col,
        handleInvalid="error",
    )
    return bucketizer.transform(df)


def bucket_index(value: float, splits: Sequence[float] = TRAFFIC_TIME_SPLITS) -> int:
    """
    Bucket i such that splits[i] <= value < splits[i + 1].

    >>> bucket_index(1.5)
    2

    :raises ValueError: If value lies outside [splits[0], splits[-1])
    """
    if len(splits) < 2:
        raise ValueError("splits must contain at least two boundaries")
    if not splits[0] <= value < splits[-1]:
        raise ValueError(
            f"Value {value} outside bucket range [{splits[0]}, {splits[-1]})"
        )
    return bisect.bisect_right(splits, value) - 1


def add_trip_features(df: DataFrame) -> DataFrame:
    """
    Append pt_ind, pt_bin, TrafficTimeInd and TrafficTimeBuc to the trip table.
    """
    df = index_column(df, "payment_type", "pt_ind")
    df = binarize(df, "pt_ind", "pt_bin")
    df = index_column(df, "TrafficTimeBins", "TrafficTimeInd")
    df = bucketize(df, "TrafficTimeInd", "TrafficTimeBuc")
    return df
