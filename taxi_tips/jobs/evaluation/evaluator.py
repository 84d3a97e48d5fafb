"""
Held-out evaluation of fitted tip models.

For each model the test subset is scored in the cluster, R² is computed over
the full prediction frame, and a fixed-size seeded sample is pulled into local
memory for the diagnostic plot and its reference line.
"""
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd
from pyspark.sql import DataFrame
from pyspark.sql import functions as F

from taxi_tips.jobs.base_job import JobExecutionError
from taxi_tips.jobs.evaluation.metrics import r_squared, reference_line
from taxi_tips.jobs.evaluation.plotting import plot_predictions
from taxi_tips.jobs.models.trainers import FittedModel, PREDICTION_COL

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 1000


class InsufficientRowsError(JobExecutionError):
    """
    Raised when the test subset is smaller than the requested plot sample
    """
    pass


@dataclass
class EvaluationResult:
    model_name: str
    r2: float
    sample_r2: float
    slope: float
    intercept: float
    test_rows: int
    sample: pd.DataFrame
    plot_path: Path


def prediction_frame(fitted: FittedModel, test_df: DataFrame) -> DataFrame:
    """Score test_df and keep only (actual, predicted) pairs."""
    spec = fitted.feature_spec
    scored = fitted.predict(test_df.dropna(subset=spec.column_names))
    return scored.select(
        F.col(spec.label).cast("double").alias("actual"),
        F.col(PREDICTION_COL).cast("double").alias("predicted"),
    )


def cluster_r_squared(predictions: DataFrame) -> float:
    """Squared Pearson correlation computed in the cluster; NaN when undefined."""
    r = predictions.select(F.corr("actual", "predicted").alias("r")).first()["r"]
    if r is None or math.isnan(r):
        return math.nan
    return r * r


def sample_predictions(
        predictions: DataFrame,
        sample_size: int,
        seed: int,
        available: Optional[int] = None,
) -> pd.DataFrame:
    """
    Pull exactly sample_size rows chosen uniformly at random into pandas.

    :params available: Row count of predictions, if already known
    :raises InsufficientRowsError: If fewer rows are available
    """
    if available is None:
        available = predictions.count()
    if available < sample_size:
        raise InsufficientRowsError(
            f"Need {sample_size} test rows for the plot sample, only {available} available"
        )
    return (
        predictions
        .orderBy(F.rand(seed))
        .limit(sample_size)
        .toPandas()
    )


def evaluate_model(
        fitted: FittedModel,
        test_df: DataFrame,
        seed: int,
        output_dir: Path,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> EvaluationResult:
    """
    Score a fitted model on the test subset and render its diagnostic plot.

    :params fitted: Model from a ModelTrainer
    :params test_df: Held-out subset with the model's feature columns
    :params seed: Seed for the local plot sample
    :params output_dir: Directory for the PNG
    :params sample_size: Rows pulled locally for the plot
    :returns: EvaluationResult
    :raises InsufficientRowsError: If test_df has fewer than sample_size scorable rows
    """
    if sample_size < 1:
        raise ValueError(f"sample_size must be >= 1, got {sample_size}")

    fitted.feature_spec.validate(test_df.columns)
    predictions = prediction_frame(fitted, test_df)

    test_rows = predictions.count()
    sample = sample_predictions(predictions, sample_size, seed, available=test_rows)
    r2 = cluster_r_squared(predictions)
    sample_r2 = r_squared(sample["actual"], sample["predicted"])
    slope, intercept = reference_line(sample["actual"], sample["predicted"])

    if math.isnan(r2):
        logger.warning(f"{fitted.name}: R² is undefined (no variance in actual or predicted)")
    logger.info(f"{fitted.name}: test R² = {r2:.4f}, sample R² = {sample_r2:.4f}")

    plot_path = plot_predictions(
        sample,
        slope,
        intercept,
        title=f"{fitted.name}: actual vs predicted (R² = {r2:.3f})",
        path=Path(output_dir) / f"{fitted.name}_predictions.png",
    )

    return EvaluationResult(
        model_name=fitted.name,
        r2=r2,
        sample_r2=sample_r2,
        slope=slope,
        intercept=intercept,
        test_rows=test_rows,
        sample=sample,
        plot_path=plot_path,
    )
