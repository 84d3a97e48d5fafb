"""
NYC Taxi Tip Regression Job.

Loads the joined trip/fare table into the cluster, derives payment and traffic
time features, splits the data 75/25 with a seed, fits three regression models
predicting tip_amount and evaluates each on the held-out subset.

Pipeline:
    1. Extract: Read trip/fare Parquet, register and cache as a table
    2. Transform:
       a. payment_type -> pt_ind (frequency index) -> pt_bin (binarized)
       b. TrafficTimeBins -> TrafficTimeInd (frequency index) -> TrafficTimeBuc (buckets)
    3. Train: Seeded split, then elastic net, random forest, gradient-boosted trees
    4. Evaluate: Test R², seeded local sample, scatter plots, markdown report

Design Patterns:
    - Template Method: Inherits from BaseSparkJob
    - Strategy: One ModelTrainer per model type
"""
import sys
from pathlib import Path

# Add project root to path for imports when running as script
if __name__ == "__main__":
    project_root = Path(__file__).resolve().parents[2]
    sys.path.insert(0, str(project_root))

from typing import Any, Dict, List, Mapping, Optional, Sequence
from pyspark.sql import DataFrame

from taxi_tips.jobs.base_job import BaseSparkJob, JobExecutionError
from taxi_tips.jobs.evaluation.evaluator import (
    DEFAULT_SAMPLE_SIZE,
    EvaluationResult,
    evaluate_model,
)
from taxi_tips.jobs.evaluation.report import write_report
from taxi_tips.jobs.features.feature_spec import FeatureSpec
from taxi_tips.jobs.features.loader import REQUIRED_TRIP_COLUMNS, load_trip_table
from taxi_tips.jobs.features.partitioner import DEFAULT_WEIGHTS, partition_table
from taxi_tips.jobs.features.transformers import add_trip_features
from taxi_tips.jobs.models.trainers import FittedModel, ModelTrainer, default_trainers
from taxi_tips.jobs.utils.config import JobConfig


class TipRegressionJob(BaseSparkJob):
    """
    Fit and compare tip amount regression models on the trip/fare table.

    Example:
        >>> job = TipRegressionJob(sample_seed=42)
        >>> success = job.run()
        >>> job.results[0].r2

    Attributes:
        sample_seed: Seed for the local evaluation sample
        split_seed: Seed for the training/test split and tree estimators
        sample_size: Rows pulled locally per model for plotting
        include_fare_amount: Add fare_amount to every model's features
        data_path: Location of the trip/fare Parquet dataset
        output_dir: Directory for plots and the report
    """

    TRAINING = "training"
    TEST = "test"

    def __init__(
            self,
            sample_seed: int,
            split_seed: int = 1234,
            sample_size: int = DEFAULT_SAMPLE_SIZE,
            include_fare_amount: bool = False,
            data_path: Optional[str] = None,
            output_dir: Optional[Path] = None,
            weights: Mapping[str, float] = DEFAULT_WEIGHTS,
            trainers: Optional[Sequence[ModelTrainer]] = None,
            config: Optional[JobConfig] = None,
    ):
        """
        Initialise the tip regression job.

        :params sample_seed: Seed for the evaluation sample (required)
        :params split_seed: Seed for the partitioner
        :params sample_size: Rows sampled per model for plotting
        :params include_fare_amount: Use fare_amount as a feature in every model
        :params data_path: Overrides the configured trip data path
        :params output_dir: Overrides the configured report directory
        :params weights: Partition weights, must contain 'training' and 'test'
        :params trainers: Model trainers (defaults to all three)
        :params config: Optional job configuration
        :raises ValueError: If parameters are invalid
        """
        self._validate_parameters(sample_seed, split_seed, sample_size, weights)

        super().__init__(job_name=f"TipRegression_seed{split_seed}", config=config)
        self.sample_seed = sample_seed
        self.split_seed = split_seed
        self.sample_size = sample_size
        self.include_fare_amount = include_fare_amount
        self.data_path = data_path or self.config.trip_data_path
        self._output_dir = Path(output_dir) if output_dir else None
        self.weights = dict(weights)
        self.trainers: List[ModelTrainer] = list(trainers) if trainers else default_trainers()
        self.feature_spec = FeatureSpec.tip_model_default(include_fare_amount)
        self.models: List[FittedModel] = []
        self.results: List[EvaluationResult] = []
        self.report_path: Optional[Path] = None

    @staticmethod
    def _validate_parameters(
            sample_seed: int,
            split_seed: int,
            sample_size: int,
            weights: Mapping[str, float],
    ) -> None:
        """
        Validate job parameters.

        :raises ValueError: If parameters are invalid
        """
        if not isinstance(sample_seed, int) or isinstance(sample_seed, bool):
            raise ValueError(f"Invalid sample_seed: {sample_seed}. Must be an integer")

        if not isinstance(split_seed, int) or isinstance(split_seed, bool):
            raise ValueError(f"Invalid split_seed: {split_seed}. Must be an integer")

        if not isinstance(sample_size, int) or sample_size < 1:
            raise ValueError(f"Invalid sample_size: {sample_size}. Must be integer >= 1")

        missing = {TipRegressionJob.TRAINING, TipRegressionJob.TEST} - set(weights)
        if missing:
            raise ValueError(f"Partition weights missing: {sorted(missing)}")

    @property
    def output_dir(self) -> Path:
        if self._output_dir is None:
            return self.config.report_dir
        self._output_dir.mkdir(parents=True, exist_ok=True)
        return self._output_dir

    def validate_inputs(self):
        """
        Validate job inputs.

        :raises JobExecutionError: If the trainers list is empty
        """
        if not self.trainers:
            raise JobExecutionError("No model trainers configured")

        self.logger.info(
            f"Validated inputs: data={self.data_path}, split_seed={self.split_seed}, "
            f"sample_seed={self.sample_seed}, sample_size={self.sample_size}, "
            f"features={self.feature_spec.features}"
        )

    def extract(self) -> DataFrame:
        """
        Load the trip/fare table into cluster memory.

        :returns: DataFrame of trip records
        :raises DataLoadError: If the path is unreadable or the schema does not match
        """
        trips = load_trip_table(
            self.spark,
            self.data_path,
            self.config.trip_table_name,
            memory=True,
            overwrite=True,
            required_columns=REQUIRED_TRIP_COLUMNS,
        )
        return trips

    def transform(self, df: DataFrame) -> DataFrame:
        """
        Append pt_ind, pt_bin, TrafficTimeInd and TrafficTimeBuc.

        :params df: Trip records
        :returns: Transformed DataFrame
        """
        self.logger.info("=== Starting feature transformation ===")
        transformed = add_trip_features(df)
        self.feature_spec.validate(transformed.columns)
        self.logger.info(f"Feature columns: {transformed.columns}")
        return transformed

    def train(self, df: DataFrame) -> Dict[str, Any]:
        """
        Split the transformed table and fit every configured model.

        :params df: Transformed DataFrame
        :returns: {'models': [FittedModel, ...], 'test': DataFrame}
        """
        partitions = partition_table(df, self.weights, seed=self.split_seed)
        training = partitions[self.TRAINING]
        test = partitions[self.TEST]

        self.models = []
        for trainer in self.trainers:
            with self._track_metrics(f"fit_{trainer.name}"):
                self.models.append(
                    trainer.fit(training, self.feature_spec, seed=self.split_seed)
                )

        return {"models": self.models, "test": test}

    def evaluate(self, trained: Dict[str, Any]) -> None:
        """
        Score each model on the test subset and write plots plus the report.

        :params trained: Output of train()
        :raises InsufficientRowsError: If the test subset is smaller than sample_size
        """
        output_dir = self.output_dir
        test = trained["test"]

        self.results = []
        for fitted in trained["models"]:
            with self._track_metrics(f"evaluate_{fitted.name}"):
                result = evaluate_model(
                    fitted,
                    test,
                    seed=self.sample_seed,
                    output_dir=output_dir,
                    sample_size=self.sample_size,
                )
            self.results.append(result)
            self._metrics[f"{fitted.name}_r2"] = result.r2

        self.report_path = write_report(
            self.results, trained["models"], output_dir / "tip_regression_report.md"
        )
        self.logger.info(f"Report written to {self.report_path}")


def run_tip_regression_job(
        sample_seed: int,
        split_seed: int = 1234,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        include_fare_amount: bool = False,
        data_path: Optional[str] = None,
        output_dir: Optional[str] = None,
) -> bool:
    """
    Convenience function to run the tip regression job.

    :params sample_seed: Seed for the evaluation sample
    :params split_seed: Seed for the training/test split
    :params sample_size: Rows sampled per model for plotting
    :params include_fare_amount: Use fare_amount as a feature
    :params data_path: Optional trip data path override
    :params output_dir: Optional report directory override
    :returns True if successful
    """
    job = TipRegressionJob(
        sample_seed=sample_seed,
        split_seed=split_seed,
        sample_size=sample_size,
        include_fare_amount=include_fare_amount,
        data_path=data_path,
        output_dir=Path(output_dir) if output_dir else None,
    )
    return job.run()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="NYC Taxi Tip Regression Job")
    parser.add_argument("--sample-seed", type=int, required=True,
                        help="Seed for the evaluation sample")
    parser.add_argument("--split-seed", type=int, default=1234,
                        help="Seed for the training/test split")
    parser.add_argument("--sample-size", type=int, default=DEFAULT_SAMPLE_SIZE,
                        help="Rows sampled per model for plotting")
    parser.add_argument("--include-fare", action="store_true",
                        help="Use fare_amount as a feature in every model")
    parser.add_argument("--data-path", type=str, help="Trip/fare Parquet path (optional)")
    parser.add_argument("--output-dir", type=str, help="Directory for plots and report (optional)")

    args = parser.parse_args()

    success = run_tip_regression_job(
        args.sample_seed,
        args.split_seed,
        args.sample_size,
        args.include_fare,
        args.data_path,
        args.output_dir,
    )
    exit(0 if success else 1)
