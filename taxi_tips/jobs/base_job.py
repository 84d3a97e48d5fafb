"""
Base Job Class implementing the Template Method pattern.

This module provides an abstract base class for PySpark modelling jobs. The
base class owns the SparkSession lifecycle: it acquires the session once,
exposes it as ``self.spark`` to every step and releases it in ``cleanup`` on
every exit path, including failures.

Design Patterns:
    - Template Method: Defines the skeleton of job execution
    - Singleton: Uses singleton SparkSession and configuration
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from pyspark.sql import SparkSession, DataFrame
from typing import Optional, Dict, Any
import logging
import time
from datetime import datetime

from .utils.spark_manager import SparkSessionManager
from .utils.config import JobConfig


class JobExecutionError(Exception):
    """
    Custom exception for job execution failures
    """

    pass


class BaseSparkJob(ABC):
    """
    Abstract base class for PySpark modelling jobs using Template Method pattern.

    Execution flow: validate -> extract -> transform -> train -> evaluate,
    with the SparkSession opened before the first step and stopped after the
    last one whether or not the job succeeded.

    Example:
        >>> class MyJob(BaseSparkJob):
        ...     def validate_inputs(self):
        ...         pass
        ...     def extract(self) -> DataFrame:
        ...         return self.spark.read.parquet("path")
        ...     def transform(self, df: DataFrame) -> DataFrame:
        ...         return df.filter("column > 0")
        ...     def train(self, df: DataFrame):
        ...         return fit_models(df)
        ...     def evaluate(self, trained):
        ...         return score(trained)
        >>> job = MyJob("my_job")
        >>> success = job.run()
    """

    def __init__(self, job_name: str, config: Optional[JobConfig] = None):
        """
        Initialise the job.
        :params job_name: Unique identifier for the job (used for logging and monitoring)
        :params config: Job configuration instance (uses singleton default if not provided)

        Raises:
            ValueError: If job_name is empty or invalid
        """
        if not job_name or not job_name.strip():
            raise ValueError("job_name cannot be empty")

        self.job_name = job_name.strip()
        self.config = config or JobConfig()
        self.spark: Optional[SparkSession] = None
        self.logger = self._setup_logger()
        self._metrics: Dict[str, Any] = {}
        self._start_time: Optional[float] = None

    def _setup_logger(self) -> logging.Logger:
        """
        Configure structured logging for the job.
        :returns: Configured logger instance
        """
        logger = logging.getLogger(self.job_name)
        logger.setLevel(logging.INFO)

        # Prevent duplicate handlers
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    @contextmanager
    def _track_metrics(self, step: str):
        """
        Context manager for tracking execution metrics per step.
        :params step: Name of the execution step (e.g., 'extract', 'train')
        """
        step_start = time.time()
        self.logger.info(f"Starting step: {step}")
        try:
            yield
        finally:
            duration = time.time() - step_start
            self._metrics[f"{step}_duration_seconds"] = round(duration, 2)
            self.logger.info(f"Completed step: {step} (took {duration:.2f}s)")

    def _open_session(self) -> SparkSession:
        """Acquire the shared session, with S3A settings only for s3a:// data."""
        minio = self.config.minio if self.config.uses_s3a else None
        return SparkSessionManager.get_session(
            app_name=self.job_name, cluster=self.config.cluster, minio=minio
        )

    def run(self) -> bool:
        """
        Execute the job following the Template Method pattern.

        1. Initialise Spark session
        2. Validate inputs
        3. Extract data
        4. Transform data
        5. Train models
        6. Evaluate models
        7. Cleanup resources (always)

        :returns: True if job completed successfully
        :raises JobExecutionError: If any step fails with context about the failure
        """
        self._start_time = time.time()
        self._metrics["job_name"] = self.job_name
        self._metrics["start_time"] = datetime.now().isoformat()
        self._metrics["status"] = "FAILED"  # Pessimistic default

        try:
            self.logger.info("=" * 80)
            self.logger.info(f"Starting job: {self.job_name}")
            self.logger.info("=" * 80)

            with self._track_metrics("initialisation"):
                self.spark = self._open_session()

            with self._track_metrics("validation"):
                self.validate_inputs()

            with self._track_metrics("extract"):
                data = self.extract()
                if data is None:
                    raise JobExecutionError("Extract step returned None")

            with self._track_metrics("transform"):
                transformed_data = self.transform(data)
                if transformed_data is None:
                    raise JobExecutionError("Transform step returned None")

            with self._track_metrics("train"):
                trained = self.train(transformed_data)
                if trained is None:
                    raise JobExecutionError("Train step returned None")

            with self._track_metrics("evaluate"):
                self.evaluate(trained)

            self._metrics["status"] = "SUCCESS"
            total_duration = time.time() - self._start_time
            self._metrics["total_duration_seconds"] = round(total_duration, 2)

            self.logger.info("=" * 80)
            self.logger.info(f"Job completed successfully: {self.job_name}")
            self.logger.info(f"Total duration: {total_duration:.2f} seconds")
            self.logger.info(f"Metrics: {self._metrics}")
            self.logger.info("=" * 80)

            return True

        except Exception as e:
            self._metrics["error_message"] = str(e)
            self._metrics["error_type"] = type(e).__name__

            self.logger.error("=" * 80)
            self.logger.error(f"Job failed: {self.job_name}")
            self.logger.error(f"Error: {str(e)}")
            self.logger.error(f"Metrics: {self._metrics}")
            self.logger.error("=" * 80)

            if isinstance(e, JobExecutionError):
                raise
            raise JobExecutionError(f"Job {self.job_name} failed: {str(e)}") from e

        finally:
            self.cleanup()

    @abstractmethod
    def validate_inputs(self) -> None:
        """
        Validate job inputs and configuration.

        :raises ValueError: If validation fails
        :raises JobExecutionError: If critical validation errors occur
        """
        pass

    @abstractmethod
    def extract(self) -> DataFrame:
        """
        Extract data from source systems.
        :returns: DataFrame containing extracted data
        """
        pass

    @abstractmethod
    def transform(self, df: DataFrame) -> DataFrame:
        """
        Derive model features from the extracted data.
        :params df: Input DataFrame from extract step
        :returns: Transformed DataFrame
        """
        pass

    @abstractmethod
    def train(self, df: DataFrame) -> Any:
        """
        Split the transformed data and fit models.
        :params df: Transformed DataFrame from transform step
        :returns: Whatever the evaluate step needs (fitted models, held-out data)
        """
        pass

    @abstractmethod
    def evaluate(self, trained: Any) -> None:
        """
        Score the fitted models and publish the results.
        :params trained: Output of the train step
        """
        pass

    def cleanup(self) -> None:
        """
        Release the SparkSession after job execution.

        Called from the finally block of run(), so it must not raise: a failure
        to stop the session is logged as a warning.
        """
        self.logger.info(f"Cleaning up job: {self.job_name}")
        if self.spark is None:
            return
        try:
            SparkSessionManager.stop_session()
        except Exception as e:
            self.logger.warning(f"Cleanup warning: {str(e)}")
        finally:
            self.spark = None

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get job execution metrics.
        :returns: Dictionary containing job metrics (durations, status, etc.)
        """
        return self._metrics.copy()
