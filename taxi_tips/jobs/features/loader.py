"""
Trip table loader.

Reads the joined trip/fare Parquet dataset into the cluster, checks that the
columns the pipeline depends on are present and registers it under a logical
table name, optionally pinned in cluster memory.
"""
import logging
from typing import Iterable, Optional
from pyspark.sql import DataFrame, SparkSession

from taxi_tips.jobs.base_job import JobExecutionError

logger = logging.getLogger(__name__)

REQUIRED_TRIP_COLUMNS = (
    "payment_type",
    "TrafficTimeBins",
    "tip_amount",
    "fare_amount",
    "pickup_hour",
    "passenger_count",
    "trip_distance",
)


class DataLoadError(JobExecutionError):
    """
    Raised when the trip dataset cannot be read or does not match the expected schema
    """
    pass


def load_trip_table(
        spark: SparkSession,
        path: str,
        table_name: str,
        memory: bool = True,
        overwrite: bool = True,
        required_columns: Optional[Iterable[str]] = None,
) -> DataFrame:
    """
    Load a Parquet dataset and register it as a temporary view.

    :params spark: Active SparkSession
    :params path: Storage path of the Parquet dataset
    :params table_name: Logical name the view is registered under
    :params memory: Pin the table in cluster memory for the rest of the session
    :params overwrite: Replace an existing view of the same name
    :params required_columns: Columns that must be present (defaults to REQUIRED_TRIP_COLUMNS)
    :returns: DataFrame backed by the registered view
    :raises DataLoadError: On unreadable path, schema mismatch or name clash
    """
    if not table_name or not table_name.strip():
        raise ValueError("table_name cannot be empty")

    if not overwrite and spark.catalog.tableExists(table_name):
        raise DataLoadError(
            f"Table '{table_name}' already exists and overwrite is disabled"
        )

    logger.info(f"Reading trip data: {path}")
    try:
        df = spark.read.parquet(path)
    except Exception as e:
        raise DataLoadError(f"Failed to read {path}: {e}") from e

    required = list(required_columns) if required_columns is not None else list(REQUIRED_TRIP_COLUMNS)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataLoadError(
            f"Dataset at {path} is missing required columns: {missing}. "
            f"Found: {sorted(df.columns)}"
        )

    df.createOrReplaceTempView(table_name)
    if memory:
        spark.catalog.cacheTable(table_name)
        logger.info(f"Pinned '{table_name}' in cluster memory")

    table = spark.table(table_name)
    record_count = table.count()
    logger.info(f"Loaded {record_count:,} records into '{table_name}'")
    return table
