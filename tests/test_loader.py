"""
Tests for load_trip_table (SparkSession mocked).
"""

import pytest
from unittest.mock import MagicMock

from taxi_tips.jobs.base_job import JobExecutionError
from taxi_tips.jobs.features.loader import (
    REQUIRED_TRIP_COLUMNS,
    DataLoadError,
    load_trip_table,
)


def make_spark(columns=REQUIRED_TRIP_COLUMNS, exists=False, count=1000):
    spark = MagicMock()
    df = MagicMock()
    df.columns = list(columns)
    spark.read.parquet.return_value = df
    spark.catalog.tableExists.return_value = exists
    table = MagicMock()
    table.count.return_value = count
    spark.table.return_value = table
    return spark, df, table


class TestLoadTripTable:
    """Tests for load_trip_table."""

    def test_registers_and_caches_table(self):
        spark, df, table = make_spark()
        result = load_trip_table(spark, "/data/trips", "trip_fare")

        assert result is table
        spark.read.parquet.assert_called_once_with("/data/trips")
        df.createOrReplaceTempView.assert_called_once_with("trip_fare")
        spark.catalog.cacheTable.assert_called_once_with("trip_fare")
        table.count.assert_called_once()

    def test_memory_false_skips_cache(self):
        spark, _, _ = make_spark()
        load_trip_table(spark, "/data/trips", "trip_fare", memory=False)
        spark.catalog.cacheTable.assert_not_called()

    def test_existing_table_without_overwrite_raises(self):
        spark, _, _ = make_spark(exists=True)
        with pytest.raises(DataLoadError, match="already exists"):
            load_trip_table(spark, "/data/trips", "trip_fare", overwrite=False)
        spark.read.parquet.assert_not_called()

    def test_existing_table_with_overwrite_is_replaced(self):
        spark, df, _ = make_spark(exists=True)
        load_trip_table(spark, "/data/trips", "trip_fare", overwrite=True)
        df.createOrReplaceTempView.assert_called_once_with("trip_fare")

    def test_missing_columns_raise(self):
        spark, df, _ = make_spark(columns=["payment_type", "tip_amount"])
        with pytest.raises(DataLoadError, match="missing required columns") as exc_info:
            load_trip_table(spark, "/data/trips", "trip_fare")
        assert "TrafficTimeBins" in str(exc_info.value)
        df.createOrReplaceTempView.assert_not_called()

    def test_custom_required_columns(self):
        spark, _, table = make_spark(columns=["a", "b"])
        assert load_trip_table(spark, "/p", "t", required_columns=["a"]) is table

    def test_read_failure_wrapped(self):
        spark, _, _ = make_spark()
        spark.read.parquet.side_effect = RuntimeError("Path does not exist")
        with pytest.raises(DataLoadError, match="Path does not exist") as exc_info:
            load_trip_table(spark, "/missing", "trip_fare")
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_empty_table_name_raises_error(self):
        spark, _, _ = make_spark()
        with pytest.raises(ValueError):
            load_trip_table(spark, "/data/trips", " ")

    def test_data_load_error_is_job_error(self):
        assert issubclass(DataLoadError, JobExecutionError)
