"""Shared fixtures: a local SparkSession for the Spark-backed tests."""
import os
import shutil

import pytest


@pytest.fixture(scope="session")
def spark():
    """Single-core local SparkSession; skipped when no Java runtime is present."""
    if not (os.environ.get("JAVA_HOME") or shutil.which("java")):
        pytest.skip("Java runtime not available for local Spark")

    from pyspark.sql import SparkSession

    session = (
        SparkSession.builder
        .master("local[1]")
        .appName("taxi-tips-tests")
        .config("spark.sql.shuffle.partitions", "1")
        .config("spark.ui.enabled", "false")
        .getOrCreate()
    )
    yield session
    session.stop()
