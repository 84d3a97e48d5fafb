"""
Tests for SparkSessionManager class.

Tests cover:
- SparkSessionError exception
- S3 configuration validation
- Session creation with cluster sizing (builder mocked)
- Idempotent stop_session
"""

import pytest
from unittest.mock import patch, MagicMock

from taxi_tips.jobs.utils.config import ClusterConfig, MinIOConfig
from taxi_tips.jobs.utils.spark_manager import SparkSessionManager, SparkSessionError


@pytest.fixture(autouse=True)
def reset_manager():
    SparkSessionManager._instance = None
    SparkSessionManager._session_config = {}
    yield
    SparkSessionManager._instance = None
    SparkSessionManager._session_config = {}


def make_builder():
    builder = MagicMock()
    builder.appName.return_value = builder
    builder.master.return_value = builder
    builder.config.return_value = builder
    session = MagicMock()
    session.version = "3.5.1"
    builder.getOrCreate.return_value = session
    return builder, session


def config_calls(builder):
    return {c.args[0]: c.args[1] for c in builder.config.call_args_list}


class TestSparkSessionError:
    """Tests for SparkSessionError exception class."""

    def test_spark_session_error_message(self):
        error = SparkSessionError("Session creation failed")
        assert str(error) == "Session creation failed"

    def test_spark_session_error_inheritance(self):
        assert isinstance(SparkSessionError("test"), Exception)


class TestValidateS3Config:
    """Tests for SparkSessionManager._validate_s3_config method."""

    def test_returns_credentials(self):
        minio = MinIOConfig(endpoint="minio:9000", access_key="a", secret_key="s")
        config = SparkSessionManager._validate_s3_config(minio)
        assert config == {"endpoint": "minio:9000", "access_key": "a", "secret_key": "s"}

    def test_strips_protocol(self):
        minio = MinIOConfig(endpoint="http://minio:9000", access_key="a", secret_key="s")
        config = SparkSessionManager._validate_s3_config(minio)
        assert config["endpoint"] == "minio:9000"

    def test_missing_credentials_raise(self):
        minio = MinIOConfig(endpoint="minio:9000", access_key="", secret_key="s")
        with pytest.raises(SparkSessionError, match="MINIO_ACCESS_KEY"):
            SparkSessionManager._validate_s3_config(minio)


class TestGetSession:
    """Tests for SparkSessionManager.get_session."""

    def test_empty_app_name_raises_error(self):
        with pytest.raises(ValueError, match="app_name cannot be empty"):
            SparkSessionManager.get_session("  ", ClusterConfig())

    def test_applies_cluster_sizing(self):
        builder, session = make_builder()
        cluster = ClusterConfig(
            master="local[2]",
            executor_instances=6,
            executor_memory_overhead="2g",
            packages=["com.example:pkg:1.0"],
        )
        with patch("taxi_tips.jobs.utils.spark_manager.SparkSession") as spark_cls:
            spark_cls.builder = builder
            result = SparkSessionManager.get_session("TipJob", cluster)

        assert result is session
        builder.master.assert_called_once_with("local[2]")
        conf = config_calls(builder)
        assert conf["spark.executor.instances"] == "6"
        assert conf["spark.executor.memoryOverhead"] == "2g"
        assert conf["spark.jars.packages"] == "com.example:pkg:1.0"
        assert "spark.hadoop.fs.s3a.endpoint" not in conf
        assert SparkSessionManager.is_active()
        assert SparkSessionManager.get_session_config()["executor_instances"] == 6

    def test_s3a_settings_when_minio_given(self):
        builder, _ = make_builder()
        cluster = ClusterConfig(packages=[])
        minio = MinIOConfig(endpoint="minio:9000", access_key="a", secret_key="s")
        with patch("taxi_tips.jobs.utils.spark_manager.SparkSession") as spark_cls:
            spark_cls.builder = builder
            SparkSessionManager.get_session("TipJob", cluster, minio)

        conf = config_calls(builder)
        assert conf["spark.hadoop.fs.s3a.endpoint"] == "http://minio:9000"
        assert "hadoop-aws" in conf["spark.jars.packages"]

    def test_returns_existing_session(self):
        existing = MagicMock()
        SparkSessionManager._instance = existing
        assert SparkSessionManager.get_session("Other", ClusterConfig()) is existing

    def test_creation_failure_wrapped(self):
        builder, _ = make_builder()
        builder.getOrCreate.side_effect = RuntimeError("cluster unreachable")
        with patch("taxi_tips.jobs.utils.spark_manager.SparkSession") as spark_cls:
            spark_cls.builder = builder
            with pytest.raises(SparkSessionError, match="cluster unreachable"):
                SparkSessionManager.get_session("TipJob", ClusterConfig())
        assert not SparkSessionManager.is_active()


class TestStopSession:
    """Tests for SparkSessionManager.stop_session."""

    def test_stop_clears_instance(self):
        session = MagicMock()
        SparkSessionManager._instance = session
        SparkSessionManager.stop_session()
        session.stop.assert_called_once()
        assert not SparkSessionManager.is_active()

    def test_stop_twice_is_safe(self):
        SparkSessionManager._instance = MagicMock()
        SparkSessionManager.stop_session()
        SparkSessionManager.stop_session()
        assert not SparkSessionManager.is_active()

    def test_stop_failure_raises_and_clears(self):
        session = MagicMock()
        session.stop.side_effect = RuntimeError("boom")
        SparkSessionManager._instance = session
        with pytest.raises(SparkSessionError):
            SparkSessionManager.stop_session()
        assert not SparkSessionManager.is_active()

    def test_get_session_config_without_session_raises(self):
        with pytest.raises(SparkSessionError):
            SparkSessionManager.get_session_config()
