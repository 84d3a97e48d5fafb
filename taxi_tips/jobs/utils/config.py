"""
Configuration Management
Centralized configuration for the tip regression job using Singleton pattern.
"""

import os
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional
from pathlib import Path


def _split_packages(raw: str) -> List[str]:
    return [coord.strip() for coord in raw.split(",") if coord.strip()]


@dataclass
class ClusterConfig:
    """
    Spark cluster sizing with environment variable support.

    Executor counts, memory overhead and attached package coordinates are read
    once at session start; changing them requires a new session.
    """

    master: str = field(
        default_factory=lambda: os.getenv("SPARK_MASTER", "local[*]")
    )
    executor_instances: int = field(
        default_factory=lambda: int(os.getenv("SPARK_EXECUTOR_INSTANCES", "4"))
    )
    executor_memory_overhead: str = field(
        default_factory=lambda: os.getenv("SPARK_EXECUTOR_MEMORY_OVERHEAD", "4096m")
    )
    packages: List[str] = field(
        default_factory=lambda: _split_packages(os.getenv("SPARK_PACKAGES", ""))
    )

    def __post_init__(self):
        """Validate configuration after initialization"""
        if not self.master:
            raise ValueError("SPARK_MASTER must be set")
        if self.executor_instances < 1:
            raise ValueError(
                f"SPARK_EXECUTOR_INSTANCES must be >= 1, got {self.executor_instances}"
            )
        if not self.executor_memory_overhead:
            raise ValueError("SPARK_EXECUTOR_MEMORY_OVERHEAD must be set")


@dataclass
class MinIOConfig:
    """
    MinIO/S3 configuration with environment variable support.

    Only consulted when the trip data lives behind an s3a:// path.
    """

    endpoint: str = field(
        default_factory=lambda: os.getenv("MINIO_ENDPOINT", "localhost:9000")
    )
    access_key: str = field(
        default_factory=lambda: os.getenv("MINIO_ACCESS_KEY", "minioadmin")
    )
    secret_key: str = field(
        default_factory=lambda: os.getenv("MINIO_SECRET_KEY", "minioadmin")
    )
    bucket: str = field(
        default_factory=lambda: os.getenv("MINIO_BUCKET", "nyc-taxi-pipeline")
    )
    trip_fare_path: str = "gold/nyc_taxi/trip_fare"

    def __post_init__(self):
        """Validate configuration after initialization"""
        if not self.endpoint:
            raise ValueError("MINIO_ENDPOINT must be set")
        if not self.bucket:
            raise ValueError("MINIO_BUCKET must be set")


class JobConfig:
    """
    Singleton configuration for the tip regression job.

    Holds cluster sizing, storage location of the joined trip/fare table and
    the directory where plots and the markdown report are written.
    """

    _instance: Optional["JobConfig"] = None
    _initialized: bool = False

    def __new__(cls):
        """Singleton pattern: ensure only one instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration (only once due to singleton)"""
        if JobConfig._initialized:
            return

        report_dir = os.getenv("REPORT_DIR")
        if report_dir:
            self._report_dir = Path(report_dir)
        else:
            self._report_dir = Path(tempfile.gettempdir()) / "nyc-taxi-tips" / "reports"

        self._cluster = ClusterConfig()
        self._minio = MinIOConfig()
        self._trip_data_path = os.getenv("TRIP_DATA_PATH", "")
        self._trip_table_name = os.getenv("TRIP_TABLE_NAME", "trip_fare")

        JobConfig._initialized = True

    @property
    def report_dir(self) -> Path:
        """
        Get report directory path.

        Creates directory if it doesn't exist (lazy creation).
        """
        self._report_dir.mkdir(parents=True, exist_ok=True)
        return self._report_dir

    @property
    def cluster(self) -> ClusterConfig:
        """Get cluster sizing configuration"""
        return self._cluster

    @property
    def minio(self) -> MinIOConfig:
        """Get MinIO configuration"""
        return self._minio

    @property
    def trip_table_name(self) -> str:
        """Logical name the trip table is registered under"""
        return self._trip_table_name

    @property
    def trip_data_path(self) -> str:
        """
        Get the location of the joined trip/fare Parquet dataset.

        TRIP_DATA_PATH wins when set; otherwise the path is built from the
        MinIO bucket.

        Examples:
            >>> config = JobConfig()
            >>> config.trip_data_path
            's3a://nyc-taxi-pipeline/gold/nyc_taxi/trip_fare'
        """
        if self._trip_data_path:
            return self._trip_data_path
        return f"s3a://{self._minio.bucket}/{self._minio.trip_fare_path}"

    @property
    def uses_s3a(self) -> bool:
        """Check if the trip data is read through the S3A filesystem"""
        return self.trip_data_path.startswith("s3a://")

    @classmethod
    def reset(cls):
        """
        Reset singleton instance.

        Useful for testing purposes only. Should not be used in production code.
        """
        cls._instance = None
        cls._initialized = False
