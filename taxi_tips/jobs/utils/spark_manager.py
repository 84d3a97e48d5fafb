"""
Spark Session Manager using Singleton Pattern.

This module provides centralized SparkSession management for the tip regression
job. The session is sized from ClusterConfig (executor instances, executor
memory overhead, attached packages) and optionally wired for MinIO/S3A when the
trip data lives in object storage.

Design Pattern:
    - Singleton: Ensures only one SparkSession exists per application

Lifecycle:
    The job acquires the session once, hands it explicitly to every stage and
    releases it with stop_session() on every exit path.
"""
import logging
from typing import Optional, Dict, Any
from pyspark.sql import SparkSession

from .config import ClusterConfig, MinIOConfig

logger = logging.getLogger(__name__)


class SparkSessionError(Exception):
    """
    Custom exception for SparkSession initialization failures

    :raises SparkSessionError: Thrown when SparkSession creation fails or configuration is invalid
    """
    pass


class SparkSessionManager:
    """
    Singleton Spark session manager.

    Architecture:
        - Uses PySpark's built-in thread-safe getOrCreate() for singleton behavior
        - Applies cluster sizing from ClusterConfig before session creation
        - Adds S3A settings only when a MinIOConfig is supplied

    Example:
        >>> spark = SparkSessionManager.get_session("TipRegression", ClusterConfig())
        >>> df = spark.read.parquet("s3a://bucket/data")
        >>> SparkSessionManager.stop_session()  # Cleanup when done
    """

    _instance: Optional[SparkSession] = None
    _session_config: Dict[str, Any] = {}

    S3A_PACKAGES = [
        "org.apache.hadoop:hadoop-aws:3.3.4",
        "com.amazonaws:aws-java-sdk-bundle:1.12.262",
    ]

    @classmethod
    def _validate_s3_config(cls, minio: MinIOConfig) -> Dict[str, str]:
        """
        Validate the S3/MinIO connection settings.

        :returns: Dictionary containing validated MinIO configuration
        :raises SparkSessionError: If endpoint or credentials are missing
        """
        config = {
            'endpoint': minio.endpoint,
            'access_key': minio.access_key,
            'secret_key': minio.secret_key
        }

        if not config['endpoint']:
            raise SparkSessionError("MINIO_ENDPOINT cannot be empty")

        if config['endpoint'].startswith(('http://', 'https://')):
            logger.warning(
                f"MINIO_ENDPOINT should not include protocol. "
                f"Got: {config['endpoint']}. Stripping protocol."
            )
            config['endpoint'] = config['endpoint'].replace('http://', '').replace('https://', '')

        if not config['access_key'] or not config['secret_key']:
            raise SparkSessionError("MINIO_ACCESS_KEY and MINIO_SECRET_KEY must be set")

        logger.info(f"MinIO configuration validated: endpoint={config['endpoint']}")
        return config

    @classmethod
    def _build_packages(cls, cluster: ClusterConfig, enable_s3: bool) -> str:
        packages = list(cluster.packages)
        if enable_s3:
            packages.extend(p for p in cls.S3A_PACKAGES if p not in packages)
        return ",".join(packages)

    @classmethod
    def get_session(
            cls,
            app_name: str,
            cluster: ClusterConfig,
            minio: Optional[MinIOConfig] = None
    ) -> SparkSession:
        """
        Get or create the Spark session.

        :params app_name: Name of the Spark application (used in logs and UI)
        :params cluster: Executor sizing and package coordinates
        :params minio: MinIO settings; when given, S3A access is configured
        :returns SparkSession: Configured SparkSession instance (singleton)
        :raises SparkSessionError: If the cluster cannot be reached or packages fail to resolve
        :raises ValueError: If app_name is empty

        Note:
            - Subsequent calls return existing session (configuration changes ignored)
            - Call stop_session() to destroy session and allow reconfiguration
        """
        if not app_name or not app_name.strip():
            raise ValueError("app_name cannot be empty")

        app_name = app_name.strip()
        enable_s3 = minio is not None

        if cls._instance is None:
            try:
                logger.info(
                    f"Creating new SparkSession: {app_name} "
                    f"(master={cluster.master}, executors={cluster.executor_instances}, "
                    f"memoryOverhead={cluster.executor_memory_overhead})"
                )

                builder = SparkSession.builder \
                    .appName(app_name) \
                    .master(cluster.master) \
                    .config("spark.executor.instances", str(cluster.executor_instances)) \
                    .config("spark.executor.memoryOverhead", cluster.executor_memory_overhead) \
                    .config("spark.sql.adaptive.enabled", "true")

                packages = cls._build_packages(cluster, enable_s3)
                if packages:
                    logger.info(f"Attaching packages: {packages}")
                    builder = builder.config("spark.jars.packages", packages)

                if enable_s3:
                    minio_config = cls._validate_s3_config(minio)
                    builder = builder \
                        .config("spark.hadoop.fs.s3a.endpoint", f"http://{minio_config['endpoint']}") \
                        .config("spark.hadoop.fs.s3a.access.key", minio_config['access_key']) \
                        .config("spark.hadoop.fs.s3a.secret.key", minio_config['secret_key']) \
                        .config("spark.hadoop.fs.s3a.path.style.access", "true") \
                        .config("spark.hadoop.fs.s3a.impl", "org.apache.hadoop.fs.s3a.S3AFileSystem")

                cls._instance = builder.getOrCreate()
                logger.info("SparkSession created successfully")

                cls._session_config = {
                    'app_name': app_name,
                    'master': cluster.master,
                    'executor_instances': cluster.executor_instances,
                    'executor_memory_overhead': cluster.executor_memory_overhead,
                    'packages': packages,
                    'enable_s3': enable_s3,
                    'spark_version': cls._instance.version
                }

            except Exception as e:
                logger.error(f"Failed to create SparkSession: {e}")
                cls._instance = None
                raise SparkSessionError(f"SparkSession creation failed: {e}") from e
        else:
            logger.info(f"Returning existing SparkSession (ignoring app_name: {app_name})")

        return cls._instance

    @classmethod
    def stop_session(cls) -> None:
        """
        Stop and cleanup the Spark session.

        Note:
            - Safe to call multiple times (idempotent)
            - Logs warnings if session was already stopped
            - Resets singleton state to allow new session creation
        """
        if cls._instance is not None:
            try:
                logger.info("Stopping SparkSession")
                cls._instance.stop()
                cls._instance = None
                cls._session_config = {}
                logger.info("SparkSession stopped successfully")
            except Exception as e:
                logger.error(f"Error stopping SparkSession: {e}")
                cls._instance = None
                cls._session_config = {}
                raise SparkSessionError(f"Failed to stop SparkSession: {e}") from e
        else:
            logger.warning("stop_session() called but no active session exists")

    @classmethod
    def get_session_config(cls) -> Dict[str, Any]:
        """
        Get the current session configuration.

        :returns: Dictionary containing session configuration metadata
        :raises SparkSessionError: If no active session exists
        """
        if cls._instance is None:
            raise SparkSessionError("No active SparkSession")

        return cls._session_config.copy()

    @classmethod
    def is_active(cls) -> bool:
        """
        Check if a SparkSession is currently active.

        :returns: True if session exists and is active, False otherwise
        """
        return cls._instance is not None
