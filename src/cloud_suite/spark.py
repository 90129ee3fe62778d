"""Spark configuration for suites running jobs against a test filesystem."""
import logging
from typing import Any, Callable, Optional

from pyspark import SparkConf

from .configuration import SuiteConfiguration
from .keys import (
    BLOCK_SIZE,
    FAST_UPLOAD,
    FAST_UPLOAD_BUFFER,
    FAST_UPLOAD_BUFFER_ARRAY,
    FS_DEFAULT_NAME_KEY,
    MAPREDUCE_OPTIONS,
    MIN_MULTIPART_THRESHOLD,
    MIN_PERMITTED_MULTIPART_SIZE,
    MULTIPART_SIZE,
    ORC_OPTIONS,
    PARQUET_OPTIONS,
    READAHEAD_RANGE,
    SPARK_HADOOP_PREFIX,
)

logger = logging.getLogger(__name__)


def hconf(spark_conf: SparkConf, key: str, value: Any) -> SparkConf:
    """Set a Hadoop option in a Spark configuration."""
    return spark_conf.set(SPARK_HADOOP_PREFIX + key, str(value))


def add_suite_configuration_options(spark_conf: SparkConf) -> None:
    """Apply the options every suite job runs with.

    These are applied before the loaded test configuration, so the
    configuration file can override any of them.
    """
    spark_conf.setAll(MAPREDUCE_OPTIONS.items())
    spark_conf.setAll(ORC_OPTIONS.items())
    spark_conf.setAll(PARQUET_OPTIONS.items())
    hconf(spark_conf, BLOCK_SIZE, 1 * 1024 * 1024)
    hconf(spark_conf, MULTIPART_SIZE, MIN_PERMITTED_MULTIPART_SIZE)
    hconf(spark_conf, READAHEAD_RANGE, 128 * 1024)
    hconf(spark_conf, MIN_MULTIPART_THRESHOLD, MIN_PERMITTED_MULTIPART_SIZE)
    hconf(spark_conf, FAST_UPLOAD, 'true')
    hconf(spark_conf, FAST_UPLOAD_BUFFER, FAST_UPLOAD_BUFFER_ARRAY)


def new_spark_conf(
    config: Optional[SuiteConfiguration],
    fs_uri: str,
    customize: Optional[Callable[[SparkConf], None]] = add_suite_configuration_options,
    master: str = 'local',
) -> SparkConf:
    """Create a Spark configuration whose default filesystem is ``fs_uri``.

    Args:
        config: Test configuration; every option is added as a Hadoop option
        fs_uri: URI of the default filesystem
        customize: Callback applied before the test configuration
        master: Spark master

    Returns:
        SparkConf: The new configuration
    """
    spark_conf = SparkConf(loadDefaults=False)
    if customize is not None:
        customize(spark_conf)
    if config is not None:
        for key, value in config.items():
            hconf(spark_conf, key, value)
    hconf(spark_conf, FS_DEFAULT_NAME_KEY, fs_uri)
    spark_conf.setMaster(master)
    logger.debug(f"Spark configuration for {fs_uri} with master {master}")
    return spark_conf
