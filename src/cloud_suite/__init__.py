"""Test suite support for Spark and Hadoop-style cloud object stores."""

from .configuration import (
    OnceFlag,
    SuiteConfiguration,
    load_configuration,
    overlay_configuration,
    read_configuration_file,
)
from .errors import (
    CloudSuiteError,
    ConfigurationError,
    DuplicateTestNameError,
    InvalidFilesystemError,
    MissingOptionError,
    NoConfigurationError,
    NoFilesystemError,
)
from .filesystem import FilesystemBinding, is_local_filesystem
from .suite import CloudSuite, DeclaredTest, ctest

__all__ = [
    'CloudSuite',
    'DeclaredTest',
    'ctest',
    'SuiteConfiguration',
    'OnceFlag',
    'load_configuration',
    'overlay_configuration',
    'read_configuration_file',
    'FilesystemBinding',
    'is_local_filesystem',
    'CloudSuiteError',
    'ConfigurationError',
    'DuplicateTestNameError',
    'InvalidFilesystemError',
    'MissingOptionError',
    'NoConfigurationError',
    'NoFilesystemError',
]
