"""
Base class for test suites run against cloud object stores.

A suite loads the cloud test configuration when its class is created.
Tests declared with :func:`ctest` are registered as runnable only if the
suite is enabled and their extra condition holds; otherwise they are
registered as skipped, so they still appear in the test report.

Example::

    class S3AListingSuite(CloudSuite):

        @classmethod
        def enabled(cls):
            return super().enabled() and S3A_TEST_URI in cls.conf()

        def setUp(self):
            super().setUp()
            self.create_filesystem(self.required_option(S3A_TEST_URI))

        @ctest("List the test directory")
        def test_list(self):
            ...
"""
import functools
import importlib.util
import logging
import re
import tempfile
import unittest
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Optional, Tuple, Union

from fsspec import AbstractFileSystem
from pyspark import SparkConf

from . import spark
from .configuration import SuiteConfiguration, load_configuration
from .errors import (
    DuplicateTestNameError,
    MissingOptionError,
    NoConfigurationError,
    NoFilesystemError,
)
from .filesystem import (
    FilesystemBinding,
    bind_filesystem,
    filesystem_uri,
    lookup_filesystem,
    new_filesystem,
    register_filesystem,
)
from .keys import (
    SCALE_TEST_SIZE_FACTOR,
    SCALE_TEST_SIZE_FACTOR_DEFAULT,
    STAGING,
    TEST_DIR_ROOT,
)

logger = logging.getLogger(__name__)

Condition = Union[bool, Callable[[type], bool], None]

_CTEST_ATTR = '__ctest__'
_RULE = '-------------------------------------------'


@dataclass(frozen=True)
class _Declaration:
    name: str
    detail: str
    extra_condition: Condition


@dataclass(frozen=True)
class DeclaredTest:
    """A conditionally declared test and how it was registered."""
    name: str
    method_name: str
    runnable: bool
    detail: str = ''
    skip_reason: Optional[str] = None


def ctest(detail: str = '', extra_condition: Condition = None, name: Optional[str] = None):
    """Mark a suite method as a conditional test.

    The test only runs if the suite is enabled and ``extra_condition`` holds;
    otherwise it is reported as skipped.

    Args:
        detail: Detailed text logged before the test runs
        extra_condition: Boolean, or predicate called with the suite class
        name: Test name; defaults to the method name
    """
    def decorator(func):
        setattr(func, _CTEST_ATTR, _Declaration(name or func.__name__, detail, extra_condition))
        return func
    return decorator


def _test_method_name(name: str) -> str:
    if name.isidentifier() and name.startswith('test'):
        return name
    slug = re.sub(r'\W+', '_', name.strip().lower()).strip('_')
    return f"test_{slug}"


def _holds(condition: Condition, suite: type) -> bool:
    if condition is None:
        return True
    if callable(condition):
        return bool(condition(suite))
    return bool(condition)


class CloudSuite(unittest.TestCase):
    """A cloud test suite.

    Adds automatic loading of a configuration file with login credentials
    and options to enable/disable tests, and a mechanism to conditionally
    declare tests based on these details.
    """

    # The configuration as loaded; None when no configuration was provided
    suite_configuration: Optional[SuiteConfiguration] = None

    # The test directory; derived from the class name, without any filesystem
    TEST_DIR = PurePosixPath(TEST_DIR_ROOT) / 'CloudSuite'

    clean_fs_in_teardown_enabled = True

    # Per class, created on first registration
    _declared_tests: Dict[str, DeclaredTest]
    _registrations: Dict[str, Tuple[_Declaration, Callable]]

    _binding: Optional[FilesystemBinding] = None
    sc = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.TEST_DIR = PurePosixPath(TEST_DIR_ROOT) / cls.__name__
        cls.suite_configuration = load_configuration()
        inherited = {}
        for klass in reversed(cls.__mro__[1:]):
            inherited.update(vars(klass).get('_registrations', {}))

        for attr, value in list(vars(cls).items()):
            declaration = getattr(value, _CTEST_ATTR, None)
            if not isinstance(declaration, _Declaration):
                continue
            delattr(cls, attr)
            cls.conditional_test(declaration.name, value,
                                 detail=declaration.detail,
                                 extra_condition=declaration.extra_condition)

        # inherited tests are gated by this class's enabled()
        for method_name, (declaration, body) in inherited.items():
            if method_name in vars(cls):
                continue
            cls.conditional_test(declaration.name, body,
                                 detail=declaration.detail,
                                 extra_condition=declaration.extra_condition)

    @classmethod
    def _own(cls, attr: str) -> dict:
        registry = vars(cls).get(attr)
        if registry is None:
            registry = {}
            setattr(cls, attr, registry)
        return registry

    @classmethod
    def enabled(cls) -> bool:
        """Is this test suite enabled?

        The base class is enabled if the configuration file loaded; subclasses
        can extend this with extra probes, such as for bindings to an object
        store. If this is false, tests declared with ``ctest`` are skipped.
        """
        return cls.suite_configuration is not None

    @classmethod
    def conf(cls) -> SuiteConfiguration:
        """Get the configuration, which must have been provided."""
        if cls.suite_configuration is None:
            raise NoConfigurationError()
        return cls.suite_configuration

    @classmethod
    def required_option(cls, key: str) -> str:
        """Get a required option.

        Args:
            key: Option to look up

        Returns:
            str: The trimmed value

        Raises:
            MissingOptionError: If the option is unset or empty
        """
        value = cls.conf().get_trimmed(key)
        if not value:
            raise MissingOptionError(key)
        return value

    @classmethod
    def conditional_test(cls, name: str, body: Callable, detail: str = '',
                         extra_condition: Condition = None) -> DeclaredTest:
        """Register a test which runs only when the suite is enabled.

        Args:
            name: Test name; names not starting with ``test`` become ``test_<name>``
            body: Test function, called with the test case instance
            detail: Detailed text logged before the test runs
            extra_condition: Boolean, or predicate called with the suite class

        Returns:
            DeclaredTest: How the test was registered

        Raises:
            DuplicateTestNameError: If the suite already has a test of this name
        """
        method_name = _test_method_name(name)
        declared_tests = cls._own('_declared_tests')
        if method_name in declared_tests or method_name in vars(cls):
            raise DuplicateTestNameError(cls.__name__, name)

        enabled = cls.enabled()
        runnable = enabled and _holds(extra_condition, cls)
        skip_reason = None
        if runnable:
            @functools.wraps(body)
            def method(self, *args, **kwargs):
                logger.info(f"{name}\n{detail}\n{_RULE}")
                return body(self, *args, **kwargs)
        else:
            if not enabled:
                skip_reason = f"{cls.__name__} is not enabled"
            else:
                skip_reason = f"Condition for {name} does not hold"
            method = unittest.skip(skip_reason)(body)

        method.__dict__.pop(_CTEST_ATTR, None)
        method.__name__ = method_name
        method.__qualname__ = f"{cls.__qualname__}.{method_name}"
        setattr(cls, method_name, method)

        declared = DeclaredTest(name, method_name, runnable, detail, skip_reason)
        declared_tests[method_name] = declared
        cls._own('_registrations')[method_name] = (
            _Declaration(name, detail, extra_condition), body)
        return declared

    @classmethod
    def declared_tests(cls) -> Dict[str, DeclaredTest]:
        """Get the conditional tests of this suite, including inherited ones."""
        return dict(vars(cls).get('_declared_tests', {}))

    @staticmethod
    def locate_resource(module: str) -> bool:
        """Probe for a module being importable, without importing it."""
        try:
            return importlib.util.find_spec(module) is not None
        except (ImportError, ValueError):
            return False

    @staticmethod
    def is_using_staging_committer(config: SuiteConfiguration) -> bool:
        """Is a staging committer selected in the configuration?"""
        return (config.committer or '').startswith(STAGING)

    def tearDown(self):
        self.clean_filesystem_in_teardown()
        self.reset_spark_context()
        super().tearDown()

    # Filesystem binding

    def set_filesystem(self, fs: AbstractFileSystem, uri: Optional[str] = None) -> None:
        """Update the filesystem.

        Raises:
            InvalidFilesystemError: If ``fs`` is the local filesystem
        """
        self._binding = bind_filesystem(fs, uri)

    def is_filesystem_defined(self) -> bool:
        return self._binding is not None

    def _require_binding(self) -> FilesystemBinding:
        if self._binding is None:
            raise NoFilesystemError()
        return self._binding

    @property
    def filesystem(self) -> AbstractFileSystem:
        return self._require_binding().fs

    @property
    def filesystem_uri(self) -> str:
        return self._require_binding().uri

    def create_filesystem(self, fs_uri: str, register_to_uri: bool = True) -> AbstractFileSystem:
        """Create a filesystem and bind the suite to it.

        A new instance is created for every call, so that different
        configurations can be used.

        Args:
            fs_uri: Filesystem URI
            register_to_uri: Register the instance as the one to use for this URI

        Returns:
            The new filesystem
        """
        fs = new_filesystem(fs_uri, self.conf())
        self.set_filesystem(fs, filesystem_uri(fs_uri))
        if register_to_uri:
            register_filesystem(fs_uri, fs)
        return fs

    def get_filesystem(self, path: str) -> AbstractFileSystem:
        """Get the filesystem of a path.

        This is the registered instance for the path's filesystem, if
        ``create_filesystem`` registered one; otherwise a new instance.
        """
        return lookup_filesystem(filesystem_uri(path), self.conf())

    def suite_path(self, name: str) -> str:
        """Get a fully qualified path under the test directory."""
        return self._require_binding().qualify(str(self.TEST_DIR / name))

    def stat(self, path: str) -> Dict[str, Any]:
        return self.filesystem.info(path)

    def clean_filesystem(self) -> None:
        """Delete the test directory of the bound filesystem."""
        binding = self._require_binding()
        target = binding.qualify(str(self.TEST_DIR))
        logger.info(f"Cleaning {target}")
        if binding.fs.exists(target):
            binding.fs.rm(target, recursive=True)
            if binding.fs.exists(target):
                logger.warning(f"Deleting {target} did not remove it")

    def clean_filesystem_in_teardown(self) -> None:
        """Teardown-time cleanup; exceptions are logged and not raised."""
        try:
            if self.clean_fs_in_teardown_enabled and self.is_filesystem_defined():
                self.clean_filesystem()
        except Exception as e:
            logger.info(f"During cleanup of filesystem: {e}")
            logger.debug("During cleanup of filesystem", exc_info=True)

    # Scale

    def scale_size_factor(self) -> int:
        return self.conf().get_int(SCALE_TEST_SIZE_FACTOR, SCALE_TEST_SIZE_FACTOR_DEFAULT)

    def entry_count(self) -> int:
        """Number of entries in parallelized operations; suites may override."""
        return 10 * self.scale_size_factor()

    @property
    def local_tmp_dir(self) -> Path:
        return Path(tempfile.gettempdir()).resolve()

    # Spark

    def add_suite_configuration_options(self, spark_conf: SparkConf) -> None:
        """Override point to alter the Spark configuration of the suite.

        Called before the test configuration is applied, so the values
        in the configuration file take precedence.
        """
        spark.add_suite_configuration_options(spark_conf)

    def new_spark_conf(self, target: Optional[str] = None) -> SparkConf:
        """Create a Spark configuration.

        All options of the test configuration are added as Hadoop options.

        Args:
            target: Path or URI whose filesystem becomes the default
                filesystem; defaults to the bound filesystem

        Raises:
            NoFilesystemError: If no target is given and no filesystem is bound
        """
        if target is None:
            fs_uri = self._require_binding().uri
        else:
            fs_uri = filesystem_uri(target)
        return spark.new_spark_conf(self.conf(), fs_uri,
                                    customize=self.add_suite_configuration_options)

    def reset_spark_context(self) -> None:
        """Stop any Spark context created by the test."""
        if self.sc is not None:
            try:
                self.sc.stop()
            finally:
                self.sc = None
