"""Exceptions raised by cloud test suites."""


class CloudSuiteError(Exception):
    """Base class for cloud suite errors."""
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ConfigurationError(CloudSuiteError):
    """The test configuration file could not be read."""


class MissingOptionError(ConfigurationError, ValueError):
    """A required configuration option is unset or empty."""
    def __init__(self, key):
        super().__init__(f"Unset/empty configuration option {key}")
        self.key = key


class NoConfigurationError(CloudSuiteError, LookupError):
    """No test configuration was provided to the suite."""
    def __init__(self, message="No cloud test configuration provided"):
        super().__init__(message)


class InvalidFilesystemError(CloudSuiteError, ValueError):
    """The filesystem cannot be used as a test target."""
    def __init__(self, message="Test filesystem cannot be local filesystem"):
        super().__init__(message)


class NoFilesystemError(CloudSuiteError, LookupError):
    """The suite is not bound to a test filesystem."""
    def __init__(self, message="Not bound to a test filesystem"):
        super().__init__(message)


class DuplicateTestNameError(CloudSuiteError, ValueError):
    """A test of the same name has already been declared in the suite."""
    def __init__(self, suite, name):
        super().__init__(f"Duplicate test name in {suite}: {name}")
        self.name = name
