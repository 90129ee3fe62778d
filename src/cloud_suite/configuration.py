"""
Loading of the cloud test configuration.

The configuration file is named by the ``CLOUD_TEST_CONFIGURATION_FILE``
environment variable and holds Hadoop-style XML properties::

    <configuration>
      <property>
        <name>fs.s3a.access.key</name>
        <value>...</value>
      </property>
    </configuration>

An unset property (or one set to ``unset``) disables the suites; a property
naming a file which does not exist is an error.
"""
import logging
import os
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple
from xml.parsers.expat import ExpatError

import xmltodict
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError
from .keys import (
    COMMITTER_PROPERTY,
    CONFIGURATION_FILE_PROPERTY,
    OUTPUTCOMMITTER_FACTORY_CLASS,
    OUTPUTCOMMITTER_FACTORY_DEFAULT,
    UNSET_PROPERTY,
)

logger = logging.getLogger(__name__)


def load_environment() -> bool:
    """Load a `.env` file found from the working directory upwards.

    Variables already in the environment take precedence.

    Returns:
        bool: True if a file defining variables was found
    """
    return load_dotenv(dotenv_path=find_dotenv(usecwd=True))


load_environment()


class OnceFlag:
    """Thread-safe boolean which can only go from unset to set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._set = False

    def get_and_set(self) -> bool:
        """Set the flag, returning its previous value."""
        with self._lock:
            previous = self._set
            self._set = True
            return previous

    @property
    def is_set(self) -> bool:
        return self._set


# Shared by every suite in the process so the load is only announced once
_config_logged = OnceFlag()


@dataclass(frozen=True)
class SuiteConfiguration:
    """Immutable set of string options loaded for a test run.

    Instances compare by value but are not hashable.
    """
    options: Mapping[str, str] = field(default_factory=dict)
    source: Optional[str] = None

    __hash__ = None

    def __post_init__(self):
        object.__setattr__(self, 'options', MappingProxyType(dict(self.options)))

    def __contains__(self, key) -> bool:
        return key in self.options

    def __iter__(self) -> Iterator[str]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def items(self) -> Iterable[Tuple[str, str]]:
        return self.options.items()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.options.get(key, default)

    def get_trimmed(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a value with leading and trailing whitespace removed."""
        value = self.options.get(key)
        if value is None:
            return default
        return value.strip()

    def get_int(self, key: str, default: int) -> int:
        value = self.get_trimmed(key)
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"Option {key} is not an integer: {value!r}")

    def get_boolean(self, key: str, default: bool) -> bool:
        value = (self.get_trimmed(key) or '').lower()
        if value == 'true':
            return True
        if value == 'false':
            return False
        return default

    @property
    def committer(self) -> Optional[str]:
        """The committer factory selected for this run."""
        return self.options.get(OUTPUTCOMMITTER_FACTORY_CLASS)

    def with_options(self, updates: Mapping[str, str]) -> 'SuiteConfiguration':
        """Return a copy with the given options added or replaced."""
        merged = dict(self.options)
        merged.update(updates)
        return SuiteConfiguration(merged, self.source)


def _get_property(environ: Mapping[str, str], name: str) -> Optional[str]:
    """Get a trimmed property value; empty and ``unset`` values count as missing."""
    value = (environ.get(name) or '').strip()
    if not value or value == UNSET_PROPERTY:
        return None
    return value


def read_configuration_file(path: str) -> Dict[str, str]:
    """Read the properties of a Hadoop XML configuration file.

    Args:
        path: Path of the XML file

    Returns:
        dict: Property names mapped to their values

    Raises:
        ConfigurationError: If the file is not a valid configuration file
    """
    try:
        with open(path, 'rb') as f:
            data = xmltodict.parse(f, strip_whitespace=False)
    except ExpatError as e:
        logger.error(f"Error parsing configuration file {path}: {str(e)}")
        raise ConfigurationError(f"Invalid configuration file {path}: {str(e)}")

    if 'configuration' not in data:
        raise ConfigurationError(
            f"Invalid configuration file {path}: root element is not <configuration>")

    root = data['configuration']
    if not isinstance(root, dict):
        # <configuration/> or whitespace only
        return {}

    properties = root.get('property') or []
    if not isinstance(properties, list):
        properties = [properties]

    options = {}
    for prop in properties:
        if not isinstance(prop, dict) or not prop.get('name'):
            continue
        value = prop.get('value')
        options[prop['name'].strip()] = value if isinstance(value, str) else ''
    return options


def load_configuration(environ: Optional[Mapping[str, str]] = None) -> Optional[SuiteConfiguration]:
    """Load the test configuration named by ``CLOUD_TEST_CONFIGURATION_FILE``.

    The committer is chosen from the ``CLOUD_TEST_COMMITTER`` property, then
    the value in the file, then the default factory; the choice is written
    back into the returned configuration.

    Args:
        environ: Properties to read; defaults to the process environment

    Returns:
        SuiteConfiguration or None if no configuration file was named

    Raises:
        FileNotFoundError: If the named file does not exist
    """
    environ = os.environ if environ is None else environ
    filename = _get_property(environ, CONFIGURATION_FILE_PROPERTY)
    logger.debug(f"Configuration property = `{environ.get(CONFIGURATION_FILE_PROPERTY, '')}`")
    if filename is None:
        return None

    if not os.path.exists(filename):
        raise FileNotFoundError(
            f"No file '{filename}' in property {CONFIGURATION_FILE_PROPERTY}")

    if not _config_logged.get_and_set():
        logger.info(f"Loading configuration from {filename}")
    options = read_configuration_file(filename)

    # setup the committer from any property passed in
    configured = options.get(OUTPUTCOMMITTER_FACTORY_CLASS) or OUTPUTCOMMITTER_FACTORY_DEFAULT
    committer = _get_property(environ, COMMITTER_PROPERTY) or configured
    if committer != OUTPUTCOMMITTER_FACTORY_DEFAULT:
        logger.info(f"Using committer {committer}")
    options[OUTPUTCOMMITTER_FACTORY_CLASS] = committer

    return SuiteConfiguration(options, filename)


def overlay_configuration(config: SuiteConfiguration, keys: Iterable[str],
                          environ: Optional[Mapping[str, str]] = None) -> SuiteConfiguration:
    """Overlay environment properties onto a configuration.

    Keys which are not set in the environment, or are set to ``unset``,
    keep their configured value.
    """
    environ = os.environ if environ is None else environ
    updates = {}
    for key in keys:
        value = environ.get(key)
        if value is not None and value != UNSET_PROPERTY:
            updates[key] = value
    return config.with_options(updates)
