"""Filesystem bindings for cloud test suites."""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlsplit

import fsspec
from fsspec import AbstractFileSystem
from fsspec.implementations.local import LocalFileSystem

from .configuration import SuiteConfiguration
from .errors import InvalidFilesystemError
from .keys import (
    AZURE_ACCOUNT_KEY_PREFIX,
    GS_KEYFILE,
    GS_PROJECT_ID,
    LOCAL_SCHEME,
    S3A_ACCESS_KEY,
    S3A_ENDPOINT,
    S3A_ENDPOINT_REGION,
    S3A_SECRET_KEY,
    S3A_SESSION_TOKEN,
)

logger = logging.getLogger(__name__)

S3_SCHEMES = ('s3', 's3a')
GCS_SCHEMES = ('gs', 'gcs')
AZURE_SCHEMES = ('abfs', 'abfss', 'az')


def filesystem_protocols(fs: AbstractFileSystem) -> Tuple[str, ...]:
    """Get all the protocols a filesystem is registered under."""
    protocol = fs.protocol
    if isinstance(protocol, str):
        return (protocol,)
    return tuple(protocol)


def filesystem_scheme(fs: AbstractFileSystem) -> str:
    return filesystem_protocols(fs)[0]


def is_local_filesystem(fs: AbstractFileSystem) -> bool:
    """Is this a filesystem on the local disk?"""
    return isinstance(fs, LocalFileSystem) or LOCAL_SCHEME in filesystem_protocols(fs)


def filesystem_uri(path: str) -> str:
    """Get the URI of the filesystem holding a path, e.g. ``s3a://bucket``.

    Paths without a scheme are on the local filesystem.
    """
    parts = urlsplit(str(path))
    if not parts.scheme:
        return f"{LOCAL_SCHEME}:///"
    return f"{parts.scheme}://{parts.netloc}"


@dataclass(frozen=True)
class FilesystemBinding:
    """A filesystem instance and the URI it is bound to."""
    fs: AbstractFileSystem
    uri: str

    def qualify(self, path: str) -> str:
        """Qualify an absolute path against the bound filesystem."""
        base = self.uri if self.uri.endswith('://') else self.uri.rstrip('/')
        return base + '/' + str(path).lstrip('/')


def bind_filesystem(fs: AbstractFileSystem, uri: Optional[str] = None) -> FilesystemBinding:
    """Create a binding to a test filesystem.

    Args:
        fs: Filesystem to bind
        uri: URI of the filesystem; defaults to ``<scheme>://``

    Raises:
        InvalidFilesystemError: If the filesystem is the local filesystem
    """
    if is_local_filesystem(fs):
        raise InvalidFilesystemError()
    if uri is not None and urlsplit(uri).scheme == LOCAL_SCHEME:
        raise InvalidFilesystemError()
    return FilesystemBinding(fs, uri or f"{filesystem_scheme(fs)}://")


def storage_options(uri: str, config: Optional[SuiteConfiguration]) -> Dict[str, Any]:
    """Build the fsspec storage options for a URI from the test configuration.

    Args:
        uri: Filesystem URI, e.g. ``s3a://bucket``
        config: Test configuration holding the credentials

    Returns:
        dict: Keyword arguments for the filesystem constructor
    """
    if config is None:
        return {}
    parts = urlsplit(uri)
    scheme = parts.scheme
    options: Dict[str, Any] = {}

    if scheme in S3_SCHEMES:
        for key, option in ((S3A_ACCESS_KEY, 'key'),
                            (S3A_SECRET_KEY, 'secret'),
                            (S3A_SESSION_TOKEN, 'token')):
            value = config.get_trimmed(key)
            if value:
                options[option] = value
        client_kwargs = {}
        endpoint = config.get_trimmed(S3A_ENDPOINT)
        if endpoint:
            if '://' not in endpoint:
                endpoint = f"https://{endpoint}"
            client_kwargs['endpoint_url'] = endpoint
        region = config.get_trimmed(S3A_ENDPOINT_REGION)
        if region:
            client_kwargs['region_name'] = region
        if client_kwargs:
            options['client_kwargs'] = client_kwargs

    elif scheme in GCS_SCHEMES:
        project = config.get_trimmed(GS_PROJECT_ID)
        if project:
            options['project'] = project
        keyfile = config.get_trimmed(GS_KEYFILE)
        if keyfile:
            options['token'] = keyfile

    elif scheme in AZURE_SCHEMES:
        # container@account.dfs.core.windows.net
        host = parts.netloc.rpartition('@')[2]
        if host:
            options['account_name'] = host.split('.')[0]
            account_key = config.get_trimmed(AZURE_ACCOUNT_KEY_PREFIX + host)
            if account_key:
                options['account_key'] = account_key

    return options


def new_filesystem(uri: str, config: Optional[SuiteConfiguration]) -> AbstractFileSystem:
    """Create a new, uncached filesystem instance for a URI."""
    scheme = urlsplit(uri).scheme or LOCAL_SCHEME
    logger.debug(f"Creating filesystem for {uri}")
    return fsspec.filesystem(scheme, skip_instance_cache=True,
                             **storage_options(uri, config))


_registry_lock = threading.Lock()
_registered: Dict[str, AbstractFileSystem] = {}


def register_filesystem(uri: str, fs: AbstractFileSystem) -> None:
    """Make ``fs`` the instance returned for ``uri`` within this process."""
    with _registry_lock:
        _registered[filesystem_uri(uri)] = fs


def unregister_filesystem(uri: str) -> Optional[AbstractFileSystem]:
    with _registry_lock:
        return _registered.pop(filesystem_uri(uri), None)


def registered_filesystem(uri: str) -> Optional[AbstractFileSystem]:
    """Get the filesystem registered for the filesystem of a URI, if any."""
    with _registry_lock:
        return _registered.get(filesystem_uri(uri))


def lookup_filesystem(uri: str, config: Optional[SuiteConfiguration]) -> AbstractFileSystem:
    """Get the filesystem for a URI.

    The instance registered for the URI's filesystem is returned if there is
    one, otherwise a new instance is created.
    """
    fs = registered_filesystem(uri)
    if fs is not None:
        return fs
    return new_filesystem(uri, config)
