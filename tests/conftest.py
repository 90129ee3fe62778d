"""Global test configuration and fixtures."""
import logging
import sys
from pathlib import Path

import pytest
from fsspec import filesystem

# Add the source tree to the Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))

# Configure logging for tests
logging.basicConfig(level=logging.INFO)


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "integration: test runs against a real object store")


@pytest.fixture
def memory_fs():
    """An empty in-memory filesystem, cleared again after the test."""
    fs = filesystem("memory")
    fs.store.clear()
    fs.pseudo_dirs.clear()
    fs.pseudo_dirs.append("")
    try:
        yield fs
    finally:
        fs.store.clear()
        fs.pseudo_dirs.clear()
        fs.pseudo_dirs.append("")


@pytest.fixture
def configuration_file(tmp_path):
    """Factory writing a test configuration file with the given options."""
    from tests.test_utils import write_configuration

    def factory(options=None):
        return write_configuration(tmp_path, options or {})
    return factory
