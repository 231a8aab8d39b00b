"""
Pytest configuration and fixtures for unitsync tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.watcher: source trees, configs and sync recorders
"""

import logging

import pytest

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.watcher",
]


@pytest.fixture(autouse=True)
def reset_unitsync_logger():
    """
    Drop handlers the CLI installs on the "unitsync" logger.

    Handlers bound to a captured stderr would otherwise outlive the test.
    """
    yield
    logger = logging.getLogger("unitsync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
