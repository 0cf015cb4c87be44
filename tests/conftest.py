"""Root pytest configuration for all tests.

This conftest applies to all test types (unit and integration).
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop handlers the CLI attaches to the 'src' logger during a test."""
    yield
    app_logger = logging.getLogger("src")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.NOTSET)
