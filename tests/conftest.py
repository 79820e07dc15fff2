import pytest

from config import TestingSettings
from logging_config import configure_logging


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Point log output at the current test's stderr, before any logger is cached."""
    configure_logging(TestingSettings())
