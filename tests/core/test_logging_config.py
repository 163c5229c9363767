"""
Tests for logging setup.
"""

import logging
import pytest

from assessment_service.core.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_single_handler_with_service_name(self, restore_root_logger):
        setup_logging("DEBUG", "assessment")
        setup_logging("DEBUG", "assessment")

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.level == logging.DEBUG
        assert "ASSESSMENT:" in restore_root_logger.handlers[0].formatter._fmt

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        setup_logging("LOUD")

        assert restore_root_logger.level == logging.INFO

    def test_noisy_libraries_are_quieted(self, restore_root_logger):
        setup_logging("DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
