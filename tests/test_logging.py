"""Tests for logging setup."""

import logging

from prosescope.logging import configure_logging, get_logger


class TestLogging:
    def test_module_loggers_share_hierarchy(self):
        assert get_logger("walker").name == "prosescope.walker"
        assert get_logger().name == "prosescope"

    def test_verbose_sets_debug(self):
        logger = configure_logging(verbose=True)
        assert logger.level == logging.DEBUG
        logger = configure_logging()
        assert logger.level == logging.WARNING

    def test_handlers_replaced_not_stacked(self, tmp_path):
        configure_logging()
        logger = configure_logging(log_file=tmp_path / "prosescope.log")
        assert len(logger.handlers) == 2
        for handler in logger.handlers:
            handler.close()
        logger = configure_logging()
        assert len(logger.handlers) == 1
