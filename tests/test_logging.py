"""Tests for app.core.logging: root configuration and UTC timestamps."""

import logging
import time
import unittest

from app.core.logging import LOG_DATE_FORMAT, configure_logging
from tests.support import make_settings


class TestConfigureLogging(unittest.TestCase):
    def setUp(self) -> None:
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level
        self.root.handlers = []

    def tearDown(self) -> None:
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)

    def test_timestamps_are_utc(self) -> None:
        configure_logging(make_settings(LOG_LEVEL="INFO"))
        self.assertTrue(self.root.handlers)
        formatter = self.root.handlers[0].formatter
        self.assertIs(formatter.converter, time.gmtime)

        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.created = 0.0
        self.assertEqual(formatter.formatTime(record, LOG_DATE_FORMAT), "1970-01-01T00:00:00Z")

    def test_engine_logger_quiet_without_debug(self) -> None:
        configure_logging(make_settings(LOG_LEVEL="DEBUG", DEBUG=False))
        self.assertEqual(logging.getLogger("sqlalchemy.engine").level, logging.WARNING)
        self.assertEqual(self.root.level, logging.DEBUG)
