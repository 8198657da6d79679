from __future__ import annotations

import logging
import os
import unittest
from unittest import mock

from customsops.observability.logging import QUIET_LOGGERS, RedactKeysFilter, get_logger


def _record(msg, *args):
    return logging.LogRecord("httpx", logging.INFO, __file__, 1, msg, args, None)


class RedactKeysFilterTests(unittest.TestCase):
    def test_redacts_function_key_and_signature(self):
        record = _record(
            'HTTP Request: POST %s "%s"',
            "https://logic.example.test/workflows/1/triggers/manual/paths/invoke?sp=%2Frun&sig=abc123&sv=1.0",
            "HTTP/1.1 202 Accepted",
        )

        self.assertTrue(RedactKeysFilter().filter(record))

        message = record.getMessage()
        self.assertNotIn("abc123", message)
        self.assertIn("&sig=***&sv=1.0", message)
        self.assertIn("HTTP/1.1 202 Accepted", message)

    def test_redacts_code_in_plain_message(self):
        record = _record("GET https://fn.example.test/api/logs?code=s3cr3t failed")
        RedactKeysFilter().filter(record)
        self.assertEqual(record.getMessage(), "GET https://fn.example.test/api/logs?code=*** failed")

    def test_leaves_other_messages_alone(self):
        record = _record("event=%s %s", "tracking.recorded", {"mrn": "24BE0001"})
        RedactKeysFilter().filter(record)
        self.assertEqual(record.args, ("tracking.recorded", {"mrn": "24BE0001"}))


class GetLoggerTests(unittest.TestCase):
    def test_level_from_environment(self):
        with mock.patch.dict(os.environ, {"CUSTOMSOPS_LOG_LEVEL": "debug"}):
            logger = get_logger("customsops.test.level")
        self.assertEqual(logger.level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        with mock.patch.dict(os.environ, {"CUSTOMSOPS_LOG_LEVEL": "chatty"}):
            logger = get_logger("customsops.test.fallback")
        self.assertEqual(logger.level, logging.INFO)

    def test_http_clients_are_quiet(self):
        get_logger("customsops.test.quiet")
        for name in QUIET_LOGGERS:
            self.assertGreaterEqual(logging.getLogger(name).level, logging.WARNING)

    def test_root_handler_redacts(self):
        get_logger("customsops.test.handler")
        filters = [f for h in logging.getLogger().handlers for f in h.filters]
        self.assertTrue(any(isinstance(f, RedactKeysFilter) for f in filters))


if __name__ == "__main__":
    unittest.main()
