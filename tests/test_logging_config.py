import io
import json
import logging
from unittest import TestCase

import structlog

from clinic_billing.config.structlog_config import configure_logging, drop_secrets


class LoggingConfigTests(TestCase):
    def setUp(self):
        self.stream = io.StringIO()
        root = logging.getLogger()
        saved = (list(root.handlers), root.level)
        self.addCleanup(structlog.reset_defaults)
        self.addCleanup(self._restore_root, saved)

    @staticmethod
    def _restore_root(saved):
        handlers, level = saved
        root = logging.getLogger()
        root.handlers[:] = handlers
        root.setLevel(level)

    def _lines(self):
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def test_json_output_carries_logger_and_level(self):
        configure_logging(level="INFO", json_logs=True, stream=self.stream)
        structlog.get_logger("clinic_billing.tests").info("billing.visit_completed", total="100.00")

        (entry,) = self._lines()
        self.assertEqual(entry["event"], "billing.visit_completed")
        self.assertEqual(entry["level"], "info")
        self.assertEqual(entry["logger"], "clinic_billing.tests")
        self.assertIn("timestamp", entry)

    def test_level_filter(self):
        configure_logging(level="WARNING", json_logs=True, stream=self.stream)
        log = structlog.get_logger("clinic_billing.tests")
        log.info("ignored")
        log.warning("billing.submission_failed")
        self.assertEqual([e["event"] for e in self._lines()], ["billing.submission_failed"])

    def test_tokens_are_masked(self):
        configure_logging(level="INFO", json_logs=True, stream=self.stream)
        structlog.get_logger("clinic_billing.tests").info(
            "discount.authorized", discount_token="cap-1", doctor_id="doc-1"
        )
        (entry,) = self._lines()
        self.assertEqual(entry["discount_token"], "***")
        self.assertEqual(entry["doctor_id"], "doc-1")

    def test_stdlib_records_share_the_format(self):
        configure_logging(level="INFO", json_logs=True, stream=self.stream)
        logging.getLogger("urllib3.connectionpool").warning("Retrying")
        logging.getLogger("urllib3.connectionpool").info("Starting new connection")
        (entry,) = self._lines()
        self.assertEqual(entry["event"], "Retrying")
        self.assertEqual(entry["logger"], "urllib3.connectionpool")

    def test_drop_secrets_leaves_other_keys(self):
        event = {"event": "x", "token": "t", "visit_id": "v1"}
        self.assertEqual(drop_secrets(None, "info", event), {"event": "x", "token": "***", "visit_id": "v1"})
