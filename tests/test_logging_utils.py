import logging
import unittest

from utils import logging_utils
from utils.logging_utils import (
    ContextFormatter,
    RecordDefaultsFilter,
    build_logging_config,
    get_tagged_logger,
    record_context,
)


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        self.records.append(record)


def _capture(logger_name, tag=None):
    handler = _ListHandler()
    logger = get_tagged_logger(logger_name, tag=tag)
    base_logger = logger.logger
    base_logger.setLevel(logging.DEBUG)
    base_logger.addHandler(handler)
    base_logger.propagate = False
    return logger, handler


def _release(logger, handler):
    logger.logger.removeHandler(handler)
    logger.logger.propagate = True


class TestLoggingUtils(unittest.TestCase):
    def test_build_logging_config_has_expected_handlers_and_filters(self):
        cfg = build_logging_config(job_name="beach_conditions")
        self.assertIn("stdout", cfg["handlers"])
        self.assertIn("stderr", cfg["handlers"])
        self.assertEqual(cfg["handlers"]["stderr"]["level"], "WARNING")
        self.assertIn("info_and_below", cfg["handlers"]["stdout"]["filters"])
        self.assertEqual(cfg["filters"]["defaults"]["job_name"], "beach_conditions")

    def test_get_tagged_logger_injects_tag(self):
        logger, handler = _capture("beach_conditions.cache_store", tag="cache_store")
        try:
            logger.info("wrote entry")
        finally:
            _release(logger, handler)

        self.assertEqual(handler.records[-1].tag, "cache_store")

    def test_per_call_extra_is_kept(self):
        logger, handler = _capture("beach_conditions.resilience")
        try:
            logger.warning("Live fetch failed", extra={"key": "tides_point_atkinson", "has_cache": True})
        finally:
            _release(logger, handler)

        record = handler.records[-1]
        self.assertEqual(record.tag, "resilience")
        self.assertEqual(record_context(record), {"key": "tides_point_atkinson", "has_cache": True})

    def test_defaults_filter_fills_missing_fields(self):
        record = logging.LogRecord("beach_conditions.api", logging.INFO, __file__, 1, "msg", None, None)
        self.assertTrue(RecordDefaultsFilter(job_name="jobtest").filter(record))
        self.assertEqual(record.tag, "api")
        self.assertEqual(record.job_name, "jobtest")

    def test_formatter_appends_context(self):
        record = logging.LogRecord("beach_conditions.api", logging.INFO, __file__, 1, "Fetched", None, None)
        record.location_id = "kitsilano"
        line = ContextFormatter("%(message)s").format(record)
        self.assertEqual(line, "Fetched | location_id=kitsilano")

        plain = logging.LogRecord("beach_conditions.api", logging.INFO, __file__, 1, "Fetched", None, None)
        self.assertEqual(ContextFormatter("%(message)s").format(plain), "Fetched")

    def test_setup_logging_override_applies_filters(self):
        root = logging.getLogger()
        orig_handlers = root.handlers[:]
        orig_level = root.level
        try:
            logging_utils.setup_logging(level="INFO", job_name="jobtest", override_existing=True)
            self.assertTrue(root.handlers)
            self.assertTrue(
                any(
                    any(isinstance(f, RecordDefaultsFilter) for f in h.filters)
                    for h in root.handlers
                )
            )
            self.assertTrue(all(isinstance(h.formatter, ContextFormatter) for h in root.handlers))
        finally:
            root.handlers = orig_handlers
            root.setLevel(orig_level)
            logging_utils._CONFIGURED = False  # reset for other tests


if __name__ == "__main__":
    unittest.main()
