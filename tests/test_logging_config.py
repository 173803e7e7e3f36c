"""
Unit tests for the payroll debug log setup.
"""
import logging

from nusapay.logging_config import (
    DEBUG_HANDLER_NAME, PAYROLL_LOGGER_NAME, get_logger, setup_payroll_debug_logging,
)


def debug_handlers():
    logger = logging.getLogger(PAYROLL_LOGGER_NAME)
    return [h for h in logger.handlers if h.name == DEBUG_HANDLER_NAME]


class TestPayrollDebugLogging:
    """The debug file handler is installed once per process."""

    def test_second_call_reuses_handler(self, tmp_path):
        first = setup_payroll_debug_logging(tmp_path / "payroll_debug.log")
        try:
            second = setup_payroll_debug_logging(tmp_path / "other.log")
            assert second is first
            assert debug_handlers() == [first]
            # The second path is never opened
            assert not (tmp_path / "other.log").exists()
        finally:
            logging.getLogger(PAYROLL_LOGGER_NAME).removeHandler(first)
            first.close()

    def test_writes_child_logger_records(self, tmp_path):
        log_path = tmp_path / "payroll_debug.log"
        handler = setup_payroll_debug_logging(log_path)
        try:
            logging.getLogger(f"{PAYROLL_LOGGER_NAME}.merge").debug("merged 3 batches")
            handler.flush()
            assert "merged 3 batches" in log_path.read_text(encoding="utf-8")
        finally:
            logging.getLogger(PAYROLL_LOGGER_NAME).removeHandler(handler)
            handler.close()


class TestGetLogger:

    def test_prefixes_app_namespace(self):
        assert get_logger("tools").name == "nusapay.tools"
        assert get_logger("nusapay.services").name == "nusapay.services"
