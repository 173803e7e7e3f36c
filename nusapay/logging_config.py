"""
Logging configuration for NusaPay.
Supports normal mode (concise) and debug mode (verbose with file output).
"""
import logging
import sys
import os
from pathlib import Path

# Debug mode: set PAYROLL_DEBUG=1 to enable verbose history logging
PAYROLL_DEBUG = os.getenv('PAYROLL_DEBUG', '').lower() in ('1', 'true', 'yes')

# Debug log file path
DEBUG_LOG_PATH = Path(__file__).parent.parent / 'payroll_debug.log'

PAYROLL_LOGGER_NAME = 'nusapay.services.payroll'
DEBUG_HANDLER_NAME = 'payroll_debug_file'


class ConciseFormatter(logging.Formatter):
    """Single-line, concise log format."""

    FORMATS = {
        logging.DEBUG: "\033[90m[D]\033[0m %(name)s: %(message)s",
        logging.INFO: "\033[32m[I]\033[0m %(message)s",
        logging.WARNING: "\033[33m[W]\033[0m %(message)s",
        logging.ERROR: "\033[31m[E]\033[0m %(name)s: %(message)s",
        logging.CRITICAL: "\033[31;1m[!]\033[0m %(name)s: %(message)s",
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.FORMATS[logging.INFO])
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class VerboseFormatter(logging.Formatter):
    """Detailed format for debug file logging."""
    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(level=logging.INFO):
    """
    Configure logging for the entire application.
    Call this once at startup.

    Set PAYROLL_DEBUG=1 to enable verbose history logging to file.
    """
    # Silence noisy third-party loggers
    noisy_loggers = [
        'urllib3', 'asyncio', 'aiohttp', 'websockets',
        'web3', 'web3.providers', 'web3.RequestManager', 'web3.manager',
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ConciseFormatter())
    root.addHandler(handler)

    app_logger = logging.getLogger('nusapay')
    app_logger.setLevel(level)

    if PAYROLL_DEBUG:
        setup_payroll_debug_logging()
        app_logger.info(f"PAYROLL_DEBUG enabled - verbose logs written to {DEBUG_LOG_PATH}")

    return app_logger


def setup_payroll_debug_logging(log_path=None):
    """
    Set up verbose debug logging for the payroll history modules.
    Writes detailed logs to payroll_debug.log.
    A second call returns the handler already installed.
    """
    # Child loggers propagate to this one, so one handler is enough
    parent_logger = logging.getLogger(PAYROLL_LOGGER_NAME)
    parent_logger.setLevel(logging.DEBUG)

    for handler in parent_logger.handlers:
        if handler.name == DEBUG_HANDLER_NAME:
            return handler

    file_handler = logging.FileHandler(log_path or DEBUG_LOG_PATH, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(VerboseFormatter())
    file_handler.name = DEBUG_HANDLER_NAME
    parent_logger.addHandler(file_handler)

    return file_handler


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module. Use: logger = get_logger(__name__)"""
    if name == 'nusapay' or name.startswith('nusapay.'):
        return logging.getLogger(name)
    return logging.getLogger(f'nusapay.{name}')
