"""
Logging configuration for CF DDNS.

This module provides logging setup with support for console and file output.
API tokens are automatically masked in log messages.
"""

from __future__ import annotations

import copy
import logging
import logging.handlers
import re
import sys
from typing import TYPE_CHECKING

from uvicorn.config import LOGGING_CONFIG

if TYPE_CHECKING:
    from typing import Final

    from cf_ddns.config import LoggingConfig


# Pattern to match sensitive tokens in log messages
# Each tuple is (pattern, replacement)
# For partial masking, capture the prefix to keep and mask the rest
SENSITIVE_PATTERNS: Final[list[tuple[re.Pattern[str], str]]] = [
    # Authorization header (CloudFlare API token)
    # Keep first 6 characters, mask the rest
    (
        re.compile(
            r"((?:Authorization:\s*)?Bearer\s+)(.{0,6})([^\s\"']*)", re.IGNORECASE,
        ),
        r"\1\2******",
    ),
    # Model reprs, e.g. api_token='...' or api_token="..."
    (
        re.compile(r'(api_token=")(.{0,6})([^"]*)"', re.IGNORECASE),
        r'\1\2******"',
    ),
    (
        re.compile(r"(api_token=')(.{0,6})([^']*)'", re.IGNORECASE),
        r"\1\2******'",
    ),
    (
        re.compile(
            r"(api_token=)(?![\"'])([^\s,\"&']{0,6})([^\s,\"&']*)", re.IGNORECASE,
        ),
        r"\1\2******",
    ),
]


# Constants
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


class SensitiveFilter(logging.Filter):
    """
    A logging filter that masks sensitive information.

    This filter replaces API tokens with asterisks to prevent
    credential leakage in log files.
    """

    # Fields in record.__dict__ that may contain sensitive data
    _SENSITIVE_DICT_KEYS: tuple[str, ...] = (
        "request_line",  # Uvicorn: "{method} {full_path} HTTP/{version}"
        "url",
        "headers",
    )

    @staticmethod
    def _mask_sensitive(value: str) -> str:
        """
        Apply all sensitive patterns to mask a string.

        Parameters
        ----------
        value : str
            The string to process.

        Returns
        -------
        str
            The string with sensitive data masked.
        """
        result = value
        for pattern, replacement in SENSITIVE_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Mask sensitive data in `msg`, `args` and known extra fields.

        Parameters
        ----------
        record : logging.LogRecord
            The log record to process.

        Returns
        -------
        bool
            Always returns True (record is always logged).
        """
        if record.msg:
            record.msg = self._mask_sensitive(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self._mask_sensitive(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._mask_sensitive(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        for key in self._SENSITIVE_DICT_KEYS:
            value = record.__dict__.get(key)
            if isinstance(value, str):
                record.__dict__[key] = self._mask_sensitive(value)

        return True


def _configure_handler(handler: logging.Handler) -> None:
    """Attach the shared formatter and sensitive filter to a handler."""
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(SensitiveFilter())


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up the "cf_ddns" logger based on configuration.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration.
    """
    logger = logging.getLogger("cf_ddns")
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    _configure_handler(console_handler)
    logger.addHandler(console_handler)

    if config.file_path is not None:
        log_path = config.file_path_as_path
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.WatchedFileHandler(
                str(log_path),
                encoding="utf-8",
                delay=False,
            )
            _configure_handler(file_handler)
            logger.addHandler(file_handler)
            logger.info('File logging enabled: "%s".', log_path)
        except OSError as e:
            logger.critical("Failed to enable file logging: %s", e)
            sys.exit(1)

    # httpx logs every request at INFO, including the full URL
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.propagate = False


def build_uvicorn_log_config(config: LoggingConfig) -> dict:
    """
    Build uvicorn log configuration dictionary with file and console handlers.

    Uvicorn's default console output is preserved; the sensitive filter is
    applied to every handler and a file handler is added when a log file
    is configured.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration from the application.

    Returns
    -------
    dict
        A uvicorn-compatible log configuration dictionary.

    Raises
    ------
    SystemExit
        If the log file cannot be created.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)

    log_config.setdefault("filters", {})["sensitive"] = {
        "()": f"{__name__}.SensitiveFilter",
    }
    log_config["handlers"]["default"].setdefault("filters", []).append("sensitive")
    log_config["handlers"]["access"].setdefault("filters", []).append("sensitive")

    if config.file_path is not None:
        log_path = config.file_path_as_path

        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.touch(exist_ok=True)
        except OSError as e:
            logging.getLogger("cf_ddns").critical("Failed to create log file: %s", e)
            sys.exit(1)

        log_config.setdefault("formatters", {})["file"] = {
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
        }
        log_config.setdefault("handlers", {})["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": str(log_path),
            "encoding": "utf-8",
            "delay": False,
            "formatter": "file",
            "filters": ["sensitive"],
        }

        # "uvicorn.error" propagates to "uvicorn"
        log_config["loggers"]["uvicorn"]["handlers"].append("file")
        log_config["loggers"]["uvicorn.access"]["handlers"].append("file")

    return log_config
