"""
Secure Logging Module
=====================

Logging helpers that keep credentials out of log output.

Features:
- Automatic secret/sensitive data filtering (including encoded Argon2 hashes)
- Rotating log files with size limits
- Optional JSON output for log aggregation
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern

from identivault.core.config import LoggingConfig, VaultConfig


_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("password", re.compile(r'(?i)(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("token", re.compile(r'(?i)(token|bearer)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("credential", re.compile(r'(?i)(credential[_-]?hash|credential)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("argon2_hash", re.compile(r'\$argon2(?:id|i|d)\$[^\s"\']+')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"

_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class SecureLogFilter(logging.Filter):
    """
    Log filter that removes sensitive information from log messages.

    Messages and string arguments are scanned for credential-looking
    patterns, which are replaced with [REDACTED]. Records are never dropped.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = additional_patterns or []

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg and isinstance(record.msg, str):
            record.msg = self._sanitize(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._sanitize(v) if isinstance(v, str) else v
                               for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        result = text

        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)

        for pattern in self._additional_patterns:
            result = pattern.sub(_REDACTED_TEXT, result)

        return result


class StructuredLogFormatter(logging.Formatter):
    """Formatter that outputs logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class SecureRotatingFileHandler(RotatingFileHandler):
    """Rotating file handler that creates its directory and rejects traversal."""

    def __init__(
        self,
        filename: str | Path,
        mode: str = "a",
        maxBytes: int = 10 * 1024 * 1024,
        backupCount: int = 5,
        encoding: str = "utf-8",
    ) -> None:
        if ".." in Path(filename).parts:
            raise ValueError("Log path cannot contain path traversal sequences")

        log_path = Path(filename).resolve()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(log_path),
            mode=mode,
            maxBytes=maxBytes,
            backupCount=backupCount,
            encoding=encoding,
        )


def _build_handlers(
    log_file: Optional[Path],
    enable_console: bool,
    enable_json: bool,
    max_file_size: int,
    backup_count: int,
) -> list[logging.Handler]:
    secure_filter = SecureLogFilter()
    handlers: list[logging.Handler] = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(secure_filter)
        handlers.append(console_handler)

    if log_file is not None:
        file_handler = SecureRotatingFileHandler(
            filename=log_file,
            maxBytes=max_file_size,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        if enable_json:
            file_handler.setFormatter(StructuredLogFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        file_handler.addFilter(secure_filter)
        handlers.append(file_handler)

    return handlers


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a logger with automatic secret filtering.

    Args:
        name: Logger name (typically __name__)
        log_dir: Directory for log files; no file output without it
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_console: Whether to output to stderr
        enable_file: Whether to output to file
        enable_json: Whether to use JSON format for file output
        max_file_size: Maximum log file size before rotation
        backup_count: Number of backup files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    log_file = None
    if enable_file and log_dir:
        log_file = log_dir / f"{name.replace('.', '_')}.log"

    for handler in _build_handlers(log_file, enable_console, enable_json, max_file_size, backup_count):
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def configure_root_logger(
    config: Optional[LoggingConfig] = None,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger with secret filtering.

    Call once at application startup; every identivault.* logger
    propagates to it.

    Args:
        config: Logging settings (the loaded VaultConfig when omitted)
        log_dir: Directory for identivault.log when file output is enabled
            (the configured paths.log_dir when omitted)
    """
    if config is None:
        config = VaultConfig.get_instance().logging

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))
    root_logger.handlers.clear()

    log_file = None
    if config.enable_file:
        if log_dir is None:
            log_dir = VaultConfig.get_instance().paths.log_dir
        log_file = log_dir / "identivault.log"

    handlers = _build_handlers(
        log_file,
        config.enable_console,
        config.enable_json,
        config.max_file_size_bytes,
        config.backup_count,
    )
    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, RotatingFileHandler):
            handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
        root_logger.addHandler(handler)
