from __future__ import annotations

import json
import logging

import pytest

from identivault.core.config import LoggingConfig
from identivault.core.logging import (
    SecureLogFilter,
    SecureRotatingFileHandler,
    StructuredLogFormatter,
    configure_root_logger,
    get_secure_logger,
)


def _record(msg, *args):
    return logging.LogRecord("identivault.test", logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.parametrize(
    "message",
    [
        "password=hunter22",
        "secret: topsecretvalue",
        "token=abcdef123456",
        "stored $argon2id$v=19$m=8,t=1,p=1$c2FsdHNhbHQ$aGFzaGhhc2g",
    ],
)
def test_filter_redacts_credentials(message):
    record = _record(message)
    assert SecureLogFilter().filter(record) is True
    assert "[REDACTED]" in record.getMessage()


def test_filter_redacts_string_args():
    record = _record("login %s", "password=hunter22")
    SecureLogFilter().filter(record)
    assert "hunter22" not in record.getMessage()


def test_filter_leaves_ids_alone():
    record = _record("Created account %s (admin=%s)", "Vb3kq9XzPq1", False)
    SecureLogFilter().filter(record)
    assert record.getMessage() == "Created account Vb3kq9XzPq1 (admin=False)"


def test_structured_formatter_outputs_json():
    data = json.loads(StructuredLogFormatter().format(_record("hello %s", "world")))
    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["logger"] == "identivault.test"


def test_get_secure_logger_writes_redacted_file(tmp_path):
    logger = get_secure_logger(
        "identivault.test.file",
        log_dir=tmp_path,
        enable_console=False,
    )
    try:
        logger.info("password=hunter22 for account %s", "abc")
        for handler in logger.handlers:
            handler.flush()

        text = (tmp_path / "identivault_test_file.log").read_text(encoding="utf-8")
        assert "hunter22" not in text
        assert "abc" in text
        assert get_secure_logger("identivault.test.file") is logger
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_rotating_handler_rejects_traversal(tmp_path):
    with pytest.raises(ValueError):
        SecureRotatingFileHandler(tmp_path / ".." / "escape.log")


def test_configure_root_logger(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_root_logger(
            LoggingConfig(level="DEBUG", enable_console=True, enable_file=True, enable_json=True),
            log_dir=tmp_path,
        )
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert all(any(isinstance(f, SecureLogFilter) for f in h.filters) for h in root.handlers)
    finally:
        for handler in list(root.handlers):
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_configure_root_logger_defaults_to_loaded_config(monkeypatch, tmp_path):
    monkeypatch.setenv("IDENTIVAULT_PATHS__LOG_DIR", str(tmp_path))
    monkeypatch.setenv("IDENTIVAULT_LOGGING__ENABLE_FILE", "true")
    monkeypatch.setenv("IDENTIVAULT_LOGGING__ENABLE_CONSOLE", "false")
    monkeypatch.setenv("IDENTIVAULT_LOGGING__LEVEL", "WARNING")

    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_root_logger()
        assert root.level == logging.WARNING
        logging.getLogger("identivault.test").warning("password=hunter2")
        for handler in root.handlers:
            handler.flush()
        content = (tmp_path / "identivault.log").read_text(encoding="utf-8")
        assert "hunter2" not in content
        assert "[REDACTED]" in content
    finally:
        for handler in list(root.handlers):
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
