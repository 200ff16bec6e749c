from __future__ import annotations

import logging
from pathlib import Path

import pytest

from shared import logging_config


def _flush_managed_handlers() -> None:
    for handler in logging.getLogger().handlers:
        if getattr(handler, logging_config._HANDLER_TAG, False):  # type: ignore[attr-defined]
            handler.flush()


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    monkeypatch.delenv("QBRT_LOG_FILE", raising=False)
    logging_config._reset_for_tests()
    try:
        yield
    finally:
        logging_config._reset_for_tests()


def test_logging_creates_file_and_records_info(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path))

    log_path = logging_config.ensure_app_logging()
    assert log_path == tmp_path / "setup.log"
    assert logging_config.get_file_log_verbosity() == logging_config.LogVerbosity.INFO
    logging.getLogger("services.runtime.pipeline").debug("debug message")
    logging.getLogger("services.runtime.pipeline").info("info message")
    _flush_managed_handlers()

    contents = log_path.read_text(encoding="utf-8")
    assert "debug message" not in contents
    assert "info message" in contents


def test_log_file_environment_variable_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path / "ignored"))
    monkeypatch.setenv("QBRT_LOG_FILE", str(tmp_path / "custom" / "run.log"))

    log_path = logging_config.ensure_app_logging()

    assert log_path == tmp_path / "custom" / "run.log"
    assert log_path.parent.is_dir()


def test_logging_configuration_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path))

    first_path = logging_config.ensure_app_logging()
    second_path = logging_config.ensure_app_logging()

    assert first_path == second_path
    managed_handlers = [
        handler
        for handler in logging.getLogger().handlers
        if getattr(handler, logging_config._HANDLER_TAG, False)  # type: ignore[attr-defined]
    ]

    # Only the file handler should be installed during tests (stderr is not a tty).
    assert len(managed_handlers) == 1
    assert isinstance(managed_handlers[0], logging.FileHandler)
    assert Path(managed_handlers[0].baseFilename) == first_path


def test_can_adjust_file_log_verbosity(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path))

    log_path = logging_config.ensure_app_logging("error")
    logging.getLogger("tests.logging").info("early info")
    logging_config.set_file_log_verbosity(logging_config.LogVerbosity.VERBOSE)
    logging.getLogger("tests.logging").debug("debug message")
    logging.getLogger("tests.logging").error("error message")
    _flush_managed_handlers()

    contents = log_path.read_text(encoding="utf-8")
    assert "early info" not in contents
    assert "debug message" in contents
    assert "error message" in contents
    assert logging_config.get_file_log_verbosity() == logging_config.LogVerbosity.VERBOSE


def test_unknown_verbosity_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path))

    with pytest.raises(ValueError):
        logging_config.ensure_app_logging("chatty")


def test_log_records_redact_home_directory(tmp_path, monkeypatch):
    monkeypatch.setenv("QBRT_LOG_DIR", str(tmp_path))

    log_path = logging_config.ensure_app_logging()
    home = Path.home()
    logging.getLogger("tests.logging").warning("Installing into %s", home / "dist")
    _flush_managed_handlers()

    contents = log_path.read_text(encoding="utf-8")
    assert logging_config.USER_HOME_PLACEHOLDER in contents
    assert logging_config.redact(str(home / "dist")).startswith(
        logging_config.USER_HOME_PLACEHOLDER
    )
