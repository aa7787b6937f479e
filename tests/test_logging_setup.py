from __future__ import annotations

import logging

from reelshell import logging_setup


def test_configure_writes_to_file_and_is_idempotent(tmp_path, monkeypatch) -> None:
    logger = logging.getLogger(logging_setup.LOGGER_NAME)
    monkeypatch.setattr(logging_setup, "_RUNTIME", None)
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "propagate", logger.propagate)
    original_level = logger.level
    monkeypatch.delenv("REELSHELL_LOG_LEVEL", raising=False)
    monkeypatch.delenv("REELSHELL_LOG_FILE", raising=False)
    log_file = tmp_path / "logs" / "reelshell.log"

    try:
        runtime = logging_setup.configure("debug", str(log_file))
        assert runtime.level_name == "DEBUG"
        assert logging_setup.get_runtime() is runtime
        assert logging_setup.configure("error") is runtime

        logging.getLogger("reelshell.navigator").debug("hello %s", "world")
        for handler in logger.handlers:
            handler.flush()
        assert "hello world" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in logger.handlers:
            handler.close()
        logging.captureWarnings(False)
        logger.setLevel(original_level)


def test_env_overrides_level(tmp_path, monkeypatch) -> None:
    logger = logging.getLogger(logging_setup.LOGGER_NAME)
    monkeypatch.setattr(logging_setup, "_RUNTIME", None)
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "propagate", logger.propagate)
    original_level = logger.level
    monkeypatch.setenv("REELSHELL_LOG_LEVEL", "warning")
    monkeypatch.setenv("REELSHELL_LOG_FILE", str(tmp_path / "env.log"))

    try:
        runtime = logging_setup.configure("debug")
        assert runtime.level == logging.WARNING
        assert runtime.file_path == str(tmp_path / "env.log")
    finally:
        for handler in logger.handlers:
            handler.close()
        logging.captureWarnings(False)
        logger.setLevel(original_level)
