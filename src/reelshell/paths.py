from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_path, user_data_path, user_log_path

APP_NAME = "reelshell"


def config_root() -> Path:
    root = user_config_path(APP_NAME)
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_path() -> Path:
    return config_root() / "config.json"


def data_root() -> Path:
    root = user_data_path(APP_NAME)
    root.mkdir(parents=True, exist_ok=True)
    return root


def storage_path() -> Path:
    return data_root() / "local_storage.json"


def history_path() -> Path:
    return data_root() / "watch_history.json"


def log_dir() -> Path:
    path = user_log_path(APP_NAME)
    path.mkdir(parents=True, exist_ok=True)
    return path
