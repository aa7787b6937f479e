from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .paths import config_path

CONFIG_VERSION = 1
HISTORY_BACKENDS = ("local", "file", "http")
DEFAULT_REMOUNT_DELAY = 0.05


@dataclass
class AppConfig:
    version: int = CONFIG_VERSION
    history_backend: str = "local"
    history_url: str | None = None
    remount_delay: float = DEFAULT_REMOUNT_DELAY
    storage_path: str | None = None
    log_level: str | None = None


def load_config(path: Path | None = None) -> tuple[AppConfig, str | None]:
    path = path or config_path()
    if not path.exists():
        return AppConfig(), None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return AppConfig(), f"Failed to read config: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return AppConfig(), f"Config file is not valid JSON: {path}"
    if not isinstance(data, dict):
        return AppConfig(), f"Config file must be a JSON object: {path}"
    return _parse_config_data(data), None


def save_config(config: AppConfig, path: Path | None = None) -> str | None:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return f"Failed to create config directory: {path.parent} ({exc})"
    payload = _config_to_dict(config)
    try:
        path.write_text(
            json.dumps(payload, ensure_ascii=True, indent=2),
            encoding="utf-8",
        )
    except OSError as exc:
        return f"Failed to write config: {path} ({exc})"
    return None


def _parse_config_data(data: dict[str, Any]) -> AppConfig:
    backend = _as_str(data.get("history_backend"))
    if backend not in HISTORY_BACKENDS:
        backend = "local"
    delay = _as_nonneg_float(data.get("remount_delay"))
    return AppConfig(
        version=_as_int(data.get("version")) or CONFIG_VERSION,
        history_backend=backend,
        history_url=_as_str(data.get("history_url")),
        remount_delay=DEFAULT_REMOUNT_DELAY if delay is None else delay,
        storage_path=_as_str(data.get("storage_path")),
        log_level=_as_str(data.get("log_level")),
    )


def _config_to_dict(config: AppConfig) -> dict[str, Any]:
    data: dict[str, Any] = {
        "version": config.version,
        "history_backend": config.history_backend,
        "remount_delay": config.remount_delay,
    }
    _set_if(data, "history_url", config.history_url)
    _set_if(data, "storage_path", config.storage_path)
    _set_if(data, "log_level", config.log_level)
    return data


def _set_if(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _as_str(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_nonneg_float(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value < 0:
        return None
    return float(value)
