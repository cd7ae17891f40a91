"""Configuration helpers for the Jumperless host library."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any

from .settings import (
    CONFIG_FILE,
    DEFAULT_BAUDRATE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RESPONSE_TIMEOUT,
)

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        # Directory creation failures will surface during write; keep silent here.
        pass


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_positive_float(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if result > 0 else default


@dataclass
class DeviceConfig:
    port: str = ""
    activity_log: str = ""
    baudrate: int = DEFAULT_BAUDRATE
    read_timeout: float = DEFAULT_READ_TIMEOUT
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT


def load_config(path: str | Path = CONFIG_FILE) -> DeviceConfig:
    """Load configuration data from *path* or return defaults on failure."""

    defaults = DeviceConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return defaults

    try:
        raw = json.loads(cfg_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Config file %s contains invalid JSON: %s", cfg_path, exc)
        return defaults
    except OSError as exc:
        logger.error("Could not read config file %s: %s", cfg_path, exc)
        return defaults

    if not isinstance(raw, dict):
        logger.error("Config file %s did not contain an object", cfg_path)
        return defaults

    data = asdict(defaults)
    data["port"] = str(raw.get("port") or data["port"])
    data["activity_log"] = str(raw.get("activity_log") or data["activity_log"])
    data["baudrate"] = _coerce_int(raw.get("baudrate"), defaults.baudrate)
    data["read_timeout"] = _coerce_positive_float(
        raw.get("read_timeout"), defaults.read_timeout
    )
    data["response_timeout"] = _coerce_positive_float(
        raw.get("response_timeout"), defaults.response_timeout
    )

    return DeviceConfig(**data)


def save_config(config: DeviceConfig, path: str | Path = CONFIG_FILE) -> None:
    """Persist *config* to *path*, logging errors without raising."""

    cfg_path = Path(path)
    _ensure_parent(cfg_path)
    try:
        cfg_path.write_text(json.dumps(asdict(config), indent=4), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write config file %s: %s", cfg_path, exc)
