from __future__ import annotations

import logging
import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .constants import DEFAULT_SERVER_PORT, MAX_PORT_RETRIES, THROTTLE_WINDOW_MS

SERVER_DIR = Path(__file__).resolve().parents[1]
"""Root of the ``apps/server/`` package tree."""

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VIBECODING_CONFIG"

MIN_INTENSITY = 1
MAX_INTENSITY = 5
DEFAULT_INTENSITY = 3

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CONFIG: dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": DEFAULT_SERVER_PORT,
        "max_port_retries": MAX_PORT_RETRIES,
        "enabled": True,
        "autostart": True,
    },
    "throttle": {"window_ms": THROTTLE_WINDOW_MS},
    "shake": {"enabled": True, "intensity": DEFAULT_INTENSITY},
    "storage": {"settings_path": None},
    "logging": {"level": "INFO"},
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _resolve_config_path(path_text: str, config_path: Path) -> Path:
    path = Path(path_text)
    if path.is_absolute():
        return path
    return config_path.resolve().parent / path


def clamp_intensity(value: Any) -> int:
    """Clamp *value* into 1-5; anything that is not an integer becomes the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_INTENSITY
    if isinstance(value, float) and not value.is_integer():
        return DEFAULT_INTENSITY
    return max(MIN_INTENSITY, min(MAX_INTENSITY, int(value)))


@dataclass(slots=True)
class ServerConfig:
    host: str
    port: int
    max_port_retries: int
    enabled: bool
    autostart: bool

    def __post_init__(self) -> None:
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ValueError(f"ServerConfig.port must be 1-65535, got {self.port!r}")
        if self.max_port_retries < 0:
            LOGGER.warning(
                "server.max_port_retries=%s is negative; clamped to 0", self.max_port_retries
            )
            object.__setattr__(self, "max_port_retries", 0)
        if self.port + self.max_port_retries > 65535:
            clamped = 65535 - self.port
            LOGGER.warning(
                "server.max_port_retries=%s runs past port 65535; clamped to %s",
                self.max_port_retries,
                clamped,
            )
            object.__setattr__(self, "max_port_retries", clamped)


@dataclass(slots=True)
class ThrottleConfig:
    window_ms: int

    def __post_init__(self) -> None:
        if not isinstance(self.window_ms, int) or self.window_ms < 1:
            LOGGER.warning("throttle.window_ms=%s is below minimum 1; clamped to 1", self.window_ms)
            object.__setattr__(self, "window_ms", 1)


@dataclass(slots=True)
class ShakeConfig:
    enabled: bool
    intensity: int

    def __post_init__(self) -> None:
        clamped = clamp_intensity(self.intensity)
        if clamped != self.intensity:
            LOGGER.warning("shake.intensity=%r is outside 1-5; using %s", self.intensity, clamped)
            object.__setattr__(self, "intensity", clamped)


@dataclass(slots=True)
class LoggingConfig:
    level: str

    def __post_init__(self) -> None:
        level = str(self.level).strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {VALID_LOG_LEVELS}, got {self.level!r}")
        object.__setattr__(self, "level", level)


@dataclass(slots=True)
class AppConfig:
    server: ServerConfig
    throttle: ThrottleConfig
    shake: ShakeConfig
    logging: LoggingConfig
    settings_path: Path | None
    config_path: Path


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a YAML object at the top level.")
        return data


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return SERVER_DIR / "config.yaml"


def load_config(config_path: Path | None = None) -> AppConfig:
    path = (config_path or default_config_path()).resolve()
    override = _read_config_file(path)
    merged = _deep_merge(deepcopy(DEFAULT_CONFIG), override)

    server_cfg = merged["server"]
    try:
        server_port = int(server_cfg["port"])
        max_retries = int(server_cfg.get("max_port_retries", MAX_PORT_RETRIES))
        window_ms = int(merged["throttle"]["window_ms"])
    except (TypeError, ValueError):
        raise ValueError(
            f"{path}: server.port, server.max_port_retries and throttle.window_ms "
            "must be integers"
        ) from None

    settings_path_raw = merged.get("storage", {}).get("settings_path")
    settings_path = (
        _resolve_config_path(str(settings_path_raw), path)
        if isinstance(settings_path_raw, str) and settings_path_raw.strip()
        else None
    )

    app_config = AppConfig(
        server=ServerConfig(
            host=str(server_cfg["host"]),
            port=server_port,
            max_port_retries=max_retries,
            enabled=bool(server_cfg.get("enabled", True)),
            autostart=bool(server_cfg.get("autostart", True)),
        ),
        throttle=ThrottleConfig(window_ms=window_ms),
        shake=ShakeConfig(
            enabled=bool(merged["shake"].get("enabled", True)),
            intensity=merged["shake"].get("intensity", DEFAULT_INTENSITY),
        ),
        logging=LoggingConfig(level=str(merged["logging"].get("level", "INFO"))),
        settings_path=settings_path,
        config_path=path,
    )
    LOGGER.info(
        "Loaded config=%s port=%d settings_path=%s",
        app_config.config_path,
        app_config.server.port,
        app_config.settings_path,
    )
    return app_config
