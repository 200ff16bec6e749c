"""Setup configuration loaded from JSON resources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

_CONFIG_RESOURCE = "app.json"
_DEFAULT_LOCALE = "en-US"
_DEFAULT_TIMEOUT_SECONDS = 60.0
_DEFAULT_RETRIES = 3
_DEFAULT_MAX_REDIRECTS = 10
_DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
_DEFAULT_OPENVR_URL = "https://github.com/ValveSoftware/openvr/raw/v1.0.6/bin/win64/openvr_api.dll"
_APP_CONFIG_CACHE: SetupConfig | None = None


@dataclass(frozen=True)
class DownloadConfig:
    """Where runtime builds are fetched from."""

    locale: str


@dataclass(frozen=True)
class NetworkConfig:
    """Timeouts and retry limits applied to every request."""

    timeout_seconds: float
    retries: int
    max_redirects: int
    retry_backoff_seconds: float


@dataclass(frozen=True)
class CompanionConfig:
    """Settings for grafting the companion application."""

    openvr_enabled: bool
    openvr_url: str


@dataclass(frozen=True)
class SetupConfig:
    """Structured configuration values for the setup tool."""

    download: DownloadConfig
    network: NetworkConfig
    companion: CompanionConfig


def get_app_config() -> SetupConfig:
    """Return the cached setup configuration."""

    global _APP_CONFIG_CACHE
    if _APP_CONFIG_CACHE is None:
        _APP_CONFIG_CACHE = load_app_config()
    return _APP_CONFIG_CACHE


def reset_app_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _APP_CONFIG_CACHE
    _APP_CONFIG_CACHE = None


def load_app_config(path: str | Path | None = None) -> SetupConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    return SetupConfig(
        download=_parse_download_section(data.get("download")),
        network=_parse_network_section(data.get("network")),
        companion=_parse_companion_section(data.get("companion")),
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_download_section(section: Any) -> DownloadConfig:
    if not isinstance(section, Mapping):
        return DownloadConfig(locale=_DEFAULT_LOCALE)
    return DownloadConfig(
        locale=_coerce_text(section.get("locale"), default=_DEFAULT_LOCALE)
    )


def _parse_network_section(section: Any) -> NetworkConfig:
    if not isinstance(section, Mapping):
        section = {}
    return NetworkConfig(
        timeout_seconds=_coerce_positive_float(
            section.get("timeout_seconds"), default=_DEFAULT_TIMEOUT_SECONDS
        ),
        retries=_coerce_positive_int(section.get("retries"), default=_DEFAULT_RETRIES),
        max_redirects=_coerce_positive_int(
            section.get("max_redirects"), default=_DEFAULT_MAX_REDIRECTS
        ),
        retry_backoff_seconds=_coerce_positive_float(
            section.get("retry_backoff_seconds"), default=_DEFAULT_RETRY_BACKOFF_SECONDS
        ),
    )


def _parse_companion_section(section: Any) -> CompanionConfig:
    if not isinstance(section, Mapping):
        section = {}
    return CompanionConfig(
        openvr_enabled=coerce_bool(section.get("openvr_enabled"), default=True),
        openvr_url=_coerce_text(section.get("openvr_url"), default=_DEFAULT_OPENVR_URL),
    )


def coerce_bool(value: Any, *, default: bool) -> bool:
    """Interpret JSON or environment style booleans, falling back to ``default``."""

    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on", "enabled", "enable"}:
            return True
        if lowered in {"0", "false", "no", "off", "disabled", "disable"}:
            return False
    return default


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _coerce_positive_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate <= 0:
        return default
    return candidate


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate


__all__ = [
    "CompanionConfig",
    "DownloadConfig",
    "NetworkConfig",
    "SetupConfig",
    "coerce_bool",
    "get_app_config",
    "load_app_config",
    "reset_app_config_cache",
]
