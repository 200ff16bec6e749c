"""Version helpers for the setup tool."""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata
from pathlib import Path

_DISTRIBUTION_NAME = "qbrt-runtime-setup"
_VERSION_ENV = "QBRT_VERSION"
_FALLBACK_VERSION = "0.0.0-dev"
_VERSION_FILE = Path(__file__).with_name("VERSION")


def _version_from_env() -> str | None:
    env_version = os.environ.get(_VERSION_ENV)
    if not env_version:
        return None
    return _normalize(env_version)


def _read_version_file() -> str | None:
    try:
        text = _VERSION_FILE.read_text(encoding="utf-8")
    except OSError:
        return None
    version = text.strip()
    return _normalize(version) if version else None


def _version_from_metadata() -> str | None:
    try:
        return metadata.version(_DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        return None


def _normalize(raw_version: str) -> str:
    version = raw_version.strip()
    if version.startswith("v"):
        version = version[1:]
    return version


@lru_cache(maxsize=1)
def get_app_version() -> str:
    """Return the setup tool version.

    The order of precedence is:
    1. The ``QBRT_VERSION`` environment variable.
    2. The ``VERSION`` file shipped inside the ``app`` package.
    3. Installed distribution metadata.
    4. A fallback development version string.
    """

    for resolver in (_version_from_env, _read_version_file, _version_from_metadata):
        version = resolver()
        if version:
            return version
    return _FALLBACK_VERSION


__all__ = ["get_app_version"]
