"""Helpers for constructing the runtime setup service from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from app.config import SetupConfig, coerce_bool, get_app_config
from services.runtime.constants import DIST_DIR_ENV, LOCALE_ENV, OPENVR_ENV, SOURCE_DIR_ENV
from services.runtime.disk_image import CommandRunner, run_command
from services.runtime.grafting import BundleGrafter, GraftOptions
from services.runtime.network import HttpClient, Opener
from services.runtime.pipeline import RuntimeSetupService
from services.runtime.platform import resolve_platform_profile
from services.runtime.progress import ProgressReporter

_LOGGER = logging.getLogger(__name__)

__all__ = ["SetupOptions", "build_runtime_setup_service", "resolve_setup_options"]


@dataclass(frozen=True)
class SetupOptions:
    """Paths and switches for one setup run after environment overrides."""

    dist_dir: Path
    source_dir: Path
    locale: str
    openvr_enabled: bool


def resolve_setup_options(
    config: SetupConfig,
    *,
    dist_dir: Path | None = None,
    source_dir: Path | None = None,
    openvr_enabled: bool | None = None,
) -> SetupOptions:
    """Merge explicit arguments, environment overrides and ``config``.

    Explicit arguments win over the environment, which wins over the
    configuration file.
    """

    if dist_dir is None:
        env_dist = os.environ.get(DIST_DIR_ENV)
        dist_dir = Path(env_dist).expanduser() if env_dist else Path.cwd() / "dist"
    if source_dir is None:
        env_source = os.environ.get(SOURCE_DIR_ENV)
        source_dir = Path(env_source).expanduser() if env_source else Path.cwd()
    if openvr_enabled is None:
        openvr_enabled = coerce_bool(
            os.environ.get(OPENVR_ENV), default=config.companion.openvr_enabled
        )
    locale = (os.environ.get(LOCALE_ENV) or "").strip() or config.download.locale
    return SetupOptions(
        dist_dir=Path(dist_dir).absolute(),
        source_dir=Path(source_dir).absolute(),
        locale=locale,
        openvr_enabled=openvr_enabled,
    )


def build_runtime_setup_service(
    *,
    config: SetupConfig | None = None,
    dist_dir: Path | None = None,
    source_dir: Path | None = None,
    openvr_enabled: bool | None = None,
    system: str | None = None,
    machine: str | None = None,
    reporter: ProgressReporter | None = None,
    opener: Opener | None = None,
    runner: CommandRunner = run_command,
) -> RuntimeSetupService:
    """Construct a :class:`RuntimeSetupService` for the current environment.

    Raises :class:`~services.runtime.models.ConfigurationError` for an
    unsupported platform before any file or network access happens.
    """

    config = config or get_app_config()
    options = resolve_setup_options(
        config,
        dist_dir=dist_dir,
        source_dir=source_dir,
        openvr_enabled=openvr_enabled,
    )
    profile = resolve_platform_profile(
        options.dist_dir, system=system, machine=machine, locale=options.locale
    )
    client = HttpClient(
        opener=opener,
        timeout=config.network.timeout_seconds,
        retries=config.network.retries,
        backoff_seconds=config.network.retry_backoff_seconds,
        max_redirects=config.network.max_redirects,
    )
    grafter = BundleGrafter(
        options.source_dir,
        client,
        GraftOptions(
            openvr_enabled=options.openvr_enabled,
            openvr_url=config.companion.openvr_url,
        ),
    )
    _LOGGER.info(
        "Runtime setup for %s (%s) into %s from companion source %s",
        profile.os.value,
        profile.download_os,
        profile.dist_dir,
        options.source_dir,
    )
    return RuntimeSetupService(
        profile,
        client,
        grafter,
        reporter=reporter,
        runner=runner,
    )
