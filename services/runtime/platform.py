"""Resolve the platform profile that drives every pipeline stage."""

from __future__ import annotations

import logging
import platform as _platform
import sys
from pathlib import Path

from services.runtime import constants
from services.runtime.models import (
    Architecture,
    ConfigurationError,
    OperatingSystem,
    PlatformProfile,
)

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "detect_architecture",
    "detect_operating_system",
    "resolve_download_os",
    "resolve_platform_profile",
]

_ARCH_ALIASES = {
    "x86_64": Architecture.X64,
    "amd64": Architecture.X64,
    "x64": Architecture.X64,
    "i386": Architecture.X86,
    "i686": Architecture.X86,
    "x86": Architecture.X86,
    "ia32": Architecture.X86,
}
# Nightly disk images are universal, so Apple silicon installs the same build.
_MACOS_ONLY_ARCH_ALIASES = {
    "arm64": Architecture.X64,
    "aarch64": Architecture.X64,
}


def detect_operating_system(system: str | None = None) -> OperatingSystem:
    """Map ``sys.platform`` (or ``system``) to an :class:`OperatingSystem`."""

    value = (system if system is not None else sys.platform).strip().lower()
    if value.startswith("win") or value == "cygwin":
        return OperatingSystem.WINDOWS
    if value.startswith("linux"):
        return OperatingSystem.LINUX
    if value in {"darwin", "macos", "osx"}:
        return OperatingSystem.MACOS
    raise ConfigurationError(f"unsupported platform {value!r}")


def detect_architecture(os_: OperatingSystem, machine: str | None = None) -> Architecture:
    value = (machine if machine is not None else _platform.machine()).strip().lower()
    arch = _ARCH_ALIASES.get(value)
    if arch is None and os_ is OperatingSystem.MACOS:
        arch = _MACOS_ONLY_ARCH_ALIASES.get(value)
    if arch is None:
        label = {
            OperatingSystem.WINDOWS: "Windows",
            OperatingSystem.LINUX: "Linux",
            OperatingSystem.MACOS: "macOS",
        }[os_]
        raise ConfigurationError(f"unsupported {label} architecture {value!r}")
    return arch


def resolve_download_os(os_: OperatingSystem, arch: Architecture) -> str:
    """Return the download-service OS code for ``os_`` and ``arch``."""

    if os_ is OperatingSystem.WINDOWS:
        return "win64" if arch is Architecture.X64 else "win"
    if os_ is OperatingSystem.LINUX:
        return "linux64" if arch is Architecture.X64 else "linux"
    return "osx"


def resolve_platform_profile(
    dist_dir: Path,
    *,
    system: str | None = None,
    machine: str | None = None,
    locale: str = constants.DOWNLOAD_LOCALE,
) -> PlatformProfile:
    """Return the :class:`PlatformProfile` for the running (or given) platform.

    The function performs no filesystem or network access; an unsupported
    platform raises :class:`ConfigurationError` before anything is touched.
    """

    os_ = detect_operating_system(system)
    arch = detect_architecture(os_, machine)
    download_os = resolve_download_os(os_, arch)

    info_template = constants.DOWNLOAD_INFO_URLS.get(download_os)
    info_url = info_template.format(locale=locale) if info_template else None
    bin_template = constants.DOWNLOAD_BIN_URLS.get(download_os)
    if bin_template:
        binary_url = bin_template.format(locale=locale)
    else:
        binary_url = constants.GENERIC_BIN_URL.format(locale=locale, os=download_os)

    dist_dir = Path(dist_dir)
    if os_ is OperatingSystem.MACOS:
        install_root = dist_dir / constants.BUNDLE_DIRNAME
        resources_path = install_root / "Contents" / "Resources"
        executable_path = install_root / "Contents" / "MacOS"
    else:
        install_root = dist_dir / constants.RUNTIME_DIRNAME
        resources_path = install_root
        executable_path = install_root

    profile = PlatformProfile(
        os=os_,
        arch=arch,
        download_os=download_os,
        download_info_url=info_url,
        download_binary_url=binary_url,
        dist_dir=dist_dir,
        install_root=install_root,
        resources_path=resources_path,
        executable_path=executable_path,
        descriptor_path=dist_dir / constants.DESCRIPTOR_FILENAME,
    )
    _LOGGER.debug(
        "Resolved platform profile os=%s arch=%s download_os=%s install_root=%s",
        os_.value,
        arch.value,
        download_os,
        install_root,
    )
    return profile
