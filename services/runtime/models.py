"""Data models used by the runtime setup pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from services.runtime import constants


class ProvisioningError(RuntimeError):
    """Base class for failures raised while provisioning the runtime."""


class ConfigurationError(ProvisioningError):
    """Raised when the execution environment cannot be mapped to a platform."""


class NetworkError(ProvisioningError):
    """Raised when metadata or a binary cannot be downloaded."""


class UnsupportedFormatError(ProvisioningError):
    """Raised when a download declares a content type we cannot expand."""


class ExtractionError(ProvisioningError):
    """Raised when an archive cannot be expanded into the install tree."""


class ExternalToolError(ProvisioningError):
    """Raised when an external process exits unsuccessfully."""

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class MissingFileError(ProvisioningError):
    """Raised when an expected file is absent while grafting."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class OperatingSystem(str, Enum):
    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"


class Architecture(str, Enum):
    X86 = "x86"
    X64 = "x64"


class ArchiveFormat(str, Enum):
    DMG = "dmg"
    ZIP = "zip"
    TAR_BZ2 = "tar.bz2"


@dataclass(frozen=True)
class BuildDescriptor:
    """Version-identifying metadata for a downloadable runtime build.

    ``payload`` holds the complete remote document so opaque fields survive a
    round trip through the persisted record.
    """

    build_id: str | None = None
    target_alias: str | None = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "BuildDescriptor":
        return cls()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BuildDescriptor":
        return cls(
            build_id=_optional_text(payload.get("buildid")),
            target_alias=_optional_text(payload.get("target_alias")),
            payload=dict(payload),
        )

    @property
    def is_empty(self) -> bool:
        return not self.payload and self.build_id is None and self.target_alias is None

    def to_payload(self) -> dict[str, Any]:
        data = dict(self.payload)
        if self.build_id is not None:
            data["buildid"] = self.build_id
        if self.target_alias is not None:
            data["target_alias"] = self.target_alias
        return data


@dataclass(frozen=True)
class PlatformProfile:
    """Every platform-dependent location and URL, resolved once per run."""

    os: OperatingSystem
    arch: Architecture
    download_os: str
    download_info_url: str | None
    download_binary_url: str
    dist_dir: Path
    install_root: Path
    resources_path: Path
    executable_path: Path
    descriptor_path: Path

    @property
    def is_windows(self) -> bool:
        return self.os is OperatingSystem.WINDOWS

    @property
    def is_macos(self) -> bool:
        return self.os is OperatingSystem.MACOS


@dataclass(frozen=True)
class ArchiveFile:
    """A downloaded runtime archive waiting to be installed."""

    local_path: Path
    mime_type: str
    extension: ArchiveFormat


@dataclass(frozen=True)
class InstallTree:
    """Directories of an installed runtime."""

    root: Path
    resources_path: Path
    executable_path: Path

    @classmethod
    def for_profile(cls, profile: PlatformProfile) -> "InstallTree":
        return cls(
            root=profile.install_root,
            resources_path=profile.resources_path,
            executable_path=profile.executable_path,
        )

    @property
    def companion_path(self) -> Path:
        return self.resources_path / constants.COMPANION_DIRNAME

    @property
    def browser_archive(self) -> Path:
        return self.resources_path.joinpath(*constants.BROWSER_ARCHIVE)

    @property
    def companion_preferences(self) -> Path:
        return self.companion_path.joinpath(*constants.PREFERENCES_SUBPATH)


@dataclass(frozen=True)
class UpdateCheck:
    """Outcome of comparing the installed build with the remote metadata."""

    up_to_date: bool
    descriptor: BuildDescriptor
    previous: BuildDescriptor = field(default_factory=BuildDescriptor.empty)


@dataclass(frozen=True)
class PipelineResult:
    """Summary of a completed (or aborted) setup run."""

    exit_code: int
    up_to_date: bool = False
    descriptor: BuildDescriptor | None = None
    error: ProvisioningError | None = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)
