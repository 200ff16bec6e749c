"""Public API for the runtime setup package."""

from __future__ import annotations

from services.runtime.archive import MergePolicy
from services.runtime.builder import build_runtime_setup_service
from services.runtime.constants import (
    COMPANION_APP_FILES,
    DIST_DIR_ENV,
    LOCALE_ENV,
    MAX_REDIRECTS,
    OPENVR_ENV,
    SOURCE_DIR_ENV,
)
from services.runtime.grafting import BundleGrafter, GraftOptions
from services.runtime.installers import ArchiveInstaller, DiskImageInstaller, Installer
from services.runtime.models import (
    ArchiveFile,
    ArchiveFormat,
    BuildDescriptor,
    ConfigurationError,
    ExternalToolError,
    ExtractionError,
    InstallTree,
    MissingFileError,
    NetworkError,
    PipelineResult,
    PlatformProfile,
    ProvisioningError,
    UnsupportedFormatError,
)
from services.runtime.network import HttpClient
from services.runtime.pipeline import RuntimeSetupService
from services.runtime.platform import resolve_platform_profile
from services.runtime.progress import ProgressReporter
from services.runtime.versioning import check_for_update, is_up_to_date

__all__ = [
    "COMPANION_APP_FILES",
    "DIST_DIR_ENV",
    "LOCALE_ENV",
    "MAX_REDIRECTS",
    "OPENVR_ENV",
    "SOURCE_DIR_ENV",
    "ArchiveFile",
    "ArchiveFormat",
    "ArchiveInstaller",
    "BuildDescriptor",
    "BundleGrafter",
    "ConfigurationError",
    "DiskImageInstaller",
    "ExternalToolError",
    "ExtractionError",
    "GraftOptions",
    "HttpClient",
    "InstallTree",
    "Installer",
    "MergePolicy",
    "MissingFileError",
    "NetworkError",
    "PipelineResult",
    "PlatformProfile",
    "ProgressReporter",
    "ProvisioningError",
    "RuntimeSetupService",
    "UnsupportedFormatError",
    "build_runtime_setup_service",
    "check_for_update",
    "is_up_to_date",
    "resolve_platform_profile",
]
