"""Installer implementations for platform-specific behaviour."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol

from services.runtime import constants
from services.runtime.archive import MergePolicy, expand_archive
from services.runtime.disk_image import CommandRunner, mounted_disk_image, run_command
from services.runtime.models import (
    ArchiveFile,
    ArchiveFormat,
    ExtractionError,
    InstallTree,
    PlatformProfile,
)
from services.runtime.workspace import TemporaryWorkspace

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ArchiveInstaller",
    "DiskImageInstaller",
    "Installer",
    "install_runtime",
    "select_installer",
]


class Installer(Protocol):
    """Protocol describing the platform-specific installation routine."""

    def install(self, archive: ArchiveFile, profile: PlatformProfile) -> InstallTree:
        """Replace the install tree described by ``profile`` with ``archive``."""


class ArchiveInstaller:
    """Expand zip or tar archives next to the install tree and rename into place."""

    def __init__(self, *, extracted_dirname: str = constants.EXTRACTED_DIRNAME) -> None:
        self._extracted_dirname = extracted_dirname

    def install(self, archive: ArchiveFile, profile: PlatformProfile) -> InstallTree:
        if archive.extension not in (ArchiveFormat.ZIP, ArchiveFormat.TAR_BZ2):
            raise ExtractionError(
                f"Cannot install a {archive.extension.value} archive on {profile.os.value}"
            )
        destination = profile.dist_dir
        extracted = destination / self._extracted_dirname
        _remove_tree(profile.install_root)
        _remove_tree(extracted)

        expand_archive(
            archive.local_path,
            archive.extension,
            destination,
            on_conflict=MergePolicy.OVERWRITE,
        )

        if not extracted.is_dir():
            raise ExtractionError(
                f"Archive did not contain the expected {self._extracted_dirname}/ directory"
            )
        try:
            extracted.rename(profile.install_root)
        except OSError as exc:
            raise ExtractionError(
                f"Failed to move {extracted} to {profile.install_root}: {exc}"
            ) from exc
        _LOGGER.info("Installed runtime at %s", profile.install_root)
        return InstallTree.for_profile(profile)


class DiskImageInstaller:
    """Copy the application bundle out of a mounted disk image."""

    def __init__(
        self,
        workspace: TemporaryWorkspace,
        *,
        runner: CommandRunner = run_command,
        app_name: str = constants.MOUNTED_APP_NAME,
    ) -> None:
        self._workspace = workspace
        self._runner = runner
        self._app_name = app_name

    def install(self, archive: ArchiveFile, profile: PlatformProfile) -> InstallTree:
        if archive.extension is not ArchiveFormat.DMG:
            raise ExtractionError(
                f"Cannot install a {archive.extension.value} archive on {profile.os.value}"
            )
        # The destination is the bundle itself rather than its parent, because
        # the image is already expanded and only its app directory is copied.
        destination = profile.install_root
        with mounted_disk_image(archive.local_path, self._workspace.mount_point, self._runner) as volume:
            source = volume / self._app_name
            if not source.is_dir():
                raise ExtractionError(f"Disk image did not contain {self._app_name}")
            _remove_tree(destination)
            try:
                shutil.copytree(source, destination, symlinks=True)
            except (OSError, shutil.Error) as exc:
                raise ExtractionError(
                    f"Failed to copy {source} to {destination}: {exc}"
                ) from exc
        _LOGGER.info("Installed runtime bundle at %s", destination)
        return InstallTree.for_profile(profile)


def select_installer(
    profile: PlatformProfile,
    workspace: TemporaryWorkspace,
    *,
    runner: CommandRunner = run_command,
) -> Installer:
    if profile.is_macos:
        return DiskImageInstaller(workspace, runner=runner)
    return ArchiveInstaller()


def install_runtime(
    archive: ArchiveFile,
    profile: PlatformProfile,
    workspace: TemporaryWorkspace,
    *,
    runner: CommandRunner = run_command,
) -> InstallTree:
    """Replace the runtime install tree with the contents of ``archive``."""

    profile.dist_dir.mkdir(parents=True, exist_ok=True)
    installer = select_installer(profile, workspace, runner=runner)
    _LOGGER.debug("Installing %s with %s", archive.local_path, type(installer).__name__)
    return installer.install(archive, profile)


def _remove_tree(path: Path) -> None:
    if not path.exists() and not path.is_symlink():
        return
    _LOGGER.debug("Removing %s", path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as exc:
        raise ExtractionError(f"Failed to remove {path}: {exc}") from exc
