"""Graft the qbrt companion application into an installed runtime."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from services.runtime import constants
from services.runtime.archive import MergePolicy, extract_zip
from services.runtime.fetcher import download_file
from services.runtime.models import InstallTree, MissingFileError
from services.runtime.network import HttpClient

_LOGGER = logging.getLogger(__name__)

__all__ = ["BundleGrafter", "GraftOptions", "copy_entry"]


@dataclass(frozen=True)
class GraftOptions:
    """Tunable parts of the grafting step."""

    app_files: Sequence[str] = constants.COMPANION_APP_FILES
    devtools_pref_files: Sequence[str] = constants.DEVTOOLS_PREF_FILES
    openvr_enabled: bool = True
    openvr_url: str = constants.OPENVR_DLL_URL


class BundleGrafter:
    """Copy the companion app, expose devtools and patch preferences."""

    def __init__(
        self,
        source_dir: Path,
        client: HttpClient,
        options: GraftOptions | None = None,
    ) -> None:
        self._source_dir = Path(source_dir)
        self._client = client
        self._options = options or GraftOptions()

    def graft(self, tree: InstallTree) -> None:
        """Run every grafting step against a freshly installed ``tree``."""

        self.install_companion_app(tree)
        self.extract_browser_resources(tree)
        self.copy_devtools_preferences(tree)

    def install_companion_app(self, tree: InstallTree) -> None:
        """Copy the companion files and, when enabled, the OpenVR library."""

        self.copy_companion_files(tree)
        if self._options.openvr_enabled:
            self.install_openvr(tree)
        else:
            _LOGGER.debug("OpenVR support disabled; skipping download")

    def copy_companion_files(self, tree: InstallTree) -> None:
        target_dir = tree.companion_path
        target_dir.mkdir(parents=True, exist_ok=True)
        for name in self._options.app_files:
            copy_entry(self._source_dir / name, target_dir / name)
        _LOGGER.info(
            "Copied %s companion entries from %s to %s",
            len(self._options.app_files),
            self._source_dir,
            target_dir,
        )

    def extract_browser_resources(self, tree: InstallTree) -> None:
        """Expand the browser's packed resources beside the companion app.

        Chrome manifests cannot reference parent directories, so the files have
        to live below the companion directory. The pack carries its own
        ``chrome.manifest``, which must replace any copy already on disk.
        """

        archive = tree.browser_archive
        if not archive.is_file():
            raise MissingFileError(f"Browser resource archive not found: {archive}", path=archive)
        target_dir = tree.companion_path / "browser"
        extract_zip(archive, target_dir, on_conflict=MergePolicy.OVERWRITE)
        _LOGGER.info("Extracted %s into %s", archive, target_dir)

    def copy_devtools_preferences(self, tree: InstallTree) -> None:
        source_dir = tree.companion_path.joinpath("browser", *constants.PREFERENCES_SUBPATH)
        target_dir = tree.companion_preferences
        for name in self._options.devtools_pref_files:
            copy_entry(source_dir / name, target_dir / name)
        _LOGGER.info("Copied devtools preferences into %s", target_dir)

    def install_openvr(self, tree: InstallTree) -> Path:
        dll_path = tree.companion_path / constants.OPENVR_DLL_FILENAME
        download_file(self._options.openvr_url, dll_path, self._client)
        prefs_path = tree.companion_preferences / constants.PREFS_FILENAME
        prefs_path.parent.mkdir(parents=True, exist_ok=True)
        with prefs_path.open("a", encoding="utf-8") as prefs:
            prefs.write(f"\npref('{constants.OPENVR_PREF_NAME}', '{_pref_path(dll_path)}');\n")
        _LOGGER.info("Configured OpenVR runtime %s in %s", dll_path, prefs_path)
        return dll_path


def copy_entry(source: Path, target: Path) -> None:
    """Recursively copy a file or directory, merging into existing directories."""

    if not source.exists():
        raise MissingFileError(f"Required file not found: {source}", path=source)
    target.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True)
    else:
        shutil.copy2(source, target)
    _LOGGER.debug("Copied %s to %s", source, target)


def _pref_path(path: Path) -> str:
    # Preference files are JavaScript string literals.
    return str(path).replace("\\", "\\\\").replace("'", "\\'")
