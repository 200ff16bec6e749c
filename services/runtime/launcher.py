"""Install the stub launcher that starts the runtime with the companion app."""

from __future__ import annotations

import logging
import plistlib
import shutil
from pathlib import Path

from services.runtime import constants
from services.runtime.models import InstallTree, MissingFileError, PlatformProfile

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_LAUNCHER_DIR",
    "install_launcher",
    "launcher_name_for",
    "point_bundle_at_launcher",
]

DEFAULT_LAUNCHER_DIR = Path(__file__).resolve().parent / "launchers"


def launcher_name_for(profile: PlatformProfile) -> str:
    return constants.WINDOWS_LAUNCHER if profile.is_windows else constants.POSIX_LAUNCHER


def install_launcher(
    tree: InstallTree,
    profile: PlatformProfile,
    launcher_dir: Path = DEFAULT_LAUNCHER_DIR,
) -> Path:
    """Copy the platform's launcher stub into the executable directory."""

    name = launcher_name_for(profile)
    source = launcher_dir / name
    if not source.is_file():
        raise MissingFileError(f"Launcher stub not found: {source}", path=source)
    tree.executable_path.mkdir(parents=True, exist_ok=True)
    target = tree.executable_path / name
    shutil.copy2(source, target)
    _LOGGER.info("Installed launcher %s", target)

    if profile.is_macos:
        point_bundle_at_launcher(tree.root / Path(*constants.BUNDLE_PLIST), name)
    return target


def point_bundle_at_launcher(plist_path: Path, launcher_name: str) -> None:
    """Set ``CFBundleExecutable`` in ``plist_path`` leaving other keys untouched."""

    try:
        raw = plist_path.read_bytes()
    except FileNotFoundError as exc:
        raise MissingFileError(f"Bundle manifest not found: {plist_path}", path=plist_path) from exc

    fmt = plistlib.FMT_BINARY if raw.startswith(b"bplist00") else plistlib.FMT_XML
    manifest = plistlib.loads(raw)
    previous = manifest.get(constants.PLIST_EXECUTABLE_KEY)
    manifest[constants.PLIST_EXECUTABLE_KEY] = launcher_name
    plist_path.write_bytes(plistlib.dumps(manifest, fmt=fmt, sort_keys=False))
    _LOGGER.info(
        "Pointed bundle executable at %s (was %s) in %s",
        launcher_name,
        previous,
        plist_path,
    )
