"""Archive expansion helpers for the runtime installer and grafter."""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import zipfile
from enum import Enum
from pathlib import Path, PurePosixPath

from services.runtime import constants
from services.runtime.models import ArchiveFormat, ExtractionError

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "MergePolicy",
    "expand_archive",
    "extract_tar_safely",
    "extract_zip",
    "extract_zip_safely",
]


class MergePolicy(str, Enum):
    """What to do when an archive entry collides with a file already on disk."""

    OVERWRITE = "overwrite"
    SKIP = "skip"
    ERROR = "error"


def expand_archive(
    archive_path: Path,
    archive_format: ArchiveFormat,
    destination: Path,
    *,
    on_conflict: MergePolicy = MergePolicy.OVERWRITE,
) -> None:
    """Expand ``archive_path`` into ``destination`` according to its format."""

    _LOGGER.info("Expanding %s archive %s into %s", archive_format.value, archive_path, destination)
    destination.mkdir(parents=True, exist_ok=True)
    if archive_format is ArchiveFormat.ZIP:
        extract_zip(archive_path, destination, on_conflict=on_conflict)
    elif archive_format is ArchiveFormat.TAR_BZ2:
        try:
            with tarfile.open(archive_path, "r:*") as archive:
                extract_tar_safely(archive, destination, on_conflict=on_conflict)
        except (OSError, tarfile.TarError) as exc:
            raise ExtractionError(f"Failed to expand {archive_path.name}: {exc}") from exc
    else:
        raise ExtractionError(
            f"{archive_format.value} archives cannot be expanded directly"
        )


def extract_zip(
    archive_path: Path,
    destination: Path,
    *,
    on_conflict: MergePolicy = MergePolicy.OVERWRITE,
) -> None:
    """Extract any zip-format file (including ``.ja`` resource packs)."""

    try:
        with zipfile.ZipFile(archive_path) as archive:
            extract_zip_safely(archive, destination, on_conflict=on_conflict)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ExtractionError(f"Failed to extract {archive_path.name}: {exc}") from exc


def extract_zip_safely(
    archive: zipfile.ZipFile,
    target_dir: Path,
    *,
    on_conflict: MergePolicy = MergePolicy.OVERWRITE,
) -> None:
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    skipped = 0
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        _check_entry_count(processed_entries)
        destination = _safe_destination(root, name)
        if member.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        total_bytes += member.file_size
        _check_total_bytes(total_bytes)
        if not _prepare_destination(destination, name, on_conflict):
            skipped += 1
            continue
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        mode = (member.external_attr >> 16) & 0o777
        if mode and os.name != "nt":
            os.chmod(destination, mode)

    _LOGGER.info(
        "Extracted %s entries totalling %s bytes (%s skipped)",
        processed_entries,
        total_bytes,
        skipped,
    )


def extract_tar_safely(
    archive: tarfile.TarFile,
    target_dir: Path,
    *,
    on_conflict: MergePolicy = MergePolicy.OVERWRITE,
) -> None:
    root = target_dir.resolve()
    members: list[tarfile.TarInfo] = []
    total_bytes = 0
    for member in archive.getmembers():
        if not member.name:
            continue
        _check_entry_count(len(members) + 1)
        destination = _safe_destination(root, member.name)
        if member.issym() or member.islnk():
            link_base = destination.parent if member.issym() else root
            _safe_destination(root, member.linkname, base=link_base, label="link target")
        elif not (member.isfile() or member.isdir()):
            raise ExtractionError(f"Archive contained unsupported entry {member.name}")
        if not member.isdir():
            total_bytes += member.size
            _check_total_bytes(total_bytes)
            if not _prepare_destination(destination, member.name, on_conflict):
                continue
        members.append(member)

    if hasattr(tarfile, "tar_filter"):
        archive.extractall(root, members=members, filter="tar")
    else:  # pragma: no cover - interpreters without extraction filters
        archive.extractall(root, members=members)
    _LOGGER.info("Extracted %s entries totalling %s bytes", len(members), total_bytes)


def _safe_destination(
    root: Path, name: str, *, base: Path | None = None, label: str = "path"
) -> Path:
    """Resolve ``name`` against ``base`` and require the result to stay inside ``root``."""

    base = root if base is None else base
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or (path.parts and path.parts[0].endswith(":")):
        raise ExtractionError(f"Archive contained an absolute {label}: {name}")
    destination = (base / Path(*path.parts)).resolve() if path.parts else base
    try:
        destination.relative_to(root)
    except ValueError:
        raise ExtractionError(f"Archive contained an unsafe relative {label}: {name}")
    return destination


def _prepare_destination(destination: Path, name: str, on_conflict: MergePolicy) -> bool:
    """Resolve a collision at ``destination``; return ``False`` to skip the entry."""

    if not destination.exists() and not destination.is_symlink():
        return True
    if on_conflict is MergePolicy.SKIP:
        _LOGGER.debug("Keeping existing %s; skipping archive entry", destination)
        return False
    if on_conflict is MergePolicy.ERROR:
        raise ExtractionError(f"Archive entry {name} conflicts with {destination}")
    _LOGGER.debug("Overwriting %s with archive entry %s", destination, name)
    if destination.is_dir() and not destination.is_symlink():
        shutil.rmtree(destination)
    else:
        destination.unlink()
    return True


def _check_entry_count(count: int) -> None:
    if count > constants.MAX_ARCHIVE_ENTRIES:
        _LOGGER.error(
            "Archive entry count %s exceeded limit %s", count, constants.MAX_ARCHIVE_ENTRIES
        )
        raise ExtractionError("Archive contained too many entries")


def _check_total_bytes(total: int) -> None:
    if total > constants.MAX_ARCHIVE_TOTAL_BYTES:
        _LOGGER.error(
            "Archive expanded to %s bytes which exceeds limit %s",
            total,
            constants.MAX_ARCHIVE_TOTAL_BYTES,
        )
        raise ExtractionError("Archive expanded beyond safe limits")
