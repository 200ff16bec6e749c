"""Scratch directory holding the download and the disk-image mount point."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from services.runtime import constants

_LOGGER = logging.getLogger(__name__)


class TemporaryWorkspace:
    """A uniquely named temporary directory removed by :meth:`cleanup`."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def create(cls, parent: Path | None = None) -> "TemporaryWorkspace":
        path = Path(
            tempfile.mkdtemp(
                prefix=constants.WORKSPACE_PREFIX,
                dir=str(parent) if parent is not None else None,
            )
        )
        _LOGGER.debug("Created temporary workspace %s", path)
        return cls(path)

    @property
    def mount_point(self) -> Path:
        return self.path / constants.MOUNT_POINT_NAME

    def archive_path(self, extension: str) -> Path:
        return self.path / f"{constants.ARCHIVE_BASENAME}.{extension}"

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def cleanup(self) -> None:
        if not self.path.exists():
            return
        shutil.rmtree(self.path, ignore_errors=True)
        if self.path.exists():
            _LOGGER.warning("Temporary workspace %s could not be fully removed", self.path)
        else:
            _LOGGER.debug("Removed temporary workspace %s", self.path)

    def __enter__(self) -> "TemporaryWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
