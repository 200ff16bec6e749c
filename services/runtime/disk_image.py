"""Attach and detach macOS disk images with ``hdiutil``."""

from __future__ import annotations

import logging
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Sequence

from services.runtime import constants
from services.runtime.models import ExternalToolError

_LOGGER = logging.getLogger(__name__)

__all__ = ["CommandRunner", "attach_disk_image", "detach_disk_image", "mounted_disk_image", "run_command"]

CommandRunner = Callable[[Sequence[str]], int]


def run_command(command: Sequence[str]) -> int:
    """Run ``command`` with inherited stdio and return its exit code."""

    _LOGGER.debug("Running %s", " ".join(command))
    try:
        completed = subprocess.run(list(command), check=False)
    except OSError as exc:
        raise ExternalToolError(f"Failed to run {command[0]!r}: {exc}") from exc
    return completed.returncode


def attach_disk_image(image: Path, mount_point: Path, runner: CommandRunner = run_command) -> None:
    mount_point.mkdir(parents=True, exist_ok=True)
    exit_code = runner(
        [
            constants.HDIUTIL,
            "attach",
            str(image),
            "-mountpoint",
            str(mount_point),
            "-nobrowse",
            "-quiet",
        ]
    )
    if exit_code:
        raise ExternalToolError(
            f"'hdiutil attach' exited with code {exit_code}", exit_code=exit_code
        )
    _LOGGER.info("Attached %s at %s", image, mount_point)


def detach_disk_image(mount_point: Path, runner: CommandRunner = run_command) -> None:
    exit_code = runner([constants.HDIUTIL, "detach", str(mount_point), "-quiet"])
    if exit_code:
        raise ExternalToolError(
            f"'hdiutil detach' exited with code {exit_code}", exit_code=exit_code
        )
    _LOGGER.info("Detached %s", mount_point)


@contextmanager
def mounted_disk_image(
    image: Path, mount_point: Path, runner: CommandRunner = run_command
) -> Iterator[Path]:
    """Attach ``image`` for the duration of the ``with`` block.

    Once attached, the image is detached on every exit path. A detach failure
    after the body raised is logged and the body's exception propagates.
    """

    attach_disk_image(image, mount_point, runner)
    try:
        yield mount_point
    except BaseException:
        try:
            detach_disk_image(mount_point, runner)
        except ExternalToolError as exc:
            _LOGGER.error("Failed to detach %s after an error: %s", mount_point, exc)
        raise
    detach_disk_image(mount_point, runner)
