"""Decide whether the installed runtime build matches the published one."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from services.runtime.models import (
    BuildDescriptor,
    NetworkError,
    PlatformProfile,
    UpdateCheck,
)
from services.runtime.network import HttpClient

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "check_for_update",
    "is_up_to_date",
    "read_descriptor",
    "write_descriptor",
]


def is_up_to_date(installed: BuildDescriptor, published: BuildDescriptor) -> bool:
    """Return ``True`` when both descriptors name the same build and target.

    A field missing on either side never matches, so an empty record always
    reports an update.
    """

    if installed.build_id is None or published.build_id is None:
        return False
    if installed.target_alias is None or published.target_alias is None:
        return False
    return (
        installed.build_id == published.build_id
        and installed.target_alias == published.target_alias
    )


def read_descriptor(path: Path) -> BuildDescriptor:
    """Return the persisted descriptor at ``path`` or an empty one."""

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        _LOGGER.debug("No installed build record at %s", path)
        return BuildDescriptor.empty()
    except OSError as exc:
        _LOGGER.warning("Unable to read installed build record %s: %s", path, exc)
        return BuildDescriptor.empty()

    try:
        payload = json.loads(raw or "{}")
    except json.JSONDecodeError as exc:
        _LOGGER.warning("Ignoring unparsable build record %s: %s", path, exc)
        return BuildDescriptor.empty()
    if not isinstance(payload, Mapping):
        _LOGGER.warning("Ignoring build record %s with unexpected structure", path)
        return BuildDescriptor.empty()
    return BuildDescriptor.from_payload(payload)


def write_descriptor(path: Path, descriptor: BuildDescriptor) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(descriptor.to_payload(), indent=2) + "\n"
    path.write_text(text, encoding="utf-8")
    _LOGGER.info(
        "Recorded installed build %s (%s) at %s",
        descriptor.build_id,
        descriptor.target_alias,
        path,
    )


def check_for_update(profile: PlatformProfile, client: HttpClient) -> UpdateCheck:
    """Compare the persisted build record with the published metadata.

    Metadata failures are logged and reported as "not up to date" so that a
    fresh download is attempted. Nothing is written here; the caller records
    the descriptor once the runtime is fully installed.
    """

    previous = read_descriptor(profile.descriptor_path)

    if not profile.download_info_url:
        _LOGGER.info("No build metadata URL for %s; download required", profile.download_os)
        return UpdateCheck(False, BuildDescriptor.empty(), previous)

    try:
        payload = client.get_json(profile.download_info_url)
    except NetworkError as exc:
        _LOGGER.warning("Build metadata check failed, downloading anyway: %s", exc)
        return UpdateCheck(False, BuildDescriptor.empty(), previous)

    if not isinstance(payload, Mapping):
        _LOGGER.warning(
            "Build metadata from %s was not an object, downloading anyway",
            profile.download_info_url,
        )
        return UpdateCheck(False, BuildDescriptor.empty(), previous)

    published = BuildDescriptor.from_payload(payload)
    up_to_date = is_up_to_date(previous, published)
    if up_to_date:
        _LOGGER.info(
            "Installed runtime is current (build ID: %s; platform: %s)",
            published.build_id,
            published.target_alias,
        )
    else:
        _LOGGER.info(
            "New runtime available (build ID: %s; platform: %s), installed build ID: %s",
            published.build_id,
            published.target_alias,
            previous.build_id,
        )
    return UpdateCheck(up_to_date, published, previous)
