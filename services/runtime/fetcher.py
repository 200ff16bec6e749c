"""Download runtime archives and auxiliary files."""

from __future__ import annotations

import http.client
import logging
from pathlib import Path

from services.runtime import constants
from services.runtime.models import (
    ArchiveFile,
    ArchiveFormat,
    NetworkError,
    PlatformProfile,
    UnsupportedFormatError,
)
from services.runtime.network import HttpClient, HttpResponse
from services.runtime.workspace import TemporaryWorkspace

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "classify_content_type",
    "download_file",
    "fetch_archive",
    "rewrite_redirect_location",
]


def rewrite_redirect_location(location: str, profile: PlatformProfile) -> str:
    """Point Windows installer redirects at the equivalent zip archive.

    The self-extracting installer cannot be expanded programmatically, while
    the zip build next to it on the server can.
    """

    if profile.is_windows and location.endswith(constants.INSTALLER_SUFFIX):
        return location[: -len(constants.INSTALLER_SUFFIX)] + constants.ARCHIVE_SUFFIX
    return location


def classify_content_type(content_type: str | None) -> ArchiveFormat:
    """Return the :class:`ArchiveFormat` declared by ``content_type``."""

    mime = (content_type or "").split(";", 1)[0].strip().lower()
    extension = constants.CONTENT_TYPE_EXTENSIONS.get(mime)
    if extension is None:
        raise UnsupportedFormatError(
            f"Unsupported runtime archive content type {content_type!r}"
        )
    return ArchiveFormat(extension)


def fetch_archive(
    url: str,
    profile: PlatformProfile,
    workspace: TemporaryWorkspace,
    client: HttpClient,
) -> ArchiveFile:
    """Download the runtime archive at ``url`` into ``workspace``."""

    _LOGGER.info("Downloading runtime from %s", url)
    final_url, response = client.open_following_redirects(
        url, rewrite=lambda location: rewrite_redirect_location(location, profile)
    )
    try:
        content_type = response.headers.get("Content-Type")
        archive_format = classify_content_type(content_type)
        target_path = workspace.archive_path(archive_format.value)
        written = _stream_to_file(response, target_path, final_url)
    finally:
        response.close()

    mime = (content_type or "").split(";", 1)[0].strip().lower()
    _LOGGER.info(
        "Downloaded %s bytes of %s from %s to %s",
        written,
        mime,
        final_url,
        target_path,
    )
    return ArchiveFile(local_path=target_path, mime_type=mime, extension=archive_format)


def download_file(url: str, destination: Path, client: HttpClient) -> Path:
    """Download ``url`` to ``destination`` following redirects."""

    _LOGGER.info("Downloading %s to %s", url, destination)
    final_url, response = client.open_following_redirects(url)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        written = _stream_to_file(response, destination, final_url)
    finally:
        response.close()
    _LOGGER.debug("Downloaded %s bytes to %s", written, destination)
    return destination


def _stream_to_file(response: HttpResponse, target_path: Path, url: str) -> int:
    written = 0
    try:
        with target_path.open("wb") as destination:
            while True:
                chunk = response.read(constants.DOWNLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                destination.write(chunk)
                written += len(chunk)
    except (OSError, http.client.HTTPException) as exc:
        target_path.unlink(missing_ok=True)
        raise NetworkError(f"Failed to download {url}: {exc}") from exc
    return written
