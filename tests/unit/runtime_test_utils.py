from __future__ import annotations

import io
import plistlib
import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Sequence
from zipfile import ZIP_DEFLATED, ZipFile

from services.runtime import PlatformProfile, resolve_platform_profile
from services.runtime.constants import COMPANION_APP_FILES


@dataclass
class Route:
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    read_error: BaseException | None = None


def redirect(location: str, status: int = 302) -> Route:
    return Route(status=status, headers={"Location": location})


def payload(body: bytes, content_type: str) -> Route:
    return Route(headers={"Content-Type": content_type}, body=body)


class FakeResponse(io.BytesIO):
    def __init__(self, route: Route) -> None:
        super().__init__(route.body)
        self.status = route.status
        self.headers = dict(route.headers)
        self.read_error = route.read_error

    def read(self, size: int | None = -1) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        return super().read(size)

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FakeOpener:
    """Serve canned responses keyed by URL and record every request."""

    def __init__(self, routes: Mapping[str, object] | None = None) -> None:
        self.routes: dict[str, object] = dict(routes or {})
        self.requested: list[str] = []
        self.timeouts: list[float | None] = []

    def __call__(self, request, timeout=None):  # type: ignore[no-untyped-def]
        url = request.full_url
        self.requested.append(url)
        self.timeouts.append(timeout)
        route = self.routes.get(url)
        if route is None:
            raise AssertionError(f"Unexpected URL requested: {url}")
        if isinstance(route, list):
            route = route.pop(0) if len(route) > 1 else route[0]
        if isinstance(route, BaseException):
            raise route
        assert isinstance(route, Route)
        return FakeResponse(route)


class RecordingRunner:
    """Stand-in for ``hdiutil`` that mounts a fake application bundle."""

    def __init__(
        self,
        *,
        attach_exit: int = 0,
        detach_exit: int = 0,
        bundle_builder=None,  # type: ignore[no-untyped-def]
    ) -> None:
        self.attach_exit = attach_exit
        self.detach_exit = detach_exit
        self.bundle_builder = bundle_builder or build_app_bundle
        self.commands: list[list[str]] = []

    def __call__(self, command: Sequence[str]) -> int:
        self.commands.append(list(command))
        action = command[1]
        if action == "attach":
            if self.attach_exit:
                return self.attach_exit
            mount_point = Path(command[command.index("-mountpoint") + 1])
            self.bundle_builder(mount_point / "FirefoxNightly.app")
            return 0
        if action == "detach":
            return self.detach_exit
        raise AssertionError(f"Unexpected hdiutil action {action}")

    @property
    def actions(self) -> list[str]:
        return [command[1] for command in self.commands]


def make_profile(
    tmp_path: Path, system: str = "linux", machine: str = "x86_64"
) -> PlatformProfile:
    return resolve_platform_profile(tmp_path / "dist", system=system, machine=machine)


def build_omni_ja(extra: Mapping[str, bytes] | None = None) -> bytes:
    entries = {
        "chrome.manifest": b"manifest browser/content/\n",
        "defaults/preferences/debugger.js": b"pref('devtools.debugger.enabled', true);\n",
        "defaults/preferences/devtools.js": b"pref('devtools.enabled', true);\n",
        "chrome/devtools/content/toolbox.xul": b"<window/>\n",
    }
    entries.update(extra or {})
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def runtime_entries(top_level: str = "firefox") -> dict[str, bytes]:
    return {
        f"{top_level}/firefox": b"#!/bin/sh\necho runtime\n",
        f"{top_level}/application.ini": b"[App]\nName=Firefox\n",
        f"{top_level}/browser/omni.ja": build_omni_ja(),
    }


def build_runtime_zip(tmp_path: Path, entries: Mapping[str, bytes] | None = None) -> Path:
    archive_path = tmp_path / "firefox.zip"
    with ZipFile(archive_path, "w", compression=ZIP_DEFLATED) as archive:
        for name, content in (entries or runtime_entries()).items():
            archive.writestr(name, content)
    return archive_path


def build_runtime_zip_bytes(entries: Mapping[str, bytes] | None = None) -> bytes:
    buffer = io.BytesIO()
    with ZipFile(buffer, "w", compression=ZIP_DEFLATED) as archive:
        for name, content in (entries or runtime_entries()).items():
            archive.writestr(name, content)
    return buffer.getvalue()


def build_runtime_tarball(tmp_path: Path, entries: Mapping[str, bytes] | None = None) -> Path:
    archive_path = tmp_path / "firefox.tar.bz2"
    with tarfile.open(archive_path, "w:bz2") as archive:
        for name, content in (entries or runtime_entries()).items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755 if name.endswith("/firefox") else 0o644
            archive.addfile(info, io.BytesIO(content))
    return archive_path


def build_app_bundle(bundle: Path) -> Path:
    contents = bundle / "Contents"
    (contents / "MacOS").mkdir(parents=True, exist_ok=True)
    (contents / "MacOS" / "firefox").write_bytes(b"binary")
    resources = contents / "Resources" / "browser"
    resources.mkdir(parents=True, exist_ok=True)
    (resources / "omni.ja").write_bytes(build_omni_ja())
    manifest = {
        "CFBundleExecutable": "firefox",
        "CFBundleIdentifier": "org.mozilla.nightly",
        "CFBundleShortVersionString": "55.0a1",
        "LSMinimumSystemVersion": "10.9.0",
    }
    (contents / "Info.plist").write_bytes(plistlib.dumps(manifest))
    return bundle


def build_companion_source(tmp_path: Path, missing: Iterable[str] = ()) -> Path:
    source = tmp_path / "source"
    skip = set(missing)
    layout = {
        "application.ini": b"[App]\nName=qbrt\n",
        "chrome/content/shell.js": b"// shell\n",
        "chrome.manifest": b"content qbrt chrome/content/\n",
        "components/qbrt.manifest": b"component qbrt\n",
        "defaults/preferences/prefs.js": b"pref('toolkit.defaultChromeURI', 'chrome://qbrt/content/shell.xul');\n",
        "devtools.manifest": b"content devtools browser/chrome/devtools/content/\n",
        "modules/Runtime.jsm": b"// runtime\n",
    }
    for relative, content in layout.items():
        top = relative.split("/", 1)[0]
        if top in skip:
            continue
        path = source / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    source.mkdir(parents=True, exist_ok=True)
    assert set(COMPANION_APP_FILES) == {name.split("/", 1)[0] for name in layout}
    return source


def snapshot_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


__all__ = [
    "FakeOpener",
    "FakeResponse",
    "RecordingRunner",
    "Route",
    "build_app_bundle",
    "build_companion_source",
    "build_omni_ja",
    "build_runtime_tarball",
    "build_runtime_zip",
    "build_runtime_zip_bytes",
    "make_profile",
    "payload",
    "redirect",
    "runtime_entries",
    "snapshot_tree",
]
