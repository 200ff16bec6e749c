"""Constants shared across the runtime setup modules."""

from __future__ import annotations

DOWNLOAD_LOCALE = "en-US"
NIGHTLY_BASE_URL = "https://archive.mozilla.org/pub/firefox/nightly/2017/04"
_LINUX_BUILD = f"{NIGHTLY_BASE_URL}/2017-04-02-10-01-59-mozilla-central/firefox-55.0a1"
_DESKTOP_BUILD = f"{NIGHTLY_BASE_URL}/2017-04-02-03-02-02-mozilla-central/firefox-55.0a1"

DOWNLOAD_INFO_URLS = {
    "linux": f"{_LINUX_BUILD}.{{locale}}.linux-i686.json",
    "linux64": f"{_LINUX_BUILD}.{{locale}}.linux-x86_64.json",
    "osx": f"{_DESKTOP_BUILD}.{{locale}}.mac.json",
    "win": f"{_DESKTOP_BUILD}.{{locale}}.win32.json",
    "win64": f"{_DESKTOP_BUILD}.{{locale}}.win64.json",
}
# macOS has no pinned build and resolves through GENERIC_BIN_URL.
DOWNLOAD_BIN_URLS = {
    "linux": f"{_LINUX_BUILD}.{{locale}}.linux-i686.tar.bz2",
    "linux64": f"{_LINUX_BUILD}.{{locale}}.linux-x86_64.tar.bz2",
    "win": f"{_DESKTOP_BUILD}.{{locale}}.win32.installer.exe",
    "win64": f"{_DESKTOP_BUILD}.{{locale}}.win64.installer.exe",
}
GENERIC_BIN_URL = (
    "https://download.mozilla.org/?product=firefox-nightly-latest-ssl"
    "&lang={locale}&os={os}"
)

CONTENT_TYPE_EXTENSIONS = {
    "application/x-apple-diskimage": "dmg",
    "application/zip": "zip",
    "application/x-tar": "tar.bz2",
}

INSTALLER_SUFFIX = ".installer.exe"
ARCHIVE_SUFFIX = ".zip"

DESCRIPTOR_FILENAME = "firefox.json"
ARCHIVE_BASENAME = "runtime"
RUNTIME_DIRNAME = "runtime"
BUNDLE_DIRNAME = "Runtime.app"
EXTRACTED_DIRNAME = "firefox"
MOUNTED_APP_NAME = "FirefoxNightly.app"
MOUNT_POINT_NAME = "volume"
WORKSPACE_PREFIX = "qbrt-"

COMPANION_DIRNAME = "qbrt"
COMPANION_APP_FILES = (
    "application.ini",
    "chrome",
    "chrome.manifest",
    "components",
    "defaults",
    "devtools.manifest",
    "modules",
)
BROWSER_ARCHIVE = ("browser", "omni.ja")
DEVTOOLS_PREF_FILES = ("debugger.js", "devtools.js")
PREFERENCES_SUBPATH = ("defaults", "preferences")
PREFS_FILENAME = "prefs.js"

OPENVR_DLL_FILENAME = "openvr_api.dll"
OPENVR_DLL_URL = "https://github.com/ValveSoftware/openvr/raw/v1.0.6/bin/win64/openvr_api.dll"
OPENVR_PREF_NAME = "gfx.vr.openvr-runtime"

WINDOWS_LAUNCHER = "launcher.bat"
POSIX_LAUNCHER = "launcher.sh"
BUNDLE_PLIST = ("Contents", "Info.plist")
PLIST_EXECUTABLE_KEY = "CFBundleExecutable"

HDIUTIL = "hdiutil"

MAX_REDIRECTS = 10
NETWORK_TIMEOUT = 60.0
NETWORK_RETRIES = 3
RETRY_BACKOFF_SECONDS = 1.0
RETRYABLE_HTTP_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})
DOWNLOAD_CHUNK_SIZE = 256 * 1024

MAX_ARCHIVE_TOTAL_BYTES = 2 * 1024 * 1024 * 1024  # 2 GiB
MAX_ARCHIVE_ENTRIES = 50000

DIST_DIR_ENV = "QBRT_DIST_DIR"
SOURCE_DIR_ENV = "QBRT_SOURCE_DIR"
LOCALE_ENV = "QBRT_DOWNLOAD_LOCALE"
OPENVR_ENV = "QBRT_OPENVR_ENABLED"
