from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


@pytest.fixture(autouse=True)
def _setup_log_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Route setup logs to a temporary location so tests never touch ``~/.qbrt``."""

    log_dir = tmp_path_factory.mktemp("qbrt_logs")
    monkeypatch.setenv("QBRT_LOG_DIR", str(log_dir))
    monkeypatch.delenv("QBRT_LOG_FILE", raising=False)
    yield


@pytest.fixture(autouse=True)
def _fresh_app_config():
    """Drop cached configuration so each test sees the bundled defaults."""

    from app.config import reset_app_config_cache

    reset_app_config_cache()
    yield
    reset_app_config_cache()
