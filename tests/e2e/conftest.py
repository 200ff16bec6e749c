from __future__ import annotations

import pytest

from tests.e2e.runtime_harness import RuntimeSetupHarness, create_runtime_setup_harness


@pytest.fixture
def runtime_setup(tmp_path, monkeypatch: pytest.MonkeyPatch) -> RuntimeSetupHarness:
    return create_runtime_setup_harness(tmp_path, monkeypatch)
