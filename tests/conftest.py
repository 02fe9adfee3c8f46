from __future__ import annotations

import os

import pytest

from dialogproxy.apps.api import deps


@pytest.fixture(autouse=True)
def isolated_proxy_env(monkeypatch: pytest.MonkeyPatch):
    for name in list(os.environ):
        if name.startswith("DIALOGPROXY_"):
            monkeypatch.delenv(name, raising=False)
    deps.get_config.cache_clear()
    deps.get_orchestrator.cache_clear()
    yield
    deps.get_config.cache_clear()
    deps.get_orchestrator.cache_clear()
