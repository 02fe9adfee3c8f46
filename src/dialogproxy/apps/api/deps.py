from __future__ import annotations

from functools import lru_cache

from dialogproxy.core.config import ProxyConfig
from dialogproxy.core.orchestration.orchestrator import Orchestrator


@lru_cache(maxsize=1)
def get_config() -> ProxyConfig:
    return ProxyConfig.from_env()


@lru_cache(maxsize=1)
def get_orchestrator() -> Orchestrator:
    return Orchestrator(config=get_config())
