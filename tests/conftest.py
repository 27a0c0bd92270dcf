"""Test configuration hooks."""

from __future__ import annotations

import pytest

from omnisearch_mcp.core.config import ResilienceConfig, RetryPolicyConfig
from omnisearch_mcp.orchestration import ResiliencePolicy
from tests.mocks import FakeClock


# Configure anyio to only use asyncio backend (skip trio tests)
@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio to use only asyncio backend."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    """Deterministic clock shared by policies and caches."""
    return FakeClock()


@pytest.fixture
def resilience_config() -> ResilienceConfig:
    """Resilience settings with fast, jitter-free retries."""
    return ResilienceConfig(
        retry=RetryPolicyConfig(
            max_attempts=3,
            backoff_seconds=0.1,
            backoff_multiplier=2.0,
            max_backoff_seconds=1.0,
            jitter=False,
        ),
        total_deadline_seconds=30.0,
    )


@pytest.fixture
def policy(resilience_config: ResilienceConfig, clock: FakeClock) -> ResiliencePolicy:
    """Resilience policy driven by the fake clock."""
    return ResiliencePolicy(resilience_config, clock=clock, sleep=clock.sleep)
