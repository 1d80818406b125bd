from __future__ import annotations

from typing import List

import pytest

from jcas.core.config import ExecutionSettings


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def fake_sleep(sleeps: List[float]):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep


@pytest.fixture
def direct_settings() -> ExecutionSettings:
    return ExecutionSettings(api_url="https://judge0.test", api_key="test-key", max_attempts=5, poll_interval_ms=10)
