import sys
from pathlib import Path
from typing import Callable, List

import httpx
import pytest

# Ensure src is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from havensync.core.config import Settings
from havensync.core.mock_data import MockDataProvider

BASE_URL = "https://api.havenmind.test"


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """An AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def mock_provider(sleeper) -> MockDataProvider:
    return MockDataProvider(sleep=sleeper)


@pytest.fixture
def mock_settings() -> Settings:
    return Settings()


@pytest.fixture
def live_settings() -> Settings:
    return Settings(api_base_url=BASE_URL)
