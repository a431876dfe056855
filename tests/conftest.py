"""Test utilities and fixtures for the Study Assistant gateway tests."""

import os
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import httpx
import pytest

from config import ApplicationConfig


@pytest.fixture
def mock_config() -> ApplicationConfig:
    """Configuration built from explicit values, ignoring the environment's .env file."""
    return ApplicationConfig(
        _env_file=None,
        HUGGING_FACE_API_KEY="test-api-key",
        INFERENCE_BASE_URL="https://inference.test",
        REDIS_URL=None,
        DAILY_REQUEST_LIMIT=2,
        WINDOW_MAX_REQUESTS=3,
        CHUNK_CHAR_LIMIT=3000,
        CACHE_MAX_ENTRIES=50,
        CACHE_TTL_SECONDS=600,
    )


@pytest.fixture
def redis_config(mock_config: ApplicationConfig) -> ApplicationConfig:
    return mock_config.model_copy(update={"redis_url": "redis://localhost:6379/0"})


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """Create a mock Redis client."""
    mock_client = AsyncMock()
    mock_client.configured = True
    mock_client.connect = AsyncMock()
    mock_client.disconnect = AsyncMock()
    mock_client.is_connected = AsyncMock(return_value=True)
    mock_client.increment_with_expiry = AsyncMock(return_value=1)
    mock_client.get_ttl = AsyncMock(return_value=3600)
    mock_client.health_check = AsyncMock(return_value={"status": "healthy"})
    return mock_client


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """A clock pinned one minute before midnight UTC."""
    return lambda: datetime(2026, 10, 18, 23, 59, 0, tzinfo=timezone.utc)


class RecordingTransport:
    """Scripted httpx transport that records every request it receives."""

    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def calls(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def recording_transport() -> Callable[[List[Any]], RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that records requested delays."""
    return AsyncMock()


@pytest.fixture
def study_request() -> Dict[str, Any]:
    """Body accepted by the study feature routes."""
    return {"text": "Photosynthesis converts light into energy.", "targetLang": "fr"}
