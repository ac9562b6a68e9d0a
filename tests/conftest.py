"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from ragchat.adapters.http import BackendClient
from ragchat.config import Settings
from ragchat.tools.retry import RetryExecutor

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingSleep:
    """Sleep stand-in that records requested delays (seconds) and returns at once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedStatusSource:
    """Status source replaying a script; the last entry repeats forever.

    Exception instances in the script are raised instead of returned.
    """

    def __init__(self, script: list[Any]) -> None:
        self.script = script
        self.calls = 0
        self.document_ids: list[str] = []

    async def get_status(self, document_id: str) -> Any:
        self.calls += 1
        self.document_ids.append(document_id)
        item = self.script[min(self.calls, len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    """Injectable sleep that never waits."""
    return RecordingSleep()


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake backend with tiny delays."""
    return Settings(
        _env_file=None,
        api_base_url="http://backend.test/api",
        api_token="test-token",
        poll_max_attempts=5,
        poll_interval_ms=0,
        retry_base_delay_ms=1,
        status_retry_base_delay_ms=1,
    )


@pytest.fixture
def retry(fake_sleep: RecordingSleep) -> RetryExecutor:
    """Retry executor that records instead of sleeping."""
    return RetryExecutor(sleep_fn=fake_sleep)


@pytest.fixture
def make_backend(settings: Settings) -> Callable[[Handler], BackendClient]:
    """Factory for a BackendClient served by an httpx.MockTransport handler."""

    def factory(handler: Handler) -> BackendClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return BackendClient(settings=settings, client=client)

    return factory


@pytest.fixture
def scripted_source() -> Callable[[list[Any]], ScriptedStatusSource]:
    """Factory for scripted status sources."""
    return ScriptedStatusSource
