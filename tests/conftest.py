"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from alert24.config import Settings, SMSSettings, TwilioSettings, WebhookSettings
from alert24.models import DeliveryResult, Destination

# Add tests directory to path so helpers here can be imported by test modules
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))


class SleepRecorder:
    """Awaitable sleep that records requested delays instead of waiting.

    Injected into services so retry backoff and batch delays are instant
    but still observable.
    """

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def make_result(success: bool = True, **fields: Any) -> DeliveryResult:
    """Build a DeliveryResult with sensible test defaults."""
    return DeliveryResult(success=success, **fields)


def routed(responses: dict[str, int | httpx.Response]) -> Callable[..., Any]:
    """side_effect for client.request that answers by URL.

    Integer values become fresh responses with that status on every call.
    """

    async def _request(method: str, url: str, **kwargs: Any) -> httpx.Response:
        answer = responses[url]
        if isinstance(answer, int):
            return httpx.Response(answer, text="" if answer >= 400 else "OK")
        return answer

    return _request


@pytest.fixture
def sleep() -> SleepRecorder:
    """Instant sleep that records delays."""
    return SleepRecorder()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with Twilio credentials and default delivery policy."""
    return Settings(
        _env_file=None,
        env="test",
        base_url="https://alert24.test",
        webhook=WebhookSettings(),
        twilio=TwilioSettings(
            account_sid="AC0123456789",
            auth_token="twilio_token",
            phone_number="+15550001111",
        ),
        sms=SMSSettings(),
    )


@pytest.fixture
def destination() -> Destination:
    """An active, signed webhook destination."""
    return Destination(
        id="whk_test123",
        organization_id="org_1",
        name="Ops webhook",
        url="https://example.com/webhook",
        secret="test_secret",
    )


@pytest.fixture
def mock_http() -> Iterator[AsyncMock]:
    """Patch httpx.AsyncClient and yield the client used inside `async with`.

    Configure `mock_http.request` per test (return_value or side_effect).
    """
    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_client.request = AsyncMock(return_value=httpx.Response(200, text="OK"))
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_class.return_value = mock_client
        yield mock_client
