from typing import Callable

import httpx
import pytest

from apichain.config import Settings
from apichain.services.api_testing.http_client import APIHttpClient


class RecordingHttpClient(APIHttpClient):
    """APIHttpClient over a mock transport that counts send() calls."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response], **kwargs):
        kwargs.setdefault("max_retries", 0)
        kwargs.setdefault("backoff_seconds", 0)
        super().__init__(transport=httpx.MockTransport(handler), **kwargs)
        self.send_calls: list[dict] = []

    async def send(self, method, url, headers=None, body=None, timeout_ms=None, max_retries=None):
        self.send_calls.append({"method": method, "url": url, "headers": headers, "body": body})
        return await super().send(method, url, headers, body, timeout_ms, max_retries)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        request_timeout_ms=5000,
        max_retries=0,
        retry_backoff_seconds=0,
        inter_step_delay_ms=0,
        data_repository_path="",
    )


@pytest.fixture
def recording_client():
    def factory(handler, **kwargs) -> RecordingHttpClient:
        return RecordingHttpClient(handler, **kwargs)
    return factory


@pytest.fixture
def anyio_backend():
    return "asyncio"
