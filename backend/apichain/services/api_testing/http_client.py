"""Async HTTP transport with timeouts, retries and typed failures."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from apichain.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RequestErrorType(str, Enum):
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    GRAPHQL_ERROR = "GRAPHQL_ERROR"
    URL_ERROR = "URL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class RequestError(Exception):
    """A request that could not be prepared, sent, or completed successfully."""

    def __init__(
        self,
        message: str,
        error_type: RequestErrorType = RequestErrorType.UNKNOWN_ERROR,
        status: int | None = None,
        status_text: str | None = None,
        headers: dict[str, str] | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status = status
        self.status_text = status_text
        self.headers = headers or {}
        self.details = details

    @property
    def retryable(self) -> bool:
        """Client errors (4xx) and malformed input are never retried."""
        if self.error_type in (RequestErrorType.URL_ERROR, RequestErrorType.GRAPHQL_ERROR):
            return False
        if self.status is not None and 400 <= self.status < 500:
            return False
        return True


@dataclass
class HTTPResponse:
    """Captured HTTP response with timing information."""
    status_code: int
    reason_phrase: str
    headers: dict[str, str]
    body: str
    body_bytes: bytes
    elapsed_ms: int
    size_bytes: int = 0
    attempts: int = 1

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Parse response body as JSON."""
        return json.loads(self.body)


class APIHttpClient:
    """Async HTTP client for chain steps with timing capture and retries."""

    def __init__(
        self,
        timeout_ms: int = 30000,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        follow_redirects: bool = True,
        verify_ssl: bool = True,
        max_body_size: int = 10 * 1024 * 1024,  # 10MB max response body
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.follow_redirects = follow_redirects
        self.verify_ssl = verify_ssl
        self.max_body_size = max_body_size
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "APIHttpClient":
        settings = settings or get_settings()
        return cls(
            timeout_ms=settings.request_timeout_ms,
            max_retries=settings.max_retries,
            backoff_seconds=settings.retry_backoff_seconds,
            follow_redirects=settings.follow_redirects,
            verify_ssl=settings.verify_ssl,
            max_body_size=settings.max_body_size,
            transport=transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            kwargs: dict[str, Any] = {
                "timeout": httpx.Timeout(self.timeout_ms / 1000.0),
                "follow_redirects": self.follow_redirects,
                "verify": self.verify_ssl,
            }
            if self.transport is not None:
                kwargs["transport"] = self.transport
            self._client = httpx.AsyncClient(**kwargs)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: str | None = None,
        timeout_ms: int | None = None,
        max_retries: int | None = None,
    ) -> HTTPResponse:
        """
        Send a request, retrying transient failures with exponential backoff.

        Args:
            method: HTTP method
            url: Full URL including query string
            headers: Request headers
            body: Serialized request body, or None
            timeout_ms: Per-attempt timeout (overrides default)
            max_retries: Retries after the first attempt (overrides default)

        Returns:
            HTTPResponse for a 2xx or 304 answer

        Raises:
            RequestError: TIMEOUT, NETWORK_ERROR, URL_ERROR, or HTTP_ERROR for
                other answers. 4xx answers are never retried.
        """
        self._check_url(url)
        retries = self.max_retries if max_retries is None else max_retries
        attempt = 0

        while True:
            try:
                response = await self._send_once(method, url, headers, body, timeout_ms)
            except RequestError as e:
                error = e
            else:
                response.attempts = attempt + 1
                if response.ok or response.status_code == 304:
                    return response
                error = self._http_error(response)

            if not error.retryable or attempt >= retries:
                raise error

            attempt += 1
            delay = self.backoff_seconds * (2 ** attempt)
            logger.warning(
                f"Retrying {method} {url} in {delay:.1f}s "
                f"(attempt {attempt + 1}/{retries + 1}): {error}"
            )
            await asyncio.sleep(delay)

    async def _send_once(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
        body: str | None,
        timeout_ms: int | None,
    ) -> HTTPResponse:
        client = await self._get_client()

        kwargs: dict[str, Any] = {
            "method": method.upper(),
            "url": url,
            "headers": headers or {},
        }
        if body is not None:
            kwargs["content"] = body.encode("utf-8")
        if timeout_ms:
            kwargs["timeout"] = timeout_ms / 1000.0

        start_time = time.perf_counter()

        try:
            response = await client.request(**kwargs)
            body_bytes = await response.aread()
        except httpx.TimeoutException as e:
            raise RequestError(
                f"Request timed out: {e}", RequestErrorType.TIMEOUT
            ) from e
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise RequestError(f"Invalid URL: {url}", RequestErrorType.URL_ERROR) from e
        except httpx.TransportError as e:
            raise RequestError(
                f"Network error: Unable to connect to the server ({e})",
                RequestErrorType.NETWORK_ERROR,
            ) from e
        except httpx.HTTPError as e:
            raise RequestError(str(e), RequestErrorType.UNKNOWN_ERROR) from e

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)

        if len(body_bytes) > self.max_body_size:
            body_bytes = body_bytes[:self.max_body_size]

        # Try to decode as text
        try:
            body_text = body_bytes.decode("utf-8")
        except UnicodeDecodeError:
            body_text = body_bytes.decode("latin-1")

        return HTTPResponse(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=dict(response.headers),
            body=body_text,
            body_bytes=body_bytes,
            elapsed_ms=elapsed_ms,
            size_bytes=len(body_bytes),
        )

    @staticmethod
    def _check_url(url: str):
        """Reject URLs that are not absolute http(s) URLs before any attempt."""
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise RequestError(f"Invalid URL: {url}", RequestErrorType.URL_ERROR) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise RequestError(f"Invalid URL: {url}", RequestErrorType.URL_ERROR)

    @staticmethod
    def _http_error(response: HTTPResponse) -> RequestError:
        """Build an HTTP_ERROR, preferring the server's own error message."""
        message = f"HTTP error! status: {response.status_code}"
        details: Any = None

        try:
            details = response.json()
        except (json.JSONDecodeError, ValueError):
            if response.body:
                message = response.body
        else:
            if isinstance(details, dict) and (details.get("message") or details.get("error")):
                message = str(details.get("message") or details.get("error"))

        return RequestError(
            message,
            RequestErrorType.HTTP_ERROR,
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=response.headers,
            details=details,
        )
