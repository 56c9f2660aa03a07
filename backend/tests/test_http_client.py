import httpx
import pytest

from apichain.services.api_testing.http_client import (
    APIHttpClient,
    RequestError,
    RequestErrorType,
)


def client_for(handler, **kwargs) -> APIHttpClient:
    kwargs.setdefault("backoff_seconds", 0)
    return APIHttpClient(transport=httpx.MockTransport(handler), **kwargs)


class Sequence:
    """Mock handler returning queued responses (or raising queued exceptions)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.anyio
async def test_successful_request_captures_response():
    handler = Sequence(httpx.Response(200, json={"ok": True}, headers={"X-Trace": "t1"}))
    client = client_for(handler, max_retries=2)

    response = await client.send("post", "https://api.test/things", {"A": "1"}, '{"x":1}')

    assert response.status_code == 200
    assert response.reason_phrase == "OK"
    assert response.json() == {"ok": True}
    assert response.headers["x-trace"] == "t1"
    assert response.attempts == 1
    assert handler.requests[0].method == "POST"
    assert handler.requests[0].content == b'{"x":1}'
    assert handler.requests[0].headers["A"] == "1"
    await client.close()


@pytest.mark.anyio
async def test_client_errors_are_not_retried():
    handler = Sequence(httpx.Response(404, json={"message": "No such user"}))
    client = client_for(handler, max_retries=3)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "https://api.test/users/9")

    error = exc_info.value
    assert error.error_type == RequestErrorType.HTTP_ERROR
    assert error.status == 404
    assert error.status_text == "Not Found"
    assert error.message == "No such user"
    assert error.details == {"message": "No such user"}
    assert len(handler.requests) == 1


@pytest.mark.anyio
async def test_server_errors_are_retried_until_success():
    handler = Sequence(
        httpx.Response(503, text="busy"),
        httpx.Response(502, text="bad gateway"),
        httpx.Response(200, json={"ok": True}),
    )
    client = client_for(handler, max_retries=2)

    response = await client.send("GET", "https://api.test/flaky")

    assert response.status_code == 200
    assert response.attempts == 3
    assert len(handler.requests) == 3


@pytest.mark.anyio
async def test_server_error_after_retries_keeps_status_and_text_body():
    handler = Sequence(httpx.Response(500, text="kaboom"))
    client = client_for(handler, max_retries=1)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "https://api.test/broken")

    assert exc_info.value.status == 500
    assert exc_info.value.message == "kaboom"
    assert len(handler.requests) == 2


@pytest.mark.anyio
async def test_json_error_body_without_message_uses_default():
    handler = Sequence(httpx.Response(422, json={"fields": ["name"]}))
    client = client_for(handler, max_retries=0)

    with pytest.raises(RequestError) as exc_info:
        await client.send("POST", "https://api.test/users", body="{}")

    assert exc_info.value.message == "HTTP error! status: 422"
    assert exc_info.value.details == {"fields": ["name"]}


@pytest.mark.anyio
async def test_timeout_is_distinguished_from_network_errors():
    handler = Sequence(httpx.ReadTimeout("timed out"))
    client = client_for(handler, max_retries=1)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "https://api.test/slow")

    assert exc_info.value.error_type == RequestErrorType.TIMEOUT
    assert exc_info.value.status is None
    assert len(handler.requests) == 2


@pytest.mark.anyio
async def test_network_error():
    handler = Sequence(httpx.ConnectError("connection refused"))
    client = client_for(handler, max_retries=0)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "https://api.test/down")

    assert exc_info.value.error_type == RequestErrorType.NETWORK_ERROR


@pytest.mark.anyio
async def test_network_error_recovers_on_retry():
    handler = Sequence(httpx.ConnectError("reset"), httpx.Response(200, text="ok"))
    client = client_for(handler, max_retries=1)

    response = await client.send("GET", "https://api.test/blip")

    assert response.body == "ok"
    assert response.attempts == 2


@pytest.mark.anyio
async def test_url_without_scheme_is_a_url_error():
    handler = Sequence(httpx.Response(200))
    client = client_for(handler, max_retries=2)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "api.test/no-scheme")

    assert exc_info.value.error_type == RequestErrorType.URL_ERROR
    assert handler.requests == []


@pytest.mark.anyio
async def test_backoff_grows_exponentially(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("apichain.services.api_testing.http_client.asyncio.sleep", fake_sleep)
    handler = Sequence(httpx.Response(500))
    client = client_for(handler, max_retries=2, backoff_seconds=1.0)

    with pytest.raises(RequestError):
        await client.send("GET", "https://api.test/broken")

    assert delays == [2.0, 4.0]


@pytest.mark.anyio
async def test_per_call_retry_override():
    handler = Sequence(httpx.Response(500))
    client = client_for(handler, max_retries=5)

    with pytest.raises(RequestError):
        await client.send("GET", "https://api.test/broken", max_retries=0)

    assert len(handler.requests) == 1


@pytest.mark.anyio
async def test_not_modified_is_returned_not_raised():
    handler = Sequence(httpx.Response(304, headers={"ETag": '"v1"'}))
    client = client_for(handler, max_retries=2)

    response = await client.send("GET", "https://api.test/cached", headers={"If-None-Match": '"v1"'})

    assert response.status_code == 304
    assert response.attempts == 1
    assert len(handler.requests) == 1


@pytest.mark.anyio
async def test_unfollowed_redirects_are_retried():
    handler = Sequence(
        httpx.Response(302, headers={"Location": "https://api.test/elsewhere"}),
        httpx.Response(200, json={"ok": True}),
    )
    client = client_for(handler, max_retries=1, follow_redirects=False)

    response = await client.send("GET", "https://api.test/moved")

    assert response.status_code == 200
    assert response.attempts == 2


@pytest.mark.anyio
async def test_redirect_after_retries_is_an_http_error():
    handler = Sequence(httpx.Response(307, headers={"Location": "https://api.test/elsewhere"}))
    client = client_for(handler, max_retries=1, follow_redirects=False)

    with pytest.raises(RequestError) as exc_info:
        await client.send("GET", "https://api.test/moved")

    assert exc_info.value.error_type == RequestErrorType.HTTP_ERROR
    assert exc_info.value.status == 307
    assert exc_info.value.message == "HTTP error! status: 307"
    assert len(handler.requests) == 2
