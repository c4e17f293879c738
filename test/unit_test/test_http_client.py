"""Unit tests for the outbound HTTP helper, using httpx.MockTransport."""

import httpx
import pytest

from mini_engine.core.errors import HttpRequestError
from mini_engine.http_client import http


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)


class TestHttp:
    """Test the ``http`` helper."""

    def test_get_returns_body(self):
        client = mock_client(lambda request: httpx.Response(200, text="pong"))

        assert http("http://mock/ping", client=client) == "pong"

    def test_form_data_and_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["body"] = request.content
            seen["content_type"] = request.headers["content-type"]
            seen["token"] = request.headers["x-token"]
            return httpx.Response(201, text="created")

        body = http(
            "http://mock/items",
            "POST",
            {"name": "widget", "qty": "2"},
            {"X-Token": "abc"},
            client=mock_client(handler),
        )

        assert body == "created"
        assert seen == {
            "method": "POST",
            "body": b"name=widget&qty=2",
            "content_type": "application/x-www-form-urlencoded",
            "token": "abc",
        }

    def test_raw_body_is_sent_as_is(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            return httpx.Response(200, text="ok")

        http("http://mock/raw", "PUT", '{"a": 1}', {"Content-Type": "application/json"}, client=mock_client(handler))

        assert seen["body"] == b'{"a": 1}'

    def test_redirects_are_followed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "http://mock/new"})
            return httpx.Response(200, text="moved here")

        assert http("http://mock/old", client=mock_client(handler)) == "moved here"

    @pytest.mark.parametrize("status", [199, 302, 404, 500])
    def test_non_2xx_raises(self, status):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(status, text="nope")))

        with pytest.raises(HttpRequestError) as exc_info:
            http("http://mock/fail", client=client)

        assert exc_info.value.status_code == status
        assert str(exc_info.value) == f"HTTP request failed: {status} : nope"

    def test_passed_client_is_not_closed(self):
        client = mock_client(lambda request: httpx.Response(200, text="ok"))

        http("http://mock/ping", client=client)

        assert not client.is_closed
