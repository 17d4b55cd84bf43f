"""Tests for the best-effort link shortener."""

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from kontur_senders.shortener import LinkShortener, trigger_url

API_URL = "https://www.googleapis.com/urlshortener/v1/url"
LONG_LINK = "http://moira.example.com/trigger/triggerID-0000000000001"
SHORT_LINK = "https://goo.gl/fbsS"

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def fail_on_request(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def test_trigger_url() -> None:
    assert trigger_url("http://moira.example.com", "abc") == "http://moira.example.com/trigger/abc"


class TestLinkShortener:
    """Tests for LinkShortener."""

    @pytest.mark.parametrize(
        ("api_url", "api_key"),
        [(None, None), (API_URL, None), (None, "key"), ("", "")],
    )
    def test_unconfigured_returns_input(self, api_url: str | None, api_key: str | None) -> None:
        shortener = LinkShortener(api_url, api_key, client=make_client(fail_on_request))
        assert not shortener.enabled
        assert shortener.shorten(LONG_LINK) == LONG_LINK

    def test_success(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"kind": "urlshortener#url", "id": SHORT_LINK})

        shortener = LinkShortener(API_URL, "secret", client=make_client(handler))
        assert shortener.shorten(LONG_LINK) == SHORT_LINK

        assert len(requests) == 1
        request = requests[0]
        assert request.method == "POST"
        assert request.url.params["key"] == "secret"
        assert json.loads(request.content) == {"longUrl": LONG_LINK}

    @pytest.mark.parametrize("status_code", [201, 400, 403, 500, 503])
    def test_non_success_status_falls_back(
        self, status_code: int, caplog: pytest.LogCaptureFixture
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"id": SHORT_LINK})

        shortener = LinkShortener(API_URL, "secret", client=make_client(handler))
        with caplog.at_level(logging.WARNING):
            assert shortener.shorten(LONG_LINK) == LONG_LINK
        assert "Can't shorten url" in caplog.text

    def test_network_error_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        shortener = LinkShortener(API_URL, "secret", client=make_client(handler))
        with caplog.at_level(logging.WARNING):
            assert shortener.shorten(LONG_LINK) == LONG_LINK
        assert "connection refused" in caplog.text

    def test_timeout_falls_back(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        shortener = LinkShortener(API_URL, "secret", client=make_client(handler))
        assert shortener.shorten(LONG_LINK) == LONG_LINK

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={}),
            httpx.Response(200, json={"id": ""}),
            httpx.Response(200, json={"id": 42}),
            httpx.Response(200, json=["https://goo.gl/x"]),
        ],
    )
    def test_malformed_response_falls_back(self, response: httpx.Response) -> None:
        shortener = LinkShortener(API_URL, "secret", client=make_client(lambda _: response))
        assert shortener.shorten(LONG_LINK) == LONG_LINK

    def test_injected_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        logger = logging.getLogger("tests.shortener")
        shortener = LinkShortener(API_URL, "secret", client=make_client(handler), logger=logger)
        with caplog.at_level(logging.WARNING, logger="tests.shortener"):
            shortener.shorten(LONG_LINK)
        names = {record.name for record in caplog.records}
        assert "tests.shortener" in names
        assert not any(name.startswith("kontur_senders") for name in names)

    def test_private_client_is_used_without_shared_client(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": SHORT_LINK})

        original_client = httpx.Client

        def client_factory(**kwargs: object) -> httpx.Client:
            assert kwargs["timeout"] == 3.0
            return original_client(transport=httpx.MockTransport(handler))

        monkeypatch.setattr(httpx, "Client", client_factory)
        shortener = LinkShortener(API_URL, "secret", timeout=3.0)
        assert shortener.shorten(LONG_LINK) == SHORT_LINK
