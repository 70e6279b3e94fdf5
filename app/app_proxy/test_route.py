"""
End-to-end tests for GET /api/proxy/fetch.

Upstream servers are simulated with httpx.MockTransport so the whole pipeline
runs: resolution, fetch, header filtering, HTML rewriting and emission.
"""

import gzip
import warnings
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.app_proxy.errors import FetchFailureError
from app.app_proxy.forwarder import ClientDisconnected
from app.app_proxy.route import CLIENT_CLOSED_REQUEST, fetch_url, proxy_fetch

FETCH_PATH = "/api/proxy/fetch"

PAGE = (
    "<!DOCTYPE html><html><head><title>Example</title></head><body>"
    '<a href="/about">About</a>'
    '<a href="#section">Section</a>'
    '<img src="/logo.png">'
    "</body></html>"
)


def _html_page(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        headers=[
            ("content-type", "text/html; charset=utf-8"),
            ("x-frame-options", "DENY"),
            ("content-security-policy", "frame-ancestors 'none'"),
            ("frame-options", "DENY"),
            ("set-cookie", "a=1; Path=/"),
            ("set-cookie", "b=2; Path=/"),
            ("x-upstream", "yes"),
        ],
        text=PAGE,
    )


class TestInputErrors:
    def test_missing_url(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH)

        assert response.status_code == 400
        assert response.text == "URL is required"

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_url(self, proxy_client, value):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": value})

        assert response.status_code == 400
        assert response.text == "URL is required"

    def test_invalid_url(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": "https://"})

        assert response.status_code == 400
        assert response.text == "Invalid URL"


class TestHtmlPages:
    def test_links_rewritten_and_base_injected(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.status_code == 200
        body = response.text
        assert (
            '<a href="/api/proxy/fetch?url=https%3A%2F%2Fexample.com%2Fabout">' in body
        )
        assert '<a href="#section">' in body
        assert '<img src="/logo.png">' in body
        assert '<head><base href="https://example.com/"><title>' in body

    def test_blocking_headers_removed(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert "x-frame-options" not in response.headers
        assert "content-security-policy" not in response.headers
        assert "frame-options" not in response.headers

    def test_other_headers_forwarded_with_multiplicity(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.headers.get_list("set-cookie") == [
            "a=1; Path=/",
            "b=2; Path=/",
        ]
        assert response.headers["x-upstream"] == "yes"
        assert response.headers["content-type"] == "text/html; charset=utf-8"

    def test_content_length_matches_rewritten_body(self, proxy_client):
        client = proxy_client(_html_page)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert int(response.headers["content-length"]) == len(response.content)
        assert len(response.content) > len(PAGE.encode())

    def test_compressed_html_is_rewritten_without_encoding_header(self, proxy_client):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html", "content-encoding": "gzip"},
                content=gzip.compress(b'<head></head><a href="/x">x</a>'),
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert "content-encoding" not in response.headers
        assert response.text == (
            '<head><base href="https://example.com/"></head>'
            '<a href="/api/proxy/fetch?url=https%3A%2F%2Fexample.com%2Fx">x</a>'
        )

    def test_rewrites_against_post_redirect_origin(self, proxy_client):
        def handler(request):
            if request.url.host == "example.com":
                return httpx.Response(
                    302, headers={"location": "https://www.example.org/landing"}
                )
            return httpx.Response(
                200,
                headers={"content-type": "text/html"},
                text='<head></head><a href="/next">n</a>',
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.status_code == 200
        assert "url=https%3A%2F%2Fwww.example.org%2Fnext" in response.text
        assert '<base href="https://www.example.org/">' in response.text

    def test_non_utf8_page_keeps_its_encoding(self, proxy_client):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=iso-8859-1"},
                content='<p>café</p><a href="/x">x</a>'.encode("latin-1"),
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.content.startswith("<p>café</p>".encode("latin-1"))

    def test_undecodable_bytes_pass_through_unchanged(self, proxy_client):
        # no charset: decoded as utf-8, but the page is really latin-1
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html"},
                content=b'<p>caf\xe9</p><a href="/x">x</a>',
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.content == (
            b"<p>caf\xe9</p>"
            b'<a href="/api/proxy/fetch?url=https%3A%2F%2Fexample.com%2Fx">x</a>'
        )
        assert int(response.headers["content-length"]) == len(response.content)

    def test_undecodable_byte_in_link_is_percent_encoded(self, proxy_client):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html"},
                content=b'<a href="/caf\xe9">x</a>',
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.content == (
            b'<a href="/api/proxy/fetch?url=https%3A%2F%2Fexample.com%2Fcaf%E9">x</a>'
        )


class TestPassthrough:
    def test_binary_body_unmodified(self, proxy_client):
        payload = b"\x89PNG\r\n\x1a\n" + bytes(range(256))

        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "image/png"}, content=payload
            )

        client = proxy_client(handler)

        response = client.get(
            FETCH_PATH, params={"url": "https://example.com/logo.png"}
        )

        assert response.content == payload
        assert response.headers["content-type"] == "image/png"

    def test_html_without_content_type_is_not_rewritten(self, proxy_client):
        html = b'<head></head><a href="/x">x</a>'

        def handler(request):
            return httpx.Response(200, content=html)

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.content == html

    @pytest.mark.parametrize("status_code", [201, 301, 404, 500, 503])
    def test_upstream_status_is_mirrored(self, proxy_client, status_code):
        def handler(request):
            # no location header, so redirects are not followed
            return httpx.Response(
                status_code, headers={"content-type": "text/plain"}, text="s"
            )

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.status_code == status_code


class TestUpstreamRequest:
    def test_search_fallback_is_fetched(self, proxy_client):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, headers={"content-type": "text/html"}, text="")

        client = proxy_client(handler)

        client.get(FETCH_PATH, params={"url": "how to boil an egg"})

        (url,) = seen
        assert url.host == "www.google.com"
        assert url.path == "/search"
        assert url.params["q"] == "how to boil an egg"

    def test_each_request_fetches_again(self, proxy_client):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, headers={"content-type": "text/plain"}, text="")

        client = proxy_client(handler)

        client.get(FETCH_PATH, params={"url": "example.com"})
        client.get(FETCH_PATH, params={"url": "example.com"})

        assert len(calls) == 2

    def test_no_cookies_or_client_headers_forwarded(self, proxy_client):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            return httpx.Response(200, headers={"content-type": "text/plain"}, text="")

        client = proxy_client(handler)

        client.get(
            FETCH_PATH,
            params={"url": "example.com"},
            headers={"cookie": "session=secret", "x-private": "1"},
        )

        assert "cookie" not in seen["headers"]
        assert "x-private" not in seen["headers"]


class TestFetchFailures:
    def test_connection_error(self, proxy_client):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = proxy_client(handler)

        response = client.get(FETCH_PATH, params={"url": "example.com"})

        assert response.status_code == 500
        assert response.text == "Error fetching url: Connection refused"

    @pytest.mark.asyncio
    async def test_proxy_fetch_raises_fetch_failure(self):
        client = AsyncMock(spec=httpx.AsyncClient)
        failure = FetchFailureError(httpx.ConnectTimeout("timed out"))

        with patch("app.app_proxy.route.fetch", AsyncMock(side_effect=failure)):
            with pytest.raises(FetchFailureError) as exc_info:
                await proxy_fetch("example.com", client)

        assert exc_info.value.message == "Error fetching url: timed out"


def test_fetch_route_registered_once(server_app):
    # regenerate so duplicate operations are reported again
    server_app.openapi_schema = None
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        paths = server_app.openapi()["paths"]

    assert list(paths[FETCH_PATH]) == ["get"]
    assert [path for path in paths if path.endswith("/proxy/fetch")] == [FETCH_PATH]
    assert not [w for w in caught if "Duplicate Operation ID" in str(w.message)]


@pytest.mark.asyncio
async def test_disconnected_caller_gets_client_closed_status():
    request = AsyncMock()
    client = AsyncMock(spec=httpx.AsyncClient)

    with patch(
        "app.app_proxy.route.fetch", AsyncMock(side_effect=ClientDisconnected())
    ):
        response = await fetch_url(request, "example.com", client)

    assert response.status_code == CLIENT_CLOSED_REQUEST
