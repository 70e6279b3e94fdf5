import asyncio
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Awaitable, Callable, Optional

import httpx

from app.app_proxy.errors import FetchFailureError, InvalidURLError
from app.app_proxy.resolver import ResolvedURL
from app.utils.exception_logging import format_exception_message
from app.vars import (
    PROXY_CONNECT_TIMEOUT,
    PROXY_DISCONNECT_POLL_INTERVAL,
    PROXY_MAX_REDIRECTS,
    PROXY_TIMEOUT,
)

logger = logging.getLogger("uvicorn.error")

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


class ClientDisconnected(Exception):
    """The caller went away before the upstream fetch finished."""


@dataclass
class UpstreamResponse:
    status_code: int
    headers: list[tuple[str, str]]
    content_type: str
    # URL actually fetched, after redirects
    url: ResolvedURL
    content: bytes = b""
    encoding: str = "utf-8"

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type

    @cached_property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="surrogateescape")

    @classmethod
    def from_httpx(cls, response: httpx.Response, requested: ResolvedURL):
        try:
            effective = ResolvedURL.parse(str(response.url))
        except InvalidURLError:
            effective = requested
        return cls(
            status_code=response.status_code,
            headers=list(response.headers.multi_items()),
            content_type=response.headers.get("content-type", ""),
            url=effective,
            content=response.content,
            encoding=response.encoding or "utf-8",
        )


def build_http_client(
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the outbound client shared by every proxy request.

    Headers and timeouts are fixed here and never changed afterwards.
    """
    return httpx.AsyncClient(
        headers=BROWSER_HEADERS,
        timeout=httpx.Timeout(PROXY_TIMEOUT, connect=PROXY_CONNECT_TIMEOUT),
        follow_redirects=True,
        max_redirects=PROXY_MAX_REDIRECTS,
        transport=transport,
    )


async def _until_disconnected(
    is_disconnected: Callable[[], Awaitable[bool]], interval: float
) -> None:
    while not await is_disconnected():
        await asyncio.sleep(interval)


async def fetch(
    client: httpx.AsyncClient,
    url: ResolvedURL,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    timeout: float = PROXY_TIMEOUT,
    poll_interval: float = PROXY_DISCONNECT_POLL_INTERVAL,
) -> UpstreamResponse:
    """
    Issue a single GET for ``url`` and return the fully buffered response.

    The request is bounded by ``timeout`` seconds overall and is cancelled
    when ``is_disconnected`` reports that the caller went away.
    """
    fetch_task = asyncio.ensure_future(client.get(url.url))
    watch_task = None
    if is_disconnected is not None:
        watch_task = asyncio.ensure_future(
            _until_disconnected(is_disconnected, poll_interval)
        )

    waiting = {fetch_task} if watch_task is None else {fetch_task, watch_task}
    try:
        done, _ = await asyncio.wait(
            waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        if not fetch_task.done():
            fetch_task.cancel()
        if watch_task is not None:
            watch_task.cancel()
            # collect the watcher's outcome, including a failed disconnect check
            await asyncio.gather(watch_task, return_exceptions=True)

    if fetch_task not in done:
        if watch_task is not None and watch_task in done:
            error = watch_task.exception()
            if error is not None:
                logger.warning(
                    f"[Proxy] Disconnect check failed, cancelled fetch of {url}: "
                    f"{format_exception_message(error)}"
                )
            else:
                logger.info(f"[Proxy] Caller disconnected, cancelled fetch of {url}")
            raise ClientDisconnected(str(url))
        logger.warning(f"[Proxy] Fetch of {url} exceeded {timeout}s")
        raise FetchFailureError(
            httpx.TimeoutException(f"Request timed out after {timeout}s")
        )

    try:
        response = fetch_task.result()
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"[Proxy] Fetch of {url} failed: {type(e).__name__}: {e}")
        raise FetchFailureError(e) from e

    return UpstreamResponse.from_httpx(response, url)
