import logging
from typing import Awaitable, Callable, Optional

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, Response
from opentelemetry import trace

from app.app_proxy.emitter import emit
from app.app_proxy.errors import ProxyError
from app.app_proxy.forwarder import ClientDisconnected, fetch
from app.app_proxy.headers import filter_headers
from app.app_proxy.resolver import resolve
from app.app_proxy.rewriter import LinkRewriter

# Initialize components
router = APIRouter(prefix="/proxy")
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# nginx's "client closed request"; never seen by the caller
CLIENT_CLOSED_REQUEST = 499


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The outbound client created once at startup."""
    return request.app.state.http_client


async def proxy_fetch(
    raw_url: Optional[str],
    client: httpx.AsyncClient,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> Response:
    """
    Resolve ``raw_url``, fetch it and return the response for the caller:
    - upstream status code
    - upstream headers minus the denylist
    - HTML with links routed back through the proxy, other bodies untouched
    """
    with tracer.start_as_current_span("proxy_fetch") as span:
        try:
            resolved = resolve(raw_url)
            span.set_attribute("proxy.target_url", resolved.url)
            logger.debug(f"[Proxy] Fetching {resolved}")

            upstream = await fetch(client, resolved, is_disconnected)
            span.set_attribute("proxy.status_code", upstream.status_code)
            span.set_attribute("proxy.final_url", upstream.url.url)

            headers = filter_headers(upstream.headers)
            if not upstream.is_html:
                return emit(upstream.status_code, headers, upstream.content)

            html = LinkRewriter(upstream.url.origin).rewrite(upstream.text)
            return emit(upstream.status_code, headers, html, upstream.encoding)
        except ProxyError as e:
            span.set_attribute("proxy.error", e.message)
            raise


@router.get("/fetch")
async def fetch_url(
    request: Request,
    url: Optional[str] = Query(None, description="URL, bare domain or search text"),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    try:
        return await proxy_fetch(url, client, request.is_disconnected)
    except ClientDisconnected:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except ProxyError as e:
        if e.status_code >= 500:
            logger.error(f"[Proxy] {e.message}")
        else:
            logger.info(f"[Proxy] Rejected request: {e.message}")
        return PlainTextResponse(e.message, status_code=e.status_code)
