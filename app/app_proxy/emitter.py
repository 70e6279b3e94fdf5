from typing import Iterable, Union

from fastapi.responses import Response

from app.app_proxy.headers import drop_hop_by_hop
from app.vars import STRIP_HOP_BY_HOP_HEADERS


def emit(
    status_code: int,
    headers: Iterable[tuple[str, str]],
    body: Union[str, bytes],
    encoding: str = "utf-8",
    strip_hop_by_hop: bool = STRIP_HOP_BY_HOP_HEADERS,
) -> Response:
    """
    Build the response returned to the caller.

    ``body`` is either rewritten HTML text, encoded back with ``encoding``, or
    the upstream bytes passed through untouched. Bytes the charset could not
    decode are written back as they arrived. Repeated headers are emitted
    as many times as they were given; content-length is computed for the body
    actually sent.
    """
    if isinstance(body, str):
        body = body.encode(encoding, errors="surrogateescape")

    response = Response(content=body, status_code=status_code)
    if strip_hop_by_hop:
        headers = drop_hop_by_hop(headers)
    for name, value in headers:
        response.headers.append(name, value)
    return response
