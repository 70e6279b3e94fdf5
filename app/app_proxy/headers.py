from typing import Iterable

# Response headers that never reach the caller, compared lower-cased
DENYLISTED_HEADERS = frozenset(
    {
        "content-encoding",
        "content-length",
        "x-frame-options",
        "content-security-policy",
        "frame-options",
    }
)

# Hop-by-hop headers that should NOT be re-emitted (RFC 2616)
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


def filter_headers(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Drop the denylisted headers, keeping every other pair in order."""
    return [
        (name, value)
        for name, value in headers
        if name.lower() not in DENYLISTED_HEADERS
    ]


def drop_hop_by_hop(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    return [
        (name, value)
        for name, value in headers
        if name.lower() not in HOP_BY_HOP_HEADERS
    ]
