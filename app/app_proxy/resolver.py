"""
Turn the untrusted ``url`` query value into an absolute http(s) URL.

The rules are a lexical heuristic, not a DNS or format validator: anything
with a dot and no whitespace is taken for a host, everything else that is not
already an http(s) URL becomes a search query.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from app.app_proxy.errors import InvalidURLError, MissingURLError
from app.vars import SEARCH_FALLBACK_URL

ALLOWED_SCHEMES = ("http", "https")

# Characters left alone by a browser's encodeURIComponent (besides A-Z a-z 0-9 - _ . ~)
URI_COMPONENT_SAFE = "!*'()"

_WHITESPACE = re.compile(r"\s")


def encode_uri_component(value: str) -> str:
    return quote(value, safe=URI_COMPONENT_SAFE, errors="surrogateescape")


@dataclass(frozen=True)
class ResolvedURL:
    url: str
    scheme: str
    host: str
    port: Optional[int] = None

    @property
    def origin(self) -> str:
        if self.port is None:
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.url

    @classmethod
    def parse(cls, candidate: str) -> "ResolvedURL":
        """Validate ``candidate`` as an absolute http(s) URL."""
        try:
            parsed = httpx.URL(candidate)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidURLError() from e
        if parsed.scheme not in ALLOWED_SCHEMES or not parsed.host:
            raise InvalidURLError()
        # httpx.URL.host is IDNA-decoded; netloc keeps the wire form (and brackets for IPv6)
        host = parsed.netloc.decode("ascii").rsplit("@", 1)[-1]
        if parsed.port is not None:
            host = host[: -len(f":{parsed.port}")]
        return cls(url=candidate, scheme=parsed.scheme, host=host, port=parsed.port)


def search_url(query: str) -> str:
    return SEARCH_FALLBACK_URL.format(query=encode_uri_component(query))


def candidate_url(raw: Optional[str]) -> str:
    """Apply the resolution rules without validating the result."""
    if raw is None or not raw.strip():
        raise MissingURLError()
    if raw.startswith(("http://", "https://")):
        return raw
    if "." in raw and not _WHITESPACE.search(raw):
        return f"https://{raw}"
    return search_url(raw)


def resolve(raw: Optional[str]) -> ResolvedURL:
    return ResolvedURL.parse(candidate_url(raw))
