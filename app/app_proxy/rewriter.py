"""
Rewrite ``href`` attributes of proxied HTML so navigation keeps going
through the proxy, and anchor relative assets with a ``<base>`` tag.

Only quoted ``href`` values in start tags are touched. ``src`` attributes are
left alone: relative assets resolve against the injected ``<base>`` and
absolute ones load straight from their origin.
"""

from enum import Enum
from html import unescape
from typing import Iterable

from opentelemetry import trace

from app.app_proxy.html_tokens import Token, TokenKind, iter_tokens
from app.app_proxy.resolver import encode_uri_component
from app.vars import PROXY_FETCH_PATH

tracer = trace.get_tracer(__name__)

HEAD_TAG = "<head>"


class LinkClass(str, Enum):
    SKIP = "skip"
    EXTERNAL = "external"
    PROTOCOL_RELATIVE = "protocol_relative"
    ROOT_RELATIVE = "root_relative"
    DOCUMENT_RELATIVE = "document_relative"


def classify(href: str) -> LinkClass:
    if href.startswith(("#", "javascript:")):
        return LinkClass.SKIP
    if href.startswith(("http://", "https://")):
        return LinkClass.EXTERNAL
    if href.startswith("//"):
        return LinkClass.PROTOCOL_RELATIVE
    if href.startswith("/"):
        return LinkClass.ROOT_RELATIVE
    return LinkClass.DOCUMENT_RELATIVE


def proxy_url(target: str, proxy_path: str = PROXY_FETCH_PATH) -> str:
    return f"{proxy_path}?url={encode_uri_component(target)}"


class LinkRewriter:
    """
    Rewrites the links of one document fetched from ``origin``.

    Subclasses can change how links are classified (``classify``), where a
    link ends up (``absolute_url``/``rewrite_href``) or which attributes of a
    tag are rewritten (``rewrite_token``).
    """

    attribute_names = frozenset({"href"})

    def __init__(self, origin: str, proxy_path: str = PROXY_FETCH_PATH):
        self.origin = origin.rstrip("/")
        self.proxy_path = proxy_path

    def classify(self, href: str) -> LinkClass:
        return classify(href)

    def absolute_url(self, href: str, link_class: LinkClass) -> str:
        """Absolute URL a non-skipped link points to.

        Document-relative links are joined to the origin, not to the
        document's directory.
        """
        if link_class == LinkClass.EXTERNAL:
            return href
        if link_class == LinkClass.PROTOCOL_RELATIVE:
            return "https:" + href
        if link_class == LinkClass.ROOT_RELATIVE:
            return self.origin + href
        return f"{self.origin}/{href}"

    def rewrite_href(self, href: str) -> str:
        link_class = self.classify(href)
        if link_class == LinkClass.SKIP:
            return href
        return proxy_url(self.absolute_url(href, link_class), self.proxy_path)

    def rewrite_token(self, token: Token) -> Token:
        if token.kind != TokenKind.START_TAG:
            return token
        # Rewrite back to front so earlier value spans stay valid
        for attribute in reversed(token.attributes):
            if attribute.name.lower() not in self.attribute_names:
                continue
            if not attribute.is_quoted:
                continue
            # Character references (&amp; in query strings) are part of the markup
            href = unescape(attribute.value)
            rewritten = self.rewrite_href(href)
            if rewritten != href:
                token = token.with_attribute_value(attribute, rewritten)
        return token

    def base_tag(self) -> str:
        return f'<base href="{self.origin}/">'

    def rewrite_tokens(self, tokens: Iterable[Token]) -> Iterable[str]:
        base_injected = False
        for token in tokens:
            yield self.rewrite_token(token).text
            if (
                not base_injected
                and token.kind == TokenKind.START_TAG
                and token.text == HEAD_TAG
            ):
                base_injected = True
                yield self.base_tag()

    def rewrite(self, html: str) -> str:
        with tracer.start_as_current_span("rewrite_html") as span:
            span.set_attribute("proxy.origin", self.origin)
            span.set_attribute("proxy.html_length", len(html))
            return "".join(self.rewrite_tokens(iter_tokens(html)))


def rewrite(html: str, origin: str) -> str:
    return LinkRewriter(origin).rewrite(html)
