"""
A small, lossless HTML tokenizer.

The document is split into tokens whose ``text`` concatenates back to the
exact input. Start tags additionally expose their attributes together with the
position of each value inside the tag text, so a single attribute can be
replaced without re-serialising the rest of the markup.

This is not a conforming HTML5 parser. It only needs to know where markup
ends and where attribute values sit, so that text in comments, script bodies
and other attribute values is never mistaken for an attribute.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional


class TokenKind(str, Enum):
    TEXT = "text"
    COMMENT = "comment"
    DECLARATION = "declaration"
    PROCESSING_INSTRUCTION = "processing_instruction"
    START_TAG = "start_tag"
    END_TAG = "end_tag"
    RAW_TEXT = "raw_text"


# Elements whose content is text up to the matching end tag
RAW_TEXT_ELEMENTS = frozenset({"script", "style", "textarea", "title"})

_TAG_NAME = re.compile(r"[a-zA-Z][^\t\n\f\r />]*")
_ATTRIBUTE = re.compile(
    r"""([^\t\n\f\r "'<>/=]+)"""  # name
    r"""(?:[\t\n\f\r ]*=[\t\n\f\r ]*"""
    r"""(?:"([^"]*)"|'([^']*)'|([^\t\n\f\r >]+)))?"""  # "double" | 'single' | bare
)
_SPACE_OR_SLASH = re.compile(r"[\t\n\f\r /]+")


@dataclass(frozen=True)
class Attribute:
    name: str
    value: Optional[str]
    # '"', "'", "" for an unquoted value, None when the attribute has no value
    quote: Optional[str]
    # span of the value inside the tag text, quotes excluded
    start: int = -1
    end: int = -1

    @property
    def is_quoted(self) -> bool:
        return self.quote in ('"', "'")


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    name: Optional[str] = None
    attributes: tuple[Attribute, ...] = field(default_factory=tuple)

    def with_attribute_value(self, attribute: Attribute, value: str) -> "Token":
        """Return a copy of this start tag with ``attribute``'s value replaced."""
        text = self.text[: attribute.start] + value + self.text[attribute.end :]
        return Token(self.kind, text, self.name, _scan_attributes(text))


def _scan_attributes(tag_text: str) -> tuple[Attribute, ...]:
    name_match = _TAG_NAME.match(tag_text, 1)
    pos = name_match.end() if name_match else 1
    attributes = []
    end = len(tag_text) - 1  # closing '>'
    while pos < end:
        space = _SPACE_OR_SLASH.match(tag_text, pos)
        if space:
            pos = space.end()
            continue
        match = _ATTRIBUTE.match(tag_text, pos, end)
        if not match:
            pos += 1
            continue
        for group, quote in ((2, '"'), (3, "'"), (4, "")):
            if match.group(group) is not None:
                attributes.append(
                    Attribute(
                        name=match.group(1),
                        value=match.group(group),
                        quote=quote,
                        start=match.start(group),
                        end=match.end(group),
                    )
                )
                break
        else:
            attributes.append(Attribute(name=match.group(1), value=None, quote=None))
        pos = match.end()
    return tuple(attributes)


def _find_tag_end(html: str, pos: int) -> int:
    """Index just past the '>' closing the tag whose attributes start at ``pos``, or -1."""
    n = len(html)
    while pos < n:
        ch = html[pos]
        if ch == ">":
            return pos + 1
        if ch == "=":
            pos += 1
            while pos < n and html[pos] in "\t\n\f\r ":
                pos += 1
            if pos < n and html[pos] in "\"'":
                close = html.find(html[pos], pos + 1)
                if close == -1:
                    return -1
                pos = close + 1
                continue
            continue
        pos += 1
    return -1


def _raw_text_end(html: str, pos: int, name: str) -> int:
    closing = re.compile(r"</%s(?=[\t\n\f\r />])" % re.escape(name), re.IGNORECASE)
    match = closing.search(html, pos)
    return match.start() if match else len(html)


def iter_tokens(html: str) -> Iterator[Token]:
    """Yield the tokens of ``html`` in document order."""
    pos = 0
    n = len(html)
    while pos < n:
        lt = html.find("<", pos)
        if lt == -1:
            yield Token(TokenKind.TEXT, html[pos:])
            return
        if lt > pos:
            yield Token(TokenKind.TEXT, html[pos:lt])

        if html.startswith("<!--", lt):
            close = html.find("-->", lt + 4)
            end = n if close == -1 else close + 3
            yield Token(TokenKind.COMMENT, html[lt:end])
        elif html.startswith("<!", lt) or html.startswith("<?", lt):
            kind = (
                TokenKind.DECLARATION
                if html[lt + 1] == "!"
                else TokenKind.PROCESSING_INSTRUCTION
            )
            close = html.find(">", lt + 2)
            end = n if close == -1 else close + 1
            yield Token(kind, html[lt:end])
        elif html.startswith("</", lt) and _TAG_NAME.match(html, lt + 2):
            close = html.find(">", lt + 2)
            end = n if close == -1 else close + 1
            name = _TAG_NAME.match(html, lt + 2).group(0).lower()
            yield Token(TokenKind.END_TAG, html[lt:end], name)
        elif _TAG_NAME.match(html, lt + 1):
            name_match = _TAG_NAME.match(html, lt + 1)
            end = _find_tag_end(html, name_match.end())
            if end == -1:
                # unterminated tag, keep the remainder as text
                yield Token(TokenKind.TEXT, html[lt:])
                return
            text = html[lt:end]
            name = name_match.group(0).lower()
            yield Token(TokenKind.START_TAG, text, name, _scan_attributes(text))
            if name in RAW_TEXT_ELEMENTS:
                raw_end = _raw_text_end(html, end, name)
                if raw_end > end:
                    yield Token(TokenKind.RAW_TEXT, html[end:raw_end])
                end = raw_end
        else:
            end = lt + 1
            yield Token(TokenKind.TEXT, "<")
        pos = end
