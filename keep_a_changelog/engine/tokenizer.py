"""
Line tokenizer for Keep a Changelog documents.

Each source line is classified on its own; the only context carried from
line to line is whether we are inside a fenced code block and whether a
link definition continues with its URL on the following line.
"""

import re
from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field


class TokenKind(str, Enum):
    """Kind of a source line."""
    BLANK = "blank"
    HEADING = "heading"
    LIST_ITEM = "list_item"
    INDENTED = "indented"
    TEXT = "text"
    LINK = "link"
    BOLD_LABEL = "bold_label"
    COMMENT = "comment"
    RULE = "rule"


class Token(BaseModel):
    """A classified source line."""
    line: int = Field(..., ge=1, description="1-based line number")
    kind: TokenKind = Field(..., description="Line classification")
    raw: str = Field(..., description="Source line without trailing whitespace")
    text: str = Field("", description="Payload: heading text, item text, label, ...")
    level: int = Field(0, description="Heading level for headings")
    url: Optional[str] = Field(None, description="URL for link definitions")
    fenced: bool = Field(False, description="Line is part of a fenced code block")


HEADING = re.compile(r"^(?P<hashes>#{1,6})(?:\s+(?P<text>.*?))?(?:\s+#+)?\s*$")
DEEP_HEADING = re.compile(r"^#{7,}\s")
LIST_ITEM = re.compile(r"^[-*+](?:\s+(?P<text>.*))?$")
LINK = re.compile(r"^ {0,3}\[(?P<label>[^\]]+)\]:(?:\s+(?P<url>\S+))?\s*$")
LINK_URL = re.compile(r"^\s+(?P<url>\S+)\s*$")
BOLD_LABEL = re.compile(r"^(?:\*\*|__)(?P<text>[^*_:]+?):?(?:\*\*|__):?\s*$")
COMMENT = re.compile(r"^<!--.*-->$")
RULE = re.compile(r"^(?:-{3,}|\*{3,}|_{3,})$")
FENCE = re.compile(r"^\s*(```|~~~)")


def tokenize(markdown: str) -> List[Token]:
    """
    Split a document into classified line tokens.

    Line endings are normalised and trailing whitespace is dropped. A link
    label on its own line followed by an indented URL is merged into one
    LINK token.
    """
    lines = markdown.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    tokens: List[Token] = []
    in_fence = False
    skip_next = False

    for index, source in enumerate(lines):
        if skip_next:
            skip_next = False
            continue

        number = index + 1
        raw = source.rstrip()

        if FENCE.match(raw):
            in_fence = not in_fence
            tokens.append(Token(line=number, kind=_text_kind(raw), raw=raw, text=raw.strip(), fenced=True))
            continue
        if in_fence:
            tokens.append(Token(line=number, kind=_text_kind(raw) if raw else TokenKind.BLANK, raw=raw, text=raw.strip(), fenced=True))
            continue

        if not raw.strip():
            tokens.append(Token(line=number, kind=TokenKind.BLANK, raw=""))
            continue

        match = LINK.match(raw)
        if match:
            url = match.group("url")
            if url is None and index + 1 < len(lines):
                continuation = LINK_URL.match(lines[index + 1])
                if continuation:
                    url = continuation.group("url")
                    skip_next = True
            tokens.append(Token(line=number, kind=TokenKind.LINK, raw=raw, text=match.group("label"), url=url))
            continue

        if raw[0].isspace():
            tokens.append(Token(line=number, kind=TokenKind.INDENTED, raw=raw, text=raw.strip()))
            continue

        if RULE.match(raw):
            tokens.append(Token(line=number, kind=TokenKind.RULE, raw=raw))
            continue

        match = HEADING.match(raw)
        if match:
            tokens.append(Token(
                line=number,
                kind=TokenKind.HEADING,
                raw=raw,
                text=(match.group("text") or "").strip(),
                level=len(match.group("hashes")),
            ))
            continue
        if DEEP_HEADING.match(raw):
            tokens.append(Token(line=number, kind=TokenKind.HEADING, raw=raw, text=raw.lstrip("#").strip(), level=7))
            continue

        match = LIST_ITEM.match(raw)
        if match:
            tokens.append(Token(line=number, kind=TokenKind.LIST_ITEM, raw=raw, text=(match.group("text") or "").strip()))
            continue

        match = BOLD_LABEL.match(raw)
        if match:
            tokens.append(Token(line=number, kind=TokenKind.BOLD_LABEL, raw=raw, text=match.group("text").strip()))
            continue

        if COMMENT.match(raw):
            tokens.append(Token(line=number, kind=TokenKind.COMMENT, raw=raw, text=raw))
            continue

        tokens.append(Token(line=number, kind=TokenKind.TEXT, raw=raw, text=raw))

    while tokens and tokens[-1].kind == TokenKind.BLANK:
        tokens.pop()
    return tokens


def _text_kind(raw: str) -> TokenKind:
    return TokenKind.INDENTED if raw[:1].isspace() else TokenKind.TEXT


REFERENCE = re.compile(r"(?<!\\)\[(?P<text>[^\[\]]+)\]\[(?P<label>[^\[\]]*)\]")
CODE_SPAN = re.compile(r"`+[^`]*`+")

_NO_REFERENCES = (TokenKind.BLANK, TokenKind.HEADING, TokenKind.RULE)


def token_references(token: Token) -> List[str]:
    """Labels of full and collapsed reference links on a line, outside code."""
    if token.fenced or token.kind in _NO_REFERENCES:
        return []
    return [
        match.group("label") or match.group("text")
        for match in REFERENCE.finditer(CODE_SPAN.sub("", token.raw))
    ]


def references(text: str) -> List[str]:
    """Labels referenced anywhere in a block of Markdown."""
    return [label for token in tokenize(text) for label in token_references(token)]


def structural_tokens(text: str, kinds: Iterable[TokenKind], fences: bool = True) -> List[Token]:
    """
    Lines of a free-text block that a parser would read back as structure.

    These are the unfenced tokens of the given kinds, plus, when `fences` is
    set, the opening line of a code fence that is never closed (it would
    swallow what follows).
    """
    kinds = set(kinds)
    tokens = tokenize(text)
    found = [t for t in tokens if not t.fenced and t.kind in kinds]
    markers = [t for t in tokens if t.fenced and FENCE.match(t.raw)]
    if fences and len(markers) % 2:
        found.append(markers[-1])
    return sorted(found, key=lambda t: t.line)
