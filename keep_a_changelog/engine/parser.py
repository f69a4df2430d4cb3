"""
Parser - Markdown text to Changelog.

Two passes over the token stream:
1. collect every link definition, wherever it appears in the document
2. walk the remaining lines once, left to right, building the title,
   description, releases and footer, and checking that every
   reference-style link points at a collected label

Any structural problem aborts the whole parse with a located ParseError.
"""

import logging
import re
from datetime import date as Date
from typing import Dict, List, Optional, Tuple

from keep_a_changelog.errors import (
    DuplicateLink,
    DuplicateVersion,
    InvalidVersion,
    MalformedHeading,
    MalformedLink,
    UnexpectedContent,
    UnknownChangeKind,
    UnresolvedReference,
    ValidationError,
    parse_error_for,
)
from keep_a_changelog.models.changelog import CHANGELOG_DESCRIPTION, CHANGELOG_TITLE, Changelog
from keep_a_changelog.models.changes import ChangeKind
from keep_a_changelog.models.link import LinkTable
from keep_a_changelog.models.release import UNRELEASED, Release, _construct
from keep_a_changelog.models.version import SemanticVersion
from keep_a_changelog.engine.resolver import LinkResolver
from keep_a_changelog.engine.tokenizer import Token, TokenKind, token_references, tokenize

logger = logging.getLogger(__name__)


RELEASE_HEADING = re.compile(
    r"^\[?(?P<label>[^\]\s]+)\]?"
    r"(?:\s+-\s+(?P<date>[^\s\[]+))?"
    r"(?:\s+(?P<yanked>\[YANKED\]))?$",
    re.IGNORECASE,
)
ISO_DATE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{1,2})-(?P<day>\d{1,2})$")


class _ReleaseDraft:
    """Release under construction, with source positions kept for errors."""

    def __init__(self, token: Token, version: Optional[SemanticVersion], date: Optional[Date], yanked: bool):
        self.token = token
        self.version = version
        self.date = date
        self.yanked = yanked
        self.description: List[str] = []
        self.changes: List[Tuple[ChangeKind, List[str], Token]] = []
        self.kind: Optional[ChangeKind] = None
        # set after a blank line: plain text no longer continues the last item
        self.item_closed = True

    @property
    def label(self) -> str:
        return UNRELEASED if self.version is None else str(self.version)

    def build(self) -> Release:
        try:
            release = _construct(
                Release,
                version=self.version,
                date=self.date,
                yanked=self.yanked,
                description=_join_block(self.description),
            )
        except ValidationError as e:
            raise parse_error_for(e, self.token.line, self.token.raw) from e
        for kind, lines, token in self.changes:
            try:
                release.add_change(kind, "\n".join(lines))
            except ValidationError as e:
                raise UnexpectedContent(token.line, token.raw, e.message) from e
        return release


class ChangelogParser:
    """
    Single-pass parser for the Keep a Changelog grammar.

    Usage:
        parser = ChangelogParser(repository_url="https://github.com/acme/widget")
        changelog = parser.parse(text)

    Repository settings that are not passed in are recovered from the
    document's own comparison links when possible.
    """

    def __init__(
        self,
        repository_url: Optional[str] = None,
        tag_prefix: Optional[str] = None,
        head: Optional[str] = None,
    ):
        self.repository_url = repository_url
        self.tag_prefix = tag_prefix
        self.head = head

    def parse(self, text: str) -> Changelog:
        """
        Parse a whole document.

        Raises:
            ParseError: One of its subtypes, pointing at the offending line
        """
        tokens = tokenize(text)
        links, body = self._collect_links(tokens)
        logger.debug("Tokenized %d lines, %d link definitions", len(tokens), len(links))

        comments: List[str] = []
        title: Optional[str] = None
        description: List[str] = []
        footer: List[str] = []
        drafts: List[_ReleaseDraft] = []
        state = "preamble"

        for token in body:
            self._check_references(token, links)

            if state == "footer":
                if token.kind == TokenKind.HEADING and not token.fenced:
                    raise MalformedHeading(token.line, token.raw, "Headings are not allowed after the footer rule")
                footer.append(token.raw)
                continue

            if token.kind == TokenKind.RULE and not token.fenced:
                state = "footer"
                continue

            if token.kind == TokenKind.HEADING and not token.fenced:
                if token.level == 1:
                    if state != "preamble":
                        raise MalformedHeading(token.line, token.raw, "The title heading must come first and only once")
                    if not token.text:
                        raise MalformedHeading(token.line, token.raw, "The title heading is empty")
                    title = token.text
                    state = "description"
                elif token.level == 2:
                    drafts.append(self._release_heading(token))
                    state = "release"
                elif token.level == 3:
                    if state != "release":
                        raise MalformedHeading(token.line, token.raw, "Change kind heading outside of a release")
                    self._start_kind(drafts[-1], token)
                else:
                    raise MalformedHeading(token.line, token.raw, f"Heading level {token.level} is not part of the changelog grammar")
                continue

            if state == "preamble":
                if token.kind == TokenKind.BLANK:
                    continue
                if token.kind == TokenKind.COMMENT:
                    comments.append(token.raw)
                    continue
                state = "description"

            if state == "description":
                description.append(token.raw)
                continue

            self._release_line(drafts[-1], token)

        releases = self._build_releases(drafts)
        settings = self._settings(links, releases)

        fields = {
            "title": title or CHANGELOG_TITLE,
            "description": _join_block(description) or CHANGELOG_DESCRIPTION,
            "releases": releases,
            "links": links,
            "comments": comments,
            "footer": _join_block(footer),
            **settings,
        }
        try:
            changelog = _construct(Changelog, **fields)
        except ValidationError as e:
            raise parse_error_for(e, 1, text.split("\n", 1)[0]) from e

        logger.debug(
            "Parsed changelog %r: %d releases, %d links",
            changelog.title, len(changelog.releases), len(changelog.links),
        )
        return changelog

    # ── Pass 1: link definitions ───────────────────────────

    def _collect_links(self, tokens: List[Token]) -> Tuple[LinkTable, List[Token]]:
        table = LinkTable()
        body = []
        for token in tokens:
            if token.kind != TokenKind.LINK:
                body.append(token)
                continue
            if not token.url:
                raise MalformedLink(token.line, token.raw, "Link definition without a URL")
            if token.text in table:
                raise DuplicateLink(token.line, token.raw, f"Link label defined twice: {token.text}")
            try:
                table.add(token.text, token.url)
            except ValidationError as e:
                raise MalformedLink(token.line, token.raw, e.message) from e
        return table, body

    def _check_references(self, token: Token, links: LinkTable) -> None:
        for label in token_references(token):
            if label not in links:
                raise UnresolvedReference(token.line, token.raw, f"Reference to undefined link label: {label}")

    # ── Pass 2: structure ──────────────────────────────────

    def _release_heading(self, token: Token) -> _ReleaseDraft:
        match = RELEASE_HEADING.match(token.text)
        if not match:
            raise MalformedHeading(
                token.line, token.raw,
                "Expected `## [VERSION] - YYYY-MM-DD` or `## [Unreleased]`",
            )
        label = match.group("label")
        raw_date = match.group("date")
        yanked = match.group("yanked") is not None
        undated = raw_date is None or raw_date.lower() == UNRELEASED.lower()

        if label.lower() == UNRELEASED.lower():
            if not undated:
                raise MalformedHeading(token.line, token.raw, "The Unreleased section cannot carry a date")
            if yanked:
                raise MalformedHeading(token.line, token.raw, "The Unreleased section cannot be yanked")
            return _ReleaseDraft(token, None, None, False)

        try:
            version = SemanticVersion.parse(label)
        except ValueError as e:
            raise InvalidVersion(token.line, token.raw, str(e)) from e

        date = None
        if not undated:
            date = _parse_date(raw_date)
            if date is None:
                raise MalformedHeading(token.line, token.raw, f"Invalid release date: {raw_date}")
        return _ReleaseDraft(token, version, date, yanked)

    def _start_kind(self, draft: _ReleaseDraft, token: Token) -> None:
        try:
            kind = ChangeKind.parse(token.text)
        except ValueError as e:
            raise UnknownChangeKind(token.line, token.raw, str(e)) from e
        draft.kind = kind
        draft.item_closed = True

    def _release_line(self, draft: _ReleaseDraft, token: Token) -> None:
        if token.kind == TokenKind.BOLD_LABEL and not token.fenced:
            self._start_kind(draft, token)
            return

        if draft.kind is None:
            draft.description.append(token.raw)
            return

        if token.kind == TokenKind.BLANK:
            draft.item_closed = True
            return

        if token.kind == TokenKind.LIST_ITEM and not token.fenced:
            draft.changes.append((draft.kind, [token.text], token))
            draft.item_closed = False
            return

        has_item = bool(draft.changes) and draft.changes[-1][0] == draft.kind
        if token.kind == TokenKind.INDENTED and has_item:
            draft.changes[-1][1].append(_dedent(token.raw))
            draft.item_closed = False
            return
        if token.kind == TokenKind.TEXT and has_item and not draft.item_closed:
            draft.changes[-1][1].append(token.raw)
            return

        raise UnexpectedContent(
            token.line, token.raw,
            f"Text under `{draft.kind.value}` that is not part of a list item",
        )

    def _build_releases(self, drafts: List[_ReleaseDraft]) -> List[Release]:
        seen: Dict[tuple, _ReleaseDraft] = {}
        releases = []
        for draft in drafts:
            key = draft.version.precedence_key() if draft.version is not None else ()
            if key in seen:
                first = seen[key]
                raise DuplicateVersion(
                    draft.token.line, draft.token.raw,
                    f"{draft.label} already appears on line {first.token.line}",
                )
            seen[key] = draft
            releases.append(draft.build())
        return releases

    def _settings(self, links: LinkTable, releases: List[Release]) -> Dict[str, str]:
        inferred = LinkResolver.infer_settings(links, [r.label for r in releases])
        if inferred:
            logger.debug("Inferred link settings from document: %s", inferred)
        settings = {}
        for name in ("repository_url", "tag_prefix", "head"):
            value = getattr(self, name)
            if value is None:
                value = inferred.get(name)
            if value is not None:
                settings[name] = value
        return settings


def _parse_date(text: str) -> Optional[Date]:
    match = ISO_DATE.match(text)
    if not match:
        return None
    try:
        return Date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    except ValueError:
        return None


def _dedent(raw: str) -> str:
    """Drop the two-space continuation indent of a list item line."""
    if raw.startswith("  "):
        return raw[2:]
    return raw.lstrip()


def _join_block(lines: List[str]) -> Optional[str]:
    """Join source lines, trimming blank lines at both ends and collapsing runs."""
    text = re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip("\n")
    return text or None


def parse(
    text: str,
    repository_url: Optional[str] = None,
    tag_prefix: Optional[str] = None,
    head: Optional[str] = None,
) -> Changelog:
    """Parse Markdown text into a Changelog."""
    return ChangelogParser(repository_url=repository_url, tag_prefix=tag_prefix, head=head).parse(text)
