"""
Changelog aggregate root and its builder.

A Changelog is produced either by the parser or by ChangelogBuilder and is
changed afterwards only through its mutation methods. Each mutation checks
just the invariant it could break before touching any state, so a failed
call leaves the changelog exactly as it was.
"""

import re
from datetime import date as Date
from typing import Callable, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from keep_a_changelog.errors import NotFoundError, ValidationError
from keep_a_changelog.models.changes import Change, ChangeKind
from keep_a_changelog.models.link import Link, LinkTable, _make_link
from keep_a_changelog.models.release import (
    UNRELEASED,
    Release,
    ReleaseBuilder,
    _construct,
    to_date,
    to_kind,
    to_version,
)
from keep_a_changelog.models.text import (
    CHANGELOG_DESCRIPTION_KINDS,
    FOOTER_KINDS,
    as_list_item,
    ensure_plain,
    ensure_title,
    reference_labels,
)
from keep_a_changelog.models.version import SemanticVersion


CHANGELOG_TITLE = "Changelog"

CHANGELOG_DESCRIPTION = (
    "All notable changes to this project will be documented in this file.\n"
    "\n"
    "The format is based on [Keep a Changelog](https://keepachangelog.com/en/1.0.0/),\n"
    "and this project adheres to [Semantic Versioning](https://semver.org/spec/v2.0.0.html)."
)

COMMENT_LINE = re.compile(r"^<!--.*-->$")

VersionLike = Union[str, SemanticVersion, None]


class Changelog(BaseModel):
    """
    A Keep a Changelog document.

    Invariants:
        - releases are Unreleased first, then strictly descending by version
        - at most one Unreleased section, at most one release per version
        - link labels are unique
        - title and description are never empty
        - free text never reads back as structure, and every reference
          link in it resolves (checked by the builder and the mutations)
    """
    title: str = Field(CHANGELOG_TITLE, description="Document title (first-level heading)")
    description: str = Field(CHANGELOG_DESCRIPTION, description="Text between title and first release")
    releases: List[Release] = Field(default_factory=list, description="Releases in canonical order")
    links: LinkTable = Field(default_factory=LinkTable, description="Reference link definitions")
    repository_url: Optional[str] = Field(None, description="Base URL used to derive comparison links")
    tag_prefix: str = Field("", description="Prefix turning a version into a tag name")
    head: str = Field("HEAD", description="Ref the Unreleased comparison link points at")
    comments: List[str] = Field(default_factory=list, description="HTML comment lines before the title")
    footer: Optional[str] = Field(None, description="Text after the closing horizontal rule")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Changelog title must not be empty")
        if "\n" in v:
            raise ValueError("Changelog title must be a single line")
        return ensure_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = "\n".join(line.rstrip() for line in v.split("\n")).strip("\n")
        if not v.strip():
            raise ValueError("Changelog description must not be empty")
        return ensure_plain(re.sub(r"\n{3,}", "\n\n", v), "Description", CHANGELOG_DESCRIPTION_KINDS)

    @field_validator("repository_url")
    @classmethod
    def validate_repository_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().rstrip("/")
        if not v or re.search(r"\s", v):
            raise ValueError(f"Invalid repository URL: {v!r}")
        return v

    @field_validator("tag_prefix", "head")
    @classmethod
    def validate_ref_part(cls, v: str) -> str:
        if re.search(r"\s", v):
            raise ValueError(f"Tag prefix and head must not contain whitespace: {v!r}")
        return v

    @field_validator("comments")
    @classmethod
    def validate_comments(cls, v: List[str]) -> List[str]:
        for comment in v:
            if not COMMENT_LINE.match(comment.strip()):
                raise ValueError(f"Not a single-line HTML comment: {comment!r}")
        return [comment.strip() for comment in v]

    @field_validator("footer")
    @classmethod
    def validate_footer(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = "\n".join(line.rstrip() for line in v.split("\n")).strip("\n")
        if not v:
            return None
        return ensure_plain(re.sub(r"\n{3,}", "\n\n", v), "Footer", FOOTER_KINDS, fences=False)

    @model_validator(mode="after")
    def validate_release_order(self) -> "Changelog":
        from keep_a_changelog.engine.resolver import LinkResolver

        self.releases = LinkResolver.sort_releases(self.releases)
        return self

    # ── Engine shortcuts ───────────────────────────────────

    @property
    def resolver(self):
        """LinkResolver configured from this changelog's repository settings."""
        from keep_a_changelog.engine.resolver import LinkResolver

        return LinkResolver(self.repository_url, self.tag_prefix, self.head)

    @classmethod
    def parse(cls, text: str, **options) -> "Changelog":
        """Parse Markdown text. See ChangelogParser for options."""
        from keep_a_changelog.engine.parser import ChangelogParser

        return ChangelogParser(**options).parse(text)

    def render(self) -> str:
        """Render canonical Markdown text."""
        from keep_a_changelog.engine.renderer import ChangelogRenderer

        return ChangelogRenderer().render(self)

    def __str__(self) -> str:
        return self.render()

    # ── Lookup ─────────────────────────────────────────────

    @property
    def unreleased(self) -> Optional[Release]:
        if self.releases and self.releases[0].version is None:
            return self.releases[0]
        return None

    @property
    def latest_release(self) -> Optional[Release]:
        """Newest versioned release."""
        for release in self.releases:
            if release.version is not None:
                return release
        return None

    def versions(self) -> List[SemanticVersion]:
        return [r.version for r in self.releases if r.version is not None]

    def get_release(self, version: VersionLike) -> Optional[Release]:
        """Find a release by version; None or "Unreleased" selects the Unreleased section."""
        index = self._index_of(version)
        return self.releases[index] if index is not None else None

    def _index_of(self, version: VersionLike) -> Optional[int]:
        if version is None or (isinstance(version, str) and version.strip().lower() == UNRELEASED.lower()):
            return 0 if self.unreleased is not None else None
        wanted = to_version(version)
        for index, release in enumerate(self.releases):
            if release.version is not None and release.version.same_precedence(wanted):
                return index
        return None

    def _require_release(self, version: VersionLike) -> Release:
        release = self.get_release(version)
        if release is None:
            raise NotFoundError("Release", str(version) if version is not None else UNRELEASED)
        return release

    def resolved_links(self) -> List[Link]:
        """
        Links as they appear in rendered output.

        Links that do not belong to a release come first in definition
        order, followed by one link per release in release order.
        """
        release_labels = {release.label for release in self.releases}
        custom = [link for link in self.links if link.label not in release_labels]
        return custom + self.resolver.resolved_links(self.releases, self.links)

    # ── References ─────────────────────────────────────────

    def check_references(self) -> None:
        """
        Check that every `[text][label]` reference in free text has a link.

        Raises:
            ValidationError: On the first reference no rendered link defines
        """
        self._check_labels(self._free_text())

    def _free_text(self) -> List[Optional[str]]:
        texts = list(self.comments) + [self.description, self.footer]
        for release in self.releases:
            texts.extend(_release_text(release))
        return texts

    def _check_labels(self, texts: Iterable[Optional[str]]) -> None:
        labels = reference_labels(texts)
        if not labels:
            return
        known = {link.label for link in self.resolved_links()}
        for label in labels:
            if label not in known:
                raise ValidationError("unresolved-reference", f"Reference to undefined link label: {label}")

    def _check_after(self, mutate: Callable[["Changelog"], object], added: Iterable[Optional[str]] = ()) -> None:
        """Apply `mutate` to a copy and check the copy's references; `added` is text it brings in."""
        if not reference_labels(self._free_text() + list(added)):
            return
        trial = self.model_copy(deep=True)
        mutate(trial)
        trial.check_references()

    # ── Releases ───────────────────────────────────────────

    def add_release(
        self,
        release: Union[Release, str, SemanticVersion],
        date: Union[Date, str, None] = None,
    ) -> Release:
        """
        Insert a release at the position that keeps the ordering invariant.

        Given a version, a new release is created with `date`; if it becomes
        the newest versioned release, the changes and description pending in
        the Unreleased section move into it. A prebuilt Release is inserted
        as it is.

        Raises:
            ValidationError: On an invalid or duplicate version, or a
                prebuilt release referencing an undefined link
        """
        promote = not isinstance(release, Release)
        if promote:
            release = ReleaseBuilder().version(release).date(date).build()
        elif date is not None:
            raise ValidationError("date-with-release", "Pass the date on the Release itself")
        else:
            copy = release.model_copy(deep=True)
            self._check_after(lambda trial: trial._insert(copy, False), _release_text(release))
        return self._insert(release, promote)

    def _insert(self, release: Release, promote: bool) -> Release:
        resolver = self.resolver
        index = resolver.insertion_index(self.releases, release)
        unreleased = self.unreleased
        if promote and unreleased is not None and index == 1:
            release.changes = unreleased.take_changes()
            release.description, unreleased.description = unreleased.description, None

        self.releases.insert(index, release)
        resolver.on_insert(self.releases, self.links, index)
        return release

    def remove_release(self, version: VersionLike) -> Release:
        """
        Remove a release and repair the link of its newer neighbour.

        Raises:
            NotFoundError: If no such release exists
            ValidationError: If free text still references the link it takes away
        """
        index = self._index_of(version)
        if index is None:
            raise NotFoundError("Release", str(version) if version is not None else UNRELEASED)
        self._check_after(lambda trial: trial._remove_at(index))
        return self._remove_at(index)

    def _remove_at(self, index: int) -> Release:
        removed = self.releases.pop(index)
        self.resolver.on_remove(self.releases, self.links, removed, index)
        return removed

    def set_yanked(self, version: VersionLike, yanked: bool = True) -> Release:
        release = self._require_release(version)
        release.set_yanked(yanked)
        return release

    def set_date(self, version: VersionLike, date: Union[Date, str, None]) -> Release:
        release = self._require_release(version)
        release.set_date(to_date(date))
        return release

    def set_release_description(self, version: VersionLike, description: Optional[str]) -> Release:
        release = self._require_release(version)
        description = _construct(Release, description=description).description
        self._check_labels([description])
        release.description = description
        return release

    # ── Changes ────────────────────────────────────────────

    def add_change(
        self,
        kind: Union[str, ChangeKind],
        description: str,
        version: VersionLike = None,
    ) -> Change:
        """
        Add a change to a release; the Unreleased section is created on demand.

        Raises:
            ValidationError: On an unknown kind, an empty description, text
                that would read back as structure or a reference to an
                undefined link
            NotFoundError: If `version` names a release that does not exist
        """
        kind = to_kind(kind)
        change = _construct(Change, kind=kind, description=description)
        self._check_labels([as_list_item(change.description)])
        if version is not None and not (isinstance(version, str) and version.strip().lower() == UNRELEASED.lower()):
            return self._require_release(version).add_change(kind, description)
        release = self.unreleased
        if release is None:
            release = self.add_release(Release())
        return release.add_change(kind, description)

    # ── Metadata ───────────────────────────────────────────

    def set_title(self, title: Optional[str]) -> None:
        self.title = _construct(Changelog, title=title if title is not None else CHANGELOG_TITLE).title

    def set_description(self, description: Optional[str]) -> None:
        if description is None:
            description = CHANGELOG_DESCRIPTION
        description = _construct(Changelog, description=description).description
        self._check_labels([description])
        self.description = description

    def set_repository_url(
        self,
        url: Optional[str],
        tag_prefix: Optional[str] = None,
        head: Optional[str] = None,
    ) -> None:
        """Change the link settings and re-derive every comparison link."""
        settings = _construct(
            Changelog,
            repository_url=url,
            tag_prefix=self.tag_prefix if tag_prefix is None else tag_prefix,
            head=self.head if head is None else head,
        )
        self._check_after(lambda trial: trial._apply_settings(settings))
        self._apply_settings(settings)

    def _apply_settings(self, settings: "Changelog") -> None:
        self.repository_url = settings.repository_url
        self.tag_prefix = settings.tag_prefix
        self.head = settings.head
        self.refresh_links()

    def refresh_links(self) -> None:
        self.resolver.refresh_all(self.releases, self.links)

    # ── Links ──────────────────────────────────────────────

    def add_link(self, label: str, url: str) -> Link:
        return self.links.add(label, url)

    def remove_link(self, label: str) -> Link:
        """
        Remove an explicit link definition.

        Raises:
            NotFoundError: If no link has this label
            ValidationError: If free text references the label and no
                synthesized link would take its place
        """
        if label in self.links:
            self._check_after(lambda trial: trial.links.remove(label))
        return self.links.remove(label)


class ChangelogBuilder:
    """
    Fluent builder for Changelog. All cross-field checks run once in build().

    Usage:
        changelog = (
            ChangelogBuilder()
            .repository_url("https://github.com/acme/widget")
            .release(ReleaseBuilder().version("1.0.0").date("2024-01-01").added("First").build())
            .build()
        )
    """

    def __init__(self) -> None:
        self._title: Optional[str] = None
        self._description: Optional[str] = None
        self._releases: List[Release] = []
        self._links: List[Link] = []
        self._repository_url: Optional[str] = None
        self._tag_prefix = ""
        self._head = "HEAD"
        self._comments: List[str] = []
        self._footer: Optional[str] = None

    def title(self, title: Optional[str]) -> "ChangelogBuilder":
        self._title = title
        return self

    def description(self, description: Optional[str]) -> "ChangelogBuilder":
        self._description = description
        return self

    def release(self, release: Release) -> "ChangelogBuilder":
        self._releases.append(release)
        return self

    def releases(self, releases: List[Release]) -> "ChangelogBuilder":
        self._releases = list(releases)
        return self

    def link(self, label: str, url: str) -> "ChangelogBuilder":
        self._links.append(_make_link(label, url))
        return self

    def repository_url(self, url: Optional[str]) -> "ChangelogBuilder":
        self._repository_url = url
        return self

    def tag_prefix(self, prefix: str) -> "ChangelogBuilder":
        self._tag_prefix = prefix
        return self

    def head(self, head: str) -> "ChangelogBuilder":
        self._head = head
        return self

    def comment(self, comment: str) -> "ChangelogBuilder":
        self._comments.append(comment)
        return self

    def footer(self, footer: Optional[str]) -> "ChangelogBuilder":
        self._footer = footer
        return self

    def build(self) -> Changelog:
        """
        Validate all fields together and return the Changelog.

        Raises:
            ValidationError: Naming the first violated invariant
        """
        seen = set()
        for link in self._links:
            if link.label in seen:
                raise ValidationError("duplicate-link", f"Link label defined twice: {link.label}")
            seen.add(link.label)

        fields = {
            "releases": list(self._releases),
            "links": LinkTable(links=list(self._links)),
            "repository_url": self._repository_url,
            "tag_prefix": self._tag_prefix,
            "head": self._head,
            "comments": list(self._comments),
            "footer": self._footer,
        }
        if self._title is not None:
            fields["title"] = self._title
        if self._description is not None:
            fields["description"] = self._description
        changelog = _construct(Changelog, **fields)
        changelog.check_references()
        return changelog


def _release_text(release: Release) -> List[Optional[str]]:
    """Free text of a release as it is rendered."""
    texts = [release.description]
    for _, entries in release.iter_changes():
        texts.extend(as_list_item(change.description) for change in entries)
    return texts
