"""
Version/Link Resolver - keeps release ordering and comparison links consistent.

Releases are kept Unreleased-first, then strictly descending by SemVer
precedence. Each versioned release links to a diff against the next older
release, the oldest one links to its tag page, and the Unreleased section
links to a diff between the newest release and the head ref.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence

from keep_a_changelog.errors import ValidationError
from keep_a_changelog.models.link import Link, LinkTable
from keep_a_changelog.models.release import UNRELEASED, Release

logger = logging.getLogger(__name__)


COMPARE_URL = re.compile(r"^(?P<base>.+?)(?:/-)?/compare/(?P<start>.+?)\.\.\.(?P<end>[^/]+)$")
TAG_URL = re.compile(r"^(?P<base>.+?)(?:/-)?/releases/tag/(?P<tag>[^/]+)$")


class LinkResolver:
    """
    Derives comparison links from a repository URL.

    Without a repository URL no link can be derived; existing links are
    then left untouched and missing ones are simply not produced.
    """

    def __init__(self, repository_url: Optional[str] = None, tag_prefix: str = "", head: str = "HEAD"):
        self.repository_url = repository_url.rstrip("/") if repository_url else None
        self.tag_prefix = tag_prefix or ""
        self.head = head or "HEAD"

    # ── Ordering ───────────────────────────────────────────

    @staticmethod
    def sort_releases(releases: Sequence[Release]) -> List[Release]:
        """
        Return releases in canonical order.

        Raises:
            ValidationError: On a second Unreleased section or a duplicate version
        """
        unreleased = [r for r in releases if r.version is None]
        if len(unreleased) > 1:
            raise ValidationError("single-unreleased", "Only one Unreleased section is allowed")
        versioned = sorted(
            (r for r in releases if r.version is not None),
            key=lambda r: r.version.precedence_key(),
            reverse=True,
        )
        for newer, older in zip(versioned, versioned[1:]):
            if newer.version.same_precedence(older.version):
                raise ValidationError(
                    "duplicate-version",
                    f"Version {older.version} conflicts with {newer.version}",
                )
        return unreleased + versioned

    @staticmethod
    def insertion_index(releases: Sequence[Release], release: Release) -> int:
        """
        Position at which `release` keeps `releases` in canonical order.

        Raises:
            ValidationError: If the new release duplicates an existing one
        """
        if release.version is None:
            if any(r.version is None for r in releases):
                raise ValidationError("single-unreleased", "The changelog already has an Unreleased section")
            return 0
        key = release.version.precedence_key()
        for index, existing in enumerate(releases):
            if existing.version is None:
                continue
            existing_key = existing.version.precedence_key()
            if existing_key == key:
                raise ValidationError(
                    "duplicate-version",
                    f"Version {release.version} already exists as {existing.version}",
                )
            if existing_key < key:
                return index
        return len(releases)

    @staticmethod
    def previous_release(releases: Sequence[Release], index: int) -> Optional[Release]:
        """The next older versioned release after `index`."""
        for release in releases[index + 1:]:
            if release.version is not None:
                return release
        return None

    # ── Links ──────────────────────────────────────────────

    def tag_name(self, release: Release) -> str:
        return f"{self.tag_prefix}{release.version}"

    def compare_url(self, start: str, end: str) -> str:
        return f"{self.repository_url}/compare/{start}...{end}"

    def tag_url(self, tag: str) -> str:
        return f"{self.repository_url}/releases/tag/{tag}"

    def comparison_link(self, releases: Sequence[Release], index: int) -> Optional[Link]:
        """Synthesize the link for the release at `index`, or None if none applies."""
        if not self.repository_url:
            return None
        release = releases[index]
        previous = self.previous_release(releases, index)
        if release.version is None:
            if previous is None:
                return None
            return Link(label=UNRELEASED, url=self.compare_url(self.tag_name(previous), self.head))
        if previous is None:
            return Link(label=release.label, url=self.tag_url(self.tag_name(release)))
        return Link(
            label=release.label,
            url=self.compare_url(self.tag_name(previous), self.tag_name(release)),
        )

    def resolved_links(self, releases: Sequence[Release], links: LinkTable) -> List[Link]:
        """
        One link per release that has one, in release order.

        Explicit links from the table win over synthesized ones.
        """
        resolved = []
        for index, release in enumerate(releases):
            link = links.get(release.label) or self.comparison_link(releases, index)
            if link is not None:
                resolved.append(link)
        return resolved

    def refresh(self, releases: Sequence[Release], links: LinkTable, indices: Sequence[int]) -> None:
        """Recompute and persist the links of the releases at `indices`."""
        for index in sorted(set(indices)):
            if not 0 <= index < len(releases):
                continue
            release = releases[index]
            if not self.repository_url:
                if release.label in links:
                    logger.warning(
                        "No repository URL, keeping possibly stale link for %s", release.label
                    )
                continue
            link = self.comparison_link(releases, index)
            if link is None:
                if links.discard(release.label) is not None:
                    logger.debug("Dropped link for %s", release.label)
                continue
            links.set(link.label, link.url)
            logger.debug("Link for %s -> %s", link.label, link.url)

    def refresh_all(self, releases: Sequence[Release], links: LinkTable) -> None:
        self.refresh(releases, links, range(len(releases)))

    def on_insert(self, releases: Sequence[Release], links: LinkTable, index: int) -> None:
        """Repair links after a release was inserted at `index`."""
        self.refresh(releases, links, [index, index - 1])

    def on_remove(self, releases: Sequence[Release], links: LinkTable, removed: Release, index: int) -> None:
        """Repair links after `removed` was taken out of position `index`."""
        links.discard(removed.label)
        if index > 0:
            self.refresh(releases, links, [index - 1])

    # ── Inference ──────────────────────────────────────────

    @staticmethod
    def infer_settings(links: LinkTable, labels: Sequence[str]) -> Dict[str, str]:
        """
        Recover repository_url, tag_prefix and head from existing release links.

        Only links whose label names a release are considered. Keys are
        present only for the settings that could be recovered.
        """
        found: Dict[str, str] = {}
        for link in links:
            if link.label not in labels:
                continue
            match = COMPARE_URL.match(link.url)
            if match:
                found.setdefault("repository_url", match.group("base"))
                end = match.group("end")
                if link.label == UNRELEASED:
                    found.setdefault("head", end)
                elif end.endswith(link.label):
                    found.setdefault("tag_prefix", end[: len(end) - len(link.label)])
                continue
            match = TAG_URL.match(link.url)
            if match and link.label != UNRELEASED:
                found.setdefault("repository_url", match.group("base"))
                tag = match.group("tag")
                if tag.endswith(link.label):
                    found.setdefault("tag_prefix", tag[: len(tag) - len(link.label)])
        return found
