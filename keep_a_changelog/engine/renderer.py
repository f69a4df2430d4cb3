"""
Renderer - Changelog to canonical Markdown.

Output rules:
- blocks (headings, paragraphs, lists, link definitions) are separated by
  exactly one blank line
- no trailing whitespace, exactly one newline at the end of the file
- release headings are `## [VERSION] - YYYY-MM-DD` or `## [Unreleased]`
- change kinds appear in canonical order, empty kinds are skipped
- link definitions are collected at the end; comparison links missing
  from the link table are synthesized into the output only
"""

from typing import List

from keep_a_changelog.models.changelog import Changelog
from keep_a_changelog.models.changes import Change
from keep_a_changelog.models.release import UNRELEASED, Release
from keep_a_changelog.models.text import as_list_item


class ChangelogRenderer:
    """Deterministic Markdown renderer. Never mutates the changelog it is given."""

    def render(self, changelog: Changelog) -> str:
        blocks: List[str] = []

        if changelog.comments:
            blocks.append("\n".join(changelog.comments))
        blocks.append(f"# {changelog.title}")
        blocks.append(changelog.description)

        for release in changelog.releases:
            blocks.extend(self.release_blocks(release))

        links = changelog.resolved_links()
        if links:
            blocks.append("\n".join(str(link) for link in links))

        if changelog.footer:
            blocks.append("---")
            blocks.append(changelog.footer)

        text = "\n\n".join(block.strip("\n") for block in blocks)
        return "\n".join(line.rstrip() for line in text.split("\n")) + "\n"

    def release_blocks(self, release: Release) -> List[str]:
        blocks = [self.release_heading(release)]
        if release.description:
            blocks.append(release.description)
        for kind, changes in release.iter_changes():
            blocks.append(f"### {kind.value}")
            blocks.append("\n".join(self.change_item(change) for change in changes))
        return blocks

    @staticmethod
    def release_heading(release: Release) -> str:
        if release.version is None:
            return f"## [{UNRELEASED}]"
        date = release.date.isoformat() if release.date is not None else UNRELEASED
        heading = f"## [{release.version}] - {date}"
        if release.yanked:
            heading += " [YANKED]"
        return heading

    @staticmethod
    def change_item(change: Change) -> str:
        return as_list_item(change.description)


def render(changelog: Changelog) -> str:
    """Render a Changelog as canonical Markdown text."""
    return ChangelogRenderer().render(changelog)
