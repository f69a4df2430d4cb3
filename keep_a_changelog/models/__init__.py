"""Data models for the changelog core."""

from keep_a_changelog.models.version import SemanticVersion
from keep_a_changelog.models.changes import (
    Change,
    ChangeKind,
)
from keep_a_changelog.models.link import (
    Link,
    LinkTable,
)
from keep_a_changelog.models.release import (
    UNRELEASED,
    Release,
    ReleaseBuilder,
)
from keep_a_changelog.models.changelog import (
    CHANGELOG_DESCRIPTION,
    CHANGELOG_TITLE,
    Changelog,
    ChangelogBuilder,
)

__all__ = [
    # Version
    "SemanticVersion",
    # Changes
    "Change",
    "ChangeKind",
    # Links
    "Link",
    "LinkTable",
    # Releases
    "UNRELEASED",
    "Release",
    "ReleaseBuilder",
    # Changelog
    "CHANGELOG_DESCRIPTION",
    "CHANGELOG_TITLE",
    "Changelog",
    "ChangelogBuilder",
]
