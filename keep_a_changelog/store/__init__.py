"""Storage components for changelog files."""

from keep_a_changelog.store.changelog_store import ChangelogStore

__all__ = [
    "ChangelogStore",
]
