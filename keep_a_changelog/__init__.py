"""
keep_a_changelog - Read, edit and write "Keep a Changelog" documents.

This package provides:
- A validated data model for changelogs, releases, changes and links
- A parser turning CHANGELOG.md text into that model
- A renderer producing canonical, lint-clean Markdown
- A resolver keeping release order and comparison links consistent
"""

__version__ = "0.1.0"

from keep_a_changelog.errors import (
    ChangelogError,
    NotFoundError,
    ParseError,
    ValidationError,
)
from keep_a_changelog.models import (
    Change,
    ChangeKind,
    Changelog,
    ChangelogBuilder,
    Link,
    Release,
    ReleaseBuilder,
    SemanticVersion,
)
from keep_a_changelog.engine import parse, render

__all__ = [
    "ChangelogError",
    "NotFoundError",
    "ParseError",
    "ValidationError",
    "Change",
    "ChangeKind",
    "Changelog",
    "ChangelogBuilder",
    "Link",
    "Release",
    "ReleaseBuilder",
    "SemanticVersion",
    "parse",
    "render",
]
