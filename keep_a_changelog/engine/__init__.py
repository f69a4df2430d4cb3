"""Parsing, rendering and link resolution for changelogs."""

from keep_a_changelog.engine.resolver import LinkResolver
from keep_a_changelog.engine.parser import ChangelogParser, parse
from keep_a_changelog.engine.renderer import ChangelogRenderer, render

__all__ = [
    "LinkResolver",
    "ChangelogParser",
    "ChangelogRenderer",
    "parse",
    "render",
]
