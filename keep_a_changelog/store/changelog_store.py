"""
Changelog Store - File-based storage for changelog documents.

The only place that touches the filesystem:
- Load: read text and hand it to the parser
- Save: render a changelog and write it back
- Init: create a fresh changelog file
"""

import logging
from pathlib import Path
from typing import Optional

from keep_a_changelog.config import config
from keep_a_changelog.engine.parser import ChangelogParser
from keep_a_changelog.engine.renderer import ChangelogRenderer
from keep_a_changelog.models.changelog import Changelog, ChangelogBuilder
from keep_a_changelog.models.release import Release

logger = logging.getLogger(__name__)


class ChangelogStore:
    """
    Reads and writes a single CHANGELOG.md file.

    Link settings passed here override those recovered from the file.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        repository_url: Optional[str] = None,
        tag_prefix: Optional[str] = None,
        head: Optional[str] = None,
        encoding: Optional[str] = None,
    ):
        """
        Initialize the ChangelogStore.

        Args:
            path: Changelog file. Defaults to config.changelog_path.
            repository_url: Repository URL for comparison links
            tag_prefix: Prefix that turns a version into a tag name
            head: Ref the Unreleased comparison link points at
            encoding: File encoding. Defaults to config.encoding.
        """
        self.path = Path(path or config.changelog_path)
        self.encoding = encoding or config.encoding
        self.parser = ChangelogParser(repository_url=repository_url, tag_prefix=tag_prefix, head=head)
        self.renderer = ChangelogRenderer()

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        with open(self.path, "r", encoding=self.encoding) as f:
            return f.read()

    def load(self) -> Changelog:
        """
        Parse the changelog file.

        Raises:
            FileNotFoundError: If the file does not exist
            ParseError: If the file is not a valid changelog
        """
        text = self.read_text()
        logger.debug("Read %d bytes from %s", len(text), self.path)
        return self.parser.parse(text)

    def render(self, changelog: Changelog) -> str:
        return self.renderer.render(changelog)

    def save(self, changelog: Changelog) -> str:
        """Render and write a changelog. Returns the written text."""
        text = self.render(changelog)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding=self.encoding, newline="\n") as f:
            f.write(text)
        logger.info("Wrote %s (%d releases)", self.path, len(changelog.releases))
        return text

    def is_formatted(self) -> bool:
        """Whether the file already is in canonical form."""
        text = self.read_text()
        return self.render(self.parser.parse(text)) == text

    def init(self, title: Optional[str] = None, description: Optional[str] = None, overwrite: bool = False) -> Changelog:
        """
        Create a new changelog file with an empty Unreleased section.

        Raises:
            FileExistsError: If the file exists and overwrite is False
        """
        if self.exists() and not overwrite:
            raise FileExistsError(f"Changelog already exists: {self.path}")
        changelog = (
            ChangelogBuilder()
            .title(title)
            .description(description)
            .repository_url(self.parser.repository_url)
            .tag_prefix(self.parser.tag_prefix or "")
            .head(self.parser.head or "HEAD")
            .release(Release())
            .build()
        )
        self.save(changelog)
        return changelog
