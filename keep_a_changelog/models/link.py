"""
Reference-style links and the link table.
"""

import re
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from keep_a_changelog.errors import NotFoundError, ValidationError, first_error_message


LINK_DEFINITION = re.compile(r"^\[(?P<label>[^\]]+)\]:\s*(?P<url>\S*)\s*$")


class Link(BaseModel):
    """A `[label]: url` reference definition."""
    label: str = Field(..., min_length=1, description="Reference label, case-sensitive")
    url: str = Field(..., min_length=1, description="Target URL")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        if re.search(r"\s", v):
            raise ValueError(f"Link label must not contain whitespace: {v!r}")
        if "[" in v or "]" in v:
            raise ValueError(f"Link label must not contain brackets: {v!r}")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if re.search(r"\s", v):
            raise ValueError(f"Link url must not contain whitespace: {v!r}")
        return v

    @classmethod
    def parse(cls, line: str) -> "Link":
        """
        Parse a single `[label]: url` line.

        Raises:
            ValueError: If the line is not a link definition
        """
        match = LINK_DEFINITION.match(line.strip())
        if not match or not match.group("url"):
            raise ValueError(f"Not a link definition: {line!r}")
        return cls(label=match.group("label"), url=match.group("url"))

    def __str__(self) -> str:
        return f"[{self.label}]: {self.url}"


class LinkTable(BaseModel):
    """
    Ordered mapping of link labels to URLs.

    Insertion order is kept so that links which are not comparison links
    are rendered in the order they were defined.
    """
    links: List[Link] = Field(default_factory=list, description="Links in definition order")

    @field_validator("links")
    @classmethod
    def validate_unique_labels(cls, v: List[Link]) -> List[Link]:
        seen = set()
        for link in v:
            if link.label in seen:
                raise ValueError(f"Duplicate link label: {link.label}")
            seen.add(link.label)
        return v

    def __len__(self) -> int:
        return len(self.links)

    def __iter__(self) -> Iterator[Link]:
        return iter(self.links)

    def __contains__(self, label: str) -> bool:
        return self.get(label) is not None

    def labels(self) -> List[str]:
        return [link.label for link in self.links]

    def get(self, label: str) -> Optional[Link]:
        for link in self.links:
            if link.label == label:
                return link
        return None

    def url(self, label: str) -> Optional[str]:
        link = self.get(label)
        return link.url if link else None

    def add(self, label: str, url: str) -> Link:
        """
        Add a new link.

        Raises:
            ValidationError: If the label is already defined or the link is invalid
        """
        if label in self:
            raise ValidationError("duplicate-link", f"Link label already defined: {label}")
        link = _make_link(label, url)
        self.links.append(link)
        return link

    def set(self, label: str, url: str) -> Link:
        """Insert or replace a link, keeping the position of an existing label."""
        link = _make_link(label, url)
        for index, existing in enumerate(self.links):
            if existing.label == label:
                self.links[index] = link
                return link
        self.links.append(link)
        return link

    def remove(self, label: str) -> Link:
        """
        Remove a link by label.

        Raises:
            NotFoundError: If the label is not defined
        """
        for index, existing in enumerate(self.links):
            if existing.label == label:
                return self.links.pop(index)
        raise NotFoundError("Link", label)

    def discard(self, label: str) -> Optional[Link]:
        try:
            return self.remove(label)
        except NotFoundError:
            return None


def _make_link(label: str, url: str) -> Link:
    try:
        return Link(label=label, url=url)
    except PydanticValidationError as e:
        raise ValidationError("invalid-link", first_error_message(e.errors())) from e
