"""
Change kinds and change entries.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from keep_a_changelog.models.text import ensure_change_text


class ChangeKind(str, Enum):
    """Kind of a change. Definition order is the canonical display order."""
    ADDED = "Added"
    CHANGED = "Changed"
    DEPRECATED = "Deprecated"
    REMOVED = "Removed"
    FIXED = "Fixed"
    SECURITY = "Security"

    @classmethod
    def parse(cls, text: str) -> "ChangeKind":
        """
        Look up a kind by name, ignoring case and surrounding whitespace.

        Raises:
            ValueError: If the name is not one of the six kinds
        """
        if isinstance(text, ChangeKind):
            return text
        wanted = text.strip().lower()
        for kind in cls:
            if kind.value.lower() == wanted:
                return kind
        raise ValueError(f"Unknown change kind: {text!r}")


class Change(BaseModel):
    """A single bullet entry under a change-kind heading."""
    kind: ChangeKind = Field(..., description="Kind of the change")
    description: str = Field(..., description="Change text, may span several lines")

    @field_validator("kind", mode="before")
    @classmethod
    def validate_kind(cls, v):
        if isinstance(v, str):
            return ChangeKind.parse(v)
        return v

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        lines = [line.rstrip() for line in v.strip().split("\n")]
        if not lines[0]:
            raise ValueError("Change description must not be empty")
        if any(not line.strip() for line in lines):
            raise ValueError("Change description must not contain blank lines")
        return ensure_change_text("\n".join(lines))
