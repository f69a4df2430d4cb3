"""
Release data model and builder.
"""

import re
from datetime import date as Date
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from keep_a_changelog.errors import ValidationError, first_error_message
from keep_a_changelog.models.changes import Change, ChangeKind
from keep_a_changelog.models.text import RELEASE_DESCRIPTION_KINDS, ensure_plain
from keep_a_changelog.models.version import SemanticVersion


UNRELEASED = "Unreleased"


def to_version(version: Union[str, SemanticVersion]) -> SemanticVersion:
    """
    Coerce a string into a SemanticVersion.

    Raises:
        ValidationError: If the string is not a valid semantic version
    """
    if isinstance(version, SemanticVersion):
        return version
    try:
        return SemanticVersion.parse(version)
    except ValueError as e:
        raise ValidationError("invalid-version", str(e)) from e


def to_kind(kind: Union[str, ChangeKind]) -> ChangeKind:
    """
    Coerce a string into a ChangeKind.

    Raises:
        ValidationError: If the name is not a known change kind
    """
    try:
        return ChangeKind.parse(kind)
    except ValueError as e:
        raise ValidationError("unknown-change-kind", str(e)) from e


def to_date(value: Union[Date, str, None]) -> Optional[Date]:
    """
    Coerce an ISO `YYYY-MM-DD` string into a date.

    Raises:
        ValidationError: If the string is not a valid date
    """
    if not isinstance(value, str):
        return value
    try:
        return Date.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError("invalid-date", f"Invalid release date: {value!r}") from e


class Release(BaseModel):
    """
    A versioned release, or the Unreleased section when `version` is None.

    Invariants:
        - a dated release carries a version
        - only a versioned release can be yanked
        - every change is filed under its own kind, and no kind maps to an
          empty list
    """
    version: Optional[SemanticVersion] = Field(None, description="Version, None for Unreleased")
    date: Optional[Date] = Field(None, description="Release date")
    yanked: bool = Field(False, description="Whether the release was pulled")
    description: Optional[str] = Field(None, description="Free text before the first change kind")
    changes: Dict[ChangeKind, List[Change]] = Field(default_factory=dict, description="Changes by kind")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        text = "\n".join(line.rstrip() for line in v.split("\n")).strip("\n")
        if not text:
            return None
        return ensure_plain(re.sub(r"\n{3,}", "\n\n", text), "Release description", RELEASE_DESCRIPTION_KINDS)

    @model_validator(mode="after")
    def validate_shape(self) -> "Release":
        if self.version is None and self.date is not None:
            raise ValidationError("unreleased-date", "The Unreleased section cannot carry a date")
        if self.version is None and self.yanked:
            raise ValidationError("yanked-unreleased", "The Unreleased section cannot be yanked")
        for kind, entries in list(self.changes.items()):
            for change in entries:
                if change.kind != kind:
                    raise ValidationError(
                        "change-kind-mismatch",
                        f"Change {change.description!r} is filed under {kind.value} but is {change.kind.value}",
                    )
            if not entries:
                del self.changes[kind]
        return self

    @field_serializer("version")
    def serialize_version(self, version: Optional[SemanticVersion]) -> Optional[str]:
        return str(version) if version is not None else None

    # ── Identity ───────────────────────────────────────────

    @property
    def is_unreleased(self) -> bool:
        return self.version is None

    @property
    def label(self) -> str:
        """Link label and heading text for this release."""
        return UNRELEASED if self.version is None else str(self.version)

    # ── Changes ────────────────────────────────────────────

    @property
    def has_changes(self) -> bool:
        return any(self.changes.values())

    def changes_of(self, kind: Union[str, ChangeKind]) -> List[Change]:
        return list(self.changes.get(to_kind(kind), []))

    def iter_changes(self) -> Iterator[Tuple[ChangeKind, List[Change]]]:
        """Yield (kind, changes) pairs in canonical order, skipping empty kinds."""
        for kind in ChangeKind:
            entries = self.changes.get(kind)
            if entries:
                yield kind, entries

    def add_change(self, kind: Union[str, ChangeKind], description: str) -> Change:
        """
        Append a change under its kind.

        Raises:
            ValidationError: If the kind is unknown or the description is empty
        """
        kind = to_kind(kind)
        try:
            change = Change(kind=kind, description=description)
        except PydanticValidationError as e:
            raise ValidationError("empty-change", first_error_message(e.errors())) from e
        self.changes.setdefault(kind, []).append(change)
        return change

    def remove_change(self, kind: Union[str, ChangeKind], index: int) -> Change:
        kind = to_kind(kind)
        entries = self.changes.get(kind, [])
        if not 0 <= index < len(entries):
            raise ValidationError("change-index", f"No {kind.value} change at index {index}")
        change = entries.pop(index)
        if not entries:
            del self.changes[kind]
        return change

    def take_changes(self) -> Dict[ChangeKind, List[Change]]:
        """Remove and return every change of this release."""
        changes, self.changes = self.changes, {}
        return changes

    # ── Flags ──────────────────────────────────────────────

    def set_yanked(self, yanked: bool = True) -> None:
        if yanked and self.version is None:
            raise ValidationError("yanked-unreleased", "The Unreleased section cannot be yanked")
        self.yanked = yanked

    def set_date(self, date: Optional[Date]) -> None:
        if date is not None and self.version is None:
            raise ValidationError("unreleased-date", "The Unreleased section cannot carry a date")
        self.date = date


class ReleaseBuilder:
    """
    Fluent builder for Release.

    Usage:
        release = (
            ReleaseBuilder()
            .version("1.2.0")
            .date(date(2024, 5, 1))
            .added("New feature")
            .build()
        )
    """

    def __init__(self) -> None:
        self._version: Optional[SemanticVersion] = None
        self._date: Optional[Date] = None
        self._yanked = False
        self._description: Optional[str] = None
        self._changes: List[Tuple[ChangeKind, str]] = []

    def version(self, version: Union[str, SemanticVersion, None]) -> "ReleaseBuilder":
        self._version = to_version(version) if version is not None else None
        return self

    def date(self, date: Union[Date, str, None]) -> "ReleaseBuilder":
        self._date = to_date(date)
        return self

    def yanked(self, yanked: bool = True) -> "ReleaseBuilder":
        self._yanked = yanked
        return self

    def description(self, description: Optional[str]) -> "ReleaseBuilder":
        self._description = description
        return self

    def add_change(self, kind: Union[str, ChangeKind], description: str) -> "ReleaseBuilder":
        self._changes.append((to_kind(kind), description))
        return self

    def added(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.ADDED, description)

    def changed(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.CHANGED, description)

    def deprecated(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.DEPRECATED, description)

    def removed(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.REMOVED, description)

    def fixed(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.FIXED, description)

    def security(self, description: str) -> "ReleaseBuilder":
        return self.add_change(ChangeKind.SECURITY, description)

    def build(self) -> Release:
        """
        Validate everything once and return the Release.

        Raises:
            ValidationError: If the combination of fields is invalid
        """
        release = _construct(
            Release,
            version=self._version,
            date=self._date,
            yanked=self._yanked,
            description=self._description,
        )
        for kind, description in self._changes:
            release.add_change(kind, description)
        return release


def _construct(model_cls, **fields):
    """Build a pydantic model, reporting failures as ValidationError."""
    try:
        return model_cls(**fields)
    except PydanticValidationError as e:
        errors = e.errors()
        location = errors[0].get("loc", ("",))[0] if errors else ""
        invariant = {
            "version": "invalid-version",
            "date": "invalid-date",
            "title": "empty-title",
            "description": "empty-description",
            "links": "duplicate-link",
            "repository_url": "invalid-url",
        }.get(location, f"invalid-{location}" if location else "invalid")
        raise ValidationError(invariant, first_error_message(errors)) from e
