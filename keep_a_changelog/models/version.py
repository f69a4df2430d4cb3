"""
Semantic version model.

Implements parsing and precedence as defined by SemVer 2.0.0
(https://semver.org/spec/v2.0.0.html).
"""

import re
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Official SemVer 2.0.0 grammar
SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

_IDENTIFIER = re.compile(r"^[0-9a-zA-Z-]+$")


class SemanticVersion(BaseModel):
    """
    A MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD] version.

    Equality is structural (build metadata included). Ordering uses SemVer
    precedence, which ignores build metadata, so two versions can compare
    neither lower nor higher while still being distinct; use
    `same_precedence` to detect that case.
    """
    model_config = ConfigDict(frozen=True)

    major: int = Field(..., ge=0, description="Major version")
    minor: int = Field(..., ge=0, description="Minor version")
    patch: int = Field(..., ge=0, description="Patch version")
    prerelease: Tuple[str, ...] = Field(default=(), description="Pre-release identifiers")
    build: Tuple[str, ...] = Field(default=(), description="Build metadata identifiers")

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return cls._components(data)
        return data

    @field_validator("prerelease", "build")
    @classmethod
    def validate_identifiers(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for identifier in v:
            if not _IDENTIFIER.match(identifier):
                raise ValueError(f"Invalid version identifier: {identifier!r}")
        return v

    @staticmethod
    def _components(text: str) -> dict:
        match = SEMVER_PATTERN.match(text.strip())
        if not match:
            raise ValueError(f"Invalid semantic version: {text!r}")
        prerelease = match.group("prerelease")
        build = match.group("build")
        return {
            "major": int(match.group("major")),
            "minor": int(match.group("minor")),
            "patch": int(match.group("patch")),
            "prerelease": tuple(prerelease.split(".")) if prerelease else (),
            "build": tuple(build.split(".")) if build else (),
        }

    @classmethod
    def parse(cls, text: str) -> "SemanticVersion":
        """
        Parse a version string.

        Raises:
            ValueError: If the text is not a valid semantic version
        """
        return cls(**cls._components(text))

    @classmethod
    def is_valid(cls, text: str) -> bool:
        return SEMVER_PATTERN.match(text.strip()) is not None

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def precedence_key(self) -> tuple:
        """
        Sort key implementing SemVer precedence.

        A release outranks any of its pre-releases; numeric identifiers
        compare numerically and rank below alphanumeric ones, which compare
        lexically; a longer identifier list wins when all shared
        identifiers are equal.
        """
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (self.major, self.minor, self.patch, 0, identifiers)

    def same_precedence(self, other: "SemanticVersion") -> bool:
        return self.precedence_key() == other.precedence_key()

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.precedence_key() < other.precedence_key()

    def __le__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.precedence_key() <= other.precedence_key()

    def __gt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.precedence_key() > other.precedence_key()

    def __ge__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.precedence_key() >= other.precedence_key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text
