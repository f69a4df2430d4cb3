"""
Error taxonomy for the changelog core.

- ValidationError: a builder or mutation call would break an invariant
- ParseError (and subtypes): the source text does not follow the grammar
- NotFoundError: a release or link that was asked for does not exist
"""

from typing import Optional


class ChangelogError(Exception):
    """Base error for every failure raised by this package."""
    pass


class ValidationError(ChangelogError):
    """
    A builder or mutation operation would violate an invariant.

    Attributes:
        invariant: Short name of the violated rule (e.g. "duplicate-version")
        message: Human readable description
    """

    def __init__(self, invariant: str, message: str) -> None:
        self.invariant = invariant
        self.message = message
        super().__init__(f"{message} [{invariant}]")


class NotFoundError(ChangelogError):
    """A release version or link label does not exist in the changelog."""

    def __init__(self, what: str, key: str) -> None:
        self.what = what
        self.key = key
        super().__init__(f"{what} not found: {key}")


class ParseError(ChangelogError):
    """
    The source text could not be turned into a Changelog.

    Attributes:
        line: 1-based line number of the offending line
        content: The offending line as it appears in the source
        reason: What is wrong with it
    """

    def __init__(self, line: int, content: str, reason: str) -> None:
        self.line = line
        self.content = content
        self.reason = reason
        super().__init__(f"line {line}: {reason}: `{content}`")


class InvalidVersion(ParseError):
    """A release heading carries a version that is not valid SemVer."""


class UnknownChangeKind(ParseError):
    """A change-kind heading names something other than the six kinds."""


class DuplicateLink(ParseError):
    """A link label is defined more than once."""


class DuplicateVersion(ParseError):
    """Two release headings carry the same version."""


class MalformedHeading(ParseError):
    """A heading is at the wrong level or does not match the release grammar."""


class MalformedLink(ParseError):
    """A link definition cannot form a valid link."""


class UnresolvedReference(ParseError):
    """A reference-style link points at a label defined nowhere in the document."""


class UnexpectedContent(ParseError):
    """Free text in a place where it would be silently dropped."""


def parse_error_for(exc: ValidationError, line: int, content: str) -> ParseError:
    """Map a model validation failure hit while parsing onto a located ParseError."""
    mapping = {
        "invalid-version": InvalidVersion,
        "unknown-change-kind": UnknownChangeKind,
        "duplicate-link": DuplicateLink,
        "duplicate-version": DuplicateVersion,
        "invalid-link": MalformedLink,
        "structural-text": UnexpectedContent,
        "unresolved-reference": UnresolvedReference,
    }
    error_cls = mapping.get(exc.invariant, MalformedHeading)
    return error_cls(line, content, exc.message)


def first_error_message(errors: list, default: Optional[str] = None) -> str:
    """Pick the first message out of a pydantic error list."""
    if not errors:
        return default or "invalid value"
    msg = errors[0].get("msg", default or "invalid value")
    # pydantic prefixes errors raised from validators
    return msg.removeprefix("Value error, ")
