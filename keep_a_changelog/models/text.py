"""
Free-text checks.

Titles, descriptions, change entries and the footer are written out
verbatim, so any line in them that the parser would read as structure (a
heading, a rule, a link definition, a run-in kind label, an unclosed code
fence) is refused up front with a "structural-text" ValidationError.
"""

from typing import Iterable, List

from keep_a_changelog.errors import ValidationError


# Line kinds each free-text field must not contain
CHANGELOG_DESCRIPTION_KINDS = ("heading", "rule", "link")
RELEASE_DESCRIPTION_KINDS = ("heading", "rule", "link", "bold_label")
FOOTER_KINDS = ("heading", "link")

_READ_AS = {
    "heading": "a heading",
    "rule": "a horizontal rule",
    "link": "a link definition",
    "bold_label": "a change kind label",
}


def ensure_plain(text: str, what: str, kinds: Iterable[str], fences: bool = True) -> str:
    """
    Refuse `text` if any of its lines would parse as one of `kinds`.

    Args:
        text: The block as it will be rendered
        what: Field name used in the error message
        kinds: TokenKind values that are structure in this position
        fences: Also refuse a code fence that is never closed

    Raises:
        ValidationError: Naming the first offending line
    """
    from keep_a_changelog.engine.tokenizer import TokenKind, structural_tokens

    found = structural_tokens(text, [TokenKind(kind) for kind in kinds], fences=fences)
    if found:
        raise _structural(what, found[0])
    return text


def ensure_title(title: str) -> str:
    """Refuse a title that does not come back unchanged from `# <title>`."""
    from keep_a_changelog.engine.tokenizer import TokenKind, tokenize

    tokens = tokenize(f"# {title}")
    if len(tokens) != 1 or tokens[0].kind != TokenKind.HEADING or tokens[0].text != title:
        raise ValidationError("structural-text", f"Title would not read back as the same heading: {title!r}")
    return title


def as_list_item(description: str) -> str:
    """A change as a Markdown list item: `- ` before the first line, two spaces before the rest."""
    first, *rest = description.split("\n")
    return "\n".join([f"- {first}"] + [f"  {line}" for line in rest])


def ensure_change_text(description: str) -> str:
    """Refuse a change whose list item would not parse back as one item."""
    from keep_a_changelog.engine.tokenizer import TokenKind, structural_tokens

    found = structural_tokens(as_list_item(description), [TokenKind.LINK])
    if found:
        raise _structural("Change", found[0])
    return description


def reference_labels(texts: Iterable[str]) -> List[str]:
    """Labels of `[text][label]` and `[text][]` references in the given blocks."""
    from keep_a_changelog.engine.tokenizer import references

    return [label for text in texts if text for label in references(text)]


def _structural(what: str, token) -> ValidationError:
    if token.fenced:
        read_as = "an unclosed code fence"
    else:
        read_as = _READ_AS.get(token.kind.value, token.kind.value)
    return ValidationError(
        "structural-text",
        f"{what} line {token.line} would be read back as {read_as}: {token.raw.strip()!r}",
    )
