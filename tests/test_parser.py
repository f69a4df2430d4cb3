"""
Tests for the Markdown parser and its error reporting.
"""

from datetime import date

import pytest

from keep_a_changelog.engine.parser import ChangelogParser, parse
from keep_a_changelog.engine.tokenizer import TokenKind, tokenize
from keep_a_changelog.errors import (
    DuplicateLink,
    DuplicateVersion,
    InvalidVersion,
    MalformedHeading,
    MalformedLink,
    ParseError,
    UnexpectedContent,
    UnknownChangeKind,
    UnresolvedReference,
)
from keep_a_changelog.models.changes import ChangeKind


def doc(body: str) -> str:
    return "# Changelog\n\nSome notes.\n\n" + body


class TestTokenizer:
    def test_kinds(self):
        tokens = tokenize("# Title\n\n- item\n  more\n**Added**\n[a]: https://a\n---\ntext\n")
        assert [t.kind for t in tokens] == [
            TokenKind.HEADING,
            TokenKind.BLANK,
            TokenKind.LIST_ITEM,
            TokenKind.INDENTED,
            TokenKind.BOLD_LABEL,
            TokenKind.LINK,
            TokenKind.RULE,
            TokenKind.TEXT,
        ]

    def test_link_url_on_next_line(self):
        tokens = tokenize("[1.0.0]:\n    https://example.com/1.0.0\n")
        assert len(tokens) == 1
        assert tokens[0].url == "https://example.com/1.0.0"

    def test_fenced_lines(self):
        tokens = tokenize("```\n# not a heading\n```\n")
        assert all(t.fenced for t in tokens)
        assert tokens[1].kind == TokenKind.TEXT


class TestParse:
    def test_canonical(self, canonical_text):
        changelog = parse(canonical_text)
        assert changelog.title == "Changelog"
        assert changelog.description == "All notable changes to this project will be documented in this file."
        assert [r.label for r in changelog.releases] == ["Unreleased", "1.1.0", "1.0.0"]
        release = changelog.get_release("1.1.0")
        assert release.date == date(2024, 3, 1)
        assert release.changes_of(ChangeKind.FIXED)[0].description == "Crash on empty input"
        assert changelog.links.labels() == ["Unreleased", "1.1.0", "1.0.0"]

    def test_messy(self, messy_text, canonical_text):
        messy = parse(messy_text)
        canonical = parse(canonical_text)
        assert messy.releases == canonical.releases
        assert messy.description == canonical.description

    def test_links_anywhere(self, messy_text):
        changelog = parse(messy_text)
        assert "1.1.0" in changelog.links
        assert changelog.links.url("1.0.0") == "https://github.com/acme/widget/releases/tag/v1.0.0"

    def test_bold_kind_labels(self):
        changelog = parse(doc("## [1.0.0] - 2024-01-01\n\n**Fixed:**\n\n- Bug\n"))
        assert changelog.get_release("1.0.0").changes_of("Fixed")[0].description == "Bug"

    def test_multiline_items(self):
        changelog = parse(doc("## [1.0.0] - 2024-01-01\n\n### Added\n\n- First line\n  second line\nlazy line\n- Next\n"))
        added = changelog.get_release("1.0.0").changes_of("Added")
        assert [c.description for c in added] == ["First line\nsecond line\nlazy line", "Next"]

    def test_release_description(self):
        changelog = parse(doc("## [1.0.0] - 2024-01-01\n\nFirst stable release.\n\n### Added\n\n- Everything\n"))
        assert changelog.get_release("1.0.0").description == "First stable release."

    def test_yanked_and_undated(self):
        changelog = parse(doc("## [1.1.0] - Unreleased\n\n## [1.0.0] - 2024-01-01 [YANKED]\n"))
        assert changelog.get_release("1.1.0").date is None
        assert changelog.get_release("1.0.0").yanked

    def test_comments_and_footer(self):
        text = "<!-- markdownlint-disable MD024 -->\n# Changelog\n\nNotes.\n\n## [Unreleased]\n\n---\n\nMaintained by the widget team.\n"
        changelog = parse(text)
        assert changelog.comments == ["<!-- markdownlint-disable MD024 -->"]
        assert changelog.footer == "Maintained by the widget team."

    def test_missing_description_uses_default(self):
        changelog = parse("# Changelog\n\n## [Unreleased]\n")
        assert "Keep a Changelog" in changelog.description

    def test_references_resolved(self):
        text = doc("## [1.0.0] - 2024-01-01\n\n### Added\n\n- See [the docs][docs] and [guide][]\n\n[docs]: https://docs\n[guide]: https://guide\n")
        assert parse(text).links.url("guide") == "https://guide"

    def test_code_fence_is_not_structure(self):
        text = doc("## [1.0.0] - 2024-01-01\n\n```\n## not a release\n```\n")
        changelog = parse(text)
        assert [r.label for r in changelog.releases] == ["1.0.0"]
        assert "## not a release" in changelog.get_release("1.0.0").description


class TestErrors:
    def test_invalid_version(self):
        with pytest.raises(InvalidVersion) as exc:
            parse(doc("## [1.0.x] - 2024-01-01\n"))
        assert exc.value.line == 5
        assert exc.value.content == "## [1.0.x] - 2024-01-01"

    def test_unknown_kind(self):
        with pytest.raises(UnknownChangeKind) as exc:
            parse(doc("## [1.0.0] - 2024-01-01\n\n### Improved\n\n- Thing\n"))
        assert exc.value.line == 7

    def test_duplicate_link(self):
        with pytest.raises(DuplicateLink) as exc:
            parse(doc("[1.0.0]: https://a\n[1.0.0]: https://b\n"))
        assert exc.value.line == 6

    def test_duplicate_version(self):
        with pytest.raises(DuplicateVersion) as exc:
            parse(doc("## [1.0.0] - 2024-01-01\n\n## [1.0.0] - 2024-02-01\n"))
        assert exc.value.line == 7
        assert "line 5" in exc.value.reason

    def test_duplicate_unreleased(self):
        with pytest.raises(DuplicateVersion):
            parse(doc("## [Unreleased]\n\n## [Unreleased]\n"))

    def test_malformed_link(self):
        with pytest.raises(MalformedLink):
            parse(doc("[Keep a Changelog]: https://keepachangelog.com\n"))

    def test_unresolved_reference(self):
        with pytest.raises(UnresolvedReference) as exc:
            parse(doc("## [1.0.0] - 2024-01-01\n\n### Added\n\n- See [docs][missing]\n"))
        assert exc.value.line == 9

    def test_unclosed_fence_in_release(self):
        with pytest.raises(UnexpectedContent) as exc:
            parse(doc("## [1.0.0] - 2024-01-01\n\n```\n## [0.9.0] - 2023-12-01\n"))
        assert exc.value.line == 5

    def test_text_under_kind(self):
        with pytest.raises(UnexpectedContent):
            parse(doc("## [1.0.0] - 2024-01-01\n\n### Added\n\nNot a bullet\n"))

    def test_text_after_list_and_blank(self):
        with pytest.raises(UnexpectedContent):
            parse(doc("## [1.0.0] - 2024-01-01\n\n### Added\n\n- Item\n\nStray\n"))

    @pytest.mark.parametrize("heading", [
        "## Version one",
        "## [Unreleased] - 2024-01-01",
        "## [Unreleased] [YANKED]",
        "## [1.0.0] - 2024-02-30",
        "#### Deep",
    ])
    def test_malformed_heading(self, heading):
        with pytest.raises(MalformedHeading):
            parse(doc(heading + "\n"))

    def test_kind_outside_release(self):
        with pytest.raises(MalformedHeading):
            parse(doc("### Added\n\n- Thing\n"))

    def test_second_title(self):
        with pytest.raises(MalformedHeading):
            parse(doc("# Another\n"))

    def test_errors_are_parse_errors(self):
        with pytest.raises(ParseError):
            parse(doc("## [nope]\n"))


class TestInference:
    def test_github_links(self, canonical_text):
        changelog = parse(canonical_text)
        assert changelog.repository_url == "https://github.com/acme/widget"
        assert changelog.tag_prefix == "v"
        assert changelog.head == "HEAD"

    def test_custom_head(self):
        text = doc(
            "## [Unreleased]\n\n## [1.0.0] - 2024-01-01\n\n"
            "[Unreleased]: https://gitlab.com/acme/widget/-/compare/1.0.0...main\n"
            "[1.0.0]: https://gitlab.com/acme/widget/-/releases/tag/1.0.0\n"
        )
        changelog = parse(text)
        assert changelog.repository_url == "https://gitlab.com/acme/widget"
        assert changelog.head == "main"
        assert changelog.tag_prefix == ""

    def test_options_override(self, canonical_text):
        changelog = ChangelogParser(repository_url="https://example.com/repo", tag_prefix="").parse(canonical_text)
        assert changelog.repository_url == "https://example.com/repo"
        assert changelog.tag_prefix == ""

    def test_no_links(self):
        changelog = parse(doc("## [1.0.0] - 2024-01-01\n"))
        assert changelog.repository_url is None
