"""
Tests for the command line interface.
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from keep_a_changelog.cli import cli


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, path, *args):
    return runner.invoke(cli, ["--file", str(path), *args])


class TestInit:
    def test_creates_file(self, runner, tmp_path):
        path = tmp_path / "CHANGELOG.md"
        result = invoke(runner, path, "init", "--title", "Widget")
        assert result.exit_code == 0, result.output
        assert "✓ Created" in result.output
        assert path.read_text(encoding="utf-8").startswith("# Widget\n")

    def test_refuses_overwrite(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "init")
        assert result.exit_code == 1
        assert "--force" in result.output


class TestRead:
    def test_validate(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "validate")
        assert result.exit_code == 0, result.output
        assert "Latest: 1.1.0" in result.output
        assert "✓ Changelog is valid" in result.output

    def test_validate_reports_line(self, runner, tmp_path):
        path = tmp_path / "CHANGELOG.md"
        path.write_text("# Changelog\n\nNotes.\n\n## [1.0.0] - 2024-01-01\n\n### Improved\n", encoding="utf-8")
        result = invoke(runner, path, "validate")
        assert result.exit_code == 1
        assert f"{path}:7:" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = invoke(runner, tmp_path / "nope.md", "validate")
        assert result.exit_code == 2

    def test_show_json(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "show")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["title"] == "Changelog"
        assert [r["version"] for r in data["releases"]] == [None, "1.1.0", "1.0.0"]

    def test_show_yaml(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "show", "--format", "yaml")
        assert result.exit_code == 0, result.output
        data = yaml.safe_load(result.output)
        assert data["tag_prefix"] == "v"


class TestFmt:
    def test_check_clean(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "fmt", "--check")
        assert result.exit_code == 0, result.output

    def test_check_dirty_then_fix(self, runner, changelog_file, messy_text, canonical_text):
        changelog_file.write_text(messy_text, encoding="utf-8")
        assert invoke(runner, changelog_file, "fmt", "--check").exit_code == 1
        result = invoke(runner, changelog_file, "fmt")
        assert result.exit_code == 0, result.output
        assert changelog_file.read_text(encoding="utf-8") == canonical_text


class TestEdit:
    def test_add(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "add", "fixed", "Off-by-one in pager")
        assert result.exit_code == 0, result.output
        assert "✓ Fixed: Off-by-one in pager" in result.output
        assert "### Fixed\n\n- Off-by-one in pager" in changelog_file.read_text(encoding="utf-8")

    def test_add_to_missing_release(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "add", "Added", "x", "--release", "9.0.0")
        assert result.exit_code == 1

    def test_release(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "release", "1.2.0", "--date", "2024-05-01")
        assert result.exit_code == 0, result.output
        text = changelog_file.read_text(encoding="utf-8")
        assert "## [Unreleased]\n\n## [1.2.0] - 2024-05-01\n\n### Added\n\n- Pending feature" in text
        assert "[Unreleased]: https://github.com/acme/widget/compare/v1.2.0...HEAD" in text
        assert "[1.2.0]: https://github.com/acme/widget/compare/v1.1.0...v1.2.0" in text

    def test_release_duplicate(self, runner, changelog_file, canonical_text):
        result = invoke(runner, changelog_file, "release", "1.1.0")
        assert result.exit_code == 1
        assert changelog_file.read_text(encoding="utf-8") == canonical_text

    def test_yank_and_undo(self, runner, changelog_file):
        assert invoke(runner, changelog_file, "yank", "1.0.0").exit_code == 0
        assert "## [1.0.0] - 2024-01-15 [YANKED]" in changelog_file.read_text(encoding="utf-8")
        assert invoke(runner, changelog_file, "yank", "1.0.0", "--undo").exit_code == 0
        assert "[YANKED]" not in changelog_file.read_text(encoding="utf-8")

    def test_remove(self, runner, changelog_file):
        result = invoke(runner, changelog_file, "remove", "1.1.0")
        assert result.exit_code == 0, result.output
        text = changelog_file.read_text(encoding="utf-8")
        assert "## [1.1.0]" not in text
        assert "[Unreleased]: https://github.com/acme/widget/compare/v1.0.0...HEAD" in text

    def test_url_option(self, runner, changelog_file):
        result = runner.invoke(cli, ["--file", str(changelog_file), "--url", "https://example.com/r", "release", "2.0.0", "-d", "2024-06-01"])
        assert result.exit_code == 0, result.output
        text = changelog_file.read_text(encoding="utf-8")
        assert "[2.0.0]: https://example.com/r/compare/v1.1.0...v2.0.0" in text
