"""
Tests for SemanticVersion parsing and precedence.
"""

import pytest

from keep_a_changelog.models.version import SemanticVersion


class TestParse:
    def test_release(self):
        version = SemanticVersion.parse("1.2.3")
        assert (version.major, version.minor, version.patch) == (1, 2, 3)
        assert version.prerelease == ()
        assert version.build == ()
        assert not version.is_prerelease

    def test_prerelease_and_build(self):
        version = SemanticVersion.parse("2.0.0-rc.1+build.5")
        assert version.prerelease == ("rc", "1")
        assert version.build == ("build", "5")
        assert version.is_prerelease
        assert str(version) == "2.0.0-rc.1+build.5"

    def test_from_string_field(self):
        assert SemanticVersion.model_validate("0.1.0") == SemanticVersion.parse("0.1.0")

    @pytest.mark.parametrize("text", ["1.0", "1.0.x", "v1.0.0", "01.0.0", "1.0.0-", "1.0.0-01", ""])
    def test_invalid(self, text):
        assert not SemanticVersion.is_valid(text)
        with pytest.raises(ValueError):
            SemanticVersion.parse(text)


class TestPrecedence:
    def test_semver_example_chain(self):
        chain = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [SemanticVersion.parse(v) for v in chain]
        for lower, higher in zip(versions, versions[1:]):
            assert lower < higher
            assert higher > lower

    def test_numeric_components(self):
        assert SemanticVersion.parse("1.9.0") < SemanticVersion.parse("1.10.0")
        assert SemanticVersion.parse("2.0.0") > SemanticVersion.parse("1.99.99")

    def test_sorting(self):
        versions = [SemanticVersion.parse(v) for v in ["1.0.0", "2.0.0-rc.1", "0.9.0", "2.0.0"]]
        assert [str(v) for v in sorted(versions, reverse=True)] == ["2.0.0", "2.0.0-rc.1", "1.0.0", "0.9.0"]

    def test_build_metadata_ignored(self):
        a = SemanticVersion.parse("1.0.0+a")
        b = SemanticVersion.parse("1.0.0+b")
        assert a != b
        assert a.same_precedence(b)
        assert not a < b and not b < a
        assert a <= b and a >= b
