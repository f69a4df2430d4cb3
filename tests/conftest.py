"""
Shared pytest fixtures for keep_a_changelog tests.

Provides:
- Sample documents (canonical and messy)
- Prebuilt changelogs
- A changelog file on disk
"""

from pathlib import Path

import pytest

from keep_a_changelog.models.changelog import ChangelogBuilder
from keep_a_changelog.models.release import Release, ReleaseBuilder


REPO = "https://github.com/acme/widget"


# ============================================================================
# Documents
# ============================================================================

CANONICAL = """\
# Changelog

All notable changes to this project will be documented in this file.

## [Unreleased]

### Added

- Pending feature

## [1.1.0] - 2024-03-01

### Added

- Second feature

### Fixed

- Crash on empty input

## [1.0.0] - 2024-01-15

### Added

- First release

[Unreleased]: https://github.com/acme/widget/compare/v1.1.0...HEAD
[1.1.0]: https://github.com/acme/widget/compare/v1.0.0...v1.1.0
[1.0.0]: https://github.com/acme/widget/releases/tag/v1.0.0
"""

# Same content as CANONICAL, written sloppily
MESSY = """\
# Changelog
All notable changes to this project will be documented in this file.


## [Unreleased]
### Added
- Pending feature

## 1.1.0 - 2024-03-01
### Fixed
* Crash on empty input
### Added
- Second feature
[1.1.0]: https://github.com/acme/widget/compare/v1.0.0...v1.1.0

## [1.0.0] - 2024-01-15
**Added**
- First release

[Unreleased]: https://github.com/acme/widget/compare/v1.1.0...HEAD
[1.0.0]: https://github.com/acme/widget/releases/tag/v1.0.0


"""


@pytest.fixture
def canonical_text() -> str:
    return CANONICAL


@pytest.fixture
def messy_text() -> str:
    return MESSY


# ============================================================================
# Models
# ============================================================================

@pytest.fixture
def empty_changelog():
    """Changelog with a repository URL and an empty Unreleased section."""
    return ChangelogBuilder().repository_url(REPO).release(Release()).build()


@pytest.fixture
def released_changelog():
    """Changelog with pending changes and two releases, links not yet derived."""
    return (
        ChangelogBuilder()
        .repository_url(REPO)
        .release(ReleaseBuilder().added("Pending feature").build())
        .release(ReleaseBuilder().version("1.1.0").date("2024-03-01").added("Second feature").build())
        .release(ReleaseBuilder().version("1.0.0").date("2024-01-15").added("First release").build())
        .build()
    )


# ============================================================================
# Files
# ============================================================================

@pytest.fixture
def changelog_file(tmp_path: Path) -> Path:
    """CHANGELOG.md in canonical form inside a temporary directory."""
    path = tmp_path / "CHANGELOG.md"
    path.write_text(CANONICAL, encoding="utf-8")
    return path
