"""
keep-a-changelog CLI - Command line interface for CHANGELOG.md files.

Commands:
- init: Create a new changelog
- show: Dump the parsed changelog as JSON or YAML
- validate: Check that the changelog parses
- fmt: Rewrite the changelog in canonical form
- add: Add a change to the Unreleased section (or a release)
- release: Cut a release from the Unreleased section
- yank: Mark a release as yanked
- remove: Remove a release
"""

import json
import logging
import sys
from datetime import date
from typing import Optional

import click
import yaml

from keep_a_changelog import __version__
from keep_a_changelog.config import config
from keep_a_changelog.errors import ChangelogError, ParseError
from keep_a_changelog.models.changelog import Changelog
from keep_a_changelog.models.changes import ChangeKind
from keep_a_changelog.store.changelog_store import ChangelogStore

logger = logging.getLogger(__name__)


def print_changelog_summary(changelog: Changelog) -> None:
    """Print changelog summary."""
    click.echo(f"\n=== {changelog.title} ===")
    latest = changelog.latest_release
    click.echo(f"Releases: {len(changelog.versions())}")
    click.echo(f"Latest: {latest.label if latest else 'N/A'}")
    unreleased = changelog.unreleased
    if unreleased is not None:
        pending = sum(len(entries) for entries in unreleased.changes.values())
        click.echo(f"Unreleased changes: {pending}")
    click.echo(f"Repository: {changelog.repository_url or 'N/A'}")


def load_or_exit(store: ChangelogStore) -> Changelog:
    try:
        return store.load()
    except FileNotFoundError:
        click.echo(f"✗ Changelog not found: {store.path}", err=True)
        sys.exit(2)
    except ParseError as e:
        click.echo(f"✗ {store.path}:{e.line}: {e.reason}", err=True)
        sys.exit(1)


def save_or_exit(store: ChangelogStore, changelog: Changelog) -> None:
    try:
        store.save(changelog)
    except OSError as e:
        click.echo(f"✗ Could not write {store.path}: {e}", err=True)
        sys.exit(2)


@click.group()
@click.version_option(version=__version__)
@click.option('--file', '-f', 'path', type=click.Path(dir_okay=False), help='Changelog file (default: CHANGELOG.md)')
@click.option('--url', help='Repository URL used for comparison links')
@click.option('--tag-prefix', help='Prefix that turns a version into a tag name, e.g. "v"')
@click.option('--head', help='Ref the Unreleased comparison link points at')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx: click.Context, path: Optional[str], url: Optional[str], tag_prefix: Optional[str], head: Optional[str], verbose: bool):
    """Read, edit and format Keep a Changelog files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    options = config.parse_options()
    if url is not None:
        options["repository_url"] = url
    if tag_prefix is not None:
        options["tag_prefix"] = tag_prefix
    if head is not None:
        options["head"] = head
    ctx.obj = ChangelogStore(path=path, **options)
    logger.debug("Using %s with options %s", ctx.obj.path, options)


@cli.command()
@click.option('--title', help='Changelog title')
@click.option('--force', is_flag=True, help='Overwrite an existing file')
@click.pass_obj
def init(store: ChangelogStore, title: Optional[str], force: bool):
    """
    Create a new changelog with an empty Unreleased section
    """
    try:
        store.init(title=title, overwrite=force)
    except FileExistsError as e:
        click.echo(f"✗ {e}", err=True)
        click.echo("Hint: use --force to overwrite", err=True)
        sys.exit(1)
    except ChangelogError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    click.echo(f"✓ Created {store.path}")


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['json', 'yaml']), default='json')
@click.pass_obj
def show(store: ChangelogStore, output_format: str):
    """
    Dump the parsed changelog
    """
    changelog = load_or_exit(store)
    data = changelog.model_dump(mode='json')
    if output_format == 'yaml':
        click.echo(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
    else:
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command()
@click.pass_obj
def validate(store: ChangelogStore):
    """
    Check that the changelog parses
    """
    changelog = load_or_exit(store)
    print_changelog_summary(changelog)
    click.echo("\n✓ Changelog is valid")


@cli.command()
@click.option('--check', is_flag=True, help='Only report whether the file would change')
@click.pass_obj
def fmt(store: ChangelogStore, check: bool):
    """
    Rewrite the changelog in canonical form
    """
    changelog = load_or_exit(store)
    current = store.read_text()
    rendered = store.render(changelog)

    if check:
        if rendered != current:
            click.echo(f"✗ {store.path} is not formatted", err=True)
            sys.exit(1)
        click.echo(f"✓ {store.path} is formatted")
        return

    if rendered == current:
        click.echo(f"✓ {store.path} already formatted")
        return
    save_or_exit(store, changelog)
    click.echo(f"✓ Formatted {store.path}")


@cli.command()
@click.argument('kind', type=click.Choice([k.value for k in ChangeKind], case_sensitive=False))
@click.argument('description')
@click.option('--release', '-r', 'version', help='Add to this release instead of Unreleased')
@click.pass_obj
def add(store: ChangelogStore, kind: str, description: str, version: Optional[str]):
    """
    Add a change

    KIND: One of Added, Changed, Deprecated, Removed, Fixed, Security
    """
    changelog = load_or_exit(store)
    try:
        change = changelog.add_change(kind, description, version=version)
    except ChangelogError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    save_or_exit(store, changelog)
    click.echo(f"✓ {change.kind.value}: {change.description}")


@cli.command()
@click.argument('version')
@click.option('--date', '-d', 'release_date', help='Release date (YYYY-MM-DD, default: today)')
@click.pass_obj
def release(store: ChangelogStore, version: str, release_date: Optional[str]):
    """
    Cut a release from the Unreleased section

    VERSION: Semantic version of the new release (e.g. 1.2.0)
    """
    changelog = load_or_exit(store)
    try:
        new_release = changelog.add_release(version, release_date or date.today())
    except ChangelogError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    save_or_exit(store, changelog)
    click.echo(f"✓ Released {new_release.label} ({new_release.date})")


@cli.command()
@click.argument('version')
@click.option('--undo', is_flag=True, help='Remove the yanked marker instead')
@click.pass_obj
def yank(store: ChangelogStore, version: str, undo: bool):
    """
    Mark a release as yanked

    VERSION: Version of the release
    """
    changelog = load_or_exit(store)
    try:
        changelog.set_yanked(version, not undo)
    except ChangelogError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    save_or_exit(store, changelog)
    click.echo(f"✓ {version} {'restored' if undo else 'yanked'}")


@cli.command()
@click.argument('version')
@click.pass_obj
def remove(store: ChangelogStore, version: str):
    """
    Remove a release

    VERSION: Version of the release, or "Unreleased"
    """
    changelog = load_or_exit(store)
    try:
        removed = changelog.remove_release(version)
    except ChangelogError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    save_or_exit(store, changelog)
    click.echo(f"✓ Removed {removed.label}")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
