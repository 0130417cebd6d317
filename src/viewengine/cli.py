"""Command-line interface for viewengine."""

import logging
from pathlib import Path

import click
import yaml

from . import __version__
from .config import (
    CONFIG_FILENAME,
    config_to_dict,
    create_default_config,
    find_config_file,
    load_config,
)
from .registry import ViewEngines, build_engines, glob_filter
from .tokens import ViewEngineError


@click.group()
@click.version_option(version=__version__, prog_name="viewengine")
@click.option("-v", "--verbose", is_flag=True, help="Log discovery details")
def main(verbose):
    """Discover, filter and inspect view templates.

    viewengine finds templates contributed by view facilities, removes
    excluded views, applies view policies and reports the result.

    \b
    Quick start:
      viewengine config init        # Create .viewengine.yaml
      viewengine views              # List discovered views
      viewengine views -d templates # Scan a directory directly
      viewengine facilities         # Show active facilities
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


def _load_engines(config_path, template_dirs=()) -> ViewEngines:
    try:
        cfg = load_config(
            config_path=Path(config_path) if config_path else None,
            template_dirs_override=[Path(d) for d in template_dirs] or None,
        )
        return build_engines(cfg)
    except ViewEngineError as e:
        raise click.ClickException(str(e))


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
@click.option(
    "-d",
    "--dir",
    "template_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False),
    help="Template directory to scan (overrides config, can specify multiple)",
)
@click.option(
    "-x",
    "--exclude",
    "excludes",
    multiple=True,
    help="Glob pattern of views to leave out (can specify multiple)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "yaml"]),
    default="text",
    help="Output format",
)
def views(config_path, template_dirs, excludes, output_format):
    """List the views in the view bag.

    \b
    Examples:
      viewengine views
      viewengine views -d site/templates -x "*/drafts/*"
      viewengine views --format yaml
    """
    engines = _load_engines(config_path, template_dirs)
    for pattern in excludes:
        engines.exclude_views(glob_filter(pattern))

    try:
        bag = engines.views
    except ViewEngineError as e:
        raise click.ClickException(str(e))

    if output_format == "yaml":
        data = [token.to_dict() for token in bag]
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
        return

    for token in bag:
        namespace = token.namespace or "-"
        model = token.model_name or "-"
        click.echo(f"{token.name}\t{namespace}\t{model}\t{_relative_path(token.source)}")

    click.echo(f"\n{len(bag)} view(s)")


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
def facilities(config_path):
    """List the active view facilities."""
    engines = _load_engines(config_path)
    for facility in engines.facilities:
        click.echo(f"{facility.name}\t{type(facility).__name__}")


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
@click.option(
    "-a",
    "--add",
    "extra",
    multiple=True,
    help="Additional namespace (can specify multiple)",
)
def namespaces(config_path, extra):
    """List the namespaces shared by all views."""
    engines = _load_engines(config_path)
    common = engines.graph.namespaces
    for namespace in extra:
        common.add(namespace)
    for namespace in common:
        click.echo(namespace)


@main.group()
def config():
    """Manage viewengine configuration."""
    pass


@config.command("init")
@click.option(
    "-d",
    "--directory",
    type=click.Path(),
    default=".",
    help="Directory to create config in",
)
def config_init(directory):
    """Create a new .viewengine.yaml configuration file."""
    try:
        config_path = create_default_config(Path(directory))
        click.echo(f"Created: {config_path}")
        click.echo("\nNext steps:")
        click.echo("  1. Point template_dirs at your templates")
        click.echo("  2. Run: viewengine views")
    except ViewEngineError as e:
        raise click.ClickException(str(e))


@config.command("show")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Config file path",
)
def config_show(config_path):
    """Display current configuration.

    Shows merged configuration from file, environment, and defaults.
    """
    try:
        cfg = load_config(config_path=Path(config_path) if config_path else None)
        data = config_to_dict(cfg)
        click.echo(yaml.dump(data, default_flow_style=False, sort_keys=False))
    except ViewEngineError as e:
        raise click.ClickException(str(e))


@config.command("where")
@click.option(
    "-d",
    "--directory",
    type=click.Path(exists=True),
    help="Directory to search from",
)
def config_where(directory):
    """Show which config file would be used.

    Searches up the directory tree for .viewengine.yaml.
    """
    start = Path(directory) if directory else Path.cwd()
    config_path = find_config_file(start)

    if config_path:
        click.echo(f"Config file: {config_path}")
    else:
        click.echo(f"No {CONFIG_FILENAME} found (searched from {start})")


def _relative_path(source: str) -> str:
    """Get a relative path for display."""
    path = Path(source)
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main()
