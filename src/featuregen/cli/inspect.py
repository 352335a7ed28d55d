"""
CLI commands for inspecting feature names and platform levels.

Usage::

    featuregen feature parse mpConfig-2.0
    featuregen feature mp-level mpfaulttolerance-2.1
    featuregen platform detect --dependencies pom.xml
"""

import json as _json
import xml.etree.ElementTree as ET
from pathlib import Path

import click
from pydantic import ValidationError

from featuregen.compat import mp_level_for_feature
from featuregen.dependencies import features_from_dependencies, load_dependencies
from featuregen.naming import parse_feature_name
from featuregen.platform import detect_platform


@click.group()
def feature():
    """Inspect feature identifiers."""
    pass


@feature.command("parse")
@click.argument("feature_id")
def parse_cmd(feature_id):
    """Split FEATURE_ID into its short name and version."""
    parsed = parse_feature_name(feature_id)
    if parsed is None:
        raise click.ClickException(f"Not a feature identifier: {feature_id}")
    click.echo(f"name={parsed.name} version={parsed.version}")


@feature.command("mp-level")
@click.argument("feature_id")
def mp_level_cmd(feature_id):
    """Print the MicroProfile level FEATURE_ID requires (0 if not MicroProfile)."""
    click.echo(str(mp_level_for_feature(feature_id)))


@click.group()
def platform():
    """Inspect the platform levels a project targets."""
    pass


@platform.command("detect")
@click.option(
    "--dependencies",
    "dependencies_file",
    type=click.Path(exists=True, dir_okay=False),
    default="pom.xml",
    show_default=True,
    help="pom.xml or YAML/JSON dependency list.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format.",
)
def detect_cmd(dependencies_file, output_format):
    """Print the Java EE and MicroProfile levels declared by the project."""
    try:
        dependencies = load_dependencies(Path(dependencies_file))
    except (OSError, ET.ParseError, ValueError, ValidationError) as exc:
        raise click.ClickException(f"Cannot read dependencies from {dependencies_file}: {exc}")

    levels = detect_platform(dependencies)
    features = sorted(features_from_dependencies(dependencies))
    if output_format == "json":
        click.echo(_json.dumps({"ee_level": levels.ee, "mp_level": levels.mp, "features": features}, indent=2))
        return
    click.echo(f"EE level: {levels.ee or 'unknown'}")
    click.echo(f"MP level: {levels.mp}")
    if features:
        click.echo("Feature dependencies:")
        for name in features:
            click.echo(f"  {name}")
