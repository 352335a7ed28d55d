"""
CLI command for ``featuregen generate``.

Works out the Liberty features the application needs that are not yet
declared and writes them to a configDropins override file.

Usage::

    featuregen generate --install-dir /opt/wlp
    featuregen generate --server-dir build/wlp/usr/servers/app --visible-features features.yaml
    featuregen generate --scanner acme_scanner:scan --classes-dir target/classes --dry-run
"""

import json as _json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError

from featuregen.config import FeaturegenConfig, get_config
from featuregen.dependencies import load_dependencies
from featuregen.errors import FeaturegenError
from featuregen.installation import load_feature_list, load_visible_features
from featuregen.logger import GenerationLogger, configure_logging
from featuregen.models import Dependency, ReconciliationResult
from featuregen.reconcile import FeatureReconciler
from featuregen.scanner import PluginScanner, classes_directories
from featuregen.serverconfig import (
    GENERATED_FEATURES_FILE,
    GeneratedFeaturesFile,
    ServerFeatureInventory,
)


def _load_project_dependencies(dependencies_file: Optional[str], config: FeaturegenConfig) -> List[Dependency]:
    path = Path(dependencies_file) if dependencies_file else Path(config.project_dir) / "pom.xml"
    if not path.exists():
        raise click.ClickException(f"Dependency file not found: {path}")
    try:
        return load_dependencies(path)
    except (OSError, ET.ParseError, ValueError, ValidationError) as exc:
        raise click.ClickException(f"Cannot read dependencies from {path}: {exc}")


def _load_visible(visible_file: Optional[str], config: FeaturegenConfig) -> frozenset:
    try:
        if visible_file:
            return load_feature_list(visible_file)
        if config.install_dir:
            return load_visible_features(config.install_dir, ignore_case=config.ignore_case)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read the installed features: {exc}")
    raise click.ClickException("Specify --install-dir or --visible-features to list the installed features.")


def _build_payload(result: ReconciliationResult) -> dict:
    return {
        "missing_features": sorted(result.missing_features),
        "conflicts": [
            {
                "feature": c.feature,
                "expected_version": c.expected_version,
                "declared_version": c.declared_version,
                "message": c.message,
            }
            for c in result.conflicts
        ],
        "scanned_features": (
            sorted(result.scanned_features) if result.scanned_features is not None else None
        ),
        "ee_level": result.ee_level,
        "mp_level": result.mp_level,
        "written": result.written,
    }


def _render_text(result: ReconciliationResult, dry_run: bool) -> None:
    for conflict in result.conflicts:
        click.echo(click.style(f"  WARN {conflict.message}", fg="yellow"))
    if not result.missing_features:
        click.echo(click.style("No missing features.", fg="green"))
        return
    click.echo("Missing features:")
    for feature in sorted(result.missing_features):
        click.echo(f"  {feature}")
    if dry_run:
        click.echo(click.style("  (dry-run: no files written)", fg="yellow"))


@click.command()
@click.option(
    "--dependencies",
    "dependencies_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="pom.xml or YAML/JSON dependency list (defaults to <project-dir>/pom.xml).",
)
@click.option("--project-dir", type=click.Path(file_okay=False), default=None, help="Project directory.")
@click.option("--config-dir", type=click.Path(file_okay=False), default=None, help="Source server configuration directory.")
@click.option("--install-dir", type=click.Path(file_okay=False), default=None, help="Liberty installation directory.")
@click.option("--user-dir", type=click.Path(file_okay=False), default=None, help="Liberty user directory.")
@click.option("--server-name", default=None, help="Server name.")
@click.option("--server-dir", type=click.Path(file_okay=False), default=None, help="Server directory.")
@click.option(
    "--visible-features",
    "visible_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML/JSON list of declarable features, instead of reading the installation.",
)
@click.option(
    "--classes-dir",
    "classes_dirs",
    multiple=True,
    type=click.Path(),
    help="Build output directory to scan (repeatable, defaults to <project-dir>/target/classes).",
)
@click.option("--scanner", default=None, help="Scanner plugin (module:callable, file.py:callable or entry point).")
@click.option("--locale", default=None, help="Locale for scanner messages.")
@click.option("--ignore-case", is_flag=True, default=None, help="Match installed feature names case-insensitively.")
@click.option("--dry-run", is_flag=True, help="Report missing features without writing files.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format.",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Logging level.",
)
def generate(
    dependencies_file,
    project_dir,
    config_dir,
    install_dir,
    user_dir,
    server_name,
    server_dir,
    visible_file,
    classes_dirs,
    scanner,
    locale,
    ignore_case,
    dry_run,
    output_format,
    log_level,
):
    """Generate the Liberty features missing from the server configuration."""
    overrides = {
        key: value
        for key, value in {
            "project_dir": project_dir,
            "config_dir": config_dir,
            "install_dir": install_dir,
            "user_dir": user_dir,
            "server_name": server_name,
            "server_dir": server_dir,
            "scanner": scanner,
            "locale": locale,
            "ignore_case": ignore_case,
            "log_level": log_level,
        }.items()
        if value is not None
    }
    config = get_config(**overrides)
    configure_logging(config.log_level, config.log_format)

    target_server = config.resolved_server_dir
    if target_server is None:
        raise click.ClickException("Specify --server-dir or --install-dir to locate the server.")

    dependencies = _load_project_dependencies(dependencies_file, config)
    visible = _load_visible(visible_file, config)

    if not classes_dirs:
        classes_dirs = (str(Path(config.project_dir) / "target" / "classes"),)

    reconciler = FeatureReconciler(
        inventory=ServerFeatureInventory(
            target_server,
            exclude=[target_server / GENERATED_FEATURES_FILE],
        ),
        visible_features=visible,
        scanner=PluginScanner(config.scanner) if config.scanner else None,
        writer=None if dry_run else GeneratedFeaturesFile(config.resolved_config_dir, target_server),
        ignore_case=config.ignore_case,
        events=GenerationLogger(server=config.server_name),
    )
    try:
        result = reconciler.reconcile(
            dependencies,
            classes_dirs=classes_directories(classes_dirs),
            locale=config.locale,
        )
    except FeaturegenError as exc:
        raise click.ClickException(str(exc))

    if output_format == "json":
        click.echo(_json.dumps(_build_payload(result), indent=2))
    else:
        _render_text(result, dry_run)
