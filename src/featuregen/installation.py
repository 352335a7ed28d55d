"""
Features a Liberty installation lets users declare.

Each installed feature ships a subsystem manifest under ``lib/features``.
Public features carry ``visibility:=public`` on their symbolic name and are
declared in server.xml by their ``IBM-ShortName``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

FEATURE_MANIFEST_DIRS = ("lib/features", "usr/extension/lib/features")

SYMBOLIC_NAME_HEADER = "Subsystem-SymbolicName"
SHORT_NAME_HEADER = "IBM-ShortName"
PUBLIC_VISIBILITY = "visibility:=public"


def parse_manifest(text: str) -> Dict[str, str]:
    """Parse ``Name: value`` manifest headers, joining continuation lines."""
    headers: Dict[str, str] = {}
    last: Optional[str] = None
    for line in text.splitlines():
        if line.startswith(" ") and last is not None:
            headers[last] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            last = None
            continue
        last = name.strip()
        headers[last] = value.strip()
    return headers


def public_feature_name(headers: Dict[str, str]) -> Optional[str]:
    """Return the declarable name of a feature manifest, or None if it is not public."""
    symbolic = headers.get(SYMBOLIC_NAME_HEADER)
    if not symbolic:
        return None
    name, *directives = [part.strip() for part in symbolic.split(";")]
    if PUBLIC_VISIBILITY not in (d.replace(" ", "") for d in directives):
        return None
    return headers.get(SHORT_NAME_HEADER) or name


def load_visible_features(install_dir: Union[str, Path], ignore_case: bool = False) -> FrozenSet[str]:
    """
    Collect the public features of an installation.

    Args:
        install_dir: Liberty installation directory (``wlp``)
        ignore_case: Return lower-cased names

    Raises:
        OSError: A manifest cannot be read
    """
    install_dir = Path(install_dir)
    features = set()
    for relative in FEATURE_MANIFEST_DIRS:
        directory = install_dir / relative
        if not directory.is_dir():
            continue
        for manifest in sorted(directory.glob("*.mf")):
            name = public_feature_name(parse_manifest(manifest.read_text(encoding="utf-8")))
            if name:
                features.add(name.lower() if ignore_case else name)
    logger.debug("Found %d public features in %s", len(features), install_dir)
    return frozenset(features)


def load_feature_list(path: Union[str, Path]) -> FrozenSet[str]:
    """Read a YAML or JSON list of feature identifiers."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    data: List[str] = json.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("features", [])
    return frozenset(str(f).strip() for f in data or [] if str(f).strip())
