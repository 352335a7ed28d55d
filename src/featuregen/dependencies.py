"""
Project dependencies: loading them and picking out the Liberty features.

Dependencies come from a Maven ``pom.xml`` or from a YAML/JSON manifest
listing dependency mappings::

    - groupId: io.openliberty.features
      artifactId: servlet-4.0
      type: esa
      scope: provided
"""

from __future__ import annotations

import json
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

import yaml

from featuregen.models import Dependency

logger = logging.getLogger(__name__)

_PROPERTY_PATTERN = re.compile(r"\$\{([^}]+)\}")

# pom elements copied onto Dependency fields
_DEPENDENCY_FIELDS = {
    "groupId": "group_id",
    "artifactId": "artifact_id",
    "version": "version",
    "scope": "scope",
    "type": "type",
}


def features_from_dependencies(dependencies: Iterable[Dependency]) -> FrozenSet[str]:
    """
    Return the artifact ids of the dependencies that are Liberty features.

    A dependency is a feature when its packaging type is ``esa``. Scope is
    not considered here.
    """
    return frozenset(d.artifact_id for d in dependencies if d.is_feature)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if isinstance(child.tag, str) and _local_name(child.tag) == name:
            return child
    return None


def _children(element: Optional[ET.Element], name: str) -> List[ET.Element]:
    if element is None:
        return []
    return [c for c in element if isinstance(c.tag, str) and _local_name(c.tag) == name]


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _pom_properties(project: ET.Element) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    parent = _child(project, "parent")
    for name in ("groupId", "artifactId", "version"):
        value = _text(_child(project, name))
        if value is None and parent is not None and name != "artifactId":
            value = _text(_child(parent, name))
        if value is not None:
            properties[f"project.{name}"] = value
    props = _child(project, "properties")
    if props is not None:
        for prop in props:
            if isinstance(prop.tag, str):
                properties[_local_name(prop.tag)] = (prop.text or "").strip()
    return properties


def _interpolate(value: str, properties: Dict[str, str]) -> str:
    # Unknown properties are left as written
    return _PROPERTY_PATTERN.sub(lambda m: properties.get(m.group(1), m.group(0)), value)


def load_pom_dependencies(pom: Union[str, Path]) -> List[Dependency]:
    """
    Read the ``<dependencies>`` of a pom.xml.

    ``dependencyManagement`` and plugin dependencies are ignored. Property
    references are resolved from the pom's ``<properties>`` and
    ``project.*`` coordinates.

    Raises:
        OSError: The pom cannot be read
        xml.etree.ElementTree.ParseError: The pom is not well-formed
    """
    project = ET.parse(pom).getroot()
    properties = _pom_properties(project)
    dependencies: List[Dependency] = []
    for element in _children(_child(project, "dependencies"), "dependency"):
        values = {}
        for tag, field_name in _DEPENDENCY_FIELDS.items():
            text = _text(_child(element, tag))
            if text is not None:
                values[field_name] = _interpolate(text, properties)
        if "group_id" not in values or "artifact_id" not in values:
            logger.debug("Skipping dependency without coordinates in %s", pom)
            continue
        dependencies.append(Dependency(**values))
    logger.debug("Loaded %d dependencies from %s", len(dependencies), pom)
    return dependencies


def load_dependency_manifest(path: Union[str, Path]) -> List[Dependency]:
    """Read a YAML or JSON list of dependency mappings."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("dependencies", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of dependencies in {path}")
    return [Dependency.model_validate(entry) for entry in data]


def load_dependencies(path: Union[str, Path]) -> List[Dependency]:
    """Load dependencies from a pom.xml or a YAML/JSON manifest."""
    path = Path(path)
    if path.suffix == ".xml":
        return load_pom_dependencies(path)
    return load_dependency_manifest(path)
