"""
Liberty server configuration: declared features and the generated features file.

Declared features are read from ``server.xml``, the files it includes and the
``configDropins`` directories. Generated features go to a separate dropin
file; ``server.xml`` only receives a comment pointing at it.
"""

from __future__ import annotations

import logging
import re
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import AbstractSet, Dict, Iterable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

GENERATED_FEATURES_FILE = "configDropins/overrides/featuregen-added-features.xml"
FEATURES_FILE_MESSAGE = (
    "featuregen has generated Liberty features necessary for your application in "
    + GENERATED_FEATURES_FILE
)
HEADER = "# Generated by featuregen"

CONFIG_DROPIN_DIRS = ("configDropins/defaults", "configDropins/overrides")

_VARIABLE_PATTERN = re.compile(r"\$\{([^}]+)\}")

# Declaration, comments, processing instructions and DOCTYPE before the root element
_PROLOG_PATTERN = re.compile(r"(?:\s+|<\?.*?\?>|<!--.*?-->|<!DOCTYPE(?:[^\[>]|\[.*?\])*>)*", re.DOTALL)

PathLike = Union[str, Path]


def parse_config(path: PathLike) -> ET.ElementTree:
    """Parse a server configuration file, keeping comments."""
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True))
    return ET.parse(path, parser=parser)


def feature_manager_features(root: ET.Element) -> List[str]:
    """Return the ``<feature>`` values of every ``<featureManager>``, in order."""
    features = []
    for manager in root.iter("featureManager"):
        for feature in manager.findall("feature"):
            if feature.text and feature.text.strip():
                features.append(feature.text.strip())
    return features


def rewrite_config(path: PathLike, root: ET.Element, original: str) -> None:
    """
    Write ``root`` to ``path`` keeping the text of ``original`` around its root element.

    ElementTree drops everything outside the root element, so the prolog
    (declaration, header comments, DOCTYPE) and any trailing text are copied
    from ``original`` unchanged.
    """
    prolog = _PROLOG_PATTERN.match(original).group(0)
    closing = None
    for closing in re.finditer(rf"</{re.escape(root.tag)}\s*>", original):
        pass
    epilog = original[closing.end():] if closing is not None else "\n"
    Path(path).write_text(prolog + ET.tostring(root, encoding="unicode") + epilog, encoding="utf-8")


class ServerFeatureInventory:
    """
    Features declared for a server, with their original casing.

    Args:
        server_dir: Server directory containing server.xml
        variables: Extra ``${name}`` values for include locations
        exclude: Configuration files to skip, e.g. the generated features file
    """

    def __init__(
        self,
        server_dir: PathLike,
        variables: Optional[Dict[str, str]] = None,
        exclude: Iterable[PathLike] = (),
    ):
        self.server_dir = Path(server_dir)
        self.exclude = {Path(p).resolve() for p in exclude}
        self.variables = {
            "server.config.dir": str(self.server_dir),
            "server.output.dir": str(self.server_dir),
        }
        self.variables.update(variables or {})

    def _resolve_location(self, location: str, base_dir: Path) -> Path:
        location = _VARIABLE_PATTERN.sub(lambda m: self.variables.get(m.group(1), m.group(0)), location)
        path = Path(location)
        if not path.is_absolute():
            path = base_dir / path
        return path

    def _read(self, path: Path, features: Set[str], visited: Set[Path]) -> None:
        key = path.resolve()
        if key in visited or key in self.exclude:
            return
        visited.add(key)
        root = parse_config(path).getroot()
        features.update(feature_manager_features(root))
        for include in root.iter("include"):
            location = include.get("location")
            if not location:
                continue
            included = self._resolve_location(location, path.parent)
            if not included.is_file():
                if include.get("optional", "false").lower() != "true":
                    logger.warning("Included configuration file %s not found", included)
                continue
            self._read(included, features, visited)

    def declared_features(self) -> Set[str]:
        """
        Read every declared feature.

        Raises:
            OSError: A configuration file cannot be read
            xml.etree.ElementTree.ParseError: A configuration file is malformed
        """
        features: Set[str] = set()
        visited: Set[Path] = set()
        server_xml = self.server_dir / "server.xml"
        if server_xml.is_file():
            self._read(server_xml, features, visited)
        for dropins in CONFIG_DROPIN_DIRS:
            directory = self.server_dir / dropins
            if directory.is_dir():
                for path in sorted(directory.glob("*.xml")):
                    self._read(path, features, visited)
        return features


def build_features_document(features: AbstractSet[str]) -> ET.ElementTree:
    """Build a ``<server>`` document declaring ``features`` in sorted order."""
    server = ET.Element("server")
    server.append(ET.Comment(f" {HEADER} "))
    manager = ET.SubElement(server, "featureManager")
    for feature in sorted(features):
        ET.SubElement(manager, "feature").text = feature
    tree = ET.ElementTree(server)
    ET.indent(tree, space="    ")
    return tree


class GeneratedFeaturesFile:
    """
    The dropin file holding generated features.

    The file is written to the project's config directory and copied into
    the server directory. ``server.xml`` gets a comment pointing at it.

    Args:
        config_dir: Source configuration directory of the project
        server_dir: Target server directory
        server_xml: server.xml to annotate (defaults to ``config_dir/server.xml``)
    """

    def __init__(
        self,
        config_dir: PathLike,
        server_dir: PathLike,
        server_xml: Optional[PathLike] = None,
    ):
        self.source = Path(config_dir) / GENERATED_FEATURES_FILE
        self.target = Path(server_dir) / GENERATED_FEATURES_FILE
        self.server_xml = Path(server_xml) if server_xml else Path(config_dir) / "server.xml"

    def _update_marker(self, add: bool) -> None:
        if not self.server_xml.is_file():
            return
        try:
            original = self.server_xml.read_text(encoding="utf-8")
            tree = parse_config(self.server_xml)
            root = tree.getroot()
            markers = [
                (manager, node)
                for manager in root.iter("featureManager")
                for node in manager
                if node.tag is ET.Comment and (node.text or "").strip() == FEATURES_FILE_MESSAGE
            ]
            if add:
                if markers:
                    return
                manager = root.find("featureManager")
                if manager is None:
                    manager = ET.SubElement(root, "featureManager")
                comment = ET.Comment(f" {FEATURES_FILE_MESSAGE} ")
                comment.tail = manager.text
                manager.insert(0, comment)
            else:
                if not markers:
                    return
                for manager, node in markers:
                    manager.remove(node)
            rewrite_config(self.server_xml, root, original)
        except (OSError, UnicodeDecodeError, ET.ParseError) as e:
            logger.debug("Exception updating comment in %s: %s", self.server_xml, e)

    def discard(self) -> None:
        """Delete the generated file from the server and its reference in server.xml."""
        if self.target.exists():
            self.target.unlink()
            self._update_marker(add=False)

    def restore(self) -> None:
        """Copy the source file back into the server after a failed run."""
        if not self.target.exists() and self.source.exists():
            self.target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.source, self.target)
            self._update_marker(add=True)

    def write(self, features: AbstractSet[str]) -> str:
        """
        Write ``features`` and reference them from server.xml.

        Raises:
            OSError: Writing failed; both copies have been removed
        """
        try:
            tree = build_features_document(features)
            self.source.parent.mkdir(parents=True, exist_ok=True)
            tree.write(self.source, encoding="UTF-8", xml_declaration=True)
            self.target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.source, self.target)
        except OSError:
            for path in (self.target, self.source):
                try:
                    path.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.debug("Exception removing partial file %s: %s", path, cleanup_error)
            raise
        logger.debug("Created file %s", self.source)
        self._update_marker(add=True)
        return str(self.target)
