"""
Feature reconciliation.

Combines the features implied by project dependencies, the features already
declared in server configuration and the features recommended by a scanner
into the set of features that still has to be declared.

Each phase is a plain function over immutable sets so it can be tested on
its own; ``FeatureReconciler`` runs them in order and talks to the I/O
collaborators (inventory, scanner, writer).

Usage::

    reconciler = FeatureReconciler(
        inventory=ServerFeatureInventory(server_dir),
        visible_features=load_visible_features(install_dir),
        scanner=PluginScanner("acme.scanner:scan"),
        writer=GeneratedFeaturesFile(config_dir, server_dir),
    )
    result = reconciler.reconcile(dependencies, classes_dirs=["target/classes"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence, Set

from opentelemetry import trace

from featuregen.dependencies import features_from_dependencies
from featuregen.errors import ConfigurationWriteError, InventoryReadError
from featuregen.logger import GenerationLogger
from featuregen.models import Dependency, FeatureConflict, ReconciliationResult
from featuregen.naming import parse_feature_name
from featuregen.platform import detect_platform
from featuregen.scanner import FeatureScanner, ScanRequest, run_scanner

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class FeatureInventory(Protocol):
    def declared_features(self) -> Set[str]:
        """Features already declared for the server, original casing kept."""
        ...


class FeatureWriter(Protocol):
    def discard(self) -> None:
        """Remove a previously generated features file before reading the inventory."""
        ...

    def restore(self) -> None:
        """Put back what ``discard`` removed."""
        ...

    def write(self, features: AbstractSet[str]) -> Optional[str]:
        """Write the features, rolling back on failure. Returns the written location."""
        ...


@dataclass(frozen=True)
class MergeResult:
    missing: FrozenSet[str]
    conflicts: List[FeatureConflict] = field(default_factory=list)


def visible_features(
    candidates: Iterable[str],
    all_visible: Iterable[str],
    ignore_case: bool = False,
) -> FrozenSet[str]:
    """
    Keep only the candidates the server lets users declare.

    Hidden features (auto-features, internal features) are dropped
    silently. With ``ignore_case`` names match case-insensitively and the
    candidate's own casing is kept.
    """
    if ignore_case:
        visible = {f.lower() for f in all_visible}
        return frozenset(f for f in candidates if f.lower() in visible)
    return frozenset(candidates).intersection(all_visible)


def missing_features(visible: Iterable[str], declared: AbstractSet[str]) -> FrozenSet[str]:
    """Return the visible features not already declared (exact, case preserving match)."""
    return frozenset(f for f in visible if f not in declared)


def _version_lookup(*feature_sets: Iterable[str]) -> Dict[str, str]:
    versions: Dict[str, str] = {}
    for features in feature_sets:
        for feature in features:
            parsed = parse_feature_name(feature)
            if parsed is not None:
                versions[parsed.name] = parsed.version
    return versions


def merge_scanned_features(
    scanned: Iterable[str],
    declared: Iterable[str],
    missing: Iterable[str],
) -> MergeResult:
    """
    Fold scanner recommendations into the missing feature set.

    Versions in force come from the declared features, overridden by the
    missing ones. A scanned feature whose name already has a version in
    force never changes it; a lower version in force produces a conflict.
    Scanned features with no version in force are added unchanged.
    """
    missing = frozenset(missing)
    in_force = _version_lookup(declared, missing)
    added: Set[str] = set()
    conflicts: List[FeatureConflict] = []

    for feature in sorted(f for f in scanned if isinstance(f, str)):
        parsed = parse_feature_name(feature)
        if parsed is None:
            logger.debug("Ignoring malformed scanned feature %s", feature)
            continue
        current = in_force.get(parsed.name)
        if current is None:
            added.add(feature)
            logger.debug("Adding feature %s because it was detected by binary scanner.", feature)
        elif current < parsed.version:
            conflicts.append(
                FeatureConflict(
                    feature=feature,
                    name=parsed.name,
                    expected_version=parsed.version,
                    declared_version=current,
                )
            )
    return MergeResult(missing=missing | added, conflicts=conflicts)


class FeatureReconciler:
    """
    Work out and write the features a server is missing.

    Args:
        inventory: Reads the features already declared; failures are fatal
        visible_features: Every feature the installation allows to declare
        scanner: Optional scanner plugin; failures degrade to no recommendations
        writer: Optional sink for the result; without one nothing is written
        ignore_case: Match dependency features against visible ones case-insensitively
        events: Structured event logger
    """

    def __init__(
        self,
        inventory: FeatureInventory,
        visible_features: Iterable[str],
        scanner: Optional[FeatureScanner] = None,
        writer: Optional[FeatureWriter] = None,
        ignore_case: bool = False,
        events: Optional[GenerationLogger] = None,
    ):
        self.inventory = inventory
        self.all_visible = frozenset(visible_features)
        self.scanner = scanner
        self.writer = writer
        self.ignore_case = ignore_case
        self.events = events or GenerationLogger()

    def _discard_generated(self) -> None:
        # A stale generated file must not count as declared configuration
        if self.writer is None:
            return
        try:
            self.writer.discard()
        except OSError as e:
            logger.debug("Exception removing the previously generated features file", exc_info=True)
            raise ConfigurationWriteError(e) from e

    def _read_declared(self) -> FrozenSet[str]:
        try:
            declared = self.inventory.declared_features()
        except Exception as e:
            logger.debug("Exception reading the server features", exc_info=True)
            if self.writer is not None:
                try:
                    self.writer.restore()
                except OSError as restore_error:
                    logger.debug("Exception trying to restore generated features file: %s", restore_error)
            raise InventoryReadError(e) from e
        return frozenset(declared or ())

    def reconcile(
        self,
        dependencies: Sequence[Dependency],
        classes_dirs: Sequence[str] = (),
        locale: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Run one reconciliation.

        Raises:
            InventoryReadError: Declared features could not be read; nothing written
            ConfigurationWriteError: The previously generated file could not be
                removed, or writing the result failed and was rolled back
        """
        with tracer.start_as_current_span("featuregen.reconcile") as span:
            dependency_features = features_from_dependencies(dependencies)
            logger.debug("maven dependencies that are liberty features: %s", sorted(dependency_features))
            visible = visible_features(dependency_features, self.all_visible, self.ignore_case)
            logger.debug("maven dependencies that are VALID liberty features: %s", sorted(visible))

            self._discard_generated()
            declared = self._read_declared()
            logger.debug("Existing features: %s", sorted(declared))
            self.events.log_features_detected(dependency_features, visible, declared)

            missing = missing_features(visible, declared)
            logger.debug("features missing from server.xml: %s", sorted(missing))

            # Dependency features take priority over scanned features
            platform = detect_platform(dependencies)
            request = ScanRequest(
                classes_dirs=list(classes_dirs),
                ee_level=platform.ee,
                mp_level=platform.mp,
                current_features=sorted(declared),
                locale=locale,
            )
            scanned = run_scanner(self.scanner, request)
            conflicts: List[FeatureConflict] = []
            if scanned is None and self.scanner is None:
                logger.debug("No binary scanner configured")
            elif scanned is None:
                self.events.log_scanner_unavailable("no scanner result")
            else:
                merged = merge_scanned_features(scanned, declared, missing)
                missing, conflicts = merged.missing, merged.conflicts
                for conflict in conflicts:
                    logger.warning(conflict.message)
                    self.events.log_conflict(conflict)

            written = False
            if missing and self.writer is not None:
                try:
                    location = self.writer.write(missing)
                except OSError as e:
                    logger.debug("Exception creating the server features file", exc_info=True)
                    raise ConfigurationWriteError(e) from e
                written = True
                self.events.log_features_written(missing, location)
            elif not missing:
                self.events.log_unchanged()

            span.set_attribute("featuregen.dependency_features", len(dependency_features))
            span.set_attribute("featuregen.declared_features", len(declared))
            span.set_attribute("featuregen.missing_features", len(missing))
            span.set_attribute("featuregen.conflicts", len(conflicts))
            span.set_attribute("featuregen.scanner_available", scanned is not None)

            return ReconciliationResult(
                missing_features=missing,
                conflicts=conflicts,
                scanned_features=frozenset(scanned) if scanned is not None else None,
                ee_level=platform.ee,
                mp_level=platform.mp,
                written=written,
            )
