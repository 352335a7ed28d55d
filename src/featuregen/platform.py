"""
Detect the Java EE and MicroProfile levels a build targets.

Only ``provided`` scope dependencies count: they describe the APIs the
server supplies at runtime.
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Optional, Tuple

from featuregen.compat import MP_LEVELS, mp_level_for_feature, mp_level_label
from featuregen.models import Dependency

logger = logging.getLogger(__name__)

FEATURES_GROUP_ID = "io.openliberty.features"
MICROPROFILE_GROUP_ID = "org.eclipse.microprofile"
MICROPROFILE_ARTIFACT_ID = "microprofile"

# (groupId, artifactId, version or None for any version) -> EE level
EE_DEPENDENCIES: Tuple[Tuple[Tuple[str, str, Optional[str]], str], ...] = (
    ((FEATURES_GROUP_ID, "javaee-7.0", None), "ee7"),
    ((FEATURES_GROUP_ID, "javaee-8.0", None), "ee8"),
    ((FEATURES_GROUP_ID, "javaeeClient-7.0", None), "ee7"),
    ((FEATURES_GROUP_ID, "javaeeClient-8.0", None), "ee8"),
    ((FEATURES_GROUP_ID, "jakartaee-8.0", None), "ee8"),
    (("jakarta.platform", "jakarta.jakartaee-api", "8.0.0"), "ee8"),
)


class PlatformLevels(NamedTuple):
    ee: Optional[str]
    mp: str


def _ee_level_of(dependency: Dependency) -> Optional[str]:
    for (group_id, artifact_id, version), level in EE_DEPENDENCIES:
        if dependency.group_id != group_id or dependency.artifact_id != artifact_id:
            continue
        if version is None or dependency.version == version:
            return level
    return None


def detect_ee_level(dependencies: Iterable[Dependency]) -> Optional[str]:
    """
    Return ``ee7``/``ee8`` from the first matching provided dependency.

    There is no conflict detection between several matching dependencies.
    Returns None when nothing matches.
    """
    for dependency in dependencies:
        if not dependency.is_provided:
            continue
        logger.debug("detect_ee_level, dep=%s", dependency.coordinates)
        level = _ee_level_of(dependency)
        if level is not None:
            return level
    return None


def _umbrella_mp_level(version: Optional[str]) -> str:
    if version:
        for level in range(1, MP_LEVELS):
            if version.startswith(str(level)):
                return mp_level_label(level)
    # Newer MicroProfile releases map to the highest known level
    return mp_level_label(MP_LEVELS)


def detect_mp_level(dependencies: Iterable[Dependency]) -> str:
    """
    Return the MicroProfile level (``mp1``..``mp4``) targeted by the build.

    A provided ``org.eclipse.microprofile:microprofile`` umbrella dependency
    decides directly from its major version. Otherwise the highest level
    required by any provided feature dependency wins. Without any signal the
    highest known level is assumed.
    """
    level = 0
    for dependency in dependencies:
        if not dependency.is_provided:
            continue
        if (
            dependency.group_id == MICROPROFILE_GROUP_ID
            and dependency.artifact_id == MICROPROFILE_ARTIFACT_ID
        ):
            logger.debug("dep=%s version=%s", dependency.coordinates, dependency.version)
            return _umbrella_mp_level(dependency.version)
        if dependency.group_id == FEATURES_GROUP_ID:
            level = max(level, mp_level_for_feature(dependency.artifact_id))
            logger.debug("dep=%s mp_level=%d", dependency.coordinates, level)
    return mp_level_label(level)


def detect_platform(dependencies: Iterable[Dependency]) -> PlatformLevels:
    dependencies = list(dependencies)
    return PlatformLevels(
        ee=detect_ee_level(dependencies),
        mp=detect_mp_level(dependencies),
    )
