"""
MicroProfile component compatibility table.

Maps each MicroProfile component feature to the component version shipped
with each MicroProfile release level. Used to work out which MicroProfile
level a build targets when it only declares individual component features.

Versions are compared as plain strings, which matches the ordering of the
recorded single digit ``major.minor`` versions. Multi-digit segments
(``1.10``) do not order numerically.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from featuregen.naming import parse_feature_name

MP_PREFIX = "mp"

# Number of release level columns in the table
MP_LEVELS = 4

# Name, MP1 version, MP2 version, MP3 version, MP4 version
MP_COMPONENTS: Tuple[Tuple[str, str, str, str, str], ...] = (
    ("mpconfig", "1.3", "1.3", "1.4", "2.0"),
    ("mpfaulttolerance", "1.1", "2.0", "2.1", "3.0"),
    ("mphealth", "1.0", "1.0", "2.2", "3.0"),
    ("mpjwt", "1.1", "1.1", "1.1", "1.2"),
    ("mpmetrics", "1.1", "1.1", "2.3", "3.0"),
    ("mpopenapi", "1.0", "1.1", "1.1", "2.0"),
    ("mpopentracing", "1.1", "1.3", "1.3", "2.0"),
    ("mprestclient", "1.1", "1.2", "1.4", "2.0"),
)

_COMPONENT_VERSIONS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {row[0]: row[1:] for row in MP_COMPONENTS}
)


def component_versions(name: str) -> Optional[Tuple[str, ...]]:
    """Return the per-level versions recorded for a component, if any."""
    return _COMPONENT_VERSIONS.get(name)


def mp_level(name: Optional[str], version: str) -> int:
    """
    Resolve a MicroProfile component version to a release level.

    Scans the component's row from the highest level down. An exact match
    returns that level; the first lower table entry means the requested
    version needs the next level up. Versions newer than the table resolve
    to the highest level, versions older than every entry to level 1.

    Args:
        name: Lower-case component short name, e.g. ``mpconfig``
        version: Component version, e.g. ``1.4``

    Returns:
        Level 1..4, or 0 when ``name`` is not a MicroProfile component
    """
    if not name or not name.startswith(MP_PREFIX):
        return 0
    versions = _COMPONENT_VERSIONS.get(name)
    if versions is None:
        return 0
    for level in range(MP_LEVELS, 0, -1):
        table_version = versions[level - 1]
        if table_version < version:
            return MP_LEVELS if level == MP_LEVELS else level + 1
        if table_version == version:
            return level
    return 1


def mp_level_for_feature(feature: Optional[str]) -> int:
    """Resolve a full feature identifier such as ``mpconfig-1.4`` to a level."""
    if not feature or not feature.startswith(MP_PREFIX):
        return 0
    parsed = parse_feature_name(feature)
    if parsed is None:
        return 0
    return mp_level(parsed.name, parsed.version)


def mp_level_label(level: int) -> str:
    """Render a level as ``mp1``..``mp4``; unknown levels default to ``mp4``."""
    if 1 <= level < MP_LEVELS:
        return f"mp{level}"
    return f"mp{MP_LEVELS}"
