"""
Feature identifier codec.

A feature identifier is a short name and a three character version joined by
a hyphen, e.g. ``mpconfig-2.0``. Only the first hyphen separates the parts.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

VERSION_LENGTH = 3


class FeatureName(NamedTuple):
    """Decoded ``(name, version)`` pair of a feature identifier."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


def parse_feature_name(feature: Optional[str]) -> Optional[FeatureName]:
    """
    Split a feature identifier into its short name and version.

    The name is lower-cased, the version is returned as-is. Returns None
    when the identifier has no hyphen, either part is empty, or the version
    is not exactly three characters long.

    Example:
        >>> parse_feature_name("mpConfig-2.0")
        FeatureName(name='mpconfig', version='2.0')
        >>> parse_feature_name("name-12") is None
        True
    """
    if not feature:
        return None
    name, sep, version = feature.partition("-")
    if not sep or not name or len(version) != VERSION_LENGTH:
        return None
    return FeatureName(name.lower(), version)
