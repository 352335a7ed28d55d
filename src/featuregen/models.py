"""
Pydantic models for feature generation inputs and results.

``Dependency`` mirrors a Maven dependency declaration and accepts both the
pom's camelCase keys and snake_case field names.
"""

from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

FEATURE_TYPE = "esa"
PROVIDED_SCOPE = "provided"


class Dependency(BaseModel):
    """A declared build dependency (read-only)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    group_id: str = Field(..., alias="groupId", description="Maven groupId")
    artifact_id: str = Field(..., alias="artifactId", description="Maven artifactId")
    version: Optional[str] = Field(None, description="Declared version")
    scope: str = Field("compile", description="Maven scope")
    type: str = Field("jar", description="Packaging type, esa for features")

    @property
    def coordinates(self) -> str:
        parts = [self.group_id, self.artifact_id]
        if self.version:
            parts.append(self.version)
        return ":".join(parts)

    @property
    def is_provided(self) -> bool:
        return self.scope == PROVIDED_SCOPE

    @property
    def is_feature(self) -> bool:
        return self.type == FEATURE_TYPE


class FeatureConflict(BaseModel):
    """A scanned feature stricter than the version already declared."""

    model_config = ConfigDict(frozen=True)

    feature: str = Field(..., description="Scanned feature identifier")
    name: str = Field(..., description="Decoded short name")
    expected_version: str = Field(..., description="Version the scanner asked for")
    declared_version: str = Field(..., description="Version declared in the POM or server.xml")

    @property
    def declared_feature(self) -> str:
        return f"{self.name}-{self.declared_version}"

    @property
    def message(self) -> str:
        return (
            f"The binary scanner detected a dependency on {self.feature} but the "
            f"project's POM or server.xml specified the dependency {self.declared_feature}."
        )


class ReconciliationResult(BaseModel):
    """Features that must be newly declared, plus warnings raised on the way."""

    missing_features: FrozenSet[str] = Field(default_factory=frozenset)
    conflicts: List[FeatureConflict] = Field(default_factory=list)
    scanned_features: Optional[FrozenSet[str]] = Field(
        None,
        description="Scanner recommendations, None when the scanner was unavailable",
    )
    ee_level: Optional[str] = None
    mp_level: Optional[str] = None
    written: bool = Field(False, description="Whether the generated features file was written")

    @property
    def has_changes(self) -> bool:
        return bool(self.missing_features)
