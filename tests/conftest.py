"""
Pytest configuration and fixtures for featuregen tests.
"""

from __future__ import annotations

import os
from typing import AbstractSet, Generator, List, Optional, Set

import pytest

from featuregen.config import reset_config
from featuregen.models import Dependency


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_featuregen_env(monkeypatch) -> Generator[None, None, None]:
    """Keep FEATUREGEN_* settings from the caller's shell out of the tests."""
    for key in list(os.environ):
        if key.startswith("FEATUREGEN_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


# ============================================================================
# Model Fixtures
# ============================================================================


def feature_dep(artifact_id: str, scope: str = "provided") -> Dependency:
    return Dependency(
        group_id="io.openliberty.features",
        artifact_id=artifact_id,
        type="esa",
        scope=scope,
    )


@pytest.fixture
def microprofile_dependencies() -> List[Dependency]:
    """A MicroProfile 3 style project declaring individual features."""
    return [
        feature_dep("mpConfig-1.4"),
        feature_dep("mpHealth-2.2"),
        feature_dep("servlet-4.0"),
        Dependency(groupId="junit", artifactId="junit", version="4.13.2", scope="test"),
    ]


# ============================================================================
# Collaborator Fakes
# ============================================================================


class FakeInventory:
    def __init__(self, features: Optional[Set[str]] = None, error: Optional[Exception] = None):
        self.features = set(features or ())
        self.error = error
        self.reads = 0

    def declared_features(self) -> Set[str]:
        self.reads += 1
        if self.error is not None:
            raise self.error
        return set(self.features)


class FakeScanner:
    def __init__(self, result: Optional[Set[str]] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.requests = []

    def scan(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


class FakeWriter:
    def __init__(self, error: Optional[Exception] = None, discard_error: Optional[Exception] = None):
        self.error = error
        self.discard_error = discard_error
        self.written: List[AbstractSet[str]] = []
        self.discarded = 0
        self.restored = 0

    def discard(self) -> None:
        self.discarded += 1
        if self.discard_error is not None:
            raise self.discard_error

    def restore(self) -> None:
        self.restored += 1

    def write(self, features: AbstractSet[str]) -> str:
        if self.error is not None:
            raise self.error
        self.written.append(set(features))
        return "configDropins/overrides/featuregen-added-features.xml"


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def writer() -> FakeWriter:
    return FakeWriter()
