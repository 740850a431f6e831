import pytest

from typing import List, Optional

from depgraph.config.settings import Settings
from depgraph.graph.events import GraphListener
from depgraph.processing.maven_model import (
    Dependency,
    Exclusion,
    ProjectModel,
    Relocation,
    VersionedReference,
)
from depgraph.processing.model_loader import MemoryModelLoader


def ref(gav: str) -> VersionedReference:
    group_id, artifact_id, version = gav.split(":")
    return VersionedReference(group_id, artifact_id, version)


def dep(gav: str, scope: Optional[str] = None, optional: bool = False,
        exclusions: Optional[List[str]] = None, from_parent: bool = False) -> Dependency:
    """Dependency from 'g:a:v' (version may be blank: 'g:a:')."""
    group_id, artifact_id, version = gav.split(":")
    return Dependency(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version or None,
        scope=scope,
        optional=optional,
        exclusions=[Exclusion(*ga.split(":")) for ga in exclusions or []],
        from_parent=from_parent,
    )


def model(gav: str, *dependencies: Dependency, managed: Optional[List[Dependency]] = None,
          packaging: str = "jar", relocation: Optional[Relocation] = None) -> ProjectModel:
    group_id, artifact_id, version = gav.split(":")
    return ProjectModel(
        group_id=group_id,
        artifact_id=artifact_id,
        version=version,
        packaging=packaging,
        relocation=relocation,
        dependency_management=list(managed or []),
        dependencies=list(dependencies),
    )


class RecordingListener(GraphListener):
    """Keeps every callback it receives, in order."""

    def __init__(self):
        self.errors = []
        self.phases = []
        self.resolutions = []

    def graph_error(self, error, graph):
        self.errors.append(error)

    def graph_phase_event(self, event):
        self.phases.append(event)

    def dependency_resolution_event(self, event):
        self.resolutions.append(event)

    def phase_types(self):
        return [event.type for event in self.phases]

    def resolution_types(self):
        return [event.type for event in self.resolutions]


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def loader():
    return MemoryModelLoader()


@pytest.fixture
def listener():
    return RecordingListener()
