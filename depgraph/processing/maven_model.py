"""
Maven project model value types.
Coordinates, references, dependencies, exclusions and relocations as handed
to the dependency graph by a model loader.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class DependencyScope(Enum):
    """Maven dependency scopes."""
    COMPILE = "compile"
    PROVIDED = "provided"
    RUNTIME = "runtime"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"

    @classmethod
    def normalize(cls, scope: Optional[str]) -> str:
        """Return the scope string, defaulting blanks to compile."""
        if scope is None or not scope.strip():
            return cls.COMPILE.value
        return scope.strip()


class ArtifactType(Enum):
    """Maven artifact types."""
    JAR = "jar"
    WAR = "war"
    EAR = "ear"
    POM = "pom"
    MAVEN_PLUGIN = "maven-plugin"
    EJB = "ejb"
    RAR = "rar"
    BUNDLE = "bundle"

    @classmethod
    def for_packaging(cls, packaging: Optional[str]) -> str:
        """Map a POM packaging onto the type of the artifact it produces."""
        if not packaging:
            return cls.JAR.value
        if packaging in (cls.MAVEN_PLUGIN.value, cls.BUNDLE.value):
            return cls.JAR.value
        return packaging


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class ArtifactCoordinate:
    """Maven artifact coordinates (GAV plus classifier and type)."""
    group_id: str
    artifact_id: str
    version: str
    classifier: str = ""
    type: str = ArtifactType.JAR.value

    def __post_init__(self):
        # Frozen, so normalization goes through object.__setattr__
        if self.classifier is None:
            object.__setattr__(self, "classifier", "")
        if _blank(self.type):
            object.__setattr__(self, "type", ArtifactType.JAR.value)

    @property
    def ga_coordinates(self) -> str:
        """Get group:artifact coordinates."""
        return f"{self.group_id}:{self.artifact_id}"

    def with_version(self, version: str) -> "ArtifactCoordinate":
        return ArtifactCoordinate(self.group_id, self.artifact_id, version, self.classifier, self.type)

    def to_versioned_reference(self) -> "VersionedReference":
        return VersionedReference(self.group_id, self.artifact_id, self.version)

    @classmethod
    def from_versioned_reference(cls, ref: "VersionedReference",
                                 artifact_type: str = ArtifactType.JAR.value) -> "ArtifactCoordinate":
        """Build a coordinate for a versioned reference (no classifier)."""
        return cls(ref.group_id, ref.artifact_id, ref.version, "", artifact_type)


@dataclass(frozen=True)
class VersionedReference:
    """Reference to one version of a project: groupId, artifactId, version."""
    group_id: str
    artifact_id: str
    version: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version or ''}"


@dataclass(frozen=True)
class Exclusion:
    """A groupId:artifactId excluded from a dependency's subtree."""
    group_id: str
    artifact_id: str

    @property
    def ga_coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}"


@dataclass
class Dependency:
    """Maven dependency as declared in a project model."""
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    classifier: Optional[str] = None
    type: Optional[str] = None
    scope: Optional[str] = None
    optional: bool = False
    exclusions: List[Exclusion] = field(default_factory=list)
    from_parent: bool = False

    @property
    def ga_coordinates(self) -> str:
        """Get group:artifact coordinates."""
        return f"{self.group_id}:{self.artifact_id}"

    @property
    def effective_scope(self) -> str:
        return DependencyScope.normalize(self.scope)

    def to_coordinate(self, version: Optional[str] = None) -> ArtifactCoordinate:
        """Build the coordinate this dependency points at."""
        return ArtifactCoordinate(
            group_id=self.group_id,
            artifact_id=self.artifact_id,
            version=version if version is not None else (self.version or ""),
            classifier=self.classifier or "",
            type=self.type or ArtifactType.JAR.value,
        )


@dataclass
class Relocation:
    """POM relocation; blank fields keep the relocated artifact's value."""
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    version: Optional[str] = None
    message: Optional[str] = None

    def is_empty(self) -> bool:
        return _blank(self.group_id) and _blank(self.artifact_id) and _blank(self.version)

    def apply_to(self, coordinate: ArtifactCoordinate) -> ArtifactCoordinate:
        """Overlay the non-blank relocation fields onto a coordinate."""
        return ArtifactCoordinate(
            group_id=coordinate.group_id if _blank(self.group_id) else self.group_id.strip(),
            artifact_id=coordinate.artifact_id if _blank(self.artifact_id) else self.artifact_id.strip(),
            version=coordinate.version if _blank(self.version) else self.version.strip(),
            classifier=coordinate.classifier,
            type=coordinate.type,
        )


@dataclass
class ProjectModel:
    """Resolved project model for one versioned reference."""
    group_id: str
    artifact_id: str
    version: str
    packaging: str = ArtifactType.JAR.value
    parent: Optional[VersionedReference] = None
    relocation: Optional[Relocation] = None
    dependency_management: List[Dependency] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    origin: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)

    @property
    def versioned_reference(self) -> VersionedReference:
        return VersionedReference(self.group_id, self.artifact_id, self.version)

    @property
    def has_relocation(self) -> bool:
        return self.relocation is not None and not self.relocation.is_empty()

    def add_dependency(self, dependency: Dependency) -> None:
        self.dependencies.append(dependency)

    def add_managed_dependency(self, dependency: Dependency) -> None:
        self.dependency_management.append(dependency)
