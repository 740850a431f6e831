"""
String keys for artifact coordinates.
Full keys identify graph nodes, management keys match dependency management
entries and exclusions irrespective of version.
"""

from typing import Union

from ..processing.maven_model import ArtifactCoordinate, Dependency, Exclusion, VersionedReference

KEY_SEPARATOR = ":"


def management_key(coordinate: Union[ArtifactCoordinate, Dependency, Exclusion, VersionedReference]) -> str:
    """groupId:artifactId"""
    return f"{coordinate.group_id}{KEY_SEPARATOR}{coordinate.artifact_id}"


def full_key(coordinate: ArtifactCoordinate) -> str:
    """groupId:artifactId:version:classifier:type, always five fields."""
    return KEY_SEPARATOR.join((
        coordinate.group_id,
        coordinate.artifact_id,
        coordinate.version or "",
        coordinate.classifier or "",
        coordinate.type or "",
    ))


def versioned_key(ref: VersionedReference) -> str:
    return KEY_SEPARATOR.join((ref.group_id, ref.artifact_id, ref.version or ""))


def parse_key(key: str) -> ArtifactCoordinate:
    """Parse a five field full key back into a coordinate."""
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != 5:
        raise ValueError(f"Artifact key [{key}] should be 5 parts, found {len(parts)}")
    group_id, artifact_id, version, classifier, artifact_type = parts
    return ArtifactCoordinate(group_id, artifact_id, version, classifier, artifact_type)
