import pytest

from depgraph.graph.keys import full_key, management_key, parse_key, versioned_key
from depgraph.processing.maven_model import ArtifactCoordinate, Dependency, Exclusion, VersionedReference


def test_full_key_always_has_five_fields():
    coord = ArtifactCoordinate("org.example", "lib", "1.0")
    assert full_key(coord) == "org.example:lib:1.0::jar"
    assert len(full_key(coord).split(":")) == 5


def test_full_key_with_classifier_and_type():
    coord = ArtifactCoordinate("org.example", "lib", "1.0", "tests", "test-jar")
    assert full_key(coord) == "org.example:lib:1.0:tests:test-jar"


def test_management_key_ignores_version():
    assert management_key(ArtifactCoordinate("g", "a", "1")) == "g:a"
    assert management_key(Dependency("g", "a", "2")) == "g:a"
    assert management_key(Exclusion("g", "a")) == "g:a"


def test_versioned_key():
    assert versioned_key(VersionedReference("g", "a", "3.1")) == "g:a:3.1"


def test_parse_key_round_trip():
    coord = ArtifactCoordinate("g", "a", "1.0", "sources", "jar")
    assert parse_key(full_key(coord)) == coord


@pytest.mark.parametrize("key", ["g:a:1", "g:a:1::jar:extra", ""])
def test_parse_key_rejects_wrong_arity(key):
    with pytest.raises(ValueError):
        parse_key(key)
