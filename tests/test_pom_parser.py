import pytest

from depgraph.processing.maven_model import Exclusion, VersionedReference
from depgraph.processing.pom_parser import PomParseError, PomParser

POM = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <parent>
    <groupId>org.example</groupId>
    <artifactId>example-parent</artifactId>
    <version>7</version>
  </parent>
  <artifactId>service</artifactId>
  <packaging>war</packaging>
  <properties>
    <spring.version>5.3.1</spring.version>
  </properties>
  <dependencyManagement>
    <dependencies>
      <dependency>
        <groupId>com.fasterxml.jackson.core</groupId>
        <artifactId>jackson-databind</artifactId>
        <version>2.15.0</version>
      </dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>org.springframework</groupId>
      <artifactId>spring-core</artifactId>
      <version>${spring.version}</version>
      <exclusions>
        <exclusion>
          <groupId>commons-logging</groupId>
          <artifactId>commons-logging</artifactId>
        </exclusion>
      </exclusions>
    </dependency>
    <dependency>
      <groupId>${project.groupId}</groupId>
      <artifactId>service-api</artifactId>
      <version>${project.version}</version>
      <classifier>shaded</classifier>
    </dependency>
    <dependency>
      <groupId>com.fasterxml.jackson.core</groupId>
      <artifactId>jackson-databind</artifactId>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
      <optional>true</optional>
    </dependency>
  </dependencies>
</project>
"""

RELOCATED = """<project>
  <groupId>old.group</groupId>
  <artifactId>thing</artifactId>
  <version>1.0</version>
  <distributionManagement>
    <relocation>
      <groupId>new.group</groupId>
      <message>moved</message>
    </relocation>
  </distributionManagement>
</project>
"""


@pytest.fixture
def parsed():
    return PomParser().parse_pom(POM, origin="service.pom")


def test_coordinates_inherit_from_parent(parsed):
    assert (parsed.group_id, parsed.artifact_id, parsed.version) == ("org.example", "service", "7")
    assert parsed.packaging == "war"
    assert parsed.parent == VersionedReference("org.example", "example-parent", "7")
    assert parsed.origin == "service.pom"


def test_dependencies_and_properties(parsed):
    spring, api, jackson, junit = parsed.dependencies

    assert spring.version == "5.3.1"
    assert spring.exclusions == [Exclusion("commons-logging", "commons-logging")]
    assert api.group_id == "org.example"
    assert api.version == "7"
    assert api.classifier == "shaded"
    assert jackson.version is None
    assert jackson.effective_scope == "compile"
    assert junit.scope == "test"
    assert junit.optional
    assert parsed.properties["spring.version"] == "5.3.1"
    assert parsed.properties["project.version"] == "7"


def test_dependency_management_is_separate(parsed):
    assert [d.ga_coordinates for d in parsed.dependency_management] == ["com.fasterxml.jackson.core:jackson-databind"]
    assert parsed.dependency_management[0].version == "2.15.0"


def test_relocation():
    parsed = PomParser().parse_pom(RELOCATED)
    assert parsed.has_relocation
    assert parsed.relocation.group_id == "new.group"
    assert parsed.relocation.artifact_id is None
    assert parsed.relocation.message == "moved"


def test_unknown_properties_are_left_in_place():
    assert PomParser.resolve_property("${missing}-${a}", {"a": "1"}) == "${missing}-1"


def test_malformed_xml_raises():
    with pytest.raises(PomParseError):
        PomParser().parse_pom("<project><artifactId>")


def test_missing_coordinates_raise():
    with pytest.raises(PomParseError):
        PomParser().parse_pom("<project><artifactId>x</artifactId></project>")
