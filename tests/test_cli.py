import argparse
import json
import logging
import pytest

from depgraph import cli
from depgraph.config import settings as settings_module
from depgraph.config.settings import Settings
from depgraph.core.logging_config import ROOT_LOGGER_NAME
from depgraph.graph.model import DependencyGraph, Edge, Node
from depgraph.processing.maven_model import ArtifactCoordinate

ROOT_POM = """<project>
  <groupId>org.example</groupId>
  <artifactId>app</artifactId>
  <version>1</version>
  <dependencies>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>lib</artifactId>
      <version>2</version>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4</version>
      <scope>test</scope>
    </dependency>
  </dependencies>
</project>
"""

LIB_POM = """<project>
  <groupId>org.example</groupId>
  <artifactId>lib</artifactId>
  <version>2</version>
</project>
"""

JUNIT_POM = """<project>
  <groupId>junit</groupId>
  <artifactId>junit</artifactId>
  <version>4</version>
</project>
"""


def _install(base, group, artifact, version, content):
    path = base.joinpath(*group.split("."), artifact, version)
    path.mkdir(parents=True)
    (path / f"{artifact}-{version}.pom").write_text(content)


@pytest.fixture
def repository(tmp_path):
    _install(tmp_path, "org.example", "app", "1", ROOT_POM)
    _install(tmp_path, "org.example", "lib", "2", LIB_POM)
    _install(tmp_path, "junit", "junit", "4", JUNIT_POM)
    return tmp_path


@pytest.fixture(autouse=True)
def isolated_logging(monkeypatch):
    monkeypatch.setattr(settings_module, "_settings", Settings(_env_file=None, log_level="WARNING"))
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


def test_parse_reference_requires_three_parts():
    assert cli.parse_reference("g:a:1").version == "1"
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_reference("g:a")


@pytest.mark.asyncio
async def test_prints_effective_tree(repository, capsys):
    code = await cli.main(["org.example:app:1", "--repository", str(repository)])

    out = capsys.readouterr().out
    assert code == 0
    assert "org.example:app:1::jar" in out
    assert "+- org.example:lib:2::jar (compile)" in out
    assert "+- junit:junit:4::jar (test)" in out


@pytest.mark.asyncio
async def test_json_analysis_with_reduced_scope(repository, capsys):
    code = await cli.main(["org.example:app:1", "--repository", str(repository), "--scope", "compile", "--json"])

    stats = json.loads(capsys.readouterr().out)
    assert code == 0
    assert stats["total_nodes"] == 2
    assert stats["scope_distribution"] == {"compile": 1}


@pytest.mark.asyncio
async def test_missing_root_fails(repository):
    assert await cli.main(["org.example:absent:1", "--repository", str(repository)]) == 1


@pytest.mark.asyncio
async def test_repository_is_required():
    assert await cli.main(["org.example:app:1"]) == 2


@pytest.mark.asyncio
async def test_invalid_environment_settings_fail(repository, monkeypatch, capsys):
    monkeypatch.setattr(settings_module, "_settings", None)
    monkeypatch.setenv("DEPGRAPH_CONFLICT_TIE_BREAK", "oldest")

    assert await cli.main(["org.example:app:1", "--repository", str(repository)]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_render_tree_handles_deep_chains():
    nodes = [ArtifactCoordinate("g", f"n{i}", "1") for i in range(1500)]
    graph = DependencyGraph(nodes[0])
    for source, target in zip(nodes, nodes[1:]):
        graph.add_node(Node(target))
        graph.add_edge(Edge(source, target, "compile"))

    lines = cli.render_tree(graph)

    assert len(lines) == 1500
    assert lines[2] == "      +- g:n2:1::jar (compile)"
