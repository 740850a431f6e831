import pytest

from conftest import dep, model, ref

from depgraph.config.settings import Settings
from depgraph.graph.events import GraphPhaseEvent, PhaseEventType
from depgraph.graph.factory import DependencyGraphFactory
from depgraph.graph.graphviz import GraphvizDotWriter, graph_to_dot
from depgraph.graph.model import DependencyGraph, DisabledState, Edge, Node
from depgraph.processing.maven_model import ArtifactCoordinate

ROOT = ArtifactCoordinate("g", "root", "1")


def _sample_graph():
    graph = DependencyGraph(ROOT)
    a = graph.add_node(Node(ArtifactCoordinate("g", "a", "1")))
    parent_dep = graph.add_node(Node(ArtifactCoordinate("g", "p", "1"), from_parent=True))
    loser = graph.add_node(Node(ArtifactCoordinate("g", "a", "0"), conflicted=True))
    graph.add_node(Node(ArtifactCoordinate("g", "orphan", "1")))
    graph.add_edge(Edge(ROOT, a.artifact))
    graph.add_edge(Edge(ROOT, parent_dep.artifact, "test"))
    graph.add_edge(Edge(parent_dep.artifact, loser.artifact, "compile", DisabledState.conflict(a.key)))
    return graph


def test_dot_output_labels_nodes_and_disabled_edges():
    text = graph_to_dot(_sample_graph()).to_string()

    assert "digraph" in text
    assert "g:root:1::jar" in text
    assert "ellipse" in text
    assert "green" in text
    assert "blue" in text
    assert "dashed" in text
    assert "Omitted for nearer g:a:1::jar" in text


def test_writer_writes_after_tasks_and_when_done(tmp_path):
    graph = _sample_graph()
    writer = GraphvizDotWriter(tmp_path / "dots")

    class _Task:
        task_id = "refine-conflicts"

    writer.graph_phase_event(GraphPhaseEvent(PhaseEventType.TASK_POST, graph, _Task()))
    writer.graph_phase_event(GraphPhaseEvent(PhaseEventType.TASK_PRE, graph, _Task()))
    writer.graph_phase_event(GraphPhaseEvent(PhaseEventType.DONE, graph))

    names = sorted(path.name for path in (tmp_path / "dots").iterdir())
    assert names == ["graph_root.dot", "graph_root_1_refine-conflicts.dot"]


def test_writer_logs_io_errors(tmp_path, caplog):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    writer = GraphvizDotWriter(blocker)

    writer.write(_sample_graph(), "graph_root.dot")

    assert "Unable to write graph" in caplog.text


@pytest.mark.asyncio
async def test_factory_writes_dot_files_when_configured(tmp_path, loader):
    loader.add_model(model("g:root:1", dep("g:a:1")))
    loader.add_model(model("g:a:1"))
    settings = Settings(_env_file=None, graphviz_output_dir=str(tmp_path))

    await DependencyGraphFactory(loader, settings=settings).get_graph(ref("g:root:1"))

    assert (tmp_path / "graph_root.dot").exists()
    assert (tmp_path / "graph_root_1_flag-cyclic-edges.dot").exists()
