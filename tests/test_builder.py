import asyncio
import pytest

from conftest import RecordingListener, dep, model, ref

from depgraph.config.settings import Settings
from depgraph.core.exceptions import ModelLoadError, ResolutionError
from depgraph.graph.builder import GraphBuilder
from depgraph.graph.events import ResolutionEventType
from depgraph.processing.maven_model import VersionedReference
from depgraph.processing.model_loader import MemoryModelLoader, ModelLoader


class FlakyLoader(MemoryModelLoader):
    """Fails the first load of every reference."""

    async def load_model(self, ref):
        key = str(ref)
        if self.load_counts[key] == 0:
            self.load_counts[key] += 1
            raise ModelLoadError(f"transient failure for {key}", ref=ref)
        return await super().load_model(ref)


class ConcurrencyProbe(MemoryModelLoader):
    """Records how many loads were in flight at once."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def load_model(self, ref):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().load_model(ref)
        finally:
            self.in_flight -= 1


class BrokenLoader(ModelLoader):
    async def load_model(self, ref):
        raise RuntimeError("disk on fire")


@pytest.mark.asyncio
async def test_create_graph_attaches_direct_dependencies(loader, settings):
    listener = RecordingListener()
    loader.add_model(model("g:root:1", dep("g:a:1"), dep("g:b:1")))
    builder = GraphBuilder(loader, listeners=[listener], settings=settings)

    graph = await builder.create_graph(ref("g:root:1"))

    assert graph.root_node.key == "g:root:1::jar"
    assert graph.root_node.resolved
    assert {edge.identity[1] for edge in graph.edges} == {"g:a:1::jar", "g:b:1::jar"}
    assert listener.resolution_types() == [ResolutionEventType.ADDING_MODEL]


@pytest.mark.asyncio
@pytest.mark.parametrize("packaging,expected", [
    ("jar", "jar"),
    ("war", "war"),
    ("pom", "pom"),
    ("maven-plugin", "jar"),
    ("bundle", "jar"),
    ("", "jar"),
])
async def test_root_type_follows_packaging(loader, settings, packaging, expected):
    loader.add_model(model("g:root:1", packaging=packaging))
    graph = await GraphBuilder(loader, settings=settings).create_graph(ref("g:root:1"))
    assert graph.root_node.artifact.type == expected
    assert graph.root_node.artifact.classifier == ""


@pytest.mark.asyncio
async def test_create_graph_requires_version(loader, settings):
    with pytest.raises(ValueError):
        await GraphBuilder(loader, settings=settings).create_graph(VersionedReference("g", "root"))


@pytest.mark.asyncio
async def test_create_graph_wraps_root_load_failure(loader, settings):
    with pytest.raises(ResolutionError) as exc_info:
        await GraphBuilder(loader, settings=settings).create_graph(ref("g:missing:1"))
    assert isinstance(exc_info.value.cause, ModelLoadError)


@pytest.mark.asyncio
async def test_resolve_node_expands_and_is_noop_when_resolved(loader, settings):
    loader.add_model(model("g:root:1", dep("g:a:1")))
    loader.add_model(model("g:a:1", dep("g:b:1")))
    builder = GraphBuilder(loader, settings=settings)
    graph = await builder.create_graph(ref("g:root:1"))
    a = graph.get_node("g:a:1::jar")

    await builder.resolve_node(graph, a)
    await builder.resolve_node(graph, a)

    assert a.resolved
    assert graph.has_edge(a, "g:b:1::jar")
    assert loader.load_counts["g:a:1"] == 1


@pytest.mark.asyncio
async def test_resolve_node_failure_leaves_node_unresolved(loader, settings):
    loader.add_model(model("g:root:1", dep("g:a:1")))
    builder = GraphBuilder(loader, settings=settings)
    graph = await builder.create_graph(ref("g:root:1"))
    a = graph.get_node("g:a:1::jar")

    with pytest.raises(ModelLoadError):
        await builder.resolve_node(graph, a)

    assert graph.has_node(a)
    assert not a.resolved


@pytest.mark.asyncio
async def test_unexpected_loader_errors_become_model_load_errors(settings):
    builder = GraphBuilder(BrokenLoader(), settings=settings)
    with pytest.raises(ModelLoadError) as exc_info:
        await builder.load_model(ref("g:a:1"))
    assert isinstance(exc_info.value.cause, RuntimeError)


@pytest.mark.asyncio
async def test_model_loads_are_retried():
    loader = FlakyLoader([model("g:root:1", dep("g:a:1"))])
    builder = GraphBuilder(loader, settings=Settings(_env_file=None, model_load_retries=1))

    graph = await builder.create_graph(ref("g:root:1"))

    assert graph.root_node.resolved
    assert builder.error_handler.get_stats()["stats"]["successful_retries"] == 1


@pytest.mark.asyncio
async def test_resolve_nodes_bounds_concurrency_and_reports_failures():
    root = model("g:root:1", *(dep(f"g:n{i}:1") for i in range(6)), dep("g:missing:1"))
    loader = ConcurrencyProbe([root] + [model(f"g:n{i}:1") for i in range(6)])
    builder = GraphBuilder(loader, settings=Settings(_env_file=None, max_concurrent_loads=2))
    graph = await builder.create_graph(ref("g:root:1"))
    pending = graph.unresolved_nodes()

    failures = await builder.resolve_nodes(graph, pending)

    assert [node.key for node, _ in failures] == ["g:missing:1::jar"]
    assert isinstance(failures[0][1], ModelLoadError)
    assert loader.max_in_flight <= 2
    assert all(node.resolved for node in graph if node.key != "g:missing:1::jar")
