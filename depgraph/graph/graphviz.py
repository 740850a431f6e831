"""
Graphviz dump of a dependency graph, written as a listener.
"""

import logging
from pathlib import Path
from typing import Dict, Union

import pydot

from ..processing.maven_model import DependencyScope
from .events import GraphListener, GraphPhaseEvent, PhaseEventType
from .keys import full_key
from .model import DependencyGraph, DisabledType

logger = logging.getLogger(__name__)

EDGE_COLORS: Dict[DisabledType, str] = {
    DisabledType.NONE: "black",
    DisabledType.OPTIONAL: "gray",
    DisabledType.EXCLUDED: "orange",
    DisabledType.CONFLICT: "red",
    DisabledType.CYCLE: "purple",
    DisabledType.MANUAL: "blue",
}


def graph_to_dot(graph: DependencyGraph) -> pydot.Dot:
    """Render the graph; node ids are positional since keys contain colons."""
    dot = pydot.Dot("dependencies", graph_type="digraph", rankdir="LR")
    ids: Dict[str, str] = {}

    for index, node in enumerate(graph.nodes):
        node_id = f"n{index}"
        ids[node.key] = node_id

        attrs = {"label": node.key, "shape": "box"}
        if node.from_parent:
            attrs.update(shape="ellipse", color="red")
        if node.conflicted:
            attrs.update(style="filled", fillcolor="green")
        elif not graph.is_root(node) and not graph.get_edges_to(node):
            attrs.update(style="filled", fillcolor="blue")
        if graph.is_root(node):
            attrs["penwidth"] = "2"
        dot.add_node(pydot.Node(node_id, **attrs))

    for edge in graph.edges:
        source = ids.get(full_key(edge.node_from))
        target = ids.get(full_key(edge.node_to))
        if source is None or target is None:
            continue
        attrs = {"color": EDGE_COLORS[edge.disabled_type]}
        if edge.disabled:
            attrs["label"] = edge.disabled_reason
        if edge.scope != DependencyScope.COMPILE.value:
            attrs["style"] = "dashed"
        dot.add_edge(pydot.Edge(source, target, **attrs))

    return dot


class GraphvizDotWriter(GraphListener):
    """Writes a dot file after every graph task and once the graph is done."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.counter = 0

    def graph_phase_event(self, event: GraphPhaseEvent) -> None:
        artifact_id = event.graph.root_node.artifact.artifact_id
        if event.type is PhaseEventType.TASK_POST:
            self.counter += 1
            task_id = getattr(event.task, "task_id", "task")
            self.write(event.graph, f"graph_{artifact_id}_{self.counter}_{task_id}.dot")
        elif event.type is PhaseEventType.DONE:
            self.write(event.graph, f"graph_{artifact_id}.dot")

    def write(self, graph: DependencyGraph, filename: str) -> None:
        path = self.output_dir / filename
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(graph_to_dot(graph).to_string(), encoding="utf-8")
            logger.debug("Wrote %s", path)
        except OSError as e:
            logger.error("Unable to write graph to %s: %s", path, e)
