"""
Read-only views over a resolved dependency graph.
"""

from collections import defaultdict
from typing import Any, Dict, List

from .model import DependencyGraph, Edge, Node


def effective_nodes(graph: DependencyGraph) -> List[Node]:
    """Nodes reachable from the root over enabled edges, breadth first, root excluded."""
    return [node for node, depth in graph.walk_enabled() if depth > 0]


def direct_edges(graph: DependencyGraph, scope: str) -> List[Edge]:
    """Edges out of the root with exactly ``scope``, excluding those inherited from a parent."""
    result = []
    for edge in graph.get_edges_from(graph.root_node):
        if edge.scope != scope:
            continue
        target = graph.get_node(edge.node_to)
        if target is not None and target.from_parent:
            continue
        result.append(edge)
    return result


def transitive_edges(graph: DependencyGraph, scope: str) -> List[Edge]:
    """Edges with exactly ``scope`` that do not start at the root."""
    return [edge for edge in graph.edges
            if edge.scope == scope and not graph.is_root(edge.node_from)]


def analyze_graph_structure(graph: DependencyGraph) -> Dict[str, Any]:
    """Analyze the structure of the dependency graph."""
    depths = graph.depths()
    edges = graph.edges

    scope_distribution = defaultdict(int)
    for edge in edges:
        if not edge.disabled:
            scope_distribution[edge.scope] += 1

    disabled_by_type = defaultdict(int)
    for edge in edges:
        if edge.disabled:
            disabled_by_type[edge.disabled_type.value] += 1

    # Most depended upon
    fan_in = defaultdict(int)
    for edge in edges:
        if not edge.disabled:
            fan_in[edge.identity[1]] += 1
    top_hubs = sorted(fan_in.items(), key=lambda x: x[1], reverse=True)[:10]

    reachable = len(depths) - 1
    return {
        'root': graph.root_node.key,
        'total_nodes': len(graph),
        'total_edges': len(edges),
        'effective_nodes': reachable,
        'unresolved_nodes': len(graph.unresolved_nodes()),
        'max_depth': max(depths.values()) if depths else 0,
        'average_depth': sum(depths.values()) / max(1, reachable),
        'scope_distribution': dict(scope_distribution),
        'disabled_edges': dict(disabled_by_type),
        'top_hubs': top_hubs,
    }
