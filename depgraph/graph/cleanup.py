"""
Orphan removal.
"""

import logging
from typing import List

from .model import DependencyGraph, Node

logger = logging.getLogger(__name__)


def cleanup_orphaned_nodes(graph: DependencyGraph) -> List[str]:
    """
    Remove non-root nodes that are orphaned or flagged conflicted.

    Removing a node can orphan its children, so this repeats until nothing
    changes. Returns the removed keys in removal order.
    """
    removed: List[str] = []
    max_rounds = len(graph) + 1

    for _ in range(max_rounds):
        doomed = [
            node for node in graph.nodes
            if not graph.is_root(node) and (node.conflicted or _is_orphan(graph, node))
        ]
        if not doomed:
            break
        for node in doomed:
            for edge in graph.get_edges_from(node):
                graph.remove_edge(edge)
            graph.remove_node(node, strict=True)
            removed.append(node.key)
            logger.debug("Removed %s node %s", "conflicted" if node.conflicted else "orphaned", node.key)

    if removed:
        logger.info("Cleanup removed %d node(s) from %s", len(removed), graph.root_node.key)
    return removed


def _is_orphan(graph: DependencyGraph, node: Node) -> bool:
    # A self loop does not keep a node alive
    return all(edge.identity[0] == node.key for edge in graph.get_edges_to(node))
