"""
Expansion of a resolved project model into the dependency graph.
"""

import logging
from typing import Optional

from ..processing.maven_model import DependencyScope, ProjectModel
from .events import ListenerNotifier, ResolutionEventType
from .keys import full_key, management_key, versioned_key
from .model import DependencyGraph, DisabledState, Edge, Node

logger = logging.getLogger(__name__)


def add_node_from_model(graph: DependencyGraph,
                        node: Node,
                        model: ProjectModel,
                        notifier: Optional[ListenerNotifier] = None) -> Node:
    """
    Expand ``model`` into ``graph`` as the model of ``node``.

    Returns the node that now stands for the model: ``node`` itself, or the
    relocation target when the model declares a relocation. Expanding a node
    that is already resolved changes nothing.
    """
    notifier = notifier or ListenerNotifier()

    if model.has_relocation:
        relocated = _relocate(graph, node, model)
        if relocated is not None:
            return relocated

    if node.resolved:
        logger.debug("Node %s already resolved, skipping expansion", node.key)
        return node

    notifier.resolution_event(ResolutionEventType.ADDING_MODEL, graph, node, versioned_key(model.versioned_reference))

    for managed in model.dependency_management:
        node.add_dependency_management(managed)

    is_root = graph.is_root(node)

    for dependency in model.dependencies:
        scope = dependency.effective_scope

        # Test scope never propagates transitively
        if scope == DependencyScope.TEST.value and not is_root:
            continue

        version = dependency.version
        if not version:
            managed = node.find_managed(dependency.ga_coordinates)
            version = managed.version if managed is not None else None
        if not version:
            logger.warning("Dependency %s of %s has no version and no managed version, skipping",
                           dependency.ga_coordinates, node.key)
            continue

        child = graph.get_or_create_node(dependency.to_coordinate(version))
        for exclusion in dependency.exclusions:
            child.add_exclude(management_key(exclusion))
        child.excludes.update(node.excludes)
        if dependency.from_parent:
            child.from_parent = True

        edge = Edge(node.artifact, child.artifact, scope)
        if dependency.optional:
            edge.disable(DisabledState.optional())
        elif dependency.ga_coordinates in node.excludes:
            edge.disable(DisabledState.excluded(dependency.ga_coordinates))

        graph.add_edge(edge)

    node.resolved = True
    graph.add_node(node)
    return node


def _relocate(graph: DependencyGraph, node: Node, model: ProjectModel) -> Optional[Node]:
    target = model.relocation.apply_to(node.artifact)
    target_key = full_key(target)

    if target_key == node.key or target_key in graph.relocated_keys:
        logger.warning("Ignoring relocation of %s to %s, it would loop", node.key, target_key)
        return None

    logger.info("Relocating %s to %s", node.key, target_key)
    to_node = graph.get_or_create_node(target)
    to_node.excludes.update(node.excludes)
    if node.from_parent:
        to_node.from_parent = True

    graph.relocated_keys.add(node.key)
    collapse_nodes(graph, node, to_node)
    return to_node


def collapse_nodes(graph: DependencyGraph, from_node: Node, to_node: Node) -> None:
    """
    Fold ``from_node`` into ``to_node``.

    Edges into ``from_node`` are re-pointed at ``to_node`` keeping their scope
    and disabled state. Edges out of ``from_node`` are dropped since
    ``to_node`` produces its own when it is resolved.
    """
    if not graph.has_node(from_node):
        return

    to_node = graph.add_node(to_node)
    if graph.is_root(from_node):
        graph.set_root_node(to_node)

    for edge in graph.get_edges_to(from_node):
        graph.remove_edge(edge)
        if edge.identity[0] == from_node.key:
            continue
        graph.add_edge(edge.clone(node_to=to_node.artifact))

    for edge in graph.get_edges_from(from_node):
        graph.remove_edge(edge)

    graph.remove_node(from_node)
