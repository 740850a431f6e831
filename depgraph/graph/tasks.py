"""
Graph tasks run by the resolution driver between resolution passes.

Each task inspects the whole graph and mutates it in place. Tasks never load
models; they only rearrange what the builder has already expanded.
"""

import logging
import re
from collections import defaultdict
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Tuple

from packaging import version
from packaging.version import InvalidVersion

from ..processing.maven_model import Dependency, DependencyScope
from .cleanup import cleanup_orphaned_nodes
from .events import ListenerNotifier, ResolutionEventType
from .keys import management_key
from .model import DependencyGraph, DisabledState, Edge, Node

logger = logging.getLogger(__name__)

RELEASE_PREFIX = re.compile(r"^(\d+(?:\.\d+)*)")


class ConflictTieBreak(Enum):
    """How to pick between conflicting versions at the same distance from the root."""
    FIRST = "first"
    NEWEST = "newest"


SCOPE_INCLUDES: Dict[str, Set[str]] = {
    DependencyScope.COMPILE.value: {"compile", "provided", "system"},
    DependencyScope.PROVIDED.value: {"compile", "provided", "system"},
    DependencyScope.SYSTEM.value: {"compile", "provided", "system"},
    DependencyScope.RUNTIME.value: {"compile", "runtime"},
    DependencyScope.TEST.value: {scope.value for scope in DependencyScope},
}


def _version_sort_key(value: str) -> Tuple:
    """
    Sort key for the ``newest`` tie-break.

    Parseable versions compare as versions. A version that is not (such as
    ``1.9-SNAPSHOT``) is compared by its numeric release prefix and sorts
    just below that release; one without a numeric prefix sorts below all.
    """
    try:
        return (version.parse(value), 1, "")
    except InvalidVersion:
        pass
    match = RELEASE_PREFIX.match(value)
    if match:
        return (version.parse(match.group(1)), 0, value)
    return (version.parse("0"), -1, value)


class GraphTask:
    """Base class for graph tasks."""

    task_id = "graph-task"

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier):
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.task_id}>"


class FlagCyclicEdgesTask(GraphTask):
    """Disable every enabled edge that leads back to a groupId:artifactId on the current path."""

    task_id = "flag-cyclic-edges"

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier) -> List[Edge]:
        broken: List[Edge] = []
        root = graph.root_node
        path: List[str] = [root.management_key]
        done: Set[str] = {root.key}
        # Depth first with an explicit stack of (node, remaining edges)
        frames: List[Tuple[Node, Iterator[Edge]]] = [(root, iter(graph.enabled_edges_from(root)))]

        while frames:
            node, edges = frames[-1]
            edge = next(edges, None)
            if edge is None:
                frames.pop()
                path.pop()
                continue

            child = graph.get_node(edge.node_to)
            if child is None or child.conflicted:
                continue
            if child.management_key in path:
                edge.disable(DisabledState.cycle(child.key))
                broken.append(edge)
                logger.info("Breaking cycle %s -> %s", node.key, child.key)
                notifier.resolution_event(ResolutionEventType.CYCLE_BROKEN, graph, child,
                                          f"{node.key} -> {child.key}")
                continue
            if child.key not in done:
                done.add(child.key)
                path.append(child.management_key)
                frames.append((child, iter(graph.enabled_edges_from(child))))

        return broken


class ApplyDependencyManagementTask(GraphTask):
    """
    Apply dependency management declared by the ancestors of each edge.

    The management entries of the nodes on the path from the root are
    consulted root first, and only those of the strict ancestors of an edge's
    source apply to that edge.
    """

    task_id = "apply-dependency-management"

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier) -> int:
        applied = 0
        root = graph.root_node
        done: Set[str] = {root.key}
        frames: List[Tuple[Node, Iterator[Edge]]] = [(root, iter(graph.enabled_edges_from(root)))]

        while frames:
            node, edges = frames[-1]
            edge = next(edges, None)
            if edge is None:
                frames.pop()
                continue

            child = graph.get_node(edge.node_to)
            if child is None or child.conflicted:
                continue

            ancestors = [frame_node for frame_node, _ in frames[:-1]]
            managed = self._find_managed(ancestors, child.management_key)
            if managed is not None:
                updated = self._apply(graph, edge, child, managed)
                if updated is not None:
                    applied += 1
                    notifier.resolution_event(ResolutionEventType.APPLYING_DEPENDENCY_MANAGEMENT,
                                              graph, updated, f"{child.key} -> {updated.key}")
                    child = updated

            if child.key not in done:
                done.add(child.key)
                frames.append((child, iter(graph.enabled_edges_from(child))))

        return applied

    @staticmethod
    def _find_managed(ancestors: List[Node], ga_key: str) -> Optional[Dependency]:
        for ancestor in ancestors:
            managed = ancestor.find_managed(ga_key)
            if managed is not None:
                return managed
        return None

    @staticmethod
    def _apply(graph: DependencyGraph, edge: Edge, child: Node, managed: Dependency) -> Optional[Node]:
        """Rewrite one edge from a management entry. Returns the new target when anything changed."""
        managed_scope = DependencyScope.normalize(managed.scope) if managed.scope else edge.scope

        if managed.version and managed.version != child.artifact.version:
            target = graph.get_or_create_node(child.artifact.with_version(managed.version))
            target.excludes.update(child.excludes)
            for exclusion in managed.exclusions:
                target.add_exclude(management_key(exclusion))
            if child.from_parent:
                target.from_parent = True

            graph.remove_edge(edge)
            graph.add_edge(Edge(edge.node_from, target.artifact, managed_scope, edge.disabled_state))
            logger.debug("Managed %s to %s", child.key, target.key)
            return target

        if managed_scope != edge.scope:
            edge.scope = managed_scope
            return child

        return None


class RefineConflictsTask(GraphTask):
    """
    Nearest-wins mediation between versions of the same groupId:artifactId.

    Mark phase only: losers are flagged conflicted and their incoming edges
    are re-pointed at the winner as disabled conflict edges. The nodes stay in
    the graph until orphan cleanup sweeps them.
    """

    task_id = "refine-conflicts"

    def __init__(self, tie_break: ConflictTieBreak = ConflictTieBreak.FIRST):
        self.tie_break = ConflictTieBreak(tie_break)

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier) -> List[str]:
        depths = graph.depths()
        insertion_order = {key: index for index, key in enumerate(graph.node_keys())}

        groups: Dict[str, List[Node]] = defaultdict(list)
        for key in depths:
            node = graph.get_node(key)
            groups[node.management_key].append(node)

        flagged: List[str] = []
        for ga_key, nodes in groups.items():
            if len({node.artifact.version for node in nodes}) < 2:
                continue

            nearest = min(depths[node.key] for node in nodes)
            candidates = sorted((node for node in nodes if depths[node.key] == nearest),
                                key=lambda node: insertion_order[node.key])
            winner = self._select_winner(candidates)

            for loser in nodes:
                if loser.artifact.version == winner.artifact.version:
                    continue
                self._omit_for_nearer(graph, loser, winner)
                flagged.append(loser.key)
                logger.info("Conflict on %s: %s omitted for nearer %s", ga_key, loser.key, winner.key)
                notifier.resolution_event(ResolutionEventType.CONFLICT_OMIT_FOR_NEARER, graph, loser, winner.key)

        return flagged

    def _select_winner(self, candidates: List[Node]) -> Node:
        if len(candidates) == 1 or self.tie_break is ConflictTieBreak.FIRST:
            return candidates[0]
        return max(candidates, key=lambda node: _version_sort_key(node.artifact.version))

    @staticmethod
    def _omit_for_nearer(graph: DependencyGraph, loser: Node, winner: Node) -> None:
        loser.conflicted = True
        for edge in graph.get_edges_to(loser):
            graph.remove_edge(edge)
            source_key = edge.identity[0]
            if source_key in (loser.key, winner.key) or graph.has_edge(edge.node_from, winner.artifact):
                continue
            graph.add_edge(Edge(edge.node_from, winner.artifact, edge.scope, DisabledState.conflict(winner.key)))


class ReduceScopeTask(GraphTask):
    """Drop edges whose scope is not part of the desired scope."""

    task_id = "reduce-scope"

    def __init__(self, desired_scope: str = DependencyScope.TEST.value):
        if desired_scope not in SCOPE_INCLUDES:
            raise ValueError(f"Unsupported desired scope: {desired_scope}")
        self.desired_scope = desired_scope

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier) -> List[Edge]:
        allowed = SCOPE_INCLUDES[self.desired_scope]
        removed = [edge for edge in graph.edges if edge.scope not in allowed]
        for edge in removed:
            graph.remove_edge(edge)
        if removed:
            logger.debug("Removed %d edge(s) outside scope %s", len(removed), self.desired_scope)
        return removed


class RemoveOrphanedNodesTask(GraphTask):
    """Sweep orphaned and conflicted nodes."""

    task_id = "remove-orphaned-nodes"

    def execute(self, graph: DependencyGraph, notifier: ListenerNotifier) -> List[str]:
        return cleanup_orphaned_nodes(graph)
