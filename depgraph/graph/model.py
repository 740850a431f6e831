"""
Dependency graph model.

Nodes are held in a map keyed by their full artifact key. Edges live in a
flat map keyed by (from, to) and reference node coordinates by value, never
node objects. All traversal goes through key lookups, so collapsing or
deleting nodes never leaves stale object references behind.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from ..core.exceptions import ErrorContext, GraphInvariantError
from ..processing.maven_model import ArtifactCoordinate, Dependency, DependencyScope
from .keys import full_key, management_key


class DisabledType(Enum):
    """Why an edge was disabled."""
    NONE = "none"
    OPTIONAL = "optional"
    EXCLUDED = "excluded"
    CONFLICT = "conflict"
    CYCLE = "cycle"
    MANUAL = "manual"


@dataclass(frozen=True)
class DisabledState:
    """Closed set of edge states; build them through the named constructors."""
    type: DisabledType = DisabledType.NONE
    reason: str = ""
    nearer_key: Optional[str] = None

    @property
    def disabled(self) -> bool:
        return self.type is not DisabledType.NONE

    @classmethod
    def enabled(cls) -> "DisabledState":
        return cls()

    @classmethod
    def optional(cls) -> "DisabledState":
        return cls(DisabledType.OPTIONAL, "Optional Dependency")

    @classmethod
    def excluded(cls, excluded_key: str) -> "DisabledState":
        return cls(DisabledType.EXCLUDED, f"Excluded by {excluded_key}")

    @classmethod
    def conflict(cls, nearer_key: str) -> "DisabledState":
        return cls(DisabledType.CONFLICT, f"Omitted for nearer {nearer_key}", nearer_key)

    @classmethod
    def cycle(cls, cycle_key: str) -> "DisabledState":
        return cls(DisabledType.CYCLE, f"Cycle to {cycle_key}")

    @classmethod
    def manual(cls, reason: str) -> "DisabledState":
        return cls(DisabledType.MANUAL, reason)


CoordinateLike = Union["Node", ArtifactCoordinate, str]


@dataclass(eq=False)
class Node:
    """One artifact coordinate in the graph."""
    artifact: ArtifactCoordinate
    dependency_management: List[Dependency] = field(default_factory=list)
    excludes: Set[str] = field(default_factory=set)
    resolved: bool = False
    from_parent: bool = False
    conflicted: bool = False

    @property
    def key(self) -> str:
        return full_key(self.artifact)

    @property
    def management_key(self) -> str:
        return management_key(self.artifact)

    def add_dependency_management(self, dependency: Dependency) -> None:
        self.dependency_management.append(dependency)

    def add_exclude(self, key: str) -> None:
        self.excludes.add(key)

    def find_managed(self, ga_key: str) -> Optional[Dependency]:
        """First dependency management entry matching a management key."""
        for managed in self.dependency_management:
            if management_key(managed) == ga_key:
                return managed
        return None

    def __eq__(self, other) -> bool:
        return isinstance(other, Node) and self.artifact == other.artifact

    def __hash__(self) -> int:
        return hash(self.artifact)

    def __repr__(self) -> str:
        flags = [name for name in ("resolved", "from_parent", "conflicted") if getattr(self, name)]
        return f"Node({self.key}{', ' + ', '.join(flags) if flags else ''})"


class Edge:
    """Dependency relation between two coordinates; identity is (from, to)."""

    def __init__(self,
                 node_from: ArtifactCoordinate,
                 node_to: ArtifactCoordinate,
                 scope: Optional[str] = None,
                 disabled_state: Optional[DisabledState] = None):
        self.node_from = node_from
        self.node_to = node_to
        self.scope = DependencyScope.normalize(scope)
        self.disabled_state = disabled_state or DisabledState.enabled()

    @property
    def disabled(self) -> bool:
        return self.disabled_state.disabled

    @property
    def disabled_type(self) -> DisabledType:
        return self.disabled_state.type

    @property
    def disabled_reason(self) -> str:
        return self.disabled_state.reason

    @property
    def identity(self) -> Tuple[str, str]:
        return full_key(self.node_from), full_key(self.node_to)

    def disable(self, state: DisabledState) -> None:
        if not state.disabled:
            raise ValueError("disable() needs a disabled state")
        self.disabled_state = state

    def enable(self) -> None:
        self.disabled_state = DisabledState.enabled()

    def clone(self,
              node_from: Optional[ArtifactCoordinate] = None,
              node_to: Optional[ArtifactCoordinate] = None) -> "Edge":
        """Copy the edge, rebinding either endpoint; scope and state carry over."""
        return Edge(node_from or self.node_from, node_to or self.node_to, self.scope, self.disabled_state)

    def __eq__(self, other) -> bool:
        return isinstance(other, Edge) and self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __repr__(self) -> str:
        state = f", {self.disabled_type.value}" if self.disabled else ""
        return f"Edge({full_key(self.node_from)} -> {full_key(self.node_to)}, {self.scope}{state})"


def _to_key(value: CoordinateLike) -> str:
    if isinstance(value, Node):
        return value.key
    if isinstance(value, ArtifactCoordinate):
        return full_key(value)
    return value


class DependencyGraph:
    """Nodes keyed by full key, a flat edge list and one root node."""

    def __init__(self, root_artifact: ArtifactCoordinate):
        self._nodes: Dict[str, Node] = {}
        self._edges: Dict[Tuple[str, str], Edge] = {}
        root = Node(root_artifact)
        self._nodes[root.key] = root
        self._root_key = root.key
        self.mutation_lock = asyncio.Lock()
        # Keys relocated away during this resolution, used to stop relocation loops
        self.relocated_keys: Set[str] = set()

    # Nodes

    @property
    def root_node(self) -> Node:
        return self._nodes[self._root_key]

    def set_root_node(self, node: Node) -> None:
        """Make an existing node the root."""
        if node.key not in self._nodes:
            raise GraphInvariantError(
                f"Cannot make [{node.key}] the root, it is not in the graph",
                context=ErrorContext(component="graph", operation="set_root_node", artifact_key=node.key),
            )
        self._root_key = node.key

    def is_root(self, value: CoordinateLike) -> bool:
        return _to_key(value) == self._root_key

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def node_keys(self) -> List[str]:
        return list(self._nodes.keys())

    def has_node(self, value: CoordinateLike) -> bool:
        return _to_key(value) in self._nodes

    def get_node(self, value: CoordinateLike) -> Optional[Node]:
        return self._nodes.get(_to_key(value))

    def add_node(self, node: Node) -> Node:
        """Add a node, returning the node already held under the same key if any."""
        existing = self._nodes.get(node.key)
        if existing is not None:
            return existing
        self._nodes[node.key] = node
        return node

    def get_or_create_node(self, artifact: ArtifactCoordinate) -> Node:
        return self.add_node(Node(artifact))

    def remove_node(self, value: CoordinateLike, strict: bool = False) -> Optional[Node]:
        """Remove a node together with every edge touching it."""
        key = _to_key(value)
        node = self._nodes.get(key)
        if node is None:
            if strict:
                raise GraphInvariantError(
                    f"Cannot remove node [{key}], it is not in the graph",
                    context=ErrorContext(component="graph", operation="remove_node", artifact_key=key),
                )
            return None
        if key == self._root_key:
            raise GraphInvariantError(
                f"Cannot remove the root node [{key}]",
                context=ErrorContext(component="graph", operation="remove_node", artifact_key=key),
            )
        for edge in self.get_edges_touching(key):
            del self._edges[edge.identity]
        del self._nodes[key]
        return node

    def unresolved_nodes(self) -> List[Node]:
        return [node for node in self._nodes.values() if not node.resolved]

    # Edges

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges.values())

    def add_edge(self, edge: Edge) -> Edge:
        """Add an edge; an edge with the same endpoints already present wins."""
        existing = self._edges.get(edge.identity)
        if existing is not None:
            return existing
        self._edges[edge.identity] = edge
        return edge

    def has_edge(self, node_from: CoordinateLike, node_to: CoordinateLike) -> bool:
        return (_to_key(node_from), _to_key(node_to)) in self._edges

    def get_edge(self, node_from: CoordinateLike, node_to: CoordinateLike) -> Optional[Edge]:
        return self._edges.get((_to_key(node_from), _to_key(node_to)))

    def remove_edge(self, edge: Edge, strict: bool = False) -> None:
        if self._edges.pop(edge.identity, None) is None and strict:
            raise GraphInvariantError(
                f"Cannot remove {edge!r}, it is not in the graph",
                context=ErrorContext(component="graph", operation="remove_edge"),
            )

    def get_edges_from(self, value: CoordinateLike) -> List[Edge]:
        key = _to_key(value)
        return [edge for edge in self._edges.values() if edge.identity[0] == key]

    def get_edges_to(self, value: CoordinateLike) -> List[Edge]:
        key = _to_key(value)
        return [edge for edge in self._edges.values() if edge.identity[1] == key]

    def get_edges_touching(self, value: CoordinateLike) -> List[Edge]:
        key = _to_key(value)
        return [edge for edge in self._edges.values() if key in edge.identity]

    def enabled_edges_from(self, value: CoordinateLike) -> List[Edge]:
        return [edge for edge in self.get_edges_from(value) if not edge.disabled]

    # Traversal

    def walk_enabled(self) -> Iterator[Tuple[Node, int]]:
        """Breadth first over enabled edges from the root, skipping conflicted nodes."""
        root = self.root_node
        seen = {root.key}
        queue = deque([(root, 0)])
        while queue:
            node, depth = queue.popleft()
            yield node, depth
            for edge in self.enabled_edges_from(node):
                child = self._nodes.get(full_key(edge.node_to))
                if child is None or child.key in seen or child.conflicted:
                    continue
                seen.add(child.key)
                queue.append((child, depth + 1))

    def depths(self) -> Dict[str, int]:
        """Hop distance from the root for every node reachable over enabled edges."""
        return {node.key: depth for node, depth in self.walk_enabled()}

    def dangling_edges(self) -> List[Edge]:
        return [edge for edge in self._edges.values()
                if edge.identity[0] not in self._nodes or edge.identity[1] not in self._nodes]

    def __contains__(self, value: CoordinateLike) -> bool:
        return self.has_node(value)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def __repr__(self) -> str:
        return f"DependencyGraph(root={self._root_key}, nodes={len(self._nodes)}, edges={len(self._edges)})"
