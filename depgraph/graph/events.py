"""
Graph events and listeners.

Listeners are registered explicitly on a builder or factory and are called
synchronously, in registration order, from the task driving the resolution.
A listener that raises is logged and skipped; it never interrupts resolution.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, List, Optional

if TYPE_CHECKING:
    from ..core.exceptions import DependencyGraphException
    from .model import DependencyGraph, Node


logger = logging.getLogger(__name__)


class ResolutionEventType(Enum):
    """Milestones reported while the graph is being resolved."""
    ADDING_MODEL = "adding_model"
    CONFLICT_OMIT_FOR_NEARER = "conflict_omit_for_nearer"
    CONFLICT_OMIT_NEARER = "conflict_omit_for_nearer"
    CYCLE_BROKEN = "cycle_broken"
    APPLYING_DEPENDENCY_MANAGEMENT = "applying_dependency_management"


class PhaseEventType(Enum):
    """Phases of one graph resolution."""
    NEW = "new"
    TASK_PRE = "task_pre"
    TASK_POST = "task_post"
    DONE = "done"


@dataclass(frozen=True)
class DependencyResolutionEvent:
    type: ResolutionEventType
    graph: "DependencyGraph"
    node: Optional["Node"] = None
    detail: str = ""


@dataclass(frozen=True)
class GraphPhaseEvent:
    type: PhaseEventType
    graph: "DependencyGraph"
    task: Optional[Any] = None


class GraphListener:
    """Observer of graph resolution. Implementations must not mutate the graph."""

    def graph_error(self, error: "DependencyGraphException", graph: "DependencyGraph") -> None:
        pass

    def graph_phase_event(self, event: GraphPhaseEvent) -> None:
        pass

    def dependency_resolution_event(self, event: DependencyResolutionEvent) -> None:
        pass


class ListenerNotifier:
    """Fans events out to the registered listeners."""

    def __init__(self, listeners: Optional[Iterable[GraphListener]] = None):
        self.listeners: List[GraphListener] = list(listeners or [])

    def add_listener(self, listener: GraphListener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def remove_listener(self, listener: GraphListener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def resolution_event(self, event_type: ResolutionEventType, graph: "DependencyGraph",
                         node: Optional["Node"] = None, detail: str = "") -> None:
        event = DependencyResolutionEvent(event_type, graph, node, detail)
        logger.debug("Resolution event %s %s %s", event_type.value, node.key if node else "", detail)
        self._dispatch("dependency_resolution_event", event)

    def phase_event(self, event_type: PhaseEventType, graph: "DependencyGraph", task: Any = None) -> None:
        event = GraphPhaseEvent(event_type, graph, task)
        self._dispatch("graph_phase_event", event)

    def graph_error(self, error: "DependencyGraphException", graph: "DependencyGraph") -> None:
        self._dispatch("graph_error", error, graph)

    def _dispatch(self, method_name: str, *args) -> None:
        for listener in list(self.listeners):
            try:
                getattr(listener, method_name)(*args)
            except Exception:
                logger.exception("Graph listener %s failed in %s", type(listener).__name__, method_name)
