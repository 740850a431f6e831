"""
Resolution driver.

``DependencyGraphFactory.get_graph`` builds the graph for a root reference:
it resolves nodes pass by pass, running the graph tasks after every pass,
until no unresolved node is reachable from the root, then reduces the graph
to the desired scope.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Set

from ..config.settings import ModelErrorPolicy, Settings, get_settings
from ..core.exceptions import ErrorContext, GraphTaskException, ResolutionError
from ..core.logging_config import get_logger
from ..processing.maven_model import VersionedReference
from ..processing.model_loader import ModelLoader
from .builder import GraphBuilder
from .events import GraphListener, ListenerNotifier, PhaseEventType
from .graphviz import GraphvizDotWriter
from .model import DependencyGraph, Node
from .tasks import (
    ApplyDependencyManagementTask,
    ConflictTieBreak,
    FlagCyclicEdgesTask,
    GraphTask,
    ReduceScopeTask,
    RefineConflictsTask,
    RemoveOrphanedNodesTask,
)

RESOLVE_NODES_TASK_ID = "resolve-nodes"


class DependencyGraphFactory:
    """Builds fully resolved dependency graphs from a model loader."""

    def __init__(self,
                 model_loader: ModelLoader,
                 settings: Optional[Settings] = None,
                 listeners: Optional[Iterable[GraphListener]] = None,
                 desired_scope: Optional[str] = None):
        self.settings = settings or get_settings()
        self.notifier = ListenerNotifier(listeners)
        self.builder = GraphBuilder(model_loader, settings=self.settings, notifier=self.notifier)
        self.desired_scope = desired_scope or self.settings.desired_scope
        # Fail fast on an unknown scope
        ReduceScopeTask(self.desired_scope)
        self.tie_break = ConflictTieBreak(self.settings.conflict_tie_break)
        self.logger = get_logger("factory")

        if self.settings.graphviz_output_dir:
            self.notifier.add_listener(GraphvizDotWriter(self.settings.graphviz_output_dir))

    def add_graph_listener(self, listener: GraphListener) -> None:
        self.notifier.add_listener(listener)

    async def get_graph(self, root_ref: VersionedReference, timeout: Optional[float] = None) -> DependencyGraph:
        """
        Build and resolve the graph for ``root_ref``.

        Args:
            root_ref: Root project reference, version required
            timeout: Seconds before resolution is abandoned, defaults to the configured timeout

        Raises:
            ResolutionError: root model unavailable, load failure under the abort
                policy, pass limit exceeded, or timeout (``cancelled=True``)
            GraphTaskException: a graph task failed
        """
        if timeout is None:
            timeout = self.settings.resolution_timeout_seconds

        state: Dict[str, Any] = {}
        try:
            return await asyncio.wait_for(self._resolve(root_ref, state), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise ResolutionError(
                f"Resolution of {root_ref} cancelled after {timeout}s",
                cancelled=True,
                graph=state.get("graph"),
                cause=e,
                context=ErrorContext(component="factory", operation="get_graph", artifact_key=str(root_ref)),
            ) from e

    async def _resolve(self, root_ref: VersionedReference, state: Dict[str, Any]) -> DependencyGraph:
        graph = await self.builder.create_graph(root_ref)
        state["graph"] = graph
        self.notifier.phase_event(PhaseEventType.NEW, graph)

        failed: Set[str] = set()
        passes = 0
        while True:
            passes += 1
            if passes > self.settings.max_resolution_passes:
                raise ResolutionError(
                    f"Resolution of {root_ref} did not settle within {self.settings.max_resolution_passes} passes",
                    graph=graph,
                )

            pending = self.pending_nodes(graph, failed)
            if pending:
                failures = await self.builder.resolve_nodes(graph, pending)
                for node, error in failures:
                    failed.add(node.key)
                    self._report_load_failure(graph, node, error)

            for task in (FlagCyclicEdgesTask(),
                         ApplyDependencyManagementTask(),
                         RefineConflictsTask(self.tie_break),
                         RemoveOrphanedNodesTask()):
                await self._run_task(graph, task)

            if not self.pending_nodes(graph, failed):
                break

        for task in (ReduceScopeTask(self.desired_scope), RemoveOrphanedNodesTask()):
            await self._run_task(graph, task)

        self.notifier.phase_event(PhaseEventType.DONE, graph)
        self.logger.info(
            f"Resolved graph for {graph.root_node.key}",
            root=graph.root_node.key,
            passes=passes,
            nodes=len(graph),
            edges=len(graph.edges),
            failed_models=sorted(failed),
        )
        return graph

    @staticmethod
    def pending_nodes(graph: DependencyGraph, failed: Set[str]) -> List[Node]:
        """Unresolved nodes reachable over enabled edges that have not failed to load."""
        return [node for node, _ in graph.walk_enabled()
                if not node.resolved and node.key not in failed]

    def _report_load_failure(self, graph: DependencyGraph, node: Node, error: Exception) -> None:
        task_error = GraphTaskException(
            f"Unable to load model for {node.key}: {error}",
            graph=graph,
            task_id=RESOLVE_NODES_TASK_ID,
            cause=error,
            context=ErrorContext(component="factory", operation=RESOLVE_NODES_TASK_ID, artifact_key=node.key),
        )
        self.notifier.graph_error(task_error, graph)

        if self.settings.model_error_policy == ModelErrorPolicy.ABORT:
            raise ResolutionError(
                f"Aborting resolution of {graph.root_node.key}: model for {node.key} unavailable",
                graph=graph,
                cause=error,
            ) from error
        self.logger.warning(f"Skipping unresolvable node {node.key}", artifact_key=node.key)

    async def _run_task(self, graph: DependencyGraph, task: GraphTask) -> Any:
        self.notifier.phase_event(PhaseEventType.TASK_PRE, graph, task)
        try:
            async with graph.mutation_lock:
                result = task.execute(graph, self.notifier)
        except Exception as e:
            error = GraphTaskException(
                f"Graph task {task.task_id} failed: {e}",
                graph=graph,
                task_id=task.task_id,
                cause=e,
                context=ErrorContext(component="factory", operation=task.task_id),
            )
            self.notifier.graph_error(error, graph)
            raise error from e
        self.notifier.phase_event(PhaseEventType.TASK_POST, graph, task)
        return result
