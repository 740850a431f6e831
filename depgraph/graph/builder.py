"""
Graph builder: loads project models and expands them into a dependency graph.

Model loads may run concurrently; every expansion happens afterwards under
the graph's mutation lock, one node at a time, in the order the nodes were
handed in.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Tuple

from ..config.settings import Settings, get_settings
from ..core.error_handling import ErrorHandler, error_handling_context
from ..core.exceptions import ErrorContext, ModelLoadError, ResolutionError
from ..processing.maven_model import ArtifactCoordinate, ArtifactType, ProjectModel, VersionedReference
from ..processing.model_loader import ModelLoader
from .events import GraphListener, ListenerNotifier
from .expansion import add_node_from_model
from .model import DependencyGraph, Node

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Creates graphs and resolves their nodes from a model loader."""

    def __init__(self,
                 model_loader: ModelLoader,
                 listeners: Optional[Iterable[GraphListener]] = None,
                 settings: Optional[Settings] = None,
                 notifier: Optional[ListenerNotifier] = None):
        self.model_loader = model_loader
        self.settings = settings or get_settings()
        self.notifier = notifier or ListenerNotifier(listeners)
        self.error_handler = ErrorHandler(
            component="graph_builder",
            max_retries=self.settings.model_load_retries,
            timeout=self.settings.model_load_timeout_seconds,
            retry_on=(ModelLoadError,),
        )

    def add_graph_listener(self, listener: GraphListener) -> None:
        self.notifier.add_listener(listener)

    async def load_model(self, ref: VersionedReference) -> ProjectModel:
        """Load one model with retries; every failure surfaces as ModelLoadError."""
        try:
            return await self.error_handler.handle_with_retry(self.model_loader.load_model, ref)
        except ModelLoadError:
            raise
        except asyncio.TimeoutError as e:
            raise ModelLoadError(
                f"Timed out loading model for {ref} after {self.settings.model_load_timeout_seconds}s",
                ref=ref, cause=e, component="graph_builder",
            ) from e
        except Exception as e:
            raise ModelLoadError(f"Failed to load model for {ref}: {e}", ref=ref, cause=e,
                                 component="graph_builder") from e

    async def create_graph(self, root_ref: VersionedReference) -> DependencyGraph:
        """Load the root model and build a graph holding the root and its direct dependencies."""
        if not root_ref.version:
            raise ValueError(f"Root reference {root_ref} has no version")

        try:
            model = await self.load_model(root_ref)
        except ModelLoadError as e:
            raise ResolutionError(
                f"Unable to load root model {root_ref}",
                cause=e,
                context=ErrorContext(component="graph_builder", operation="create_graph",
                                     artifact_key=str(root_ref)),
            ) from e

        root = ArtifactCoordinate.from_versioned_reference(root_ref, ArtifactType.for_packaging(model.packaging))
        graph = DependencyGraph(root)
        logger.info("Created graph for %s", graph.root_node.key)

        async with graph.mutation_lock:
            add_node_from_model(graph, graph.root_node, model, self.notifier)
        return graph

    async def resolve_node(self, graph: DependencyGraph, node: Node,
                           ref: Optional[VersionedReference] = None) -> Node:
        """
        Load and expand the model of a single node.

        Raises ModelLoadError when the model cannot be loaded; the node then
        stays unresolved in the graph.
        """
        if node.resolved:
            return node

        model = await self.load_model(ref or node.artifact.to_versioned_reference())

        async with graph.mutation_lock:
            if graph.get_node(node) is not node:
                logger.debug("Node %s left the graph while its model was loading", node.key)
                return node
            return add_node_from_model(graph, node, model, self.notifier)

    async def resolve_nodes(self, graph: DependencyGraph,
                            nodes: List[Node]) -> List[Tuple[Node, ModelLoadError]]:
        """
        Load the models of several nodes concurrently and expand them in order.

        Returns the nodes whose models failed to load, with the error.
        """
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_loads)

        async def load(node: Node):
            async with semaphore:
                try:
                    return await self.load_model(node.artifact.to_versioned_reference())
                except ModelLoadError as e:
                    return e

        results = await asyncio.gather(*(load(node) for node in nodes))

        failures: List[Tuple[Node, ModelLoadError]] = []
        async with graph.mutation_lock:
            async with error_handling_context("graph_builder", "expand_nodes", root=graph.root_node.key):
                for node, result in zip(nodes, results):
                    if isinstance(result, ModelLoadError):
                        failures.append((node, result))
                        continue
                    if node.resolved or graph.get_node(node) is not node:
                        continue
                    add_node_from_model(graph, node, result, self.notifier)

        logger.debug("Resolved %d of %d node(s) for %s",
                     len(nodes) - len(failures), len(nodes), graph.root_node.key)
        return failures
