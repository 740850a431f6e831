"""
Dependency Graph Command Line
=============================

Resolves the dependency graph of a project stored in a local Maven layout
directory and prints its effective dependencies.

Usage:
    python -m depgraph.cli GROUP:ARTIFACT:VERSION [options]

Options:
    --repository DIR    Maven layout directory holding the POMs
    --scope SCOPE       Reduce the graph to compile, runtime, provided, system or test
    --timeout SECONDS   Abandon resolution after this long
    --dot-dir DIR       Write Graphviz dot files for every resolution step
    --json              Print the structure analysis as JSON

Examples:
    python -m depgraph.cli org.example:service:1.0 --repository ~/.m2/repository
    python -m depgraph.cli org.example:service:1.0 --scope compile --json
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .config.settings import get_settings
from .core.exceptions import DependencyGraphException
from .core.logging_config import setup_logging
from .graph.factory import DependencyGraphFactory
from .graph.graphviz import GraphvizDotWriter
from .graph.model import DependencyGraph
from .graph.queries import analyze_graph_structure
from .processing.maven_model import VersionedReference
from .processing.model_loader import PomDirectoryModelLoader


def parse_reference(value: str) -> VersionedReference:
    parts = value.split(":")
    if len(parts) != 3 or not all(parts):
        raise argparse.ArgumentTypeError(f"Expected GROUP:ARTIFACT:VERSION, got {value!r}")
    return VersionedReference(*parts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve a Maven dependency graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("root", type=parse_reference, help="Root project as GROUP:ARTIFACT:VERSION")
    parser.add_argument("--repository", help="Maven layout directory (defaults to DEPGRAPH_REPOSITORY_DIR)")
    parser.add_argument("--scope", help="Desired scope of the final graph")
    parser.add_argument("--timeout", type=float, help="Resolution timeout in seconds")
    parser.add_argument("--dot-dir", help="Directory for Graphviz dot files")
    parser.add_argument("--json", action="store_true", help="Print the structure analysis as JSON")
    return parser


def render_tree(graph: DependencyGraph) -> List[str]:
    """Effective dependencies as an indented tree, each node printed once."""
    lines = [graph.root_node.key]
    seen = {graph.root_node.key}
    stack = [(iter(graph.enabled_edges_from(graph.root_node)), 1)]

    while stack:
        edges, indent = stack[-1]
        edge = next(edges, None)
        if edge is None:
            stack.pop()
            continue
        child = graph.get_node(edge.node_to)
        if child is None or child.key in seen:
            continue
        seen.add(child.key)
        lines.append(f"{'   ' * indent}+- {child.key} ({edge.scope})")
        stack.append((iter(graph.enabled_edges_from(child)), indent + 1))

    return lines


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    logger = setup_logging(component="cli", **settings.get_logging_config())

    repository = args.repository or settings.repository_dir
    if not repository:
        logger.error("No repository directory given, use --repository or DEPGRAPH_REPOSITORY_DIR")
        return 2

    try:
        factory = DependencyGraphFactory(PomDirectoryModelLoader(repository), settings=settings,
                                         desired_scope=args.scope)
    except ValueError as e:
        logger.error(str(e))
        return 2
    if args.dot_dir:
        factory.add_graph_listener(GraphvizDotWriter(args.dot_dir))

    try:
        graph = await factory.get_graph(args.root, timeout=args.timeout)
    except DependencyGraphException as e:
        logger.error(f"Resolution failed: {e}", error_code=e.error_code)
        return 1

    if args.json:
        print(json.dumps(analyze_graph_structure(graph), indent=2))
    else:
        print("\n".join(render_tree(graph)))
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
