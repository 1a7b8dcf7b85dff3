"""Graph layer — command DAG construction and whole-graph evaluation.

The graph layer depends on commands, domain, and third-party libs (NetworkX).
Commands never import from it: evaluation through ``compute()`` works
without a graph, the graph only adds ordering, skipping, and reporting.
"""

from cmdgraph.graph.engine import CommandGraph
from cmdgraph.graph.executor import GraphExecutor, execute_graph

__all__ = ["CommandGraph", "GraphExecutor", "execute_graph"]
