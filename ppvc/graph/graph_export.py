"""
Graph export with networkx.

Nodes carry their table row as attributes; edges carry their relation type.
"""

from pathlib import Path
from typing import List, Union

import networkx as nx
from loguru import logger

from ppvc.core.models import Edge, Node
from ppvc.io.tables import node_to_row


def to_networkx(nodes: List[Node], edges: List[Edge]) -> nx.MultiDiGraph:
    """
    Build a directed multigraph from a node and edge set.

    Args:
        nodes: Node set of the pass
        edges: Edges between ids of the node set

    Returns:
        networkx MultiDiGraph keyed by node id
    """
    graph = nx.MultiDiGraph()

    for node in nodes:
        row = node_to_row(node)
        row.pop("id")
        graph.add_node(node.id, **row)

    for edge in edges:
        graph.add_edge(edge.src, edge.dst, key=edge.type.value, type=edge.type.value)

    return graph


def write_graphml(nodes: List[Node], edges: List[Edge], path: Union[str, Path]) -> Path:
    """
    Persist the graph as GraphML.

    Args:
        nodes: Node set of the pass
        edges: Edge set of the pass
        path: Output .graphml path

    Returns:
        Path written
    """
    path = Path(path)
    graph = to_networkx(nodes, edges)
    nx.write_graphml(graph, str(path))
    logger.info(f"Wrote graph with {graph.number_of_nodes()} nodes and {graph.number_of_edges()} edges to {path}")
    return path
