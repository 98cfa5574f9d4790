"""
Graph assembly from a node set.

Builds host, level and adjacency edges. Every edge references two ids of the
same node set; back-references to ids outside the set are dropped.
"""

from typing import Dict, List, Optional

from loguru import logger

from ppvc.core.config import Config, get_default_config
from ppvc.core.models import Edge, EdgeType, Node


class GraphAssembler:
    """
    Derives the edge set of a node set.

    Adjacency compares every unordered pair of boxes, so assembly is
    quadratic in the number of nodes.
    """

    def __init__(self, tolerance: Optional[float] = None, config: Optional[Config] = None):
        """
        Initialize graph assembler.

        Args:
            tolerance: Adjacency tolerance (uses config value if None)
            config: Configuration (uses default if None)
        """
        self.config = config or get_default_config()
        if tolerance is None:
            tolerance = self.config.get_graph_setting("adjacency_tolerance", 0.05)
        self.tolerance = float(tolerance)

    def assemble(self, nodes: List[Node]) -> List[Edge]:
        """
        Build all edges for a node set.

        Host edges come first, then level edges, then adjacency edges in
        (i, j) pair order.

        Args:
            nodes: Node set of the pass

        Returns:
            List of Edge
        """
        logger.info(f"Assembling graph for {len(nodes)} nodes")
        by_id: Dict[int, Node] = {node.id: node for node in nodes}

        edges = self.host_edges(nodes, by_id)
        host_count = len(edges)
        edges.extend(self.level_edges(nodes, by_id))
        level_count = len(edges) - host_count
        adjacent = self.adjacency_edges(nodes)
        edges.extend(adjacent)

        logger.debug(f"Edges: {host_count} host, {level_count} level, {len(adjacent)} adjacent")
        logger.success(f"Assembled {len(edges)} edges")
        return edges

    @staticmethod
    def host_edges(nodes: List[Node], by_id: Dict[int, Node]) -> List[Edge]:
        """Edges host -> hosted element for host ids present in the set."""
        return [
            Edge(src=node.host_id, dst=node.id, type=EdgeType.HOST)
            for node in nodes
            if node.host_id is not None and node.host_id in by_id
        ]

    @staticmethod
    def level_edges(nodes: List[Node], by_id: Dict[int, Node]) -> List[Edge]:
        """Edges level -> element for level ids present in the set."""
        return [
            Edge(src=node.level_id, dst=node.id, type=EdgeType.LEVEL)
            for node in nodes
            if node.level_id is not None and node.level_id in by_id
        ]

    def adjacency_edges(self, nodes: List[Node]) -> List[Edge]:
        """
        Edges between every pair of nodes whose boxes overlap within tolerance.

        Each unordered pair is tested once (i < j) and yields at most one edge.
        Nodes without a bounding box are never adjacent.
        """
        boxed = [node for node in nodes if node.bounding_box is not None]
        edges: List[Edge] = []

        for i in range(len(boxed)):
            a = boxed[i]
            for j in range(i + 1, len(boxed)):
                b = boxed[j]
                if a.bounding_box.overlaps(b.bounding_box, self.tolerance):
                    edges.append(Edge(src=a.id, dst=b.id, type=EdgeType.ADJACENT))

        return edges


def assemble_edges(nodes: List[Node], tolerance: Optional[float] = None) -> List[Edge]:
    """
    Convenience function to build the edge set of a node set.

    Args:
        nodes: Node set of the pass
        tolerance: Adjacency tolerance (default 0.05 from config)

    Returns:
        List of Edge
    """
    return GraphAssembler(tolerance=tolerance).assemble(nodes)
