"""
Tests for edge assembly and graph export
"""
import networkx as nx

from conftest import box
from ppvc.core.models import EdgeType, Node
from ppvc.graph.graph_assembler import GraphAssembler, assemble_edges
from ppvc.graph.graph_export import to_networkx, write_graphml
from ppvc.graph.node_builder import collect_nodes


def edge_set(edges, edge_type):
    return {(e.src, e.dst) for e in edges if e.type == edge_type}


class TestGraphAssembler:
    """Tests for host, level and adjacency edges"""

    def test_host_edges(self, document):
        """Test host -> hosted element edges"""
        edges = assemble_edges(collect_nodes(document))

        assert edge_set(edges, EdgeType.HOST) == {(10, 41)}

    def test_level_edges(self, document):
        """Test level -> element edges"""
        edges = assemble_edges(collect_nodes(document))

        assert edge_set(edges, EdgeType.LEVEL) == {(1, 10), (1, 20), (1, 30), (1, 41), (1, 50), (1, 60)}

    def test_edge_order(self, document):
        """Test that host edges come first, then level, then adjacent"""
        edges = assemble_edges(collect_nodes(document))
        order = {EdgeType.HOST: 0, EdgeType.LEVEL: 1, EdgeType.ADJACENT: 2}
        ranks = [order[e.type] for e in edges]

        assert ranks == sorted(ranks)

    def test_touching_boxes_are_adjacent(self, document):
        """Test that boxes sharing a face are adjacent"""
        adjacent = edge_set(assemble_edges(collect_nodes(document)), EdgeType.ADJACENT)

        assert (10, 20) in adjacent
        assert (20, 60) in adjacent
        assert (10, 60) not in adjacent
        assert not any(40 in pair for pair in adjacent)

    def test_adjacency_matches_overlap(self, document):
        """Test that an adjacent edge exists exactly for overlapping pairs"""
        nodes = collect_nodes(document)
        adjacent = edge_set(assemble_edges(nodes), EdgeType.ADJACENT)
        boxed = [n for n in nodes if n.bounding_box is not None]

        for i, a in enumerate(boxed):
            for b in boxed[i + 1:]:
                overlapping = a.bounding_box.overlaps(b.bounding_box, 0.05)
                assert ((a.id, b.id) in adjacent) == overlapping
                assert (b.id, a.id) not in adjacent

    def test_tolerance(self):
        """Test gaps just inside and just outside the tolerance"""
        a = Node(id=1, bounding_box=box((0, 0, 0), (1, 1, 1)))
        near = Node(id=2, bounding_box=box((1.04, 0, 0), (2, 1, 1)))
        far = Node(id=3, bounding_box=box((2.06, 0, 0), (3, 1, 1)))

        adjacent = edge_set(assemble_edges([a, near, far]), EdgeType.ADJACENT)

        assert adjacent == {(1, 2)}

    def test_overlap_required_on_all_axes(self):
        """Test that overlap in plan alone is not enough"""
        a = Node(id=1, bounding_box=box((0, 0, 0), (1, 1, 1)))
        above = Node(id=2, bounding_box=box((0, 0, 2), (1, 1, 3)))

        assert assemble_edges([a, above]) == []

    def test_nodes_without_box_are_never_adjacent(self):
        a = Node(id=1)
        b = Node(id=2)

        assert assemble_edges([a, b]) == []

    def test_referential_closure(self, document):
        """Test that back-references outside the node set are dropped"""
        nodes = collect_nodes(document, whitelist={10, 20, 41})
        nodes.append(Node(id=99, host_id=12345, level_id=777))
        edges = assemble_edges(nodes)
        ids = {n.id for n in nodes}

        assert all(e.src in ids and e.dst in ids for e in edges)
        assert edge_set(edges, EdgeType.LEVEL) == set()
        assert edge_set(edges, EdgeType.HOST) == {(10, 41)}

    def test_custom_tolerance(self):
        a = Node(id=1, bounding_box=box((0, 0, 0), (1, 1, 1)))
        b = Node(id=2, bounding_box=box((1.5, 0, 0), (2, 1, 1)))

        assert GraphAssembler(tolerance=1.0).assemble([a, b])[0].type == EdgeType.ADJACENT


class TestGraphExport:
    """Tests for networkx conversion and GraphML output"""

    def test_to_networkx(self, document):
        nodes = collect_nodes(document)
        edges = assemble_edges(nodes)
        graph = to_networkx(nodes, edges)

        assert graph.number_of_nodes() == len(nodes)
        assert graph.number_of_edges() == len(edges)
        assert graph.nodes[10]["category"] == "Walls"
        assert graph.nodes[1]["level_elevation"] == 10.0
        assert graph.has_edge(10, 41, key="host")

    def test_write_graphml(self, document, tmp_path):
        nodes = collect_nodes(document)
        edges = assemble_edges(nodes)
        path = write_graphml(nodes, edges, tmp_path / "graph.graphml")

        graph = nx.read_graphml(path, force_multigraph=True)

        assert path.exists()
        assert graph.number_of_nodes() == len(nodes)
        assert graph.number_of_edges() == len(edges)
