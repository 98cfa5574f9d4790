"""
Tests for the CSV node, edge and prediction tables
"""
import pandas as pd
import pytest

from conftest import make_wall, point
from ppvc.annotation.orchestrator import AnnotationOrchestrator
from ppvc.core.models import (
    AnnotationKind,
    CreatedAnnotation,
    EdgeType,
    ElementKind,
    Node,
    PlacementRequest,
    PredictionRecord,
    ReferenceAnchor,
    Segment3D,
    standard_view,
)
from ppvc.document.memory_document import InMemoryDocument
from ppvc.graph.graph_assembler import assemble_edges
from ppvc.graph.node_builder import collect_nodes
from ppvc.io.tables import (
    ANNOTATION_COLUMNS,
    NODE_COLUMNS,
    measured_value,
    nodes_to_frame,
    read_edges_csv,
    read_nodes_csv,
    read_predictions_csv,
    write_annotations_csv,
    write_edges_csv,
    write_nodes_csv,
)


def write_text(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestNodeTable:
    """Tests for nodes.csv"""

    def test_columns(self, document):
        frame = nodes_to_frame(collect_nodes(document))

        assert list(frame.columns) == NODE_COLUMNS
        assert len(NODE_COLUMNS) == 27

    def test_missing_ids_are_minus_one(self, document):
        frame = nodes_to_frame(collect_nodes(document)).set_index("id")

        assert frame.loc[1, "level_id"] == -1
        assert frame.loc[40, "host_id"] == -1
        assert frame.loc[41, "host_id"] == 10

    def test_round_trip(self, document, tmp_path):
        """Test that numeric fields survive a write/read cycle"""
        nodes = collect_nodes(document)
        path = write_nodes_csv(nodes, tmp_path / "nodes.csv")
        loaded = {node.id: node for node in read_nodes_csv(path)}

        assert sorted(loaded) == [node.id for node in nodes]
        for node in nodes:
            other = loaded[node.id]
            assert other.kind == node.kind
            assert other.category == node.category
            assert other.type_name == node.type_name
            assert other.level_id == node.level_id
            assert other.host_id == node.host_id
            assert other.length == pytest.approx(node.length, abs=1e-6)
            assert other.area == pytest.approx(node.area, abs=1e-6)
            assert other.direction.as_tuple() == pytest.approx(node.direction.as_tuple(), abs=1e-6)
            if node.bounding_box is None:
                assert other.bounding_box is None
            else:
                assert other.bounding_box.min.as_tuple() == pytest.approx(node.bounding_box.min.as_tuple(), abs=1e-6)
                assert other.bounding_box.max.as_tuple() == pytest.approx(node.bounding_box.max.as_tuple(), abs=1e-6)

    def test_room_strings(self, document, tmp_path):
        path = write_nodes_csv(collect_nodes(document), tmp_path / "nodes.csv")
        room = {node.id: node for node in read_nodes_csv(path)}[50]

        assert room.room_name == "Living"
        assert room.room_number == "101"
        assert room.kind == ElementKind.ROOM

    def test_commas_are_replaced(self, tmp_path):
        node = Node(id=5, category="Walls", family="Basic, Wall", type_name="A,B,C", room_number="")
        path = write_nodes_csv([node], tmp_path / "nodes.csv")
        frame = pd.read_csv(path, keep_default_na=False)

        assert frame.shape == (1, 27)
        assert read_nodes_csv(path)[0].family == "Basic_ Wall"
        assert read_nodes_csv(path)[0].type_name == "A_B_C"

    def test_numeric_looking_room_number_stays_text(self, tmp_path):
        node = Node(id=5, category="Rooms", room_number="007")
        path = write_nodes_csv([node], tmp_path / "nodes.csv")

        assert read_nodes_csv(path)[0].room_number == "007"


class TestEdgeTable:

    def test_round_trip(self, document, tmp_path):
        edges = assemble_edges(collect_nodes(document))
        path = write_edges_csv(edges, tmp_path / "edges.csv")

        assert read_edges_csv(path) == edges

    def test_type_strings(self, document, tmp_path):
        edges = assemble_edges(collect_nodes(document))
        path = write_edges_csv(edges, tmp_path / "edges.csv")
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["src", "dst", "type"]
        assert set(frame["type"]) == {"host", "level", "adjacent"}

    def test_empty(self, tmp_path):
        path = write_edges_csv([], tmp_path / "edges.csv")

        assert read_edges_csv(path) == []


class TestPredictionTable:
    """Tests for predictions.csv parsing"""

    def test_well_formed(self, tmp_path):
        path = write_text(
            tmp_path / "predictions.csv",
            "node_id,predicted_class,confidence,annotation_type\n"
            "10,1,0.91,dimension\n"
            "20,3,0.55,both\n",
        )
        predictions = read_predictions_csv(path)

        assert sorted(predictions) == [10, 20]
        assert predictions[10].predicted_class == 1
        assert predictions[10].confidence == pytest.approx(0.91)
        assert predictions[20].annotation_type == "both"
        assert predictions[20].need_dimension and predictions[20].need_text

    def test_malformed_rows_are_skipped(self, tmp_path):
        """Test short rows, non-integer fields and unknown classes"""
        path = write_text(
            tmp_path / "predictions.csv",
            "node_id,predicted_class,confidence,annotation_type\n"
            "1,1\n"
            "abc,1,0.5,dimension\n"
            "2,x,0.5,dimension\n"
            "3,7,0.5,dimension\n"
            "4,2,0.5,text\n",
        )

        assert list(read_predictions_csv(path)) == [4]

    def test_lenient_fields(self, tmp_path):
        """Test defaults for bad confidence and missing annotation type"""
        path = write_text(
            tmp_path / "predictions.csv",
            "node_id,predicted_class,confidence,annotation_type\n"
            "5,1,high,dimension\n"
            "6,2,0.4\n",
        )
        predictions = read_predictions_csv(path)

        assert predictions[5].confidence == 0.0
        assert predictions[6].annotation_type == ""
        assert predictions[6].confidence == pytest.approx(0.4)

    def test_fields_are_counted_per_line(self, tmp_path):
        """Test that a short row is told apart from an empty trailing field"""
        path = write_text(
            tmp_path / "predictions.csv",
            "node_id,predicted_class,confidence,annotation_type\n"
            "1,1\n"
            "   \n"
            "7,1,\n"
            "\n"
            "9,3,0.7,both\n",
        )
        predictions = read_predictions_csv(path)

        assert sorted(predictions) == [7, 9]
        assert predictions[7].confidence == 0.0
        assert predictions[7].annotation_type == ""

    def test_empty_file(self, tmp_path):
        assert read_predictions_csv(write_text(tmp_path / "predictions.csv", "")) == {}

    def test_duplicate_ids_last_wins(self, tmp_path):
        path = write_text(
            tmp_path / "predictions.csv",
            "node_id,predicted_class,confidence,annotation_type\n"
            "8,1,0.9,dimension\n"
            "8,2,0.8,text\n",
        )

        assert read_predictions_csv(path)[8].predicted_class == 2

    def test_header_only(self, tmp_path):
        path = write_text(tmp_path / "predictions.csv", "node_id,predicted_class,confidence,annotation_type\n")

        assert read_predictions_csv(path) == {}


class TestAnnotationTable:
    """Tests for annotation.csv"""

    @pytest.fixture
    def annotated(self):
        """Committed text note and height dimension for one wall"""
        view = standard_view("south", view_id=500)
        document = InMemoryDocument(elements=[make_wall(element_id=101)], view=view)
        predictions = {101: PredictionRecord(node_id=101, predicted_class=3, confidence=0.9)}
        AnnotationOrchestrator().run(document, predictions)
        return document, view

    def test_round_trip(self, annotated, tmp_path):
        document, view = annotated
        path = write_annotations_csv(document.annotations, view, tmp_path / "annotation.csv")
        frame = pd.read_csv(path, keep_default_na=False)
        text, dimension = document.annotations

        assert list(frame.columns) == ANNOTATION_COLUMNS
        assert list(frame["annotation_id"]) == [1, 2]
        assert list(frame["element_id"]) == [text.annotation_id, dimension.annotation_id]
        assert list(frame["view_name"]) == ["South Elevation"] * 2
        assert list(frame["view_type"]) == ["Elevation"] * 2
        assert list(frame["category"]) == ["TextNotes", "Dimensions"]
        assert list(frame["annotation_type"]) == ["text", "dimension"]
        assert list(frame["value"]) == [text.request.text, "3048 mm"]
        assert list(frame["target_element_ids"]) == [101, 101]
        assert list(frame["extra"]) == ["", ""]

    def test_locations(self, annotated, tmp_path):
        """Test that texts sit at their point and dimensions at their line midpoint"""
        document, view = annotated
        path = write_annotations_csv(document.annotations, view, tmp_path / "annotation.csv")
        frame = pd.read_csv(path, keep_default_na=False)
        text, dimension = document.annotations
        middle = dimension.request.line.midpoint()

        assert (frame.loc[0, "x"], frame.loc[0, "y"]) == pytest.approx((text.request.point.x, text.request.point.y))
        assert (frame.loc[1, "x"], frame.loc[1, "y"]) == pytest.approx((middle.x, middle.y))

    def test_text_with_comma(self, south_view, tmp_path):
        request = PlacementRequest(
            kind=AnnotationKind.TEXT, element_id=5, point=point(1, 2, 3), text="Area, net\n20 m2"
        )
        path = write_annotations_csv(
            [CreatedAnnotation(annotation_id=9, request=request)], south_view, tmp_path / "annotation.csv"
        )

        assert pd.read_csv(path, keep_default_na=False).loc[0, "value"] == "Area, net\n20 m2"

    def test_measured_value_follows_line(self):
        """Test that offsets across the dimension line are not measured"""
        request = PlacementRequest(
            kind=AnnotationKind.DIMENSION,
            element_id=1,
            line=Segment3D(start=point(12, 0, -1), end=point(12, 0, 11)),
            anchors=[
                ReferenceAnchor(reference="top", point=point(5, 0, 10)),
                ReferenceAnchor(reference="bottom", point=point(0, 0, 0)),
            ],
        )

        assert measured_value(CreatedAnnotation(annotation_id=1, request=request)) == pytest.approx(10.0)

    def test_empty(self, south_view, tmp_path):
        path = write_annotations_csv([], south_view, tmp_path / "annotation.csv")

        assert list(pd.read_csv(path).columns) == ANNOTATION_COLUMNS


def test_edge_type_values_match_table():
    assert [t.value for t in EdgeType] == ["host", "level", "adjacent"]
