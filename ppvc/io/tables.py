"""
Node, edge, prediction and annotation tables.

CSV artifacts exchanged with the training and inference side. Lengths are
written in the native unit without conversion. Commas inside node string
fields are replaced by underscores on write, so string round-trips are lossy
for values that contained commas.
"""

import math
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from loguru import logger
from pydantic import ValidationError

from ppvc.annotation.text_content import to_mm
from ppvc.core.models import (
    CATEGORY_NAMES,
    AnnotationKind,
    BoundingBox3D,
    CreatedAnnotation,
    Edge,
    EdgeType,
    ElementKind,
    Node,
    Point3D,
    PredictionRecord,
    ViewInfo,
)

PathLike = Union[str, Path]

NODE_COLUMNS = [
    "id", "category", "family", "type", "level_id", "host_id",
    "min_x", "min_y", "min_z", "max_x", "max_y", "max_z",
    "cx", "cy", "cz",
    "length", "height", "thickness", "area", "width", "depth",
    "dir_x", "dir_y", "dir_z",
    "room_name", "room_number", "level_elevation",
]

EDGE_COLUMNS = ["src", "dst", "type"]

PREDICTION_COLUMNS = ["node_id", "predicted_class", "confidence", "annotation_type"]

ANNOTATION_COLUMNS = [
    "annotation_id", "element_id", "view_name", "view_type", "category", "annotation_type",
    "value", "x", "y", "extra", "target_element_ids",
]

STRING_COLUMNS = ["category", "family", "type", "room_name", "room_number"]

MISSING_ID = -1

KIND_BY_CATEGORY: Dict[str, ElementKind] = {name: kind for kind, name in CATEGORY_NAMES.items()}


def clean_text(value: Any) -> str:
    """Make a value safe for a comma-separated field."""
    return str(value if value is not None else "").replace(",", "_")


def node_to_row(node: Node) -> Dict[str, Any]:
    """
    Flatten a node into one table row.

    Args:
        node: Node to flatten

    Returns:
        Dict keyed by NODE_COLUMNS
    """
    box = node.bounding_box
    low = box.min if box else Point3D()
    high = box.max if box else Point3D()
    center = node.center or Point3D()

    return {
        "id": node.id,
        "category": clean_text(node.category),
        "family": clean_text(node.family),
        "type": clean_text(node.type_name),
        "level_id": node.level_id if node.level_id is not None else MISSING_ID,
        "host_id": node.host_id if node.host_id is not None else MISSING_ID,
        "min_x": low.x, "min_y": low.y, "min_z": low.z,
        "max_x": high.x, "max_y": high.y, "max_z": high.z,
        "cx": center.x, "cy": center.y, "cz": center.z,
        "length": node.length,
        "height": node.height,
        "thickness": node.thickness,
        "area": node.area,
        "width": node.width,
        "depth": node.depth,
        "dir_x": node.direction.x, "dir_y": node.direction.y, "dir_z": node.direction.z,
        "room_name": clean_text(node.room_name),
        "room_number": clean_text(node.room_number),
        "level_elevation": node.level_elevation,
    }


def nodes_to_frame(nodes: List[Node]) -> pd.DataFrame:
    """Build the node table as a DataFrame."""
    return pd.DataFrame([node_to_row(node) for node in nodes], columns=NODE_COLUMNS)


def edges_to_frame(edges: List[Edge]) -> pd.DataFrame:
    """Build the edge table as a DataFrame."""
    rows = [{"src": e.src, "dst": e.dst, "type": e.type.value} for e in edges]
    return pd.DataFrame(rows, columns=EDGE_COLUMNS)


def write_nodes_csv(nodes: List[Node], path: PathLike) -> Path:
    """
    Write the node table.

    Args:
        nodes: Node set of the pass
        path: Output CSV path

    Returns:
        Path written
    """
    path = Path(path)
    nodes_to_frame(nodes).to_csv(path, index=False)
    logger.info(f"Wrote {len(nodes)} nodes to {path}")
    return path


def write_edges_csv(edges: List[Edge], path: PathLike) -> Path:
    """
    Write the edge table.

    Args:
        edges: Edge set of the pass
        path: Output CSV path

    Returns:
        Path written
    """
    path = Path(path)
    edges_to_frame(edges).to_csv(path, index=False)
    logger.info(f"Wrote {len(edges)} edges to {path}")
    return path


def _optional_id(value: Any) -> Optional[int]:
    value = int(value)
    return None if value == MISSING_ID else value


def row_to_node(row: Dict[str, Any]) -> Node:
    """
    Rebuild a node from one table row.

    An all-zero box is read back as an absent box. The kind is recovered from
    the category name when it is one of the known categories.
    """
    low = Point3D(x=float(row["min_x"]), y=float(row["min_y"]), z=float(row["min_z"]))
    high = Point3D(x=float(row["max_x"]), y=float(row["max_y"]), z=float(row["max_z"]))
    box = None
    if any(abs(v) > 0.0 for v in low.as_tuple() + high.as_tuple()):
        box = BoundingBox3D(min=low, max=high)

    category = str(row["category"])
    return Node(
        id=int(row["id"]),
        kind=KIND_BY_CATEGORY.get(category),
        category=category,
        family=str(row["family"]),
        type_name=str(row["type"]),
        level_id=_optional_id(row["level_id"]),
        host_id=_optional_id(row["host_id"]),
        bounding_box=box,
        length=float(row["length"]),
        height=float(row["height"]),
        thickness=float(row["thickness"]),
        area=float(row["area"]),
        width=float(row["width"]),
        depth=float(row["depth"]),
        direction=Point3D(x=float(row["dir_x"]), y=float(row["dir_y"]), z=float(row["dir_z"])),
        room_name=str(row["room_name"]),
        room_number=str(row["room_number"]),
        level_elevation=float(row["level_elevation"]),
    )


def read_nodes_csv(path: PathLike) -> List[Node]:
    """
    Parse a node table written by write_nodes_csv.

    Args:
        path: CSV path

    Returns:
        List of Node in file order
    """
    frame = pd.read_csv(
        path,
        dtype={column: str for column in STRING_COLUMNS},
        keep_default_na=False,
    )
    nodes = [row_to_node(row) for row in frame.to_dict(orient="records")]
    logger.debug(f"Read {len(nodes)} nodes from {path}")
    return nodes


def read_edges_csv(path: PathLike) -> List[Edge]:
    """
    Parse an edge table written by write_edges_csv.

    Args:
        path: CSV path

    Returns:
        List of Edge in file order
    """
    frame = pd.read_csv(path, dtype={"type": str}, keep_default_na=False)
    edges = [
        Edge(src=int(row["src"]), dst=int(row["dst"]), type=EdgeType(row["type"]))
        for row in frame.to_dict(orient="records")
    ]
    logger.debug(f"Read {len(edges)} edges from {path}")
    return edges


def _parse_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_confidence(value: Any) -> float:
    try:
        confidence = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(confidence) else confidence


def _prediction_fields(path: PathLike) -> pd.Series:
    """Split each non-blank data line of a predictions file into its raw fields."""
    lines = pd.Series(Path(path).read_text(encoding="utf-8-sig").splitlines()[1:], dtype=object)
    lines = lines.str.strip()
    return lines[lines != ""].str.split(",")


def read_predictions_csv(path: PathLike) -> Dict[int, PredictionRecord]:
    """
    Load the predictions table produced by the inference step.

    Header: node_id,predicted_class,confidence,annotation_type. Rows with fewer
    than three comma-separated fields, a non-integer id or class, or a class
    outside 0..3 are skipped. Fields are counted on the raw line, so "1,1" is
    short while "1,1," carries an empty confidence. An unparsable confidence
    becomes 0.0 and a missing annotation type becomes "". Later rows win for
    duplicate ids.

    Args:
        path: CSV path

    Returns:
        Dict mapping node id to PredictionRecord
    """
    predictions: Dict[int, PredictionRecord] = {}
    skipped = 0

    for fields in _prediction_fields(path):
        if len(fields) < 3:
            skipped += 1
            continue

        node_id = _parse_int(fields[0])
        predicted_class = _parse_int(fields[1])
        if node_id is None or predicted_class is None:
            skipped += 1
            continue

        annotation_type = fields[3].strip() if len(fields) > 3 else ""

        try:
            predictions[node_id] = PredictionRecord(
                node_id=node_id,
                predicted_class=predicted_class,
                confidence=_parse_confidence(fields[2]),
                annotation_type=annotation_type,
            )
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping prediction for node {node_id}: {e.errors()[0]['msg']}")

    logger.info(f"Loaded {len(predictions)} predictions from {path} (skipped {skipped} rows)")
    return predictions


def measured_value(annotation: CreatedAnnotation) -> float:
    """Distance a dimension measures: its anchor span along the dimension line."""
    request = annotation.request
    span = request.anchors[1].point - request.anchors[0].point
    return abs(span.dot(request.line.direction()))


def annotation_to_row(annotation: CreatedAnnotation, view: ViewInfo, row_id: int) -> Dict[str, Any]:
    """
    Flatten one committed annotation into an annotation table row.

    Dimensions are located at their line midpoint and valued in millimeters.
    Text notes are located at their insertion point and valued by their text.
    Locations are model X and Y in native units.
    """
    request = annotation.request
    if request.kind == AnnotationKind.DIMENSION:
        location = request.line.midpoint()
        category, annotation_type = "Dimensions", "dimension"
        value = f"{to_mm(measured_value(annotation))} mm"
    else:
        location = request.point
        category, annotation_type = "TextNotes", "text"
        value = request.text

    return {
        "annotation_id": row_id,
        "element_id": annotation.annotation_id,
        "view_name": view.name,
        "view_type": view.view_type.value,
        "category": category,
        "annotation_type": annotation_type,
        "value": value,
        "x": location.x,
        "y": location.y,
        "extra": "",
        "target_element_ids": str(request.element_id),
    }


def annotations_to_frame(annotations: List[CreatedAnnotation], view: ViewInfo) -> pd.DataFrame:
    """Build the annotation table as a DataFrame, numbering rows from 1."""
    rows = [annotation_to_row(a, view, i) for i, a in enumerate(annotations, start=1)]
    return pd.DataFrame(rows, columns=ANNOTATION_COLUMNS)


def write_annotations_csv(annotations: List[CreatedAnnotation], view: ViewInfo, path: PathLike) -> Path:
    """
    Write the annotation table for one view.

    String fields are quoted as needed, so text notes keep their commas and
    line breaks.

    Args:
        annotations: Committed annotations of the pass
        view: View the annotations were placed in
        path: Output CSV path

    Returns:
        Path written
    """
    path = Path(path)
    annotations_to_frame(annotations, view).to_csv(path, index=False)
    logger.info(f"Wrote {len(annotations)} annotations to {path}")
    return path
