"""
PPVC Annotate - Graph export and auto-annotation for PPVC building models

Converts building models into element graphs and places predicted dimension
and text annotations in 2D drawing views.
"""

__version__ = "0.1.0"

from ppvc.graph.node_builder import collect_nodes
from ppvc.graph.graph_assembler import assemble_edges
from ppvc.graph.graph_export import write_graphml
from ppvc.annotation.predictions import interpret
from ppvc.annotation.placement_planner import PlacementPlanner
from ppvc.annotation.orchestrator import AnnotationOrchestrator
from ppvc.io.tables import read_predictions_csv, write_annotations_csv, write_edges_csv, write_nodes_csv

__all__ = [
    "collect_nodes",
    "assemble_edges",
    "write_graphml",
    "interpret",
    "PlacementPlanner",
    "AnnotationOrchestrator",
    "read_predictions_csv",
    "write_nodes_csv",
    "write_edges_csv",
    "write_annotations_csv",
]
