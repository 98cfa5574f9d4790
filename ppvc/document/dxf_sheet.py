"""
DXF annotation sheet using ezdxf.

Committed annotations are projected into the view's (u, v) drawing plane and
written as linear DIMENSION entities and MTEXT notes with optional leader
lines.
"""

import math
from pathlib import Path
from typing import List, Tuple, Union

from loguru import logger

try:
    import ezdxf
    from ezdxf.document import Drawing
except ImportError:
    raise ImportError(
        "ezdxf is required for DXF output. Install with: pip install ezdxf"
    )

from ppvc.core.models import AnnotationKind, CreatedAnnotation, PlacementRequest, Point3D, ViewInfo

DIMENSION_LAYER = "PPVC-DIM"
TEXT_LAYER = "PPVC-TEXT"


class DxfSheet:
    """2D drawing sheet for one view."""

    def __init__(self, view: ViewInfo, text_height: float = 0.5):
        """
        Initialize sheet.

        Args:
            view: View whose basis projects model points onto the sheet
            text_height: MTEXT character height in native units
        """
        self.view = view
        self.text_height = text_height
        self.doc: Drawing = ezdxf.new("R2010", setup=True)
        self.doc.layers.add(DIMENSION_LAYER, color=1)
        self.doc.layers.add(TEXT_LAYER, color=3)
        self.msp = self.doc.modelspace()
        self.dimension_count = 0
        self.text_count = 0

    def to_uv(self, point: Point3D) -> Tuple[float, float]:
        """Project a model point onto the sheet."""
        return self.view.basis.transform_to_view_uv(point)

    def add_annotation(self, annotation: CreatedAnnotation) -> None:
        """Write one committed annotation."""
        request = annotation.request
        if request.kind == AnnotationKind.DIMENSION:
            self._add_dimension(request)
        else:
            self._add_text(request)

    def add_annotations(self, annotations: List[CreatedAnnotation]) -> None:
        """
        Write a batch of committed annotations, all or nothing.

        If any annotation fails, the entities written for the batch are
        removed and the counters restored before the error propagates.
        """
        written = len(self.msp)
        counts = (self.dimension_count, self.text_count)
        try:
            for annotation in annotations:
                self.add_annotation(annotation)
        except Exception:
            for entity in list(self.msp)[written:]:
                self.msp.delete_entity(entity)
            self.dimension_count, self.text_count = counts
            logger.warning(f"Discarded partial write of {len(annotations)} annotations on sheet '{self.view.name}'")
            raise
        logger.debug(f"Sheet '{self.view.name}' now holds {self.dimension_count} dimensions, {self.text_count} texts")

    def _add_dimension(self, request: PlacementRequest) -> None:
        start = self.to_uv(request.line.start)
        end = self.to_uv(request.line.end)
        angle = math.degrees(math.atan2(end[1] - start[1], end[0] - start[0]))

        dimension = self.msp.add_linear_dim(
            base=start,
            p1=self.to_uv(request.anchors[0].point),
            p2=self.to_uv(request.anchors[1].point),
            angle=angle,
            dxfattribs={"layer": DIMENSION_LAYER},
        )
        dimension.render()
        self.dimension_count += 1

    def _add_text(self, request: PlacementRequest) -> None:
        insert = self.to_uv(request.point)
        mtext = self.msp.add_mtext(
            request.text.replace("\n", "\\P"),
            dxfattribs={"layer": TEXT_LAYER, "char_height": self.text_height},
        )
        mtext.set_location(insert=insert)

        if request.leader_end is not None:
            self.msp.add_line(insert, self.to_uv(request.leader_end), dxfattribs={"layer": TEXT_LAYER})

        self.text_count += 1

    def save(self, path: Union[str, Path]) -> Path:
        """
        Save the sheet.

        Args:
            path: Output .dxf path

        Returns:
            Path written
        """
        path = Path(path)
        self.doc.saveas(str(path))
        logger.success(f"Saved DXF sheet to {path} ({self.dimension_count} dimensions, {self.text_count} texts)")
        return path
