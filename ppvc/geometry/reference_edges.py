"""
Reference edge extraction from element solids.

Finds the solid edges used as dimension anchors:
- extruded elements (walls, floors): topmost and bottommost horizontal edges
- framing and generic models: first two edges of the first usable solid
"""

from typing import List, Optional

from loguru import logger

from ppvc.core.errors import GeometryUnavailable, ReferenceInsufficient
from ppvc.core.models import BoundingBox3D, Solid, SolidEdge


class ReferenceEdgePair:
    """Two reference edges and the elevations they were selected at."""

    def __init__(self, top: SolidEdge, bottom: SolidEdge, max_z: float, min_z: float):
        """
        Initialize edge pair.

        Args:
            top: Topmost horizontal edge
            bottom: Bottommost horizontal edge
            max_z: Elevation of the top edge
            min_z: Elevation of the bottom edge
        """
        self.top = top
        self.bottom = bottom
        self.max_z = max_z
        self.min_z = min_z

    @property
    def span(self) -> float:
        """Vertical distance between the two edges."""
        return self.max_z - self.min_z

    def __repr__(self) -> str:
        return f"ReferenceEdgePair(top={self.top.reference}, bottom={self.bottom.reference}, span={self.span:.3f})"


def first_volumetric_solid(solids: List[Solid]) -> Optional[Solid]:
    """Return the first solid with at least one face and a positive volume."""
    for solid in solids:
        if solid.face_count > 0 and solid.volume > 0:
            return solid
    return None


def find_top_bottom_edges(solids: List[Solid], tolerance: float = 0.01) -> ReferenceEdgePair:
    """
    Find the topmost and bottommost horizontal edges of an extruded element.

    Only the first solid with faces and positive volume is inspected. Extremes
    are tracked with strict comparisons, so among edges at the same elevation
    the first one in iteration order wins.

    Args:
        solids: Element solids in document order
        tolerance: Maximum Z difference between endpoints of a horizontal edge

    Returns:
        ReferenceEdgePair with top and bottom edges

    Raises:
        GeometryUnavailable: If no solid with faces and volume exists
        ReferenceInsufficient: If fewer than two distinct horizontal edges exist
    """
    solid = first_volumetric_solid(solids)
    if solid is None:
        raise GeometryUnavailable("No solid geometry found")

    top_edge: Optional[SolidEdge] = None
    bottom_edge: Optional[SolidEdge] = None
    max_z = float("-inf")
    min_z = float("inf")
    horizontal_count = 0

    for edge in solid.edges:
        if not edge.is_horizontal(tolerance):
            continue

        horizontal_count += 1
        z = edge.start.z
        if z > max_z:
            max_z = z
            top_edge = edge
        if z < min_z:
            min_z = z
            bottom_edge = edge

    if top_edge is None or bottom_edge is None or horizontal_count < 2:
        raise ReferenceInsufficient("Could not find top/bottom edges")

    if top_edge.reference == bottom_edge.reference:
        raise ReferenceInsufficient("Top and bottom edges resolve to the same reference")

    logger.debug(
        f"Selected top edge {top_edge.reference} (z={max_z:.3f}) and "
        f"bottom edge {bottom_edge.reference} (z={min_z:.3f}) "
        f"from {horizontal_count} horizontal edges"
    )

    return ReferenceEdgePair(top=top_edge, bottom=bottom_edge, max_z=max_z, min_z=min_z)


def find_first_two_edges(solids: List[Solid]) -> List[SolidEdge]:
    """
    Best-effort anchor selection for framing and generic model elements.

    Returns the first two edges of the first solid with a non-empty face set,
    without any orientation filtering. The order follows the document's edge
    iteration order; no canonical tie-break is applied.

    Args:
        solids: Element solids in document order

    Returns:
        List of exactly two edges

    Raises:
        GeometryUnavailable: If no solid has faces
        ReferenceInsufficient: If that solid has fewer than two edges, or its
            first two edges share one reference
    """
    solid = next((s for s in solids if s.face_count > 0), None)
    if solid is None:
        raise GeometryUnavailable("No geometry found")

    edges = solid.edges[:2]
    if len(edges) < 2:
        raise ReferenceInsufficient(f"Only found {len(edges)} edge references (need 2)")
    if edges[0].reference == edges[1].reference:
        raise ReferenceInsufficient("First two edges resolve to the same reference")

    return edges


def solid_bounding_box(solid: Solid) -> Optional[BoundingBox3D]:
    """
    Bounding box over the endpoints of a solid's edges.

    Args:
        solid: Solid to measure

    Returns:
        BoundingBox3D or None if the solid has no edges
    """
    points = []
    for edge in solid.edges:
        points.append(edge.start)
        points.append(edge.end)

    if not points:
        return None

    return BoundingBox3D.from_points(points)
