"""
Placement planning for dimensions and text notes.

For each supported element kind a rule computes the placement geometry in
model space from the element's solids, location and bounding box, offset
along the active view's right/up/out directions. The resulting request is
handed to the document; every attempt ends in a PlacementOutcome with an
audit reason.
"""

from typing import Callable, Dict, Optional, Tuple

from loguru import logger

from ppvc.annotation.text_content import build_text_content, to_mm, to_mm2
from ppvc.core.config import Config, get_default_config
from ppvc.core.errors import GeometryUnavailable, NativeRejection, PlacementError
from ppvc.core.models import (
    ORIGIN,
    AnnotationKind,
    ElementKind,
    LocationCurve,
    ModelElement,
    Node,
    PlacementOutcome,
    PlacementRequest,
    Point3D,
    ReferenceAnchor,
    Segment3D,
    SolidEdge,
    ViewInfo,
)
from ppvc.document.base import ModelDocument
from ppvc.geometry.reference_edges import find_first_two_edges, find_top_bottom_edges, solid_bounding_box

# A rule returns the request to create and the success summary
PlacementRule = Callable[[ModelElement, Optional[Node], ViewInfo], Tuple[PlacementRequest, str]]

REJECTION_REASONS = {
    AnnotationKind.DIMENSION: "NewDimension returned null",
    AnnotationKind.TEXT: "TextNote creation failed",
}


def _anchor(edge: SolidEdge) -> ReferenceAnchor:
    return ReferenceAnchor(reference=edge.reference, point=edge.midpoint())


class PlacementPlanner:
    """
    Computes and submits annotation placements for one view.

    Kinds without an entry in the dispatch table fail with
    "Unsupported element type".
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize placement planner.

        Args:
            config: Configuration (uses default if None)
        """
        self.config = config or get_default_config()
        self.edge_tolerance = self.config.get_geometry_setting("horizontal_edge_tolerance", 0.01)

        self._rules: Dict[ElementKind, PlacementRule] = {
            ElementKind.WALL: self.plan_wall_height,
            ElementKind.FLOOR: self.plan_floor_thickness,
            ElementKind.LEVEL: self.plan_level_elevation,
            ElementKind.ROOM: self.plan_room_area,
            ElementKind.STRUCTURAL_FRAMING: self.plan_framing_dimension,
            ElementKind.GENERIC_MODEL: self.plan_generic_model_dimension,
        }

    def _rule(self, rule: str, name: str, default: float) -> float:
        return float(self.config.get_placement_rule(rule, name, default))

    def has_rule(self, kind: ElementKind) -> bool:
        """Check if a dimension placement rule exists for a kind."""
        return kind in self._rules

    # ------------------------------------------------------------------
    # Dimension rules
    # ------------------------------------------------------------------

    def plan_wall_height(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """
        Vertical dimension between the wall's top and bottom edges.

        The line sits beside the wall centerline midpoint, raised halfway
        between the bottom and top edge midpoints.
        """
        pair = find_top_bottom_edges(element.get_solids(), self.edge_tolerance)

        wall_point = ORIGIN
        location = element.location
        if isinstance(location, LocationCurve) and location.is_line:
            wall_point = location.midpoint()

        if element.bounding_box is None:
            raise GeometryUnavailable("No bounding box")

        offset = max(
            self._rule("wall_height", "min_offset", 5.0),
            element.bounding_box.diagonal() * self._rule("wall_height", "diagonal_factor", 0.5),
        )
        half_span = pair.span * self._rule("wall_height", "span_factor", 0.6)

        right, up = view.basis.right, view.basis.up
        mid_height = wall_point + (pair.top.midpoint() - pair.bottom.midpoint()) * 0.5
        p0 = mid_height + right * offset - up * half_span
        p1 = mid_height + right * offset + up * half_span

        request = PlacementRequest(
            kind=AnnotationKind.DIMENSION,
            element_id=element.id,
            view_id=view.id,
            line=Segment3D(start=p0, end=p1),
            anchors=[_anchor(pair.top), _anchor(pair.bottom)],
        )
        return request, f"Height={pair.span:.2f}ft at ({p0.x:.1f},{p0.y:.1f})"

    def plan_floor_thickness(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """Vertical dimension across the slab, beside its bounding-box center."""
        pair = find_top_bottom_edges(element.get_solids(), self.edge_tolerance)

        if element.bounding_box is None:
            raise GeometryUnavailable("No bounding box")

        center = element.bounding_box.center()
        offset = max(
            self._rule("floor_thickness", "min_offset", 5.0),
            element.bounding_box.diagonal() * self._rule("floor_thickness", "diagonal_factor", 0.3),
        )
        thickness = pair.span
        half_span = thickness * self._rule("floor_thickness", "span_factor", 1.5)

        right, up = view.basis.right, view.basis.up
        p0 = center + right * offset - up * half_span
        p1 = center + right * offset + up * half_span

        request = PlacementRequest(
            kind=AnnotationKind.DIMENSION,
            element_id=element.id,
            view_id=view.id,
            line=Segment3D(start=p0, end=p1),
            anchors=[_anchor(pair.top), _anchor(pair.bottom)],
        )
        return request, f"Thickness={thickness:.2f}ft at ({p0.x:.1f},{p0.y:.1f})"

    def plan_level_elevation(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """Elevation text in millimeters next to the level's origin point."""
        if node is not None:
            elevation = node.level_elevation
        else:
            elevation = float(element.parameter("elevation", 0.0))

        level_point = Point3D(x=0.0, y=0.0, z=elevation)
        right, up = view.basis.right, view.basis.up

        point = (
            level_point
            + right * self._rule("level_elevation", "right_offset", 3.0)
            + up * self._rule("level_elevation", "up_offset", 1.0)
        )
        leader_end = level_point + right * self._rule("level_elevation", "leader_offset", 0.5)

        request = PlacementRequest(
            kind=AnnotationKind.TEXT,
            element_id=element.id,
            view_id=view.id,
            point=point,
            text=str(to_mm(elevation)),
            leader_end=leader_end,
        )
        return request, f"Elevation={elevation:.2f}ft"

    def plan_room_area(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """Area text beside the midpoint of the room's first boundary segment."""
        if not element.boundary_loops:
            raise GeometryUnavailable("No boundary segments")
        if not element.boundary_loops[0]:
            raise GeometryUnavailable("Empty boundary segment list")

        area = node.area if node is not None else float(element.parameter("area", 0.0))
        text = f"Area: {to_mm2(area)}mm²"
        if node is not None and node.height > 0:
            text += f"\nHeight: {to_mm(node.height)}mm"

        mid_point = element.boundary_loops[0][0].midpoint()
        right, up = view.basis.right, view.basis.up
        point = (
            mid_point
            + up * self._rule("room_area", "up_offset", 2.5)
            + right * self._rule("room_area", "right_offset", 2.0)
        )

        request = PlacementRequest(
            kind=AnnotationKind.TEXT,
            element_id=element.id,
            view_id=view.id,
            point=point,
            text=text,
            leader_end=mid_point,
        )
        return request, f"Area={area:.2f}sqft"

    def plan_framing_dimension(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """Dimension along the member's location curve, shifted right and spread up."""
        location = element.location
        if not isinstance(location, LocationCurve):
            raise GeometryUnavailable("No location curve")

        edges = find_first_two_edges(element.get_solids())

        right, up = view.basis.right, view.basis.up
        right_offset = self._rule("structural_framing", "right_offset", 3.0)
        up_offset = self._rule("structural_framing", "up_offset", 2.0)
        p0 = location.start + right * right_offset - up * up_offset
        p1 = location.end + right * right_offset + up * up_offset

        request = PlacementRequest(
            kind=AnnotationKind.DIMENSION,
            element_id=element.id,
            view_id=view.id,
            line=Segment3D(start=p0, end=p1),
            anchors=[_anchor(edge) for edge in edges],
        )
        return request, f"Length={location.length():.2f}ft"

    def plan_generic_model_dimension(
        self, element: ModelElement, node: Optional[Node], view: ViewInfo
    ) -> Tuple[PlacementRequest, str]:
        """Horizontal dimension below the center of the first usable solid."""
        solids = element.get_solids()
        solid = next((s for s in solids if s.face_count > 0), None)
        box = solid_bounding_box(solid) if solid is not None else None
        if box is None:
            raise GeometryUnavailable("No bounding box from solid")

        edges = find_first_two_edges(solids)

        center = box.center()
        right, up = view.basis.right, view.basis.up
        right_offset = self._rule("generic_model", "right_offset", 2.0)
        up_offset = self._rule("generic_model", "up_offset", 3.0)
        p0 = center - up * up_offset - right * right_offset
        p1 = center - up * up_offset + right * right_offset

        request = PlacementRequest(
            kind=AnnotationKind.DIMENSION,
            element_id=element.id,
            view_id=view.id,
            line=Segment3D(start=p0, end=p1),
            anchors=[_anchor(edge) for edge in edges],
        )
        size = box.max - box.min
        return request, f"Size=({size.x:.2f},{size.y:.2f},{size.z:.2f})ft"

    # ------------------------------------------------------------------
    # Text notes
    # ------------------------------------------------------------------

    def plan_text_note(self, element: ModelElement, node: Optional[Node], view: ViewInfo) -> PlacementRequest:
        """
        Text note to the upper right of the element's bounding box.

        Raises:
            GeometryUnavailable: If there is no content or no bounding box
        """
        content = build_text_content(element, node)
        if content is None or not content.strip():
            raise GeometryUnavailable("No text content")

        box = element.bounding_box
        if box is None:
            raise GeometryUnavailable("No bounding box")

        size = box.diagonal()
        offset_right = max(
            self._rule("text_note", "min_right_offset", 2.0),
            size * self._rule("text_note", "right_factor", 0.15),
        )
        offset_up = max(
            self._rule("text_note", "min_up_offset", 3.0),
            size * self._rule("text_note", "up_factor", 0.2),
        )
        out_offset = self._rule("text_note", "out_offset", 0.5)

        basis = view.basis
        point = box.max + basis.right * offset_right + basis.up * offset_up + basis.view_direction * out_offset

        return PlacementRequest(
            kind=AnnotationKind.TEXT,
            element_id=element.id,
            view_id=view.id,
            point=point,
            text=content,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _submit(self, document: ModelDocument, request: PlacementRequest, summary: str) -> PlacementOutcome:
        annotation_id = document.create_annotation(request)
        if annotation_id is None:
            raise NativeRejection(REJECTION_REASONS[request.kind])
        return PlacementOutcome(success=True, reason=summary, request=request, annotation_id=annotation_id)

    def place_dimension(
        self,
        document: ModelDocument,
        element: ModelElement,
        node: Optional[Node],
        view: ViewInfo,
    ) -> PlacementOutcome:
        """
        Plan and create the kind-specific annotation for one element.

        Per-element failures are returned as unsuccessful outcomes, never raised.

        Args:
            document: Document with an open transaction
            element: Element to annotate
            node: Node built for the element, if any
            view: Active view

        Returns:
            PlacementOutcome
        """
        rule = self._rules.get(element.kind)
        if rule is None:
            return PlacementOutcome(success=False, reason="Unsupported element type")

        try:
            request, summary = rule(element, node, view)
            return self._submit(document, request, summary)
        except PlacementError as e:
            return PlacementOutcome(success=False, reason=e.reason)
        except Exception as e:
            logger.debug(f"Placement for element {element.id} raised: {e!r}")
            return PlacementOutcome(success=False, reason=f"Exception: {e}")

    def place_text_note(
        self,
        document: ModelDocument,
        element: ModelElement,
        node: Optional[Node],
        view: ViewInfo,
    ) -> PlacementOutcome:
        """
        Plan and create a descriptive text note for one element.

        Args:
            document: Document with an open transaction
            element: Element to annotate
            node: Node built for the element, if any
            view: Active view

        Returns:
            PlacementOutcome
        """
        try:
            request = self.plan_text_note(element, node, view)
            return self._submit(document, request, f"Text at ({request.point.x:.1f},{request.point.y:.1f})")
        except PlacementError as e:
            return PlacementOutcome(success=False, reason=e.reason)
        except Exception as e:
            logger.debug(f"Text note for element {element.id} raised: {e!r}")
            return PlacementOutcome(success=False, reason=f"Exception: {e}")
