"""
Core data models for the PPVC annotation module.

All models use Pydantic for validation and serialization.
"""

import math
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ElementKind(str, Enum):
    """Closed set of building element kinds handled by export and annotation."""
    WALL = "Wall"
    FLOOR = "Floor"
    STRUCTURAL_FRAMING = "StructuralFraming"
    STRUCTURAL_FOUNDATION = "StructuralFoundation"
    GENERIC_MODEL = "GenericModel"
    ROOM = "Room"
    LEVEL = "Level"

    @property
    def category_name(self) -> str:
        """Display name of the category (plural form used in the tables)."""
        return CATEGORY_NAMES[self]


CATEGORY_NAMES: Dict[ElementKind, str] = {
    ElementKind.WALL: "Walls",
    ElementKind.FLOOR: "Floors",
    ElementKind.STRUCTURAL_FRAMING: "Structural Framing",
    ElementKind.STRUCTURAL_FOUNDATION: "Structural Foundations",
    ElementKind.GENERIC_MODEL: "Generic Models",
    ElementKind.ROOM: "Rooms",
    ElementKind.LEVEL: "Levels",
}


class EdgeType(str, Enum):
    """Relation types between graph nodes."""
    HOST = "host"
    LEVEL = "level"
    ADJACENT = "adjacent"


class ViewType(str, Enum):
    """Drawing view types reported by the document."""
    ELEVATION = "Elevation"
    FLOOR_PLAN = "FloorPlan"
    SECTION = "Section"
    DETAIL = "Detail"
    THREE_D = "ThreeD"
    OTHER = "Other"


class AnnotationKind(str, Enum):
    """Kinds of annotation a placement can request."""
    TEXT = "text"
    DIMENSION = "dimension"


class Point3D(BaseModel):
    """3D point (or vector) in model space, native length unit."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    model_config = ConfigDict(frozen=True)

    def __add__(self, other: "Point3D") -> "Point3D":
        return Point3D(x=self.x + other.x, y=self.y + other.y, z=self.z + other.z)

    def __sub__(self, other: "Point3D") -> "Point3D":
        return Point3D(x=self.x - other.x, y=self.y - other.y, z=self.z - other.z)

    def __mul__(self, factor: float) -> "Point3D":
        return Point3D(x=self.x * factor, y=self.y * factor, z=self.z * factor)

    __rmul__ = __mul__

    def __neg__(self) -> "Point3D":
        return self * -1.0

    def dot(self, other: "Point3D") -> float:
        """Dot product with another vector."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    def length(self) -> float:
        """Euclidean length of the vector."""
        return math.sqrt(self.dot(self))

    def normalized(self) -> "Point3D":
        """Unit vector in the same direction (zero vector stays zero)."""
        length = self.length()
        if length < 1e-12:
            return Point3D()
        return self * (1.0 / length)

    def distance_to(self, other: "Point3D") -> float:
        """Calculate Euclidean distance to another point."""
        return (self - other).length()

    def midpoint(self, other: "Point3D") -> "Point3D":
        """Point halfway between this point and another."""
        return (self + other) * 0.5

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @classmethod
    def from_sequence(cls, values) -> "Point3D":
        """Build a point from any (x, y, z) sequence."""
        x, y, z = (float(v) for v in values)
        return cls(x=x, y=y, z=z)


ORIGIN = Point3D()


class BoundingBox3D(BaseModel):
    """Axis-aligned 3D bounding box."""
    min: Point3D
    max: Point3D

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_extents(self) -> "BoundingBox3D":
        """Ensure min <= max on every axis."""
        for axis in ("x", "y", "z"):
            if getattr(self.min, axis) > getattr(self.max, axis):
                raise ValueError(f"Bounding box min.{axis} exceeds max.{axis}")
        return self

    def center(self) -> Point3D:
        """Center point of the box."""
        return self.min.midpoint(self.max)

    def diagonal(self) -> float:
        """Length of the box diagonal."""
        return (self.max - self.min).length()

    def overlaps(self, other: "BoundingBox3D", tolerance: float = 0.0) -> bool:
        """
        Check if two boxes touch or overlap on all three axes.

        Bounds are inclusive and widened by tolerance, so the test is symmetric.

        Args:
            other: Box to test against
            tolerance: Gap allowed between the boxes on each axis

        Returns:
            True if the boxes overlap within tolerance on X, Y and Z
        """
        for axis in ("x", "y", "z"):
            a_min, a_max = getattr(self.min, axis), getattr(self.max, axis)
            b_min, b_max = getattr(other.min, axis), getattr(other.max, axis)
            if not (a_min <= b_max + tolerance and a_max >= b_min - tolerance):
                return False
        return True

    @classmethod
    def from_points(cls, points: List[Point3D]) -> "BoundingBox3D":
        """Smallest box containing all points."""
        if not points:
            raise ValueError("Cannot build a bounding box from no points")
        return cls(
            min=Point3D(
                x=min(p.x for p in points),
                y=min(p.y for p in points),
                z=min(p.z for p in points),
            ),
            max=Point3D(
                x=max(p.x for p in points),
                y=max(p.y for p in points),
                z=max(p.z for p in points),
            ),
        )


class Segment3D(BaseModel):
    """Bounded straight segment between two points."""
    start: Point3D
    end: Point3D

    model_config = ConfigDict(frozen=True)

    def midpoint(self) -> Point3D:
        return self.start.midpoint(self.end)

    def length(self) -> float:
        return self.start.distance_to(self.end)

    def direction(self) -> Point3D:
        """Unit vector from start to end."""
        return (self.end - self.start).normalized()


class LocationPoint(BaseModel):
    """Element located by a single insertion point."""
    point: Point3D

    model_config = ConfigDict(frozen=True)


class LocationCurve(BaseModel):
    """Element located by a driving curve (wall centerline, beam axis)."""
    start: Point3D
    end: Point3D
    is_line: bool = True  # False for arcs and other non-straight curves

    model_config = ConfigDict(frozen=True)

    def midpoint(self) -> Point3D:
        """Point at the middle of the curve (chord midpoint for non-lines)."""
        return self.start.midpoint(self.end)

    def length(self) -> float:
        return self.start.distance_to(self.end)


Location = Union[LocationPoint, LocationCurve]


class SolidEdge(BaseModel):
    """One edge of a solid, usable as a dimension reference."""
    reference: str  # stable anchor reference understood by the document
    start: Point3D
    end: Point3D
    is_line: bool = True

    model_config = ConfigDict(frozen=True)

    def midpoint(self) -> Point3D:
        """Point halfway along the edge."""
        return self.start.midpoint(self.end)

    def is_horizontal(self, tolerance: float = 0.01) -> bool:
        """Check if a straight edge keeps a constant elevation (within tolerance)."""
        return self.is_line and abs(self.start.z - self.end.z) < tolerance


class Solid(BaseModel):
    """Solid geometry of an element: its volume, face count and edges."""
    volume: float = 0.0
    face_count: int = 0
    edges: List[SolidEdge] = Field(default_factory=list)


class ViewBasis(BaseModel):
    """View coordinate system with origin and basis vectors.

    Attributes:
        origin: View origin point in model coordinates
        right: Right vector - view X axis
        up: Up vector - view Y axis
        view_direction: Direction pointing from the drawing plane towards the viewer
    """
    origin: Point3D = Field(default_factory=Point3D)
    right: Point3D
    up: Point3D
    view_direction: Point3D

    model_config = ConfigDict(frozen=True)

    def transform_to_view_uv(self, point: Point3D) -> Tuple[float, float]:
        """Project a model-space point onto the view's right/up axes."""
        delta = point - self.origin
        return (delta.dot(self.right), delta.dot(self.up))


class ViewInfo(BaseModel):
    """Active drawing view as reported by the document."""
    id: int = 0
    name: str = ""
    view_type: ViewType
    basis: ViewBasis

    model_config = ConfigDict(frozen=True)


_STANDARD_BASES: Dict[str, Tuple[ViewType, Tuple[float, ...], Tuple[float, ...], Tuple[float, ...]]] = {
    "south": (ViewType.ELEVATION, (1, 0, 0), (0, 0, 1), (0, -1, 0)),
    "north": (ViewType.ELEVATION, (-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    "east": (ViewType.ELEVATION, (0, 1, 0), (0, 0, 1), (1, 0, 0)),
    "west": (ViewType.ELEVATION, (0, -1, 0), (0, 0, 1), (-1, 0, 0)),
    "plan": (ViewType.FLOOR_PLAN, (1, 0, 0), (0, 1, 0), (0, 0, 1)),
}


def standard_view(name: str, view_id: int = 0) -> ViewInfo:
    """
    Build one of the standard orthographic views.

    Args:
        name: "south", "north", "east", "west" (elevations) or "plan"
        view_id: Id to give the view

    Returns:
        ViewInfo with the matching basis
    """
    key = name.lower()
    if key not in _STANDARD_BASES:
        raise ValueError(f"Unknown standard view: {name}")

    view_type, right, up, direction = _STANDARD_BASES[key]
    return ViewInfo(
        id=view_id,
        name=f"{key.title()} {'Elevation' if view_type == ViewType.ELEVATION else 'Plan'}",
        view_type=view_type,
        basis=ViewBasis(
            right=Point3D.from_sequence(right),
            up=Point3D.from_sequence(up),
            view_direction=Point3D.from_sequence(direction),
        ),
    )


class ModelElement(BaseModel):
    """Snapshot of one model element as provided by the document."""
    id: int
    kind: ElementKind
    category_name: Optional[str] = None
    name: str = ""
    family_name: Optional[str] = None
    type_name: Optional[str] = None
    is_family_instance: bool = False
    level_id: Optional[int] = None
    host_id: Optional[int] = None
    view_specific: bool = False
    bounding_box: Optional[BoundingBox3D] = None
    location: Optional[Location] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    boundary_loops: List[List[Segment3D]] = Field(default_factory=list)
    solids: Optional[List[Solid]] = None
    solid_loader: Optional[Callable[[], List[Solid]]] = Field(default=None, exclude=True, repr=False)

    def get_solids(self) -> List[Solid]:
        """Solid geometry, loaded on demand from the document."""
        if self.solids is None:
            self.solids = list(self.solid_loader()) if self.solid_loader else []
        return self.solids

    def parameter(self, name: str, default: Any = None) -> Any:
        """Parameter value or default when the element does not carry it."""
        value = self.parameters.get(name)
        return default if value is None else value


class Node(BaseModel):
    """Graph vertex for one building element and its derived attributes."""
    id: int
    kind: Optional[ElementKind] = None
    category: str = "Unknown"
    family: str = "UnknownFamily"
    type_name: str = "UnknownType"
    level_id: Optional[int] = None
    host_id: Optional[int] = None
    bounding_box: Optional[BoundingBox3D] = None

    length: float = 0.0
    height: float = 0.0
    thickness: float = 0.0
    area: float = 0.0
    width: float = 0.0
    depth: float = 0.0
    direction: Point3D = Field(default_factory=Point3D)

    room_name: str = ""
    room_number: str = ""
    level_elevation: float = 0.0

    model_config = ConfigDict(frozen=True)

    @property
    def center(self) -> Optional[Point3D]:
        """Center of the bounding box, if the element has one."""
        return self.bounding_box.center() if self.bounding_box else None

    def __str__(self) -> str:
        return f"Node({self.id}, {self.category}, {self.type_name})"


class Edge(BaseModel):
    """Directed relation between two nodes of the same node set."""
    src: int
    dst: int
    type: EdgeType

    model_config = ConfigDict(frozen=True)


class PredictionRecord(BaseModel):
    """One row of the predictions table for a node (4-class model output)."""
    node_id: int
    predicted_class: int = Field(ge=0, le=3)
    confidence: float = 0.0
    annotation_type: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        """Keep confidence inside [0, 1]."""
        if math.isnan(v):
            return 0.0
        return min(1.0, max(0.0, v))

    @property
    def need_dimension(self) -> bool:
        return self.predicted_class in (1, 3)

    @property
    def need_text(self) -> bool:
        return self.predicted_class in (2, 3)


class ReferenceAnchor(BaseModel):
    """Geometry reference a dimension attaches to, with a representative point."""
    reference: str
    point: Point3D

    model_config = ConfigDict(frozen=True)


class PlacementRequest(BaseModel):
    """Transient request to create one annotation in a view."""
    kind: AnnotationKind
    element_id: int
    view_id: int = 0
    line: Optional[Segment3D] = None  # dimension line
    anchors: List[ReferenceAnchor] = Field(default_factory=list)
    point: Optional[Point3D] = None  # text insertion point
    text: Optional[str] = None
    leader_end: Optional[Point3D] = None

    @model_validator(mode="after")
    def validate_payload(self) -> "PlacementRequest":
        """Dimensions need a line and two distinct anchors; texts need a point and content."""
        if self.kind == AnnotationKind.DIMENSION:
            if self.line is None:
                raise ValueError("Dimension request requires a dimension line")
            references = {anchor.reference for anchor in self.anchors}
            if len(self.anchors) != 2 or len(references) != 2:
                raise ValueError("Dimension request requires exactly two distinct references")
        else:
            if self.point is None or not self.text:
                raise ValueError("Text request requires a point and non-empty text")
        return self


class PlacementOutcome(BaseModel):
    """Result of one placement attempt with its audit reason."""
    success: bool
    reason: str
    request: Optional[PlacementRequest] = None
    annotation_id: Optional[int] = None


class CreatedAnnotation(BaseModel):
    """Annotation accepted by the document."""
    annotation_id: int
    request: PlacementRequest
