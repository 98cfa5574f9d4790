"""
IFC-backed model document using IfcOpenShell.

Reads building elements from an IFC model and reports them in feet, the
native unit of the placement rules. Solids are triangulated with
ifcopenshell.geom in world coordinates. Committed annotations are written to
a DXF sheet for the active view.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
from loguru import logger

try:
    import ifcopenshell
    import ifcopenshell.geom
    import ifcopenshell.util.element
    import ifcopenshell.util.placement
    import ifcopenshell.util.unit
except ImportError:
    raise ImportError(
        "IfcOpenShell is required for IFC input. "
        "Install with: pip install ifcopenshell"
    )

from ppvc.core.models import (
    BoundingBox3D,
    CreatedAnnotation,
    ElementKind,
    LocationCurve,
    LocationPoint,
    ModelElement,
    Point3D,
    Segment3D,
    Solid,
    SolidEdge,
    ViewInfo,
)
from ppvc.document.base import ModelDocument
from ppvc.document.dxf_sheet import DxfSheet

FEET_PER_METER = 1.0 / 0.3048

# IFC classes (subtypes included) and the kind they map to; slabs are split
# on their predefined type
KIND_BY_CLASS: Tuple[Tuple[str, ElementKind], ...] = (
    ("IfcWall", ElementKind.WALL),
    ("IfcBeam", ElementKind.STRUCTURAL_FRAMING),
    ("IfcMember", ElementKind.STRUCTURAL_FRAMING),
    ("IfcFooting", ElementKind.STRUCTURAL_FOUNDATION),
    ("IfcPile", ElementKind.STRUCTURAL_FOUNDATION),
    ("IfcBuildingElementProxy", ElementKind.GENERIC_MODEL),
    ("IfcSpace", ElementKind.ROOM),
    ("IfcBuildingStorey", ElementKind.LEVEL),
)

IFC_CLASSES = ("IfcSlab",) + tuple(ifc_class for ifc_class, _ in KIND_BY_CLASS)

# Quantity and property names searched for each parameter, first hit wins
LENGTH_KEYS = ("Length", "NetLength", "GrossLength")
HEIGHT_KEYS = ("Height", "NetHeight", "GrossHeight", "FinishCeilingHeight")
THICKNESS_KEYS = ("Thickness", "Width", "Depth")
AREA_KEYS = ("NetArea", "GrossArea", "NetFloorArea", "GrossFloorArea", "Area")
WIDTH_KEYS = ("Width", "OverallWidth")
DEPTH_KEYS = ("Depth", "Height", "OverallDepth")

FAMILY_INSTANCE_KINDS = (
    ElementKind.STRUCTURAL_FRAMING,
    ElementKind.STRUCTURAL_FOUNDATION,
    ElementKind.GENERIC_MODEL,
)


def element_kind(product) -> Optional[ElementKind]:
    """
    Classify an IFC product.

    Slabs split on their predefined type: base slabs count as foundations and
    roofs are not collected.

    Args:
        product: IFC entity

    Returns:
        ElementKind, or None for products that are not collected
    """
    if product.is_a("IfcSlab"):
        predefined = getattr(product, "PredefinedType", None)
        if predefined == "ROOF":
            return None
        if predefined == "BASESLAB":
            return ElementKind.STRUCTURAL_FOUNDATION
        return ElementKind.FLOOR

    for ifc_class, kind in KIND_BY_CLASS:
        if product.is_a(ifc_class):
            return kind
    return None


def mesh_volume(verts: np.ndarray, faces: np.ndarray) -> float:
    """Enclosed volume of a closed triangle mesh (signed tetrahedron sum)."""
    if len(faces) == 0:
        return 0.0
    a = verts[faces[:, 0]]
    b = verts[faces[:, 1]]
    c = verts[faces[:, 2]]
    return float(abs(np.einsum("ij,ij->i", a, np.cross(b, c)).sum()) / 6.0)


def triangle_edges(faces: np.ndarray) -> np.ndarray:
    """Unique undirected edges of a triangle list, in first-seen order."""
    if len(faces) == 0:
        return np.zeros((0, 2), dtype=int)
    pairs = np.concatenate([faces[:, [0, 1]], faces[:, [1, 2]], faces[:, [2, 0]]], axis=1).reshape(-1, 2)
    ordered = np.sort(pairs, axis=1)
    _, first = np.unique(ordered, axis=0, return_index=True)
    return ordered[np.sort(first)]


def solid_from_mesh(
    verts: np.ndarray,
    faces: np.ndarray,
    edges: Optional[np.ndarray] = None,
    reference_prefix: str = "solid",
) -> Solid:
    """
    Build a Solid from a triangulated mesh.

    Args:
        verts: (n, 3) vertex coordinates in feet
        faces: (k, 3) triangle vertex indices
        edges: (m, 2) edge vertex indices (derived from faces if None or empty)
        reference_prefix: Prefix of the edge references (usually the GlobalId)

    Returns:
        Solid with one straight edge per mesh edge
    """
    verts = np.asarray(verts, dtype=float).reshape(-1, 3)
    faces = np.asarray(faces, dtype=int).reshape(-1, 3)
    if edges is None or len(edges) == 0:
        edges = triangle_edges(faces)
    edges = np.asarray(edges, dtype=int).reshape(-1, 2)

    solid_edges = [
        SolidEdge(
            reference=f"{reference_prefix}:edge:{i}",
            start=Point3D.from_sequence(verts[start]),
            end=Point3D.from_sequence(verts[end]),
        )
        for i, (start, end) in enumerate(edges)
    ]

    return Solid(volume=mesh_volume(verts, faces), face_count=len(faces), edges=solid_edges)


def footprint_loop(box: BoundingBox3D) -> List[Segment3D]:
    """Rectangle around a box's plan extents at its bottom elevation."""
    z = box.min.z
    corners = [
        Point3D(x=box.min.x, y=box.min.y, z=z),
        Point3D(x=box.max.x, y=box.min.y, z=z),
        Point3D(x=box.max.x, y=box.max.y, z=z),
        Point3D(x=box.min.x, y=box.max.y, z=z),
    ]
    return [Segment3D(start=corners[i], end=corners[(i + 1) % 4]) for i in range(4)]


class IfcDocument(ModelDocument):
    """Document over an IfcOpenShell model."""

    def __init__(self, ifc_file, view: Optional[ViewInfo] = None, title: Optional[str] = None):
        """
        Initialize document.

        Args:
            ifc_file: Opened ifcopenshell file
            view: View to annotate (None means no view is open)
            title: Document title (defaults to the project name)
        """
        projects = ifc_file.by_type("IfcProject")
        if title is None:
            title = (projects[0].Name if projects else None) or "IFC model"
        super().__init__(title=title)

        self.ifc = ifc_file
        self.view = view
        self.sheet: Optional[DxfSheet] = DxfSheet(view) if view is not None else None
        self.annotations: List[CreatedAnnotation] = []

        # Project length unit -> feet
        self.length_scale = ifcopenshell.util.unit.calculate_unit_scale(ifc_file) * FEET_PER_METER

        self._settings = None
        self._elements: Optional[List[ModelElement]] = None
        self._meshes: Dict[int, Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]]] = {}
        self._solids: Dict[int, List[Solid]] = {}

    @property
    def settings(self):
        """Geometry settings, created on first use."""
        if self._settings is None:
            self._settings = ifcopenshell.geom.settings()
            self._settings.set(self._settings.USE_WORLD_COORDS, True)
        return self._settings

    @classmethod
    def open(cls, path: Union[str, Path], view: Optional[ViewInfo] = None) -> "IfcDocument":
        """
        Open an IFC file.

        Args:
            path: Path to the .ifc file
            view: View to annotate

        Returns:
            IfcDocument
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"IFC file not found: {path}")

        logger.info(f"Loading IFC file: {path}")
        return cls(ifcopenshell.open(str(path)), view=view, title=path.stem)

    # ------------------------------------------------------------------
    # ModelDocument contract
    # ------------------------------------------------------------------

    def collect_elements(self, kinds: Iterable[ElementKind]) -> List[ModelElement]:
        wanted = set(kinds)
        return [element for element in self._load() if element.kind in wanted]

    def active_view(self) -> Optional[ViewInfo]:
        return self.view

    def _publish(self, annotations: List[CreatedAnnotation]) -> None:
        # The sheet undoes its own partial writes, so a failure here commits nothing
        if self.sheet is not None:
            self.sheet.add_annotations(annotations)
        self.annotations.extend(annotations)

    # ------------------------------------------------------------------
    # Element extraction
    # ------------------------------------------------------------------

    def _load(self) -> List[ModelElement]:
        if self._elements is not None:
            return self._elements

        products: Dict[int, Any] = {}
        for ifc_class in IFC_CLASSES:
            for product in self.ifc.by_type(ifc_class):
                products[product.id()] = product

        elements = []
        for product_id in sorted(products):
            product = products[product_id]
            kind = element_kind(product)
            if kind is None:
                continue
            try:
                elements.append(self._to_element(product, kind))
            except Exception as e:
                logger.warning(f"Failed to read {product.is_a()} #{product_id}: {e}")

        logger.info(f"Read {len(elements)} elements from {self.title}")
        self._elements = elements
        return elements

    def _to_element(self, product, kind: ElementKind) -> ModelElement:
        type_object = ifcopenshell.util.element.get_type(product)
        object_type = getattr(product, "ObjectType", None) or ""
        family_name = object_type.split(":")[0] if object_type else None
        type_name = type_object.Name if type_object is not None and type_object.Name else None
        if type_name is None and object_type:
            type_name = object_type.split(":")[-1]

        box = self._bounding_box(product) if kind != ElementKind.LEVEL else None

        element = ModelElement(
            id=product.id(),
            kind=kind,
            category_name=kind.category_name,
            name=product.Name or "",
            family_name=family_name,
            type_name=type_name,
            is_family_instance=kind in FAMILY_INSTANCE_KINDS,
            level_id=self._level_id(product, kind),
            host_id=self._host_id(product),
            bounding_box=box,
            location=self._location(product),
            parameters=self._parameters(product, kind),
            boundary_loops=[footprint_loop(box)] if kind == ElementKind.ROOM and box else [],
            solid_loader=lambda: self.solids_for(product),
        )
        return element

    def _level_id(self, product, kind: ElementKind) -> Optional[int]:
        if kind == ElementKind.LEVEL:
            return None
        container = ifcopenshell.util.element.get_container(product, should_get_direct=True)
        if container is None:
            container = ifcopenshell.util.element.get_aggregate(product)
        if container is not None and container.is_a("IfcBuildingStorey"):
            return container.id()
        return None

    def _host_id(self, product) -> Optional[int]:
        parent = ifcopenshell.util.element.get_aggregate(product)
        if parent is not None and parent.is_a("IfcElement"):
            return parent.id()
        return None

    def _properties(self, product) -> Dict[str, Any]:
        """All quantity and property values, quantity sets first."""
        merged: Dict[str, Any] = {}
        psets = ifcopenshell.util.element.get_psets(product)
        for name in sorted(psets, key=lambda n: (not n.startswith("Qto_"), n)):
            for key, value in psets[name].items():
                if key != "id" and key not in merged:
                    merged[key] = value
        return merged

    @staticmethod
    def _first_number(properties: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[float]:
        for key in keys:
            value = properties.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value)
        return None

    def _parameters(self, product, kind: ElementKind) -> Dict[str, Any]:
        properties = self._properties(product)
        linear = self.length_scale
        square = self.length_scale ** 2
        parameters: Dict[str, Any] = {}

        def put(name: str, keys: Tuple[str, ...], scale: float) -> None:
            value = self._first_number(properties, keys)
            if value is not None:
                parameters[name] = value * scale

        if kind == ElementKind.WALL:
            put("length", LENGTH_KEYS, linear)
            put("height", HEIGHT_KEYS, linear)
            put("thickness", THICKNESS_KEYS, linear)
        elif kind in (ElementKind.FLOOR, ElementKind.STRUCTURAL_FOUNDATION):
            put("thickness", THICKNESS_KEYS, linear)
            put("area", AREA_KEYS, square)
        elif kind == ElementKind.STRUCTURAL_FRAMING:
            put("length", LENGTH_KEYS, linear)
            put("width", WIDTH_KEYS, linear)
            put("depth", DEPTH_KEYS, linear)
        elif kind == ElementKind.ROOM:
            long_name = getattr(product, "LongName", None)
            parameters["room_name"] = long_name or product.Name or ""
            parameters["room_number"] = (product.Name or "") if long_name else ""
            put("area", AREA_KEYS, square)
            put("height", HEIGHT_KEYS, linear)
        elif kind == ElementKind.LEVEL:
            parameters["elevation"] = self._elevation(product)

        return parameters

    def _elevation(self, storey) -> float:
        if storey.Elevation is not None:
            return float(storey.Elevation) * self.length_scale
        if storey.ObjectPlacement is not None:
            matrix = ifcopenshell.util.placement.get_local_placement(storey.ObjectPlacement)
            return float(matrix[2][3]) * self.length_scale
        return 0.0

    def _location(self, product):
        """Axis curve for products that have one, otherwise the placement origin."""
        if getattr(product, "ObjectPlacement", None) is None:
            return None

        matrix = np.array(ifcopenshell.util.placement.get_local_placement(product.ObjectPlacement), dtype=float)
        axis = self._axis_points(product)
        if axis is not None and len(axis) >= 2:
            world = [(matrix @ np.array([p[0], p[1], p[2], 1.0]))[:3] * self.length_scale for p in (axis[0], axis[-1])]
            return LocationCurve(
                start=Point3D.from_sequence(world[0]),
                end=Point3D.from_sequence(world[1]),
                is_line=len(axis) == 2,
            )

        return LocationPoint(point=Point3D.from_sequence(matrix[:3, 3] * self.length_scale))

    @staticmethod
    def _axis_points(product) -> Optional[List[Tuple[float, float, float]]]:
        representation = getattr(product, "Representation", None)
        if representation is None:
            return None

        for shape in representation.Representations:
            if shape.RepresentationIdentifier != "Axis" or not shape.Items:
                continue
            curve = shape.Items[0]
            if curve.is_a("IfcPolyline"):
                coords = [tuple(p.Coordinates) for p in curve.Points]
            elif curve.is_a("IfcIndexedPolyCurve"):
                coords = [tuple(c) for c in curve.Points.CoordList]
            else:
                continue
            return [(c[0], c[1], c[2] if len(c) > 2 else 0.0) for c in coords]
        return None

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _mesh(self, product) -> Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """Triangulated shape in feet, or None if the product has no body."""
        product_id = product.id()
        if product_id in self._meshes:
            return self._meshes[product_id]

        mesh = None
        if getattr(product, "Representation", None) is not None:
            try:
                shape = ifcopenshell.geom.create_shape(self.settings, product)
                # ifcopenshell.geom reports meters
                verts = np.array(shape.geometry.verts, dtype=float).reshape(-1, 3) * FEET_PER_METER
                faces = np.array(shape.geometry.faces, dtype=int).reshape(-1, 3)
                edges = np.array(shape.geometry.edges, dtype=int).reshape(-1, 2)
                if len(verts) > 0:
                    mesh = (verts, faces, edges)
            except Exception as e:
                logger.debug(f"No shape for {product.is_a()} #{product_id}: {e}")

        self._meshes[product_id] = mesh
        return mesh

    def _bounding_box(self, product) -> Optional[BoundingBox3D]:
        mesh = self._mesh(product)
        if mesh is None:
            return None
        verts = mesh[0]
        return BoundingBox3D(
            min=Point3D.from_sequence(verts.min(axis=0)),
            max=Point3D.from_sequence(verts.max(axis=0)),
        )

    def solids_for(self, product) -> List[Solid]:
        """
        Solids of a product, computed once per product.

        Args:
            product: IFC entity

        Returns:
            List with one Solid, or an empty list if the product has no body
        """
        product_id = product.id()
        if product_id not in self._solids:
            mesh = self._mesh(product)
            if mesh is None:
                self._solids[product_id] = []
            else:
                verts, faces, edges = mesh
                prefix = getattr(product, "GlobalId", None) or str(product_id)
                self._solids[product_id] = [solid_from_mesh(verts, faces, edges, reference_prefix=prefix)]
        return self._solids[product_id]
