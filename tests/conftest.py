"""
Pytest configuration and fixtures for graph export and annotation tests
"""
import pytest

from ppvc.core.models import (
    BoundingBox3D,
    ElementKind,
    LocationCurve,
    ModelElement,
    Point3D,
    Segment3D,
    Solid,
    SolidEdge,
    standard_view,
)
from ppvc.document.memory_document import InMemoryDocument


def point(x, y, z):
    return Point3D(x=x, y=y, z=z)


def box(min_xyz, max_xyz):
    return BoundingBox3D(min=point(*min_xyz), max=point(*max_xyz))


def box_solid(min_xyz, max_xyz, prefix="solid"):
    """
    Axis-aligned box solid with its 12 edges.

    Edge order: 4 bottom edges, 4 top edges, 4 vertical edges.
    """
    x0, y0, z0 = min_xyz
    x1, y1, z1 = max_xyz
    ring = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]

    edges = []
    for z in (z0, z1):
        for i in range(4):
            (ax, ay), (bx, by) = ring[i], ring[(i + 1) % 4]
            edges.append((point(ax, ay, z), point(bx, by, z)))
    for ax, ay in ring:
        edges.append((point(ax, ay, z0), point(ax, ay, z1)))

    return Solid(
        volume=(x1 - x0) * (y1 - y0) * (z1 - z0),
        face_count=6,
        edges=[
            SolidEdge(reference=f"{prefix}:edge:{i}", start=start, end=end)
            for i, (start, end) in enumerate(edges)
        ],
    )


def make_wall(element_id=10, origin=(0.0, 0.0, 0.0), length=10.0, height=10.0, thickness=0.5, **overrides):
    """Straight wall along +X whose solid spans Z=origin.z..origin.z+height."""
    x, y, z = origin
    fields = dict(
        id=element_id,
        kind=ElementKind.WALL,
        category_name="Walls",
        name="Basic Wall",
        family_name="Basic Wall",
        type_name="Generic - 200mm",
        level_id=1,
        bounding_box=box((x, y, z), (x + length, y + thickness, z + height)),
        location=LocationCurve(
            start=point(x, y + thickness / 2, z),
            end=point(x + length, y + thickness / 2, z),
        ),
        parameters={"length": length, "height": height, "thickness": thickness},
        solids=[box_solid((x, y, z), (x + length, y + thickness, z + height), prefix=f"wall{element_id}")],
    )
    fields.update(overrides)
    return ModelElement(**fields)


@pytest.fixture
def sample_elements():
    """One element of every kind, plus a hosted and a view-specific element"""
    return [
        ModelElement(
            id=1,
            kind=ElementKind.LEVEL,
            category_name="Levels",
            name="Level 1",
            type_name="Level Head",
            parameters={"elevation": 10.0},
        ),
        make_wall(),
        ModelElement(
            id=20,
            kind=ElementKind.FLOOR,
            category_name="Floors",
            name="Floor",
            family_name="Floor",
            type_name="Slab 300",
            level_id=1,
            bounding_box=box((0, 0, -1), (10, 10, 0)),
            parameters={"thickness": 1.0, "area": 100.0},
            solids=[box_solid((0, 0, -1), (10, 10, 0), prefix="floor20")],
        ),
        ModelElement(
            id=30,
            kind=ElementKind.STRUCTURAL_FRAMING,
            category_name="Structural Framing",
            name="W12x26",
            family_name="W-Beam",
            type_name="W12x26",
            is_family_instance=True,
            level_id=1,
            bounding_box=box((0, 0, 9), (10, 1, 10)),
            location=LocationCurve(start=point(0, 0.5, 9.5), end=point(10, 0.5, 9.5)),
            parameters={"length": 10.0, "width": 1.0, "depth": 1.0},
            solids=[box_solid((0, 0, 9), (10, 1, 10), prefix="beam30")],
        ),
        ModelElement(
            id=40,
            kind=ElementKind.GENERIC_MODEL,
            category_name="Generic Models",
            name="Planter",
            family_name="Planter",
            type_name="Planter 600",
            is_family_instance=True,
            bounding_box=box((20, 20, 0), (22, 22, 2)),
            solids=[box_solid((20, 20, 0), (22, 22, 2), prefix="generic40")],
        ),
        ModelElement(
            id=41,
            kind=ElementKind.GENERIC_MODEL,
            category_name="Generic Models",
            name="Bracket",
            family_name="Bracket",
            type_name="Bracket 100",
            is_family_instance=True,
            host_id=10,
            level_id=1,
            bounding_box=box((2, 0, 2), (3, 0.5, 3)),
            solids=[box_solid((2, 0, 2), (3, 0.5, 3), prefix="generic41")],
        ),
        ModelElement(
            id=50,
            kind=ElementKind.ROOM,
            category_name="Rooms",
            name="Living 101",
            level_id=1,
            bounding_box=box((0, 0, 0), (10, 10, 9)),
            parameters={"room_name": "Living", "room_number": "101", "area": 100.0, "height": 9.0},
            boundary_loops=[[
                Segment3D(start=point(0, 0, 0), end=point(10, 0, 0)),
                Segment3D(start=point(10, 0, 0), end=point(10, 10, 0)),
                Segment3D(start=point(10, 10, 0), end=point(0, 10, 0)),
                Segment3D(start=point(0, 10, 0), end=point(0, 0, 0)),
            ]],
        ),
        ModelElement(
            id=60,
            kind=ElementKind.STRUCTURAL_FOUNDATION,
            category_name="Structural Foundations",
            family_name="Footing-Rectangular",
            type_name="Footing 3000",
            is_family_instance=True,
            level_id=1,
            bounding_box=box((0, 0, -3), (10, 10, -1)),
            solids=[box_solid((0, 0, -3), (10, 10, -1), prefix="footing60")],
        ),
        make_wall(element_id=70, view_specific=True),
    ]


@pytest.fixture
def south_view():
    return standard_view("south", view_id=500)


@pytest.fixture
def document(sample_elements, south_view):
    """In-memory model with one element of every kind and a south elevation open"""
    return InMemoryDocument(elements=sample_elements, view=south_view, title="PPVC 13_Typ")


@pytest.fixture
def elements_by_id(sample_elements):
    return {element.id: element for element in sample_elements}
