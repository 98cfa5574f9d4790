"""
Text note content rules.

Rules are tried in order and the first matching one wins. Lengths are stored
in feet and shown in millimeters.
"""

import math
from typing import Callable, List, Optional, Tuple

from ppvc.core.models import ElementKind, ModelElement, Node

FEET_TO_MM = 304.8


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_mm(feet: float) -> int:
    """Length in feet as whole millimeters."""
    return round_half_away(feet * FEET_TO_MM)


def to_mm2(square_feet: float) -> int:
    """Area in square feet as whole square millimeters."""
    return round_half_away(square_feet * FEET_TO_MM * FEET_TO_MM)


def _room_text(element: ModelElement, node: Optional[Node]) -> str:
    name = node.room_name if node else element.parameter("room_name", element.name)
    number = node.room_number if node else element.parameter("room_number", "")
    area = node.area if node else float(element.parameter("area", 0.0))
    return f"{name} ({number})\nArea: {to_mm2(area)} mm²"


def _wall_text(element: ModelElement, node: Optional[Node]) -> str:
    return (
        f"{element.type_name or ''}\n"
        f"L={to_mm(node.length)}mm, H={to_mm(node.height)}mm, t={to_mm(node.thickness)}mm"
    )


def _floor_text(element: ModelElement, node: Optional[Node]) -> str:
    return f"{element.type_name or ''}\nThk={to_mm(node.thickness)}mm, A={to_mm2(node.area)}mm²"


def _generic_model_text(element: ModelElement, node: Optional[Node]) -> Optional[str]:
    # Generic models carry no meaningful label
    return None


def _fallback_text(element: ModelElement, node: Optional[Node]) -> str:
    category = element.category_name or element.kind.category_name
    family = (element.family_name or "") if element.is_family_instance else ""
    return f"{category} - {element.type_name or ''} {family}".strip()


Rule = Tuple[
    Callable[[ModelElement, Optional[Node]], bool],
    Callable[[ModelElement, Optional[Node]], Optional[str]],
]

TEXT_RULES: List[Rule] = [
    (lambda e, n: e.kind == ElementKind.ROOM, _room_text),
    (lambda e, n: e.kind == ElementKind.WALL and n is not None, _wall_text),
    (lambda e, n: e.kind == ElementKind.FLOOR and n is not None, _floor_text),
    (lambda e, n: e.kind == ElementKind.GENERIC_MODEL, _generic_model_text),
    (lambda e, n: True, _fallback_text),
]


def build_text_content(element: ModelElement, node: Optional[Node] = None) -> Optional[str]:
    """
    Build the text note content for an element.

    Args:
        element: Element to describe
        node: Node built for the element, if any

    Returns:
        Content string, or None when the element gets no text
    """
    for matches, build in TEXT_RULES:
        if matches(element, node):
            return build(element, node)
    return None
