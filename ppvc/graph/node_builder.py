"""
Node construction from model elements.

Each collected element becomes one immutable Node with identity, hierarchy
back-references, bounding box and kind-specific attributes. Missing
parameters fall back to 0 or placeholder strings; an element whose
extraction fails is skipped without aborting the pass.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from loguru import logger

from ppvc.core.config import Config, get_default_config
from ppvc.core.models import ElementKind, LocationCurve, ModelElement, Node
from ppvc.document.base import ModelDocument


def _number(element: ModelElement, name: str) -> float:
    """Numeric parameter value, 0.0 when missing or not numeric."""
    value = element.parameter(name, 0.0)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _text(element: ModelElement, name: str) -> str:
    value = element.parameter(name, "")
    return str(value)


def _wall_attributes(element: ModelElement) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {
        "length": _number(element, "length"),
        "height": _number(element, "height"),
        "thickness": _number(element, "thickness"),
    }

    # Direction only exists for straight location lines
    location = element.location
    if isinstance(location, LocationCurve) and location.is_line:
        attributes["direction"] = (location.end - location.start).normalized()

    return attributes


def _floor_attributes(element: ModelElement) -> Dict[str, Any]:
    return {
        "thickness": _number(element, "thickness"),
        "area": _number(element, "area"),
    }


def _framing_attributes(element: ModelElement) -> Dict[str, Any]:
    return {
        "length": _number(element, "length"),
        "width": _number(element, "width"),
        "depth": _number(element, "depth"),
    }


def _room_attributes(element: ModelElement) -> Dict[str, Any]:
    return {
        "room_name": _text(element, "room_name") or element.name,
        "room_number": _text(element, "room_number"),
        "area": _number(element, "area"),
        "height": _number(element, "height"),
    }


def _level_attributes(element: ModelElement) -> Dict[str, Any]:
    return {"level_elevation": _number(element, "elevation")}


ATTRIBUTE_RULES: Dict[ElementKind, Callable[[ModelElement], Dict[str, Any]]] = {
    ElementKind.WALL: _wall_attributes,
    ElementKind.FLOOR: _floor_attributes,
    ElementKind.STRUCTURAL_FRAMING: _framing_attributes,
    ElementKind.ROOM: _room_attributes,
    ElementKind.LEVEL: _level_attributes,
}


def build_node(element: ModelElement) -> Node:
    """
    Convert one element into a Node.

    Args:
        element: Element snapshot from the document

    Returns:
        Node with common and kind-specific attributes
    """
    attributes: Dict[str, Any] = {
        "id": element.id,
        "kind": element.kind,
        "category": element.category_name or element.kind.category_name or "Unknown",
        "family": element.family_name or element.type_name or "UnknownFamily",
        "type_name": element.type_name or "UnknownType",
        "level_id": element.level_id,
        "host_id": element.host_id,
        "bounding_box": element.bounding_box,
    }

    rule = ATTRIBUTE_RULES.get(element.kind)
    if rule is not None:
        attributes.update(rule(element))

    return Node(**attributes)


class NodeBuilder:
    """
    Builds the node set of one export pass.

    Collection is restricted to the configured category set, skips
    view-specific elements and, when a whitelist is given, every id not on it.
    """

    def __init__(self, config: Optional[Config] = None):
        """
        Initialize node builder.

        Args:
            config: Configuration (uses default if None)
        """
        self.config = config or get_default_config()
        self.skipped: List[int] = []

    def build(self, elements: Iterable[ModelElement], whitelist: Optional[Set[int]] = None) -> List[Node]:
        """
        Build nodes for a sequence of elements.

        Args:
            elements: Element snapshots in document order
            whitelist: Optional set of allowed ids (strict: others are dropped)

        Returns:
            List of Node in element order
        """
        allowed_kinds = set(self.config.get_element_categories())
        nodes: List[Node] = []
        self.skipped = []

        for element in elements:
            if element.view_specific or element.kind not in allowed_kinds:
                continue
            if whitelist is not None and element.id not in whitelist:
                continue

            try:
                nodes.append(build_node(element))
            except Exception as e:
                self.skipped.append(element.id)
                logger.warning(f"Skipping element {element.id} ({element.kind.value}): {e}")

        logger.debug(f"Built {len(nodes)} nodes, skipped {len(self.skipped)} elements")
        return nodes

    def collect(self, document: ModelDocument, whitelist: Optional[Set[int]] = None) -> List[Node]:
        """
        Collect elements from a document and build their nodes.

        Args:
            document: Model document to read
            whitelist: Optional set of allowed ids

        Returns:
            List of Node
        """
        logger.info(f"Collecting nodes from: {document.title}")
        elements = document.collect_elements(self.config.get_element_categories())
        nodes = self.build(elements, whitelist)
        logger.success(f"Collected {len(nodes)} nodes from {len(elements)} elements")
        return nodes


def collect_nodes(
    document: ModelDocument,
    whitelist: Optional[Set[int]] = None,
    config: Optional[Config] = None,
) -> List[Node]:
    """
    Convenience function to build the node set of a document.

    Args:
        document: Model document to read
        whitelist: Optional set of allowed element ids
        config: Configuration (uses default if None)

    Returns:
        List of Node
    """
    return NodeBuilder(config=config).collect(document, whitelist)
