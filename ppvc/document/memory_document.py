"""
In-memory model document.

Holds element snapshots and a view supplied by the caller. Used for tests and
for driving the passes from already-extracted data.
"""

from typing import Iterable, List, Optional, Set

from ppvc.core.models import (
    AnnotationKind,
    CreatedAnnotation,
    ElementKind,
    ModelElement,
    PlacementRequest,
    ViewInfo,
)
from ppvc.document.base import ModelDocument


class InMemoryDocument(ModelDocument):
    """Document backed by plain lists."""

    def __init__(
        self,
        elements: Optional[List[ModelElement]] = None,
        view: Optional[ViewInfo] = None,
        title: str = "In-memory model",
        reject_element_ids: Optional[Set[int]] = None,
    ):
        """
        Initialize document.

        Args:
            elements: Element snapshots in document order
            view: Active view (None means no view is open)
            title: Document title
            reject_element_ids: Element ids whose annotation requests are refused
        """
        super().__init__(title=title)
        self.elements: List[ModelElement] = list(elements or [])
        self.view = view
        self.reject_element_ids: Set[int] = set(reject_element_ids or ())
        self.annotations: List[CreatedAnnotation] = []

    def collect_elements(self, kinds: Iterable[ElementKind]) -> List[ModelElement]:
        wanted = set(kinds)
        return [e for e in self.elements if e.kind in wanted]

    def active_view(self) -> Optional[ViewInfo]:
        return self.view

    def _accepts(self, request: PlacementRequest) -> bool:
        return request.element_id not in self.reject_element_ids

    def _publish(self, annotations: List[CreatedAnnotation]) -> None:
        self.annotations.extend(annotations)

    def annotations_for(self, element_id: int, kind: Optional[AnnotationKind] = None) -> List[CreatedAnnotation]:
        """Committed annotations created for one element, optionally of one kind."""
        return [
            a for a in self.annotations
            if a.request.element_id == element_id and (kind is None or a.request.kind == kind)
        ]
