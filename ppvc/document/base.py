"""
Model document contract.

A document supplies element snapshots, solid geometry and the active view,
and accepts annotation requests inside a single transaction. Requests are
buffered while the transaction is open and published only on commit.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from loguru import logger

from ppvc.core.models import CreatedAnnotation, ElementKind, ModelElement, PlacementRequest, ViewInfo


class ModelDocument(ABC):
    """Base class for documents the export and annotation passes run against."""

    def __init__(self, title: str = "Untitled"):
        """
        Initialize document.

        Args:
            title: Document title (used in logs and reports)
        """
        self.title = title
        self._pending: Optional[List[CreatedAnnotation]] = None
        self._transaction_name: Optional[str] = None
        self._next_annotation_id = 1

    @abstractmethod
    def collect_elements(self, kinds: Iterable[ElementKind]) -> List[ModelElement]:
        """
        Collect model element snapshots of the given kinds.

        Args:
            kinds: Element kinds to collect

        Returns:
            List of ModelElement in document order
        """
        raise NotImplementedError

    @abstractmethod
    def active_view(self) -> Optional[ViewInfo]:
        """Return the view annotations are placed in, if any."""
        raise NotImplementedError

    @abstractmethod
    def _publish(self, annotations: List[CreatedAnnotation]) -> None:
        """Make committed annotations part of the document."""
        raise NotImplementedError

    def get_element(self, element_id: int) -> Optional[ModelElement]:
        """Look up one element by id among all collectable kinds."""
        for element in self.collect_elements(list(ElementKind)):
            if element.id == element_id:
                return element
        return None

    @property
    def in_transaction(self) -> bool:
        return self._pending is not None

    @contextmanager
    def transaction(self, name: str = "PPVC Auto Annotate") -> Iterator["ModelDocument"]:
        """
        Open the single mutation unit of a pass.

        Commits all buffered annotations when the block exits normally and
        discards them when it raises.

        Args:
            name: Transaction name shown in logs
        """
        if self._pending is not None:
            raise RuntimeError(f"Transaction '{self._transaction_name}' is already open")

        self._pending = []
        self._transaction_name = name
        logger.debug(f"Started transaction: {name}")

        try:
            yield self
        except BaseException:
            discarded = len(self._pending)
            self._pending = None
            self._transaction_name = None
            logger.warning(f"Rolled back transaction '{name}', discarded {discarded} annotations")
            raise

        pending = self._pending
        self._pending = None
        self._transaction_name = None
        self._publish(pending)
        logger.debug(f"Committed transaction '{name}' with {len(pending)} annotations")

    def create_annotation(self, request: PlacementRequest) -> Optional[int]:
        """
        Request creation of a dimension or text note.

        Args:
            request: Validated placement request

        Returns:
            New annotation id, or None if the document rejected the request

        Raises:
            RuntimeError: If called outside a transaction
        """
        if self._pending is None:
            raise RuntimeError("Annotations can only be created inside a transaction")

        if not self._accepts(request):
            return None

        annotation_id = self._next_annotation_id
        self._next_annotation_id += 1
        self._pending.append(CreatedAnnotation(annotation_id=annotation_id, request=request))
        return annotation_id

    def _accepts(self, request: PlacementRequest) -> bool:
        """Hook for documents that refuse some requests."""
        return True
