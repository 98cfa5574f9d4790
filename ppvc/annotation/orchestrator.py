"""
Annotation pass orchestration.

Runs one annotation pass over a document: checks the active view, matches
elements to predictions, places text notes and dimensions inside a single
transaction, and accumulates a diagnostic report.

States: Idle -> Collecting -> Placing -> Committed | Aborted
"""

from enum import Enum
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ppvc.annotation.placement_planner import PlacementPlanner
from ppvc.annotation.predictions import interpret_record
from ppvc.core.config import Config, get_default_config
from ppvc.core.errors import FatalPassFailure
from ppvc.core.models import ElementKind, ModelElement, Node, PlacementOutcome, PredictionRecord, ViewInfo
from ppvc.document.base import ModelDocument
from ppvc.graph.node_builder import NodeBuilder

TRANSACTION_NAME = "PPVC Auto Annotate"

# Log tags per kind, as written to the diagnostic log
KIND_TAGS: Dict[ElementKind, str] = {
    ElementKind.WALL: "WALL",
    ElementKind.FLOOR: "FLOOR",
    ElementKind.LEVEL: "LEVEL",
    ElementKind.ROOM: "ROOM",
    ElementKind.STRUCTURAL_FRAMING: "FRAMING",
    ElementKind.GENERIC_MODEL: "GENERIC",
}


class PassState(str, Enum):
    """Lifecycle of an annotation pass."""
    IDLE = "Idle"
    COLLECTING = "Collecting"
    PLACING = "Placing"
    COMMITTED = "Committed"
    ABORTED = "Aborted"


class ReportEntry(BaseModel):
    """One line of the per-element placement log."""
    category: str
    element_id: int
    kind: str  # TEXT, WALL, FLOOR, ..., SKIP
    success: bool
    reason: str = ""

    def to_text(self) -> str:
        if self.kind == "SKIP":
            return f"  [SKIP] {self.category} ID={self.element_id}: {self.reason}"
        status = "PLACED" if self.success else "FAILED"
        return f"  [{self.kind}] {self.category} ID={self.element_id}: {status} - {self.reason}"


class PassReport(BaseModel):
    """Counters and per-element log of one annotation pass."""
    document_title: str = ""
    view_name: str = ""
    state: PassState = PassState.IDLE
    predictions_loaded: int = 0
    candidates: int = 0
    predicted_for_dimension: int = 0
    attempted: int = 0
    succeeded: int = 0
    texts_created: int = 0
    dimensions_created: int = 0
    entries: List[ReportEntry] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    def record(self, element: ModelElement, kind: str, outcome: PlacementOutcome) -> None:
        """Append a placement outcome to the log."""
        self.entries.append(
            ReportEntry(
                category=element.category_name or element.kind.category_name,
                element_id=element.id,
                kind=kind,
                success=outcome.success,
                reason=outcome.reason,
            )
        )

    def to_text(self) -> str:
        """Render the diagnostic log."""
        lines = [
            "=== PPVC Auto Annotate Diagnostic Log ===",
            f"Document Title: {self.document_title}",
            f"Current View: {self.view_name}",
            f"Loaded {self.predictions_loaded} predictions",
            "",
            "=== PLACEMENT LOG ===",
        ]
        lines.extend(entry.to_text() for entry in self.entries)
        lines.extend([
            "",
            "=== DIMENSION DIAGNOSTIC ===",
            f"Elements with predictions: {self.candidates}",
            f"Predicted by model for dimensions: {self.predicted_for_dimension}",
            f"Attempted to create: {self.attempted}",
            f"Successfully created: {self.succeeded}",
            f"Failed to create: {self.failed}",
            "",
            "FINAL RESULTS:",
            f"State: {self.state.value}",
            f"Text notes created: {self.texts_created}",
            f"Dimensions created: {self.dimensions_created}",
        ])
        if self.error:
            lines.append(f"ERROR: {self.error}")
        return "\n".join(lines) + "\n"


class AnnotationOrchestrator:
    """
    Drives one annotation pass.

    The document is mutated only inside a single transaction; any failure
    that escapes per-element handling rolls back every placement of the pass.
    """

    def __init__(self, config: Optional[Config] = None, planner: Optional[PlacementPlanner] = None):
        """
        Initialize orchestrator.

        Args:
            config: Configuration (uses default if None)
            planner: Placement planner (built from config if None)
        """
        self.config = config or get_default_config()
        self.planner = planner or PlacementPlanner(self.config)
        self.state = PassState.IDLE

    def run(
        self,
        document: ModelDocument,
        predictions: Dict[int, PredictionRecord],
        nodes: Optional[List[Node]] = None,
    ) -> PassReport:
        """
        Run one annotation pass.

        Args:
            document: Document to annotate
            predictions: Predictions keyed by node id
            nodes: Node set of the export pass (rebuilt from the document if None)

        Returns:
            PassReport (state Committed, or Aborted if the view is unusable)

        Raises:
            FatalPassFailure: If the mutation phase failed; nothing is committed
        """
        self.state = PassState.IDLE
        report = PassReport(document_title=document.title, predictions_loaded=len(predictions))
        logger.info(f"Starting annotation pass on: {document.title}")

        view = document.active_view()
        if view is None:
            return self._abort(report, "No active view; open an elevation, floor plan, section or detail view")

        report.view_name = view.name
        if view.view_type not in self.config.get_supported_view_types():
            return self._abort(
                report,
                f"Active view type '{view.view_type.value}' is not supported; "
                f"use Elevation, FloorPlan, Section or Detail",
            )

        logger.info(f"Active view: {view.name} ({view.view_type.value})")

        try:
            with document.transaction(TRANSACTION_NAME):
                self.state = PassState.COLLECTING
                elements = document.collect_elements(self.config.get_element_categories())
                if nodes is None:
                    nodes = NodeBuilder(self.config).build(elements)
                node_index: Dict[int, Node] = {node.id: node for node in nodes}

                candidates = [e for e in elements if e.id in predictions]
                logger.debug(f"{len(candidates)} of {len(elements)} elements have predictions")

                self.state = PassState.PLACING
                for element in candidates:
                    self._place(document, element, predictions[element.id], node_index.get(element.id), view, report)
        except Exception as e:
            self.state = PassState.ABORTED
            report.state = PassState.ABORTED
            report.error = f"{type(e).__name__}: {e}"
            report.texts_created = 0
            report.dimensions_created = 0
            logger.error(f"Annotation pass aborted, all placements rolled back: {report.error}")
            raise FatalPassFailure(report.error, report=report) from e

        self.state = PassState.COMMITTED
        report.state = PassState.COMMITTED
        logger.success(
            f"Annotation pass committed: {report.texts_created} text notes, "
            f"{report.dimensions_created} dimensions"
        )
        return report

    def _abort(self, report: PassReport, reason: str) -> PassReport:
        self.state = PassState.ABORTED
        report.state = PassState.ABORTED
        report.error = reason
        logger.warning(f"Annotation pass aborted: {reason}")
        return report

    def _place(
        self,
        document: ModelDocument,
        element: ModelElement,
        prediction: PredictionRecord,
        node: Optional[Node],
        view: ViewInfo,
        report: PassReport,
    ) -> None:
        """Apply one element's prediction."""
        needs = interpret_record(prediction)
        report.candidates += 1

        if needs.need_text:
            outcome = self.planner.place_text_note(document, element, node, view)
            report.record(element, "TEXT", outcome)
            if outcome.success:
                report.texts_created += 1
            else:
                logger.debug(f"Text note for {element.id} not created: {outcome.reason}")

        if not needs.need_dimension:
            return

        report.predicted_for_dimension += 1
        category = element.category_name or element.kind.category_name

        if not self.planner.has_rule(element.kind):
            report.entries.append(
                ReportEntry(
                    category=category,
                    element_id=element.id,
                    kind="SKIP",
                    success=False,
                    reason="Unsupported category for dimensions",
                )
            )
            logger.debug(f"[SKIP] {category} ID={element.id}: unsupported category for dimensions")
            return

        report.attempted += 1
        outcome = self.planner.place_dimension(document, element, node, view)
        report.record(element, KIND_TAGS[element.kind], outcome)

        if outcome.success:
            report.succeeded += 1
            report.dimensions_created += 1
            logger.debug(f"[{KIND_TAGS[element.kind]}] {category} ID={element.id}: {outcome.reason}")
        else:
            logger.warning(f"[{KIND_TAGS[element.kind]}] {category} ID={element.id} failed: {outcome.reason}")
