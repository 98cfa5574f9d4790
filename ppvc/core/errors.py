"""
Exception taxonomy for graph export and annotation passes.

Per-element failures derive from PlacementError and are recovered by the
orchestrator; FatalPassFailure aborts the whole pass.
"""

from typing import Any, Optional


class PPVCError(Exception):
    """Base class for all errors raised by the ppvc package."""


class PlacementError(PPVCError):
    """Recoverable failure while placing one element's annotation."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class GeometryUnavailable(PlacementError):
    """The element has no usable solid, edge, box or curve."""


class ReferenceInsufficient(PlacementError):
    """Fewer than two distinguishable anchor references were found."""


class NativeRejection(PlacementError):
    """The document refused to create the requested annotation."""


class FatalPassFailure(PPVCError):
    """Uncaught failure during the mutation phase; nothing was committed."""

    def __init__(self, message: str, report: Optional[Any] = None):
        super().__init__(message)
        self.report = report
