"""
Interpretation of annotation-class predictions.

The classifier emits one of four classes per node:
0 = no annotation, 1 = dimension, 2 = text, 3 = dimension and text.
"""

from enum import Enum

from ppvc.core.models import PredictionRecord


class NeedSet(str, Enum):
    """Annotations a node needs."""
    NONE = "none"
    DIMENSION = "dimension"
    TEXT = "text"
    BOTH = "both"

    @property
    def need_dimension(self) -> bool:
        return self in (NeedSet.DIMENSION, NeedSet.BOTH)

    @property
    def need_text(self) -> bool:
        return self in (NeedSet.TEXT, NeedSet.BOTH)


_NEEDS_BY_CLASS = {
    0: NeedSet.NONE,
    1: NeedSet.DIMENSION,
    2: NeedSet.TEXT,
    3: NeedSet.BOTH,
}


def interpret(predicted_class: int) -> NeedSet:
    """
    Map a classification code to the annotations it asks for.

    Args:
        predicted_class: Class code in 0..3

    Returns:
        NeedSet

    Raises:
        ValueError: If the code is outside 0..3
    """
    try:
        return _NEEDS_BY_CLASS[predicted_class]
    except KeyError:
        raise ValueError(f"Unknown prediction class: {predicted_class}") from None


def interpret_record(record: PredictionRecord) -> NeedSet:
    """Map a prediction row to the annotations it asks for."""
    return interpret(record.predicted_class)
