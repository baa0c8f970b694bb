"""Repetition events with classification and diagnostic detail."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ExerciseType(Enum):
    """Supported exercise types."""
    HIGH_KNEE = "high_knee"
    STRIDE = "stride"
    HEEL_TOE = "heel_toe"


class LimbSide(Enum):
    """Limb (leg or foot) identifier."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def opposite(self) -> "LimbSide":
        return LimbSide.RIGHT if self is LimbSide.LEFT else LimbSide.LEFT


class Classification(Enum):
    """Terminal verdict for one resolved motion episode."""
    SUCCESS = "success"
    FAILURE = "failure"
    INVALID = "invalid"
    NO_COUNT = "no_count"  # Tracked, excluded from the success rate


class Direction(Enum):
    """Step direction for the heel-movement exercise."""
    FORWARD = "forward"
    BACKWARD = "backward"
    NO_CLEAR_MOVEMENT = "no_clear_movement"


class DiagnosticCode:
    """
    Explicit diagnostic codes attached to each verdict.
    Each code maps to the quantity that decided the classification.
    """
    # Angle exercises
    MIN_ANGLE = "min_angle"
    OUT_OF_RANGE = "out_of_range"

    # Heel movement
    FEET_TOGETHER = "feet_together"
    FORWARD_ALIGNED = "forward_aligned"
    FORWARD_DISTANCE = "forward_distance"
    FORWARD_DEPTH = "forward_depth"
    BACKWARD_ALIGNED = "backward_aligned"
    BACKWARD_DISTANCE = "backward_distance"
    BACKWARD_DEPTH = "backward_depth"

    @classmethod
    def get_description(cls, code: str) -> str:
        """Get human-readable description of a diagnostic code."""
        descriptions = {
            cls.MIN_ANGLE: "Classified on the smallest knee angle reached during the movement",
            cls.OUT_OF_RANGE: "Smallest knee angle fell outside every scoring band",
            cls.FEET_TOGETHER: "Moving heel stayed beside the support heel",
            cls.FORWARD_ALIGNED: "Heel placed against the support toe",
            cls.FORWARD_DISTANCE: "Heel landed too far from the support toe",
            cls.FORWARD_DEPTH: "Heel and support toe were at different depths",
            cls.BACKWARD_ALIGNED: "Toe placed against the support heel",
            cls.BACKWARD_DISTANCE: "Toe landed too far from the support heel",
            cls.BACKWARD_DEPTH: "Toe and support heel were at different depths",
        }
        return descriptions.get(code, code)


@dataclass(frozen=True)
class Diagnostic:
    """The numeric quantities that produced a verdict."""
    code: str
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def description(self) -> str:
        return DiagnosticCode.get_description(self.code)


@dataclass(frozen=True)
class RepetitionEvent:
    """
    One classified repetition.

    Events are numbered per session in the order they were recorded.
    """
    sequence_number: int
    exercise: ExerciseType
    limb: LimbSide
    classification: Classification
    timestamp: float
    frame_index: int
    direction: Optional[Direction] = None
    diagnostic: Optional[Diagnostic] = None

    def __repr__(self) -> str:
        return (
            f"<RepetitionEvent(#{self.sequence_number}, {self.limb.value}, "
            f"{self.classification.value}, t={self.timestamp:.2f}s)>"
        )
