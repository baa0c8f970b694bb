"""Domain models."""

from rehab_counter.models.repetition import (
    Classification,
    Diagnostic,
    DiagnosticCode,
    Direction,
    ExerciseType,
    LimbSide,
    RepetitionEvent,
)

__all__ = [
    "Classification",
    "Diagnostic",
    "DiagnosticCode",
    "Direction",
    "ExerciseType",
    "LimbSide",
    "RepetitionEvent",
]
