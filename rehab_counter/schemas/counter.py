"""Counter query schemas."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from rehab_counter.models.repetition import RepetitionEvent


class LimbTallyResponse(BaseModel):
    """Tallies by classification for one limb (or the total)."""
    success: int = 0
    failure: int = 0
    invalid: int = 0
    no_count: int = 0
    total: int = 0
    success_rate: float = 0.0  # NoCount excluded from the denominator

    class Config:
        from_attributes = True


class RepetitionEventResponse(BaseModel):
    """Schema for one recorded repetition."""
    sequence_number: int
    exercise: str
    limb: str
    classification: str
    timestamp: float
    frame_index: int
    direction: Optional[str] = None
    diagnostic_code: Optional[str] = None
    diagnostic_description: Optional[str] = None
    metrics: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_event(cls, event: RepetitionEvent) -> "RepetitionEventResponse":
        diagnostic = event.diagnostic
        return cls(
            sequence_number=event.sequence_number,
            exercise=event.exercise.value,
            limb=event.limb.value,
            classification=event.classification.value,
            timestamp=event.timestamp,
            frame_index=event.frame_index,
            direction=event.direction.value if event.direction else None,
            diagnostic_code=diagnostic.code if diagnostic else None,
            diagnostic_description=diagnostic.description if diagnostic else None,
            metrics=dict(diagnostic.metrics) if diagnostic else None,
        )


class CounterSnapshotResponse(BaseModel):
    """Everything a live display needs for one exercise session."""
    exercise: str
    frames_processed: int
    left: LimbTallyResponse
    right: LimbTallyResponse
    total: LimbTallyResponse
    limb_status: Dict[str, str]
    events: List[RepetitionEventResponse]
    extra: Optional[Dict[str, Any]] = None  # Exercise-specific counters
