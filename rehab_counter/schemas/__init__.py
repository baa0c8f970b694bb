"""Response schemas."""

from rehab_counter.schemas.counter import (
    CounterSnapshotResponse,
    LimbTallyResponse,
    RepetitionEventResponse,
)

__all__ = [
    "CounterSnapshotResponse",
    "LimbTallyResponse",
    "RepetitionEventResponse",
]
