"""
Per-limb and total tallies plus the ordered repetition history.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List

from rehab_counter.cv.limb_state import EpisodeResult
from rehab_counter.models.repetition import (
    Classification,
    ExerciseType,
    LimbSide,
    RepetitionEvent,
)

logger = logging.getLogger(__name__)


@dataclass
class LimbTally:
    """Counts by classification."""
    success: int = 0
    failure: int = 0
    invalid: int = 0
    no_count: int = 0

    def add(self, classification: Classification):
        if classification == Classification.SUCCESS:
            self.success += 1
        elif classification == Classification.FAILURE:
            self.failure += 1
        elif classification == Classification.INVALID:
            self.invalid += 1
        else:
            self.no_count += 1

    @property
    def scored(self) -> int:
        """Repetitions that count toward the success rate."""
        return self.success + self.failure + self.invalid

    @property
    def total(self) -> int:
        return self.scored + self.no_count

    @property
    def success_rate(self) -> float:
        return self.success / self.scored if self.scored else 0.0

    def merged(self, other: "LimbTally") -> "LimbTally":
        return LimbTally(
            success=self.success + other.success,
            failure=self.failure + other.failure,
            invalid=self.invalid + other.invalid,
            no_count=self.no_count + other.no_count,
        )

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["total"] = self.total
        data["success_rate"] = self.success_rate
        return data


class CounterAggregator:
    """
    Turns classified episodes into numbered RepetitionEvents.

    The history is append-only until `reset()`.
    """

    def __init__(self, exercise: ExerciseType):
        self.exercise = exercise
        self._tallies: Dict[LimbSide, LimbTally] = {}
        self._history: List[RepetitionEvent] = []
        self.reset()

    def record(self, result: EpisodeResult) -> RepetitionEvent:
        event = RepetitionEvent(
            sequence_number=len(self._history) + 1,
            exercise=self.exercise,
            limb=result.limb,
            classification=result.classification,
            timestamp=result.timestamp,
            frame_index=result.frame_index,
            direction=result.direction,
            diagnostic=result.diagnostic,
        )
        self._tallies[result.limb].add(result.classification)
        self._history.append(event)

        direction = f" {event.direction.value}" if event.direction else ""
        logger.info(
            f"{self.exercise.value} #{event.sequence_number} {event.limb.value}{direction}: "
            f"{event.classification.value} (frame {event.frame_index})"
        )
        return event

    def tally(self, limb: LimbSide) -> LimbTally:
        return self._tallies[limb]

    @property
    def total(self) -> LimbTally:
        return self._tallies[LimbSide.LEFT].merged(self._tallies[LimbSide.RIGHT])

    @property
    def history(self) -> List[RepetitionEvent]:
        return list(self._history)

    def get_counts(self) -> Dict[str, Dict]:
        return {
            LimbSide.LEFT.value: self._tallies[LimbSide.LEFT].to_dict(),
            LimbSide.RIGHT.value: self._tallies[LimbSide.RIGHT].to_dict(),
            "total": self.total.to_dict(),
        }

    def diagnostic_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for event in self._history:
            if event.diagnostic:
                counts[event.diagnostic.code] = counts.get(event.diagnostic.code, 0) + 1
        return counts

    def reset(self):
        self._tallies = {side: LimbTally() for side in LimbSide}
        self._history = []
