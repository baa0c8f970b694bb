"""
Common frame loop and query surface shared by every exercise engine.
"""

import logging
from typing import Any, Dict, List, Optional

from rehab_counter.config import Settings, get_settings
from rehab_counter.cv.counter_aggregator import CounterAggregator
from rehab_counter.cv.frame import FrameSample, LegFrame
from rehab_counter.cv.limb_state import EpisodeResult, LimbStateMachine
from rehab_counter.cv.plausibility_gate import AnglePlausibilityGate
from rehab_counter.cv.signal_smoother import SignalSmoother
from rehab_counter.models.repetition import ExerciseType, LimbSide, RepetitionEvent
from rehab_counter.schemas.counter import (
    CounterSnapshotResponse,
    LimbTallyResponse,
    RepetitionEventResponse,
)

logger = logging.getLogger(__name__)


class ExerciseEngine:
    """
    Base exercise engine.

    Frames must arrive in non-decreasing index order; one call at a time.
    Subclasses implement `_process_sample` (returning classified episodes),
    `_reset_state` and `limb_status`.
    """

    EXERCISE: ExerciseType
    LIMBS = (LimbSide.LEFT, LimbSide.RIGHT)

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.counter = CounterAggregator(self.EXERCISE)
        self.frames_processed = 0
        self._last_frame_index: Optional[int] = None

    def process_frame(self, sample: FrameSample) -> List[RepetitionEvent]:
        """
        Process one frame.

        Returns:
            RepetitionEvents recorded on this frame (usually empty)
        """
        if self._last_frame_index is not None and sample.frame_index < self._last_frame_index:
            logger.warning(
                f"{self.EXERCISE.value}: frame {sample.frame_index} arrived after "
                f"frame {self._last_frame_index}; episode state may be inconsistent"
            )
        self._last_frame_index = sample.frame_index
        self.frames_processed += 1

        results = self._process_sample(sample)
        return [self.counter.record(result) for result in results]

    def _process_sample(self, sample: FrameSample) -> List[EpisodeResult]:
        raise NotImplementedError

    def _reset_state(self):
        raise NotImplementedError

    def limb_status(self, limb: LimbSide) -> str:
        raise NotImplementedError

    def reset(self):
        """Clear tallies, history, latches and smoothing for a new session."""
        self.counter.reset()
        self.frames_processed = 0
        self._last_frame_index = None
        self._reset_state()
        logger.info(f"{self.EXERCISE.value} engine reset")

    @property
    def history(self) -> List[RepetitionEvent]:
        return self.counter.history

    def get_counts(self) -> Dict[str, Dict]:
        return self.counter.get_counts()

    def _summary_extra(self) -> Dict[str, Any]:
        return {}

    def get_summary(self) -> Dict[str, Any]:
        """
        Get summary statistics.

        Returns:
            Dictionary with tallies, success rate and diagnostic breakdown
        """
        total = self.counter.total
        summary = {
            "exercise": self.EXERCISE.value,
            "frames_processed": self.frames_processed,
            "total_repetitions": total.total,
            "success": total.success,
            "failure": total.failure,
            "invalid": total.invalid,
            "no_count": total.no_count,
            "success_rate": total.success_rate,
            "limbs": {
                limb.value: self.counter.tally(limb).to_dict() for limb in self.LIMBS
            },
            "diagnostics": self.counter.diagnostic_counts(),
        }
        summary.update(self._summary_extra())
        return summary

    def snapshot(self) -> CounterSnapshotResponse:
        counts = self.get_counts()
        return CounterSnapshotResponse(
            exercise=self.EXERCISE.value,
            frames_processed=self.frames_processed,
            left=LimbTallyResponse(**counts[LimbSide.LEFT.value]),
            right=LimbTallyResponse(**counts[LimbSide.RIGHT.value]),
            total=LimbTallyResponse(**counts["total"]),
            limb_status={limb.value: self.limb_status(limb) for limb in self.LIMBS},
            events=[RepetitionEventResponse.from_event(e) for e in self.history],
            extra=self._summary_extra() or None,
        )


class AngleEngine(ExerciseEngine):
    """
    Engine for exercises scored on the hip-knee-ankle angle.

    Per frame: leg joints -> EMA smoothing -> knee angles -> plausibility
    gate -> per-leg state machine. A gated-out reading reaches the machine
    as unknown.
    """

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.smoother: SignalSmoother = SignalSmoother.from_settings(self.settings)
        self.gate = AnglePlausibilityGate.from_settings(self.settings)
        self.machines: Dict[LimbSide, LimbStateMachine] = {
            limb: self._create_machine(limb) for limb in self.LIMBS
        }
        self.last_angles: Dict[LimbSide, Optional[float]] = {limb: None for limb in self.LIMBS}

        logger.info(
            f"{self.EXERCISE.value} engine initialized: alpha={self.settings.ema_alpha}, "
            f"tracking_lost_frames={self.settings.tracking_lost_frames}"
        )

    def _create_machine(self, limb: LimbSide) -> LimbStateMachine:
        raise NotImplementedError

    def _process_sample(self, sample: FrameSample) -> List[EpisodeResult]:
        legs = self.smoother.smooth(LegFrame.from_sample(sample))
        angles = {limb: legs.knee_angle(limb) for limb in self.LIMBS}
        gate = self.gate.evaluate(angles[LimbSide.LEFT], angles[LimbSide.RIGHT])

        results = []
        for limb in self.LIMBS:
            angle = angles[limb] if gate.is_valid(limb) else None
            self.last_angles[limb] = angle
            result = self.machines[limb].update(angle, sample.frame_index, sample.timestamp)
            if result is not None:
                results.append(result)
        return results

    def limb_status(self, limb: LimbSide) -> str:
        return self.machines[limb].status

    def _reset_state(self):
        self.smoother.reset()
        self.gate.reset()
        self.machines = {limb: self._create_machine(limb) for limb in self.LIMBS}
        self.last_angles = {limb: None for limb in self.LIMBS}
