"""
Lateral stride counter.

A stride is counted the moment the knee angle enters the count band
[102, 145] (the success, failure and invalid ranges together) while the
latch is open; the latch then closes so a leg resting inside the band is
counted once. The smallest angle of the cycle is scored when the leg
straightens past the reset angle (145):

    Success:  [108, 132]
    Failure:  [102, 108) or (132, 138]
    Invalid:  [138, 145)
    NoCount:  anything else (out of range)

The raw stride count and the scored tallies are separate counters. They
agree one-to-one only when every band entry is followed by a clean reset.
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional

import numpy as np

from rehab_counter.config import Settings
from rehab_counter.cv.base_engine import AngleEngine
from rehab_counter.cv.limb_state import EpisodeResult, LimbPhase, LimbStateMachine
from rehab_counter.models.repetition import (
    Classification,
    Diagnostic,
    DiagnosticCode,
    ExerciseType,
    LimbSide,
)

logger = logging.getLogger(__name__)


class StrideLimbMachine(LimbStateMachine):
    """Per-leg stride state machine with a short moving average on the angle."""

    EXERCISE = ExerciseType.STRIDE

    def __init__(
        self,
        limb: LimbSide,
        reset_angle: float = 145.0,
        count_band_min: float = 102.0,
        count_band_max: float = 145.0,
        success_min: float = 108.0,
        success_max: float = 132.0,
        failure_min: float = 102.0,
        failure_max: float = 138.0,
        invalid_max: float = 145.0,
        angle_window: int = 5,
        tracking_lost_frames: int = 5,
    ):
        super().__init__(limb, tracking_lost_frames)
        if angle_window < 1:
            raise ValueError(f"Angle window must be positive, got {angle_window}")

        self.reset_angle = reset_angle
        self.count_band_min = count_band_min
        self.count_band_max = count_band_max
        self.success_min = success_min
        self.success_max = success_max
        self.failure_min = failure_min
        self.failure_max = failure_max
        self.invalid_max = invalid_max

        self.stride_count = 0
        self._angles: Deque[float] = deque(maxlen=angle_window)

    @classmethod
    def from_settings(cls, limb: LimbSide, settings: Settings) -> "StrideLimbMachine":
        return cls(
            limb,
            reset_angle=settings.stride_reset_angle,
            count_band_min=settings.stride_count_band_min,
            count_band_max=settings.stride_count_band_max,
            success_min=settings.stride_success_min,
            success_max=settings.stride_success_max,
            failure_min=settings.stride_failure_min,
            failure_max=settings.stride_failure_max,
            invalid_max=settings.stride_invalid_max,
            angle_window=settings.stride_angle_window,
            tracking_lost_frames=settings.tracking_lost_frames,
        )

    def in_count_band(self, angle: float) -> bool:
        return self.count_band_min <= angle <= self.count_band_max

    def classify(self, min_angle: float) -> Classification:
        if self.success_min <= min_angle <= self.success_max:
            return Classification.SUCCESS
        if (self.failure_min <= min_angle < self.success_min) or (
            self.success_max < min_angle <= self.failure_max
        ):
            return Classification.FAILURE
        if self.failure_max <= min_angle < self.invalid_max:
            return Classification.INVALID
        return Classification.NO_COUNT

    def _on_reading(self, angle: float, frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        self._angles.append(angle)
        smoothed = float(np.mean(self._angles))
        state = self.state

        if smoothed > self.reset_angle:
            result = None
            if not state.can_count:
                result = self._complete_cycle(frame_index, timestamp)
            state.hard_reset()
            return result

        if state.extremum is None or smoothed < state.extremum:
            if state.extremum is None:
                state.start_frame = frame_index
            state.extremum = smoothed
            state.extremum_frame = frame_index

        if state.can_count and self.in_count_band(smoothed):
            self.stride_count += 1
            state.can_count = False
            state.phase = LimbPhase.SETTLING
            logger.info(f"{self._label} stride #{self.stride_count} at {smoothed:.1f}° (frame {frame_index})")
        elif state.can_count:
            state.phase = LimbPhase.IN_MOTION

        return None

    def _complete_cycle(self, frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        state = self.state
        min_angle = state.extremum
        if min_angle is None:
            return None

        classification = self.classify(min_angle)
        code = (
            DiagnosticCode.OUT_OF_RANGE
            if classification == Classification.NO_COUNT
            else DiagnosticCode.MIN_ANGLE
        )
        logger.debug(
            f"{self._label} cycle min {min_angle:.1f}° (frame {state.extremum_frame}): "
            f"{classification.value}"
        )
        return EpisodeResult(
            limb=self.limb,
            classification=classification,
            frame_index=frame_index,
            timestamp=timestamp,
            extremum=min_angle,
            start_frame=state.start_frame,
            diagnostic=Diagnostic(
                code=code,
                metrics={
                    "min_angle": min_angle,
                    "min_angle_frame": state.extremum_frame,
                    "start_frame": state.start_frame,
                },
            ),
        )

    def _lose_tracking(self):
        super()._lose_tracking()
        self._angles.clear()


class StrideEngine(AngleEngine):
    """Stride exercise engine: one StrideLimbMachine per leg."""

    EXERCISE = ExerciseType.STRIDE

    def _create_machine(self, limb: LimbSide) -> StrideLimbMachine:
        return StrideLimbMachine.from_settings(limb, self.settings)

    def stride_counts(self) -> Dict[str, int]:
        counts = {limb.value: self.machines[limb].stride_count for limb in self.LIMBS}
        counts["total"] = sum(counts.values())
        return counts

    def _summary_extra(self) -> Dict:
        return {"strides": self.stride_counts()}
