"""
High-knee lift counter.

An episode starts when the hip-knee-ankle angle drops below the reset angle
and ends when it comes back to the reset angle or above. The smallest angle
reached during the episode decides the verdict:

    Success:  [72, 108]
    Failure:  [54, 72) or (108, 126]
    Invalid:  anything else

After a verdict the latch closes. It reopens only once the angle is strictly
above the reset angle, so a leg hovering exactly at the threshold cannot
trigger a second count. Losing the angle mid-episode aborts the episode
without a verdict.
"""

import logging
from typing import Dict, List, Optional

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


class HighKneeLimbMachine(LimbStateMachine):
    """Per-leg high-knee state machine."""

    EXERCISE = ExerciseType.HIGH_KNEE

    def __init__(
        self,
        limb: LimbSide,
        reset_angle: float = 145.0,
        success_min: float = 72.0,
        success_max: float = 108.0,
        failure_min: float = 54.0,
        failure_max: float = 126.0,
        tracking_lost_frames: int = 5,
    ):
        super().__init__(limb, tracking_lost_frames)
        self.reset_angle = reset_angle
        self.success_min = success_min
        self.success_max = success_max
        self.failure_min = failure_min
        self.failure_max = failure_max

        # Minimum angle of every resolved episode, counted or not
        self.min_angle_log: List[float] = []

    @classmethod
    def from_settings(cls, limb: LimbSide, settings: Settings) -> "HighKneeLimbMachine":
        return cls(
            limb,
            reset_angle=settings.high_knee_reset_angle,
            success_min=settings.high_knee_success_min,
            success_max=settings.high_knee_success_max,
            failure_min=settings.high_knee_failure_min,
            failure_max=settings.high_knee_failure_max,
            tracking_lost_frames=settings.tracking_lost_frames,
        )

    def classify(self, min_angle: float) -> Classification:
        if self.success_min <= min_angle <= self.success_max:
            return Classification.SUCCESS
        if (self.failure_min <= min_angle < self.success_min) or (
            self.success_max < min_angle <= self.failure_max
        ):
            return Classification.FAILURE
        return Classification.INVALID

    def _on_reading(self, angle: float, frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        state = self.state

        if angle < self.reset_angle:
            if state.phase != LimbPhase.IN_MOTION:
                self._start_episode(angle, frame_index)
            elif angle < state.extremum:
                state.extremum = angle
                state.extremum_frame = frame_index
            return None

        result = None
        if state.phase == LimbPhase.IN_MOTION:
            result = self._complete_episode(frame_index, timestamp)

        if angle > self.reset_angle:
            if not state.can_count:
                logger.debug(f"{self._label} latch reopened at {angle:.1f}°")
            state.can_count = True
            state.phase = LimbPhase.IDLE

        return result

    def _on_missing(self, frame_index: int):
        if self.state.phase != LimbPhase.IN_MOTION:
            return
        logger.debug(
            f"{self._label} angle lost at frame {frame_index}, "
            f"episode aborted without counting"
        )
        self.state.clear_episode()
        self.state.phase = LimbPhase.IDLE if self.state.can_count else LimbPhase.SETTLING

    def _start_episode(self, angle: float, frame_index: int):
        state = self.state
        state.phase = LimbPhase.IN_MOTION
        state.extremum = angle
        state.extremum_frame = frame_index
        state.start_frame = frame_index
        logger.debug(f"{self._label} motion started at {angle:.1f}° (frame {frame_index})")

    def _complete_episode(self, frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        state = self.state
        min_angle = state.extremum
        self.min_angle_log.append(min_angle)

        result = None
        if state.can_count:
            classification = self.classify(min_angle)
            result = EpisodeResult(
                limb=self.limb,
                classification=classification,
                frame_index=frame_index,
                timestamp=timestamp,
                extremum=min_angle,
                start_frame=state.start_frame,
                diagnostic=Diagnostic(
                    code=DiagnosticCode.MIN_ANGLE,
                    metrics={
                        "min_angle": min_angle,
                        "min_angle_frame": state.extremum_frame,
                        "start_frame": state.start_frame,
                    },
                ),
            )
            state.can_count = False
        else:
            logger.debug(f"{self._label} motion ended, not counted (latch closed), min {min_angle:.1f}°")

        state.clear_episode()
        state.phase = LimbPhase.SETTLING
        return result

    def min_angle_stats(self) -> Dict[str, Optional[float]]:
        if not self.min_angle_log:
            return {"count": 0, "mean": None, "min": None, "max": None}
        angles = np.asarray(self.min_angle_log, dtype=float)
        return {
            "count": len(self.min_angle_log),
            "mean": float(np.mean(angles)),
            "min": float(np.min(angles)),
            "max": float(np.max(angles)),
        }


class HighKneeEngine(AngleEngine):
    """High-knee exercise engine: one HighKneeLimbMachine per leg."""

    EXERCISE = ExerciseType.HIGH_KNEE

    def _create_machine(self, limb: LimbSide) -> HighKneeLimbMachine:
        return HighKneeLimbMachine.from_settings(limb, self.settings)

    def _summary_extra(self) -> Dict:
        return {
            "min_angles": {
                limb.value: self.machines[limb].min_angle_stats() for limb in self.LIMBS
            }
        }
