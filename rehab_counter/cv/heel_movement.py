"""
Heel-to-toe walking counter.

Each foot is tracked independently from the frame-to-frame change of its
smoothed heel X:

    moving  = |delta heel X| >= foot length * 0.02
    unknown = heel X or foot length missing in this or the previous frame

5 consecutive moving frames confirm movement and mark the step start.
7 consecutive still frames confirm the foot has settled and mark the step
end. The first settled frame after a confirmed movement resolves the step
exactly once: direction, then alignment scoring against the other foot.
5 consecutive unknown frames discard everything tracked for that foot.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from rehab_counter.config import Settings
from rehab_counter.cv.base_engine import ExerciseEngine
from rehab_counter.cv.direction_classifier import (
    AlignmentEvaluator,
    AlignmentResult,
    DirectionClassifier,
)
from rehab_counter.cv.frame import FootFrame, FrameSample
from rehab_counter.cv.limb_state import EpisodeResult
from rehab_counter.cv.metric import abs_difference, is_known, scale
from rehab_counter.cv.signal_smoother import SignalSmoother
from rehab_counter.models.repetition import Direction, ExerciseType, LimbSide

logger = logging.getLogger(__name__)


class FootMotion(Enum):
    """Confirmed motion state of one foot."""
    UNDETERMINED = "undetermined"
    MOVING = "moving"
    STATIONARY = "stationary"


@dataclass
class FootMovementTracker:
    """Frame counters and step bookkeeping for one foot."""
    limb: LimbSide
    moving_frames_required: int = 5
    stationary_frames_required: int = 7
    detection_reset_frames: int = 5

    moving_frames: int = 0
    stationary_frames: int = 0
    detection_frames: int = 0
    motion: FootMotion = FootMotion.UNDETERMINED
    has_moved: bool = False
    direction_determined: bool = False
    last_moving: Optional[bool] = None
    movement_start: Optional[FootFrame] = None
    action_end: Optional[FootFrame] = None
    direction: Optional[Direction] = None
    last_result: Optional[AlignmentResult] = None

    @property
    def moving_detected(self) -> bool:
        return self.motion == FootMotion.MOVING

    @property
    def stationary_detected(self) -> bool:
        return self.motion == FootMotion.STATIONARY

    @property
    def tracking_lost(self) -> bool:
        return self.detection_frames >= self.detection_reset_frames

    @property
    def episode_ready(self) -> bool:
        """True on the frame a confirmed step should be resolved."""
        return self.stationary_detected and self.has_moved and not self.direction_determined

    def update(self, moving: Optional[bool], frame: FootFrame):
        self.last_moving = moving

        if moving is None:
            self.detection_frames += 1
            if self.detection_frames == self.detection_reset_frames:
                logger.info(
                    f"heel_toe/{self.limb.value} tracking lost at frame {frame.frame_index}, "
                    f"step discarded"
                )
            if self.tracking_lost:
                self._discard_step()
            return

        self.detection_frames = 0

        if moving:
            self.stationary_frames = 0
            self.moving_frames += 1
            if self.moving_frames >= self.moving_frames_required and not self.moving_detected:
                self.motion = FootMotion.MOVING
                self.has_moved = True
                self.movement_start = frame
                self.direction_determined = False
                logger.debug(f"heel_toe/{self.limb.value} movement confirmed at frame {frame.frame_index}")
        else:
            self.moving_frames = 0
            if self.moving_detected:
                self.motion = FootMotion.UNDETERMINED
            self.stationary_frames += 1
            if self.stationary_frames >= self.stationary_frames_required:
                if not self.stationary_detected:
                    logger.debug(f"heel_toe/{self.limb.value} settled at frame {frame.frame_index}")
                self.motion = FootMotion.STATIONARY
                self.action_end = frame

    def _discard_step(self):
        self.moving_frames = 0
        self.stationary_frames = 0
        self.motion = FootMotion.UNDETERMINED
        self.has_moved = False
        self.direction_determined = False
        self.movement_start = None
        self.action_end = None

    @property
    def display_status(self) -> str:
        if self.tracking_lost:
            return "tracking lost"
        if self.stationary_detected:
            return "stationary"
        if self.moving_detected:
            return "moving"
        if self.last_moving is True:
            return f"moving ({self.moving_frames}/{self.moving_frames_required})"
        if self.last_moving is False:
            return f"settling ({self.stationary_frames}/{self.stationary_frames_required})"
        return "detecting"


class HeelMovementEngine(ExerciseEngine):
    """Heel-to-toe walking engine: one FootMovementTracker per foot."""

    EXERCISE = ExerciseType.HEEL_TOE

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.smoother: SignalSmoother = SignalSmoother.from_settings(self.settings)
        self.direction_classifier = DirectionClassifier()
        self.evaluator = AlignmentEvaluator.from_settings(self.settings)
        self.movement_ratio = self.settings.heel_movement_ratio
        self.trackers: Dict[LimbSide, FootMovementTracker] = {}
        self._previous: Optional[FootFrame] = None
        self._reset_state()

        logger.info(
            f"heel_toe engine initialized: movement ratio {self.movement_ratio}, "
            f"{self.settings.heel_moving_frames} moving / "
            f"{self.settings.heel_stationary_frames} still frames"
        )

    def _create_tracker(self, limb: LimbSide) -> FootMovementTracker:
        return FootMovementTracker(
            limb=limb,
            moving_frames_required=self.settings.heel_moving_frames,
            stationary_frames_required=self.settings.heel_stationary_frames,
            detection_reset_frames=self.settings.heel_detection_reset_frames,
        )

    def is_moving(self, limb: LimbSide, current: FootFrame, previous: FootFrame) -> Optional[bool]:
        """Frame-to-frame movement test for one heel, None when unknown."""
        foot_length = current.foot_length(limb)
        if not is_known(foot_length, previous.foot_length(limb)):
            return None
        heel_shift = abs_difference(current.heel_x(limb), previous.heel_x(limb))
        if heel_shift is None:
            return None
        return heel_shift >= scale(foot_length, self.movement_ratio)

    def _process_sample(self, sample: FrameSample) -> List[EpisodeResult]:
        feet = self.smoother.smooth(FootFrame.from_sample(sample))

        if self._previous is None:
            self._previous = feet
            return []

        for limb in self.LIMBS:
            self.trackers[limb].update(self.is_moving(limb, feet, self._previous), feet)

        results = []
        for limb in self.LIMBS:
            tracker = self.trackers[limb]
            if not tracker.episode_ready:
                continue
            result = self._resolve_step(tracker, feet, sample)
            tracker.direction_determined = True
            if result is not None:
                results.append(result)

        self._previous = feet
        return results

    def _resolve_step(
        self,
        tracker: FootMovementTracker,
        current: FootFrame,
        sample: FrameSample,
    ) -> Optional[EpisodeResult]:
        limb = tracker.limb
        start = tracker.movement_start
        end = tracker.action_end

        direction = self.direction_classifier.classify(
            start.heel_x(limb), end.heel_x(limb), end.toe_x(limb)
        )
        tracker.direction = direction

        alignment = self.evaluator.evaluate(limb, direction, action_end=end, current=current)
        tracker.last_result = alignment
        if alignment is None:
            logger.debug(
                f"heel_toe/{limb.value} step at frame {sample.frame_index} not scored "
                f"(direction={direction.value if direction else None})"
            )
            return None

        return EpisodeResult(
            limb=limb,
            classification=alignment.classification,
            frame_index=sample.frame_index,
            timestamp=sample.timestamp,
            start_frame=start.frame_index,
            direction=direction,
            diagnostic=alignment.diagnostic,
        )

    def limb_status(self, limb: LimbSide) -> str:
        if self._previous is None:
            return "detecting"
        return self.trackers[limb].display_status

    def direction(self, limb: LimbSide) -> Optional[Direction]:
        return self.trackers[limb].direction

    def _summary_extra(self) -> Dict:
        return {
            "directions": {
                limb.value: self.trackers[limb].direction.value if self.trackers[limb].direction else None
                for limb in self.LIMBS
            }
        }

    def _reset_state(self):
        self.smoother.reset()
        self._previous = None
        self.trackers = {limb: self._create_tracker(limb) for limb in self.LIMBS}
