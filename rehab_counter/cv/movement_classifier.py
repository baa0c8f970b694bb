"""
Unified entry point over the exercise engines.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from rehab_counter.config import Settings, get_settings
from rehab_counter.cv.base_engine import ExerciseEngine
from rehab_counter.cv.frame import FrameSample
from rehab_counter.cv.heel_movement import HeelMovementEngine
from rehab_counter.cv.high_knee import HighKneeEngine
from rehab_counter.cv.stride import StrideEngine
from rehab_counter.models.repetition import ExerciseType, LimbSide, RepetitionEvent
from rehab_counter.schemas.counter import CounterSnapshotResponse

logger = logging.getLogger(__name__)


ENGINES = {
    ExerciseType.HIGH_KNEE: HighKneeEngine,
    ExerciseType.STRIDE: StrideEngine,
    ExerciseType.HEEL_TOE: HeelMovementEngine,
}


class MovementClassifier:
    """
    Per-session repetition classifier.

    Picks the engine for the exercise and exposes the query surface a live
    display needs.

    Usage:
        classifier = MovementClassifier("high_knee")

        for result, frame_index, timestamp in pose_results:
            for event in classifier.process_pose(result, frame_index, timestamp):
                print(f"{event.limb.value}: {event.classification.value}")

        print(classifier.get_summary())
    """

    def __init__(
        self,
        exercise_type: Union[str, ExerciseType],
        settings: Optional[Settings] = None,
    ):
        try:
            self.exercise_type = ExerciseType(exercise_type)
        except ValueError:
            raise ValueError(f"Unsupported exercise type: {exercise_type}") from None

        self.settings = settings or get_settings()
        self._engine: ExerciseEngine = ENGINES[self.exercise_type](self.settings)

        logger.info(f"MovementClassifier initialized: {self.exercise_type.value}")

    @property
    def engine(self) -> ExerciseEngine:
        return self._engine

    def process_frame(self, sample: FrameSample) -> List[RepetitionEvent]:
        """
        Process one frame sample.

        Returns:
            RepetitionEvents recorded on this frame
        """
        return self._engine.process_frame(sample)

    def process_pose(self, result, frame_index: int, timestamp: float) -> List[RepetitionEvent]:
        """
        Convenience method: convert a MediaPipe Tasks result and process it.

        Args:
            result: PoseLandmarkerResult (or any object with the same
                pose_landmarks / pose_world_landmarks attributes)
            frame_index: Index of the frame in the session
            timestamp: Frame time in seconds
        """
        sample = FrameSample.from_mediapipe_tasks(
            result,
            frame_index=frame_index,
            timestamp=timestamp,
            visibility_threshold=self.settings.landmark_visibility_threshold,
        )
        return self.process_frame(sample)

    def get_counts(self) -> Dict[str, Dict]:
        return self._engine.get_counts()

    @property
    def history(self) -> List[RepetitionEvent]:
        return self._engine.history

    def limb_status(self, limb: Union[str, LimbSide]) -> str:
        return self._engine.limb_status(LimbSide(limb))

    def get_summary(self) -> Dict[str, Any]:
        return self._engine.get_summary()

    def snapshot(self) -> CounterSnapshotResponse:
        return self._engine.snapshot()

    def reset(self):
        self._engine.reset()


def create_movement_classifier(
    exercise_type: str,
    settings: Optional[Settings] = None,
) -> MovementClassifier:
    """
    Factory function to create a MovementClassifier.

    Args:
        exercise_type: "high_knee", "stride", or "heel_toe"
        settings: Thresholds; defaults to environment-loaded settings

    Returns:
        MovementClassifier instance
    """
    return MovementClassifier(exercise_type=exercise_type, settings=settings)
