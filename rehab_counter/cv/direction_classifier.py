"""
Step direction and foot-alignment scoring for heel-to-toe walking.

Direction comes from which way the toe points relative to the heel at the
end of the step, combined with the sign of the heel displacement:

    toe left of heel,  heel moved left  (delta > 0) -> forward
    toe left of heel,  heel moved right (delta < 0) -> backward
    toe right of heel, heel moved left  (delta > 0) -> backward
    toe right of heel, heel moved right (delta < 0) -> forward

where delta = start heel X - end heel X.

Alignment compares the moving foot against the support (opposite) foot.
Horizontal distances are measured in normalized image X and scaled by the
moving foot's length; depth differences use world Z and are scaled by the
shoulder depth spread.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from rehab_counter.config import Settings
from rehab_counter.cv.frame import FootFrame
from rehab_counter.cv.metric import Metric, abs_difference, is_known
from rehab_counter.models.repetition import (
    Classification,
    Diagnostic,
    DiagnosticCode,
    Direction,
    LimbSide,
)

logger = logging.getLogger(__name__)


class DirectionClassifier:
    """Classifies a completed step as forward or backward."""

    def classify(self, start_heel_x: Metric, end_heel_x: Metric, end_toe_x: Metric) -> Optional[Direction]:
        """
        Args:
            start_heel_x: Moving heel X on the frame movement was confirmed
            end_heel_x: Moving heel X on the frame the foot settled
            end_toe_x: Moving toe X on the frame the foot settled

        Returns:
            Direction, or None if any input is unknown
        """
        if not is_known(start_heel_x, end_heel_x, end_toe_x):
            return None

        toe_left = end_toe_x < end_heel_x
        toe_right = end_toe_x > end_heel_x
        heel_delta = start_heel_x - end_heel_x

        if toe_left and heel_delta > 0:
            return Direction.FORWARD
        if toe_left and heel_delta < 0:
            return Direction.BACKWARD
        if toe_right and heel_delta > 0:
            return Direction.BACKWARD
        if toe_right and heel_delta < 0:
            return Direction.FORWARD
        return Direction.NO_CLEAR_MOVEMENT


@dataclass
class AlignmentResult:
    classification: Classification
    diagnostic: Diagnostic


class AlignmentEvaluator:
    """
    Scores where the moving foot landed relative to the support foot.

    NoCount is tested first and does not depend on direction: the moving
    heel ended beside the support heel. Otherwise a forward step must put
    the moving heel against the support toe and a backward step must put
    the moving toe against the support heel, both horizontally and in depth.
    """

    def __init__(
        self,
        no_count_ratio: float = 0.2,
        success_ratio: float = 0.3,
        shoulder_z_factor: float = 1.1,
    ):
        self.no_count_ratio = no_count_ratio
        self.success_ratio = success_ratio
        self.shoulder_z_factor = shoulder_z_factor

    @classmethod
    def from_settings(cls, settings: Settings) -> "AlignmentEvaluator":
        return cls(
            no_count_ratio=settings.heel_no_count_ratio,
            success_ratio=settings.heel_success_ratio,
            shoulder_z_factor=settings.heel_shoulder_z_factor,
        )

    def evaluate(
        self,
        limb: LimbSide,
        direction: Optional[Direction],
        action_end: FootFrame,
        current: FootFrame,
    ) -> Optional[AlignmentResult]:
        """
        Score one completed step.

        Args:
            limb: The moving foot
            direction: Step direction, may be None or NO_CLEAR_MOVEMENT
            action_end: Frame on which the moving foot settled; supplies the
                moving foot's X coordinates
            current: Frame being processed; supplies the support foot's X,
                all world depths and the foot lengths

        Returns:
            AlignmentResult, or None when an input is unknown or the step
            is neither NoCount nor a clear forward/backward move
        """
        support = limb.opposite

        moving_heel_x = action_end.heel_x(limb)
        moving_toe_x = action_end.toe_x(limb)
        support_heel_x = current.heel_x(support)
        support_toe_x = current.toe_x(support)
        foot_length = current.foot_length(limb)

        moving_heel_z = current.world_heel_z(limb)
        moving_toe_z = current.world_toe_z(limb)
        support_heel_z = current.world_heel_z(support)
        support_toe_z = current.world_toe_z(support)
        left_shoulder_z = current.world_shoulder_z(LimbSide.LEFT)
        right_shoulder_z = current.world_shoulder_z(LimbSide.RIGHT)

        if not is_known(
            moving_heel_x, moving_toe_x, support_heel_x, support_toe_x,
            foot_length, current.foot_length(support),
            moving_heel_z, moving_toe_z, support_heel_z, support_toe_z,
            left_shoulder_z, right_shoulder_z,
        ):
            logger.debug(f"{limb.value} step not scored: alignment inputs incomplete")
            return None

        no_count_threshold = foot_length * self.no_count_ratio
        success_threshold = foot_length * self.success_ratio
        z_threshold = abs(left_shoulder_z - right_shoulder_z) * self.shoulder_z_factor

        heel_to_heel = abs_difference(moving_heel_x, support_heel_x)
        heel_to_toe_z = abs_difference(moving_heel_z, support_toe_z)
        if heel_to_heel <= no_count_threshold and heel_to_toe_z <= z_threshold:
            return AlignmentResult(
                classification=Classification.NO_COUNT,
                diagnostic=Diagnostic(
                    code=DiagnosticCode.FEET_TOGETHER,
                    metrics={
                        "heel_to_heel_distance": heel_to_heel,
                        "no_count_threshold": no_count_threshold,
                        "z_distance": heel_to_toe_z,
                        "z_threshold": z_threshold,
                    },
                ),
            )

        if direction == Direction.FORWARD:
            distance, z_distance = self._forward_distances(
                moving_heel_x, moving_heel_z, support_toe_x, support_toe_z
            )
            codes = (
                DiagnosticCode.FORWARD_ALIGNED,
                DiagnosticCode.FORWARD_DISTANCE,
                DiagnosticCode.FORWARD_DEPTH,
            )
        elif direction == Direction.BACKWARD:
            distance, z_distance = self._backward_distances(
                moving_toe_x, moving_toe_z, support_heel_x, support_heel_z
            )
            codes = (
                DiagnosticCode.BACKWARD_ALIGNED,
                DiagnosticCode.BACKWARD_DISTANCE,
                DiagnosticCode.BACKWARD_DEPTH,
            )
        else:
            return None

        return self._score(distance, z_distance, success_threshold, z_threshold, codes)

    @staticmethod
    def _forward_distances(moving_heel_x, moving_heel_z, support_toe_x, support_toe_z) -> Tuple[float, float]:
        return (
            abs_difference(moving_heel_x, support_toe_x),
            abs_difference(moving_heel_z, support_toe_z),
        )

    @staticmethod
    def _backward_distances(moving_toe_x, moving_toe_z, support_heel_x, support_heel_z) -> Tuple[float, float]:
        return (
            abs_difference(moving_toe_x, support_heel_x),
            abs_difference(moving_toe_z, support_heel_z),
        )

    @staticmethod
    def _score(
        distance: float,
        z_distance: float,
        success_threshold: float,
        z_threshold: float,
        codes: Tuple[str, str, str],
    ) -> AlignmentResult:
        aligned_code, distance_code, depth_code = codes
        distance_ok = distance <= success_threshold
        depth_ok = z_distance <= z_threshold

        metrics = {
            "distance": distance,
            "success_threshold": success_threshold,
            "z_distance": z_distance,
            "z_threshold": z_threshold,
            "distance_exceeded": not distance_ok,
            "depth_exceeded": not depth_ok,
        }

        if distance_ok and depth_ok:
            return AlignmentResult(Classification.SUCCESS, Diagnostic(aligned_code, metrics))

        # Distance takes precedence when both are exceeded
        code = distance_code if not distance_ok else depth_code
        return AlignmentResult(Classification.FAILURE, Diagnostic(code, metrics))
