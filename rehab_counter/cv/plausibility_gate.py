"""
Left/right knee-angle plausibility checks.

When one leg lifts, the pose estimator often drags the other leg's joints
along with it, producing a jittery reading for the standing leg. The gate
flags such readings as invalid for the current frame. It never alters the
angle values themselves; invalid readings are simply treated as unknown
downstream.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional

import numpy as np

from rehab_counter.config import Settings
from rehab_counter.models.repetition import LimbSide

logger = logging.getLogger(__name__)


@dataclass
class GateResult:
    """Per-limb validity of one frame's angle readings."""
    left_valid: bool
    right_valid: bool
    reason: Optional[str] = None

    def is_valid(self, limb: LimbSide) -> bool:
        return self.left_valid if limb == LimbSide.LEFT else self.right_valid


class AnglePlausibilityGate:
    """
    Heuristic filter over simultaneous left/right angle readings.

    Rules, in order:
    1. If both readings are known and differ by more than the conflict
       difference:
       - one leg below the lift angle and the other above the standing
         angle: the lifted leg is trusted; the standing leg is invalidated
         when its own recent history is unstable
       - otherwise, one leg below the misdetection angle and the other
         above the standing angle: the smaller reading is invalidated
    2. Any reading outside the plausible range is invalidated.
    """

    def __init__(
        self,
        history_size: int = 5,
        stability_window: int = 3,
        stability_threshold: float = 15.0,
        conflict_difference: float = 60.0,
        lift_angle: float = 60.0,
        standing_angle: float = 120.0,
        misdetection_angle: float = 30.0,
        min_plausible: float = 20.0,
        max_plausible: float = 200.0,
    ):
        if history_size < 1:
            raise ValueError(f"History size must be positive, got {history_size}")
        if not 1 <= stability_window <= history_size:
            raise ValueError(
                f"Stability window must be between 1 and {history_size}, got {stability_window}"
            )

        self.stability_window = stability_window
        self.stability_threshold = stability_threshold
        self.conflict_difference = conflict_difference
        self.lift_angle = lift_angle
        self.standing_angle = standing_angle
        self.misdetection_angle = misdetection_angle
        self.min_plausible = min_plausible
        self.max_plausible = max_plausible

        self._history: Dict[LimbSide, Deque[float]] = {
            side: deque(maxlen=history_size) for side in LimbSide
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnglePlausibilityGate":
        return cls(
            history_size=settings.gate_history_size,
            stability_window=settings.gate_stability_window,
            stability_threshold=settings.gate_stability_threshold_degrees,
            conflict_difference=settings.gate_conflict_difference_degrees,
            lift_angle=settings.gate_lift_angle_degrees,
            standing_angle=settings.gate_standing_angle_degrees,
            misdetection_angle=settings.gate_misdetection_angle_degrees,
            min_plausible=settings.gate_min_plausible_angle,
            max_plausible=settings.gate_max_plausible_angle,
        )

    def stability(self, limb: LimbSide) -> float:
        """
        Mean absolute deviation of the limb's last few readings.

        Zero until a full stability window has been recorded.
        """
        recent = list(self._history[limb])[-self.stability_window:]
        if len(recent) < self.stability_window:
            return 0.0
        values = np.asarray(recent, dtype=float)
        return float(np.mean(np.abs(values - values.mean())))

    def is_stable(self, limb: LimbSide) -> bool:
        return self.stability(limb) < self.stability_threshold

    def evaluate(self, left_angle: Optional[float], right_angle: Optional[float]) -> GateResult:
        """
        Record this frame's readings and decide which of them to trust.

        Returns:
            GateResult; an unknown reading is never valid
        """
        if left_angle is not None:
            self._history[LimbSide.LEFT].append(left_angle)
        if right_angle is not None:
            self._history[LimbSide.RIGHT].append(right_angle)

        left_valid = left_angle is not None
        right_valid = right_angle is not None
        reason = None

        if left_valid and right_valid and abs(left_angle - right_angle) > self.conflict_difference:
            if right_angle < self.lift_angle and left_angle > self.standing_angle:
                if not self.is_stable(LimbSide.LEFT):
                    left_valid = False
                    reason = "left_unstable"
            elif left_angle < self.lift_angle and right_angle > self.standing_angle:
                if not self.is_stable(LimbSide.RIGHT):
                    right_valid = False
                    reason = "right_unstable"
            elif (
                min(left_angle, right_angle) < self.misdetection_angle
                and max(left_angle, right_angle) > self.standing_angle
            ):
                if left_angle < right_angle:
                    left_valid = False
                    reason = "left_misdetected"
                else:
                    right_valid = False
                    reason = "right_misdetected"

        if left_valid and not self._in_range(left_angle):
            left_valid = False
            reason = reason or "left_out_of_range"
        if right_valid and not self._in_range(right_angle):
            right_valid = False
            reason = reason or "right_out_of_range"

        if reason:
            logger.debug(f"Gate rejected reading ({reason}): left={left_angle}, right={right_angle}")

        return GateResult(left_valid=left_valid, right_valid=right_valid, reason=reason)

    def _in_range(self, angle: float) -> bool:
        return self.min_plausible <= angle <= self.max_plausible

    def reset(self):
        for history in self._history.values():
            history.clear()
