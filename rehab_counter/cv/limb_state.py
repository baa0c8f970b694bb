"""
Shared per-limb state for the angle-driven state machines.

Each limb owns one LimbState. The phase says where the limb is in its
motion cycle; the latch (`can_count`) says whether the next resolved episode
may be classified. Phase and latch are separate because a limb can start a
new episode while its latch is still closed, in which case that episode is
tracked but not counted.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rehab_counter.models.repetition import (
    Classification,
    Diagnostic,
    Direction,
    ExerciseType,
    LimbSide,
)

logger = logging.getLogger(__name__)


class LimbPhase(Enum):
    """Where a limb is in its motion cycle."""
    IDLE = "idle"              # At rest, latch open
    IN_MOTION = "in_motion"    # Episode active, extremum being tracked
    SETTLING = "settling"      # Episode resolved, waiting for the reset threshold


@dataclass
class LimbState:
    """Mutable per-limb episode state."""
    phase: LimbPhase = LimbPhase.IDLE
    can_count: bool = True
    extremum: Optional[float] = None
    extremum_frame: Optional[int] = None
    start_frame: Optional[int] = None
    unknown_frames: int = 0
    tracking_lost: bool = False

    def clear_episode(self):
        self.extremum = None
        self.extremum_frame = None
        self.start_frame = None

    def hard_reset(self):
        """Forget the episode and reopen the latch."""
        self.clear_episode()
        self.phase = LimbPhase.IDLE
        self.can_count = True


@dataclass
class EpisodeResult:
    """Classified outcome of one resolved motion episode."""
    limb: LimbSide
    classification: Classification
    frame_index: int
    timestamp: float
    extremum: Optional[float] = None
    start_frame: Optional[int] = None
    direction: Optional[Direction] = None
    diagnostic: Optional[Diagnostic] = None


class LimbStateMachine:
    """
    Base class for the angle-driven limb machines.

    Subclasses implement `_on_reading` for known angles and may override
    `_on_missing` for unknown ones. A run of `tracking_lost_frames`
    consecutive unknown readings hard-resets the limb.
    """

    EXERCISE: ExerciseType

    def __init__(self, limb: LimbSide, tracking_lost_frames: int = 5):
        self.limb = limb
        self.tracking_lost_frames = tracking_lost_frames
        self.state = LimbState()

    def update(self, angle: Optional[float], frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        """
        Feed one frame's angle for this limb.

        Returns:
            EpisodeResult if an episode was classified on this frame
        """
        if angle is None:
            self._on_unknown(frame_index)
            return None

        if self.state.tracking_lost:
            logger.debug(f"{self._label} tracking recovered at frame {frame_index}")
        self.state.unknown_frames = 0
        self.state.tracking_lost = False
        return self._on_reading(angle, frame_index, timestamp)

    def _on_unknown(self, frame_index: int):
        self.state.unknown_frames += 1
        self._on_missing(frame_index)

        if self.state.unknown_frames >= self.tracking_lost_frames and not self.state.tracking_lost:
            self.state.tracking_lost = True
            self._lose_tracking()
            logger.info(
                f"{self._label} tracking lost after {self.state.unknown_frames} "
                f"unknown frames (frame {frame_index})"
            )

    def _on_missing(self, frame_index: int):
        """Hook for unknown readings; default leaves the episode untouched."""

    def _lose_tracking(self):
        self.state.hard_reset()

    def _on_reading(self, angle: float, frame_index: int, timestamp: float) -> Optional[EpisodeResult]:
        raise NotImplementedError

    @property
    def _label(self) -> str:
        return f"{self.EXERCISE.value}/{self.limb.value}"

    @property
    def status(self) -> str:
        """Human-readable status for live display."""
        if self.state.tracking_lost:
            return "tracking lost"
        if self.state.phase == LimbPhase.IN_MOTION:
            return "in motion"
        if self.state.phase == LimbPhase.SETTLING:
            return "awaiting reset"
        return "ready"
