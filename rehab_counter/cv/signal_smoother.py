"""
Exponential moving average over structured per-frame samples.

Every scalar field of a sample dataclass (LegFrame, FootFrame) is filtered
independently:

    smoothed = alpha * current + (1 - alpha) * previous

An unknown operand on either side makes the smoothed field unknown. The
first sample of a session passes through unchanged and seeds the history.
"""

import logging
from collections import deque
from dataclasses import fields, replace
from typing import Deque, Generic, List, Optional, TypeVar

from rehab_counter.config import Settings
from rehab_counter.cv.metric import ema

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SignalSmoother(Generic[T]):
    """
    Field-by-field EMA with a capped history of smoothed samples.

    Only the most recent history entry is used as "previous". A field that
    was unknown in the previous entry is re-seeded from the current raw
    value: the emitted value stays unknown for that frame and smoothing
    resumes on the next one.
    """

    # Identity fields copied through untouched
    PASSTHROUGH = ("frame_index", "timestamp")

    def __init__(self, alpha: float = 0.3, history_size: int = 5):
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"EMA alpha must be in (0, 1], got {alpha}")
        if history_size < 1:
            raise ValueError(f"History size must be positive, got {history_size}")

        self.alpha = alpha
        self.history_size = history_size
        self._history: Deque[T] = deque(maxlen=history_size)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignalSmoother":
        return cls(alpha=settings.ema_alpha, history_size=settings.ema_history_size)

    def smooth(self, sample: T) -> T:
        """
        Smooth one sample.

        Args:
            sample: Dataclass instance whose non-identity fields are
                Optional[float]

        Returns:
            New instance of the same type with smoothed fields
        """
        if not self._history:
            self._history.append(sample)
            return sample

        previous = self._history[-1]
        smoothed = {}
        seeded = {}
        for f in fields(sample):
            if f.name in self.PASSTHROUGH:
                continue
            current_value = getattr(sample, f.name)
            previous_value = getattr(previous, f.name)
            value = ema(current_value, previous_value, self.alpha)
            smoothed[f.name] = value
            if value is None and previous_value is None:
                seeded[f.name] = current_value

        output = replace(sample, **smoothed)
        if seeded:
            logger.debug(f"Frame {sample.frame_index}: re-seeding {sorted(seeded)}")
        self._history.append(replace(output, **seeded) if seeded else output)
        return output

    @property
    def history(self) -> List[T]:
        return list(self._history)

    @property
    def last(self) -> Optional[T]:
        return self._history[-1] if self._history else None

    def reset(self):
        self._history.clear()
