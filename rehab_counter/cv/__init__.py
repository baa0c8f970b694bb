"""
Per-frame repetition classification pipeline.

PIPELINE COMPONENTS:
1. FrameSample: Joint positions from the pose estimator, unknown joints absent
2. SignalSmoother: Field-by-field EMA with unknown propagation
3. AnglePlausibilityGate: Left/right knee-angle conflict checks
4. Limb state machines: HighKneeLimbMachine, StrideLimbMachine, FootMovementTracker
5. DirectionClassifier / AlignmentEvaluator: Heel-to-toe step scoring
6. CounterAggregator: Tallies and ordered repetition history
7. MovementClassifier: Unified per-session entry point

Usage:
    from rehab_counter.cv import create_movement_classifier

    classifier = create_movement_classifier("stride")
    for sample in samples:
        for event in classifier.process_frame(sample):
            print(f"{event.limb.value}: {event.classification.value}")
"""

from rehab_counter.cv.geometry import angle_at, distance
from rehab_counter.cv.frame import (
    FootFrame,
    FrameSample,
    Keypoint,
    LegFrame,
    MediaPipeLandmark,
)
from rehab_counter.cv.signal_smoother import SignalSmoother
from rehab_counter.cv.plausibility_gate import AnglePlausibilityGate, GateResult
from rehab_counter.cv.limb_state import EpisodeResult, LimbPhase, LimbState, LimbStateMachine
from rehab_counter.cv.counter_aggregator import CounterAggregator, LimbTally
from rehab_counter.cv.base_engine import AngleEngine, ExerciseEngine
from rehab_counter.cv.high_knee import HighKneeEngine, HighKneeLimbMachine
from rehab_counter.cv.stride import StrideEngine, StrideLimbMachine
from rehab_counter.cv.direction_classifier import (
    AlignmentEvaluator,
    AlignmentResult,
    DirectionClassifier,
)
from rehab_counter.cv.heel_movement import (
    FootMotion,
    FootMovementTracker,
    HeelMovementEngine,
)
from rehab_counter.cv.movement_classifier import (
    MovementClassifier,
    create_movement_classifier,
)

__all__ = [
    # Geometry
    "angle_at",
    "distance",

    # Frame samples
    "FrameSample",
    "Keypoint",
    "MediaPipeLandmark",
    "LegFrame",
    "FootFrame",

    # Smoothing and gating
    "SignalSmoother",
    "AnglePlausibilityGate",
    "GateResult",

    # Limb state machines
    "LimbPhase",
    "LimbState",
    "LimbStateMachine",
    "EpisodeResult",
    "HighKneeLimbMachine",
    "StrideLimbMachine",
    "FootMotion",
    "FootMovementTracker",

    # Direction and alignment
    "DirectionClassifier",
    "AlignmentEvaluator",
    "AlignmentResult",

    # Counting
    "CounterAggregator",
    "LimbTally",

    # Engines
    "ExerciseEngine",
    "AngleEngine",
    "HighKneeEngine",
    "StrideEngine",
    "HeelMovementEngine",
    "MovementClassifier",
    "create_movement_classifier",
]
