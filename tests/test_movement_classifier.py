from types import SimpleNamespace

import pytest

from rehab_counter.cv.heel_movement import HeelMovementEngine
from rehab_counter.cv.high_knee import HighKneeEngine
from rehab_counter.cv.movement_classifier import MovementClassifier, create_movement_classifier
from rehab_counter.cv.stride import StrideEngine
from rehab_counter.models.repetition import Classification, ExerciseType, LimbSide
from rehab_counter.schemas.counter import CounterSnapshotResponse

HIGH_KNEE_ANGLES = [170, 150, 120, 90, 100, 130, 170, 170, 60, 110, 170]


@pytest.mark.parametrize(
    "exercise, engine_type",
    [
        ("high_knee", HighKneeEngine),
        ("stride", StrideEngine),
        ("heel_toe", HeelMovementEngine),
        (ExerciseType.STRIDE, StrideEngine),
    ],
)
def test_factory_selects_engine(settings, exercise, engine_type):
    classifier = create_movement_classifier(exercise, settings=settings)

    assert isinstance(classifier.engine, engine_type)


def test_unsupported_exercise(settings):
    with pytest.raises(ValueError, match="Unsupported exercise type"):
        MovementClassifier("jumping_jack", settings=settings)


def outcomes(classifier, leg_sample):
    events = []
    for frame, angle in enumerate(HIGH_KNEE_ANGLES):
        events.extend(classifier.process_frame(leg_sample(frame, angle)))
    return [(e.sequence_number, e.limb, e.classification, e.frame_index) for e in events]


def test_reset_reproduces_fresh_instance(settings, leg_sample):
    classifier = create_movement_classifier("high_knee", settings=settings)
    first = outcomes(classifier, leg_sample)

    classifier.reset()
    assert classifier.history == []
    assert classifier.get_counts()["total"]["total"] == 0
    assert classifier.limb_status("left") == "ready"

    second = outcomes(classifier, leg_sample)
    fresh = outcomes(create_movement_classifier("high_knee", settings=settings), leg_sample)

    assert first == second == fresh
    assert [c for _, _, c, _ in first] == [Classification.SUCCESS, Classification.FAILURE]


def test_snapshot(settings, leg_sample):
    classifier = create_movement_classifier("high_knee", settings=settings)
    outcomes(classifier, leg_sample)
    snapshot = classifier.snapshot()

    assert isinstance(snapshot, CounterSnapshotResponse)
    assert snapshot.exercise == "high_knee"
    assert snapshot.frames_processed == len(HIGH_KNEE_ANGLES)
    assert snapshot.left.success == 1
    assert snapshot.left.failure == 1
    assert snapshot.right.total == 0
    assert snapshot.total.success_rate == pytest.approx(0.5)
    assert snapshot.limb_status == {"left": "ready", "right": "ready"}
    assert [e.classification for e in snapshot.events] == ["success", "failure"]
    assert snapshot.events[0].diagnostic_code == "min_angle"
    assert snapshot.events[0].metrics["min_angle"] == pytest.approx(90.0)


def test_summary(settings, leg_sample):
    classifier = create_movement_classifier("high_knee", settings=settings)
    outcomes(classifier, leg_sample)
    summary = classifier.get_summary()

    assert summary["exercise"] == "high_knee"
    assert summary["total_repetitions"] == 2
    assert summary["limbs"]["left"]["success"] == 1
    assert summary["diagnostics"] == {"min_angle": 2}


def landmark(x, y, z=0.0, visibility=0.99):
    return SimpleNamespace(x=x, y=y, z=z, visibility=visibility)


def test_process_pose_reads_tasks_result(settings):
    classifier = create_movement_classifier("high_knee", settings=settings)
    pose = [landmark(0.5, 0.5, visibility=0.1) for _ in range(33)]
    # Left leg bent to 90 degrees, right leg straight
    pose[23], pose[25], pose[27] = landmark(0.4, 0.3), landmark(0.4, 0.5), landmark(0.6, 0.5)
    pose[24], pose[26], pose[28] = landmark(0.6, 0.3), landmark(0.6, 0.5), landmark(0.6, 0.7)
    result = SimpleNamespace(pose_landmarks=[pose], pose_world_landmarks=[])

    assert classifier.process_pose(result, 0, 0.0) == []
    assert classifier.engine.last_angles[LimbSide.LEFT] == pytest.approx(90.0)
    assert classifier.limb_status(LimbSide.LEFT) == "in motion"
    assert classifier.limb_status(LimbSide.RIGHT) == "ready"


def test_process_pose_without_detection(settings):
    classifier = create_movement_classifier("stride", settings=settings)
    empty = SimpleNamespace(pose_landmarks=[], pose_world_landmarks=[])

    for frame in range(5):
        assert classifier.process_pose(empty, frame, frame / 30.0) == []

    assert classifier.limb_status("left") == "tracking lost"
    assert classifier.get_summary()["frames_processed"] == 5


def test_out_of_order_frame_is_processed(settings, leg_sample, caplog):
    classifier = create_movement_classifier("high_knee", settings=settings)
    classifier.process_frame(leg_sample(5, 170))
    classifier.process_frame(leg_sample(3, 170))

    assert "arrived after" in caplog.text
    assert classifier.get_summary()["frames_processed"] == 2
