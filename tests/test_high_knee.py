import pytest

from rehab_counter.cv.high_knee import HighKneeEngine, HighKneeLimbMachine
from rehab_counter.cv.limb_state import LimbPhase
from rehab_counter.models.repetition import Classification, DiagnosticCode, LimbSide


def run_episode(machine, min_angle, start_frame=0, end_angle=170.0):
    """Straight leg, a shallow bend, the deepest frame at `min_angle`, straight again."""
    machine.update(170.0, start_frame, start_frame / 30.0)
    machine.update(144.0, start_frame + 1, (start_frame + 1) / 30.0)
    machine.update(min_angle, start_frame + 2, (start_frame + 2) / 30.0)
    return machine.update(end_angle, start_frame + 3, (start_frame + 3) / 30.0)


@pytest.fixture
def machine():
    return HighKneeLimbMachine(LimbSide.LEFT)


class TestClassification:
    @pytest.mark.parametrize(
        "min_angle, expected",
        [
            (72.0, Classification.SUCCESS),
            (90.0, Classification.SUCCESS),
            (108.0, Classification.SUCCESS),
            (71.99, Classification.FAILURE),
            (108.01, Classification.FAILURE),
            (54.0, Classification.FAILURE),
            (126.0, Classification.FAILURE),
            (53.9, Classification.INVALID),
            (126.1, Classification.INVALID),
            (140.0, Classification.INVALID),
        ],
    )
    def test_min_angle_bands(self, machine, min_angle, expected):
        result = run_episode(machine, min_angle)

        assert result is not None
        assert result.classification == expected
        assert result.extremum == min_angle
        assert result.diagnostic.code == DiagnosticCode.MIN_ANGLE

    def test_result_carries_frames(self, machine):
        result = run_episode(machine, 90.0, start_frame=10)

        assert result.frame_index == 13
        assert result.start_frame == 11
        assert result.diagnostic.metrics["min_angle_frame"] == 12


class TestEpisodeBoundaries:
    def test_no_result_while_in_motion(self, machine):
        machine.update(170.0, 0, 0.0)
        assert machine.update(100.0, 1, 0.03) is None
        assert machine.state.phase == LimbPhase.IN_MOTION
        assert machine.status == "in motion"

    def test_episode_ends_at_reset_angle(self, machine):
        result = run_episode(machine, 90.0, end_angle=145.0)

        assert result.classification == Classification.SUCCESS

    def test_latch_stays_closed_at_exact_reset_angle(self, machine):
        run_episode(machine, 90.0, end_angle=145.0)
        assert not machine.state.can_count
        assert machine.status == "awaiting reset"

        # Second dip without ever going above 145 is tracked but not counted
        machine.update(100.0, 4, 0.13)
        assert machine.update(145.0, 5, 0.17) is None
        assert machine.min_angle_log == [90.0, 100.0]

    def test_latch_reopens_above_reset_angle(self, machine):
        run_episode(machine, 90.0, end_angle=145.0)
        machine.update(145.1, 4, 0.13)

        assert machine.state.can_count
        assert machine.state.phase == LimbPhase.IDLE
        assert run_episode(machine, 100.0, start_frame=5) is not None

    def test_consecutive_reps_each_counted(self, machine):
        first = run_episode(machine, 90.0)
        second = run_episode(machine, 60.0, start_frame=4)

        assert first.classification == Classification.SUCCESS
        assert second.classification == Classification.FAILURE


class TestUnknownReadings:
    def test_unknown_aborts_episode_without_result(self, machine):
        machine.update(170.0, 0, 0.0)
        machine.update(90.0, 1, 0.03)
        machine.update(None, 2, 0.07)

        assert machine.state.phase == LimbPhase.IDLE
        assert machine.state.extremum is None
        assert machine.update(170.0, 3, 0.1) is None
        assert machine.min_angle_log == []

    def test_unknown_while_idle_is_noop(self, machine):
        machine.update(170.0, 0, 0.0)
        assert machine.update(None, 1, 0.03) is None
        assert machine.state.can_count

    def test_tracking_lost_after_consecutive_unknowns(self, machine):
        run_episode(machine, 90.0, end_angle=145.0)
        for frame in range(4, 9):
            machine.update(None, frame, frame / 30.0)

        assert machine.status == "tracking lost"
        assert machine.state.can_count
        assert machine.state.phase == LimbPhase.IDLE

        machine.update(170.0, 9, 0.3)
        assert machine.status == "ready"

    def test_short_dropout_keeps_latch(self, machine):
        run_episode(machine, 90.0, end_angle=145.0)
        for frame in range(4, 8):
            machine.update(None, frame, frame / 30.0)

        assert not machine.state.can_count


class TestHighKneeEngine:
    def test_left_knee_lift(self, settings, leg_sample):
        engine = HighKneeEngine(settings)
        events = []
        for frame, angle in enumerate([170, 150, 120, 90, 100, 130, 170]):
            events.extend(engine.process_frame(leg_sample(frame, angle)))

        assert len(events) == 1
        assert events[0].limb == LimbSide.LEFT
        assert events[0].classification == Classification.SUCCESS
        assert events[0].frame_index == 6
        assert events[0].sequence_number == 1
        assert engine.get_counts()["left"]["success"] == 1
        assert engine.get_counts()["right"]["total"] == 0

    def test_both_legs_alternate(self, settings, leg_sample):
        engine = HighKneeEngine(settings)
        frames = [
            (170, 170), (90, 170), (170, 170),
            (170, 115), (170, 170),
        ]
        events = []
        for frame, (left, right) in enumerate(frames):
            events.extend(engine.process_frame(leg_sample(frame, left, right)))

        assert [(e.limb, e.classification) for e in events] == [
            (LimbSide.LEFT, Classification.SUCCESS),
            (LimbSide.RIGHT, Classification.FAILURE),
        ]
        assert engine.get_summary()["success_rate"] == pytest.approx(0.5)

    def test_missing_joints_emit_nothing(self, settings, leg_sample):
        engine = HighKneeEngine(settings)
        engine.process_frame(leg_sample(0, 170))
        engine.process_frame(leg_sample(1, 90))
        for frame in range(2, 5):
            assert engine.process_frame(leg_sample(frame, None)) == []

        assert engine.history == []
        assert engine.get_counts()["total"]["total"] == 0

    def test_summary_min_angle_stats(self, settings, leg_sample):
        engine = HighKneeEngine(settings)
        for frame, angle in enumerate([170, 90, 170, 110, 170]):
            engine.process_frame(leg_sample(frame, angle))

        stats = engine.get_summary()["min_angles"]["left"]
        assert stats["count"] == 2
        assert stats["mean"] == pytest.approx(100.0)
        assert engine.get_summary()["min_angles"]["right"]["count"] == 0
