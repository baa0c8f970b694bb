from types import SimpleNamespace

import numpy as np
import pytest

from rehab_counter.cv.frame import FootFrame, FrameSample, Keypoint, LegFrame, MediaPipeLandmark
from rehab_counter.models.repetition import LimbSide


def landmark_array():
    array = np.zeros((33, 4))
    array[:, 0:2] = 0.5
    array[:, 3] = 0.9
    return array


class TestFromLandmarks:
    def test_array_input(self):
        sample = FrameSample.from_landmarks(landmark_array(), frame_index=3, timestamp=0.1)

        assert len(sample.keypoints) == 33
        assert sample.get(MediaPipeLandmark.LEFT_KNEE).x == 0.5
        assert sample.frame_index == 3

    def test_low_visibility_is_unknown(self):
        array = landmark_array()
        array[MediaPipeLandmark.LEFT_ANKLE, 3] = 0.2
        sample = FrameSample.from_landmarks(array, 0, 0.0)

        assert sample.get(MediaPipeLandmark.LEFT_ANKLE) is None
        assert sample.get(MediaPipeLandmark.RIGHT_ANKLE) is not None

    @pytest.mark.parametrize("x, y", [(-0.01, 0.5), (1.2, 0.5), (0.5, 1.01)])
    def test_off_screen_is_unknown(self, x, y):
        array = landmark_array()
        array[MediaPipeLandmark.RIGHT_HEEL, 0:2] = (x, y)
        sample = FrameSample.from_landmarks(array, 0, 0.0)

        assert sample.get(MediaPipeLandmark.RIGHT_HEEL) is None

    def test_array_without_visibility(self):
        sample = FrameSample.from_landmarks(np.full((33, 3), 0.4), 0, 0.0)

        assert sample.get(MediaPipeLandmark.NOSE).visibility == 1.0
        assert sample.get(MediaPipeLandmark.NOSE).z == pytest.approx(0.4)

    def test_world_z_kept_for_feet_and_shoulders(self):
        world = np.zeros((33, 4))
        world[:, 2] = np.arange(33) / 100.0
        world[:, 3] = 1.0
        sample = FrameSample.from_landmarks(landmark_array(), 0, 0.0, world_landmarks=world)

        assert sample.get_world_z(MediaPipeLandmark.LEFT_SHOULDER) == pytest.approx(0.11)
        assert sample.get_world_z(MediaPipeLandmark.RIGHT_FOOT_INDEX) == pytest.approx(0.32)
        assert sample.get_world_z(MediaPipeLandmark.LEFT_KNEE) is None

    def test_object_input(self):
        points = [SimpleNamespace(x=0.2, y=0.3, z=-0.1, visibility=0.8) for _ in range(33)]
        sample = FrameSample.from_landmarks(points, 0, 0.0)

        assert sample.get(MediaPipeLandmark.RIGHT_HIP).z == pytest.approx(-0.1)

    def test_empty_tasks_result(self):
        result = SimpleNamespace(pose_landmarks=[], pose_world_landmarks=[])
        sample = FrameSample.from_mediapipe_tasks(result, 7, 0.2)

        assert sample.is_empty
        assert sample.frame_index == 7


class TestLegFrame:
    def test_knee_angle(self):
        sample = FrameSample(frame_index=0, timestamp=0.0, keypoints={
            MediaPipeLandmark.LEFT_HIP: Keypoint(0.4, 0.3),
            MediaPipeLandmark.LEFT_KNEE: Keypoint(0.4, 0.5),
            MediaPipeLandmark.LEFT_ANKLE: Keypoint(0.4, 0.7),
        })
        legs = LegFrame.from_sample(sample)

        assert legs.knee_angle(LimbSide.LEFT) == pytest.approx(180.0)
        assert legs.knee_angle(LimbSide.RIGHT) is None

    def test_missing_joint_gives_unknown_angle(self):
        sample = FrameSample(frame_index=0, timestamp=0.0, keypoints={
            MediaPipeLandmark.LEFT_HIP: Keypoint(0.4, 0.3),
            MediaPipeLandmark.LEFT_KNEE: Keypoint(0.4, 0.5),
        })

        assert LegFrame.from_sample(sample).knee_angle(LimbSide.LEFT) is None


class TestFootFrame:
    def test_foot_length_is_3d_heel_toe_distance(self):
        sample = FrameSample(frame_index=0, timestamp=0.0, keypoints={
            MediaPipeLandmark.RIGHT_HEEL: Keypoint(0.5, 0.9, 0.0),
            MediaPipeLandmark.RIGHT_FOOT_INDEX: Keypoint(0.44, 0.98, 0.0),
        }, world_z={MediaPipeLandmark.RIGHT_SHOULDER: -0.2})
        foot = FootFrame.from_sample(sample)

        assert foot.foot_length(LimbSide.RIGHT) == pytest.approx(0.1)
        assert foot.heel_x(LimbSide.RIGHT) == 0.5
        assert foot.toe_x(LimbSide.RIGHT) == 0.44
        assert foot.world_shoulder_z(LimbSide.RIGHT) == -0.2
        assert foot.foot_length(LimbSide.LEFT) is None

    def test_foot_length_needs_depth(self):
        sample = FrameSample(frame_index=0, timestamp=0.0, keypoints={
            MediaPipeLandmark.LEFT_HEEL: Keypoint(0.5, 0.9),
            MediaPipeLandmark.LEFT_FOOT_INDEX: Keypoint(0.4, 0.9),
        })

        assert FootFrame.from_sample(sample).foot_length(LimbSide.LEFT) is None
