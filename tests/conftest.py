"""Shared sample builders."""

import math
from typing import Optional

import pytest

from rehab_counter.config import Settings
from rehab_counter.cv.frame import FrameSample, Keypoint, MediaPipeLandmark

FPS = 30.0


@pytest.fixture
def settings() -> Settings:
    """Identity smoothing so engine inputs reach the state machines unchanged."""
    return Settings(ema_alpha=1.0)


def _add_leg(keypoints, side: str, knee_x: float, angle: Optional[float]):
    if angle is None:
        return
    theta = math.radians(angle)
    knee = (knee_x, 0.5)
    keypoints[MediaPipeLandmark[f"{side}_HIP"]] = Keypoint(x=knee_x, y=0.3, z=0.0)
    keypoints[MediaPipeLandmark[f"{side}_KNEE"]] = Keypoint(x=knee[0], y=knee[1], z=0.0)
    keypoints[MediaPipeLandmark[f"{side}_ANKLE"]] = Keypoint(
        x=knee[0] + 0.2 * math.sin(theta),
        y=knee[1] - 0.2 * math.cos(theta),
        z=0.0,
    )


@pytest.fixture
def leg_sample():
    """
    Build a FrameSample whose hip-knee-ankle angles are the given values.
    None leaves that leg's joints out of the sample.
    """
    def build(frame_index: int, left_angle: Optional[float], right_angle: Optional[float] = 170.0) -> FrameSample:
        keypoints = {}
        _add_leg(keypoints, "LEFT", 0.35, left_angle)
        _add_leg(keypoints, "RIGHT", 0.6, right_angle)
        return FrameSample(
            frame_index=frame_index,
            timestamp=frame_index / FPS,
            keypoints={int(k): v for k, v in keypoints.items()},
        )

    return build


@pytest.fixture
def foot_sample():
    """
    Build a FrameSample with heel/toe positions on a flat floor (z = 0).

    Toes sit `foot_length` to the left of the heel unless given explicitly.
    World depth defaults to 0 for heels and toes; shoulders sit 0.1 apart so
    the depth tolerance is 0.11.
    """
    def build(
        frame_index: int,
        left_heel_x: Optional[float],
        right_heel_x: Optional[float],
        left_toe_x: Optional[float] = None,
        right_toe_x: Optional[float] = None,
        foot_length: float = 0.10,
        world_left_heel_z: float = 0.0,
    ) -> FrameSample:
        keypoints = {}
        world_z = {
            int(MediaPipeLandmark.LEFT_SHOULDER): 0.0,
            int(MediaPipeLandmark.RIGHT_SHOULDER): 0.1,
            int(MediaPipeLandmark.LEFT_HEEL): world_left_heel_z,
            int(MediaPipeLandmark.RIGHT_HEEL): 0.0,
            int(MediaPipeLandmark.LEFT_FOOT_INDEX): 0.0,
            int(MediaPipeLandmark.RIGHT_FOOT_INDEX): 0.0,
        }
        for side, heel_x, toe_x in (
            ("LEFT", left_heel_x, left_toe_x),
            ("RIGHT", right_heel_x, right_toe_x),
        ):
            if heel_x is None:
                continue
            if toe_x is None:
                toe_x = heel_x - foot_length
            keypoints[int(MediaPipeLandmark[f"{side}_HEEL"])] = Keypoint(x=heel_x, y=0.9, z=0.0)
            keypoints[int(MediaPipeLandmark[f"{side}_FOOT_INDEX"])] = Keypoint(x=toe_x, y=0.9, z=0.0)

        return FrameSample(
            frame_index=frame_index,
            timestamp=frame_index / FPS,
            keypoints=keypoints,
            world_z=world_z,
        )

    return build
