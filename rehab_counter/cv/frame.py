"""
Per-frame joint samples and their per-exercise projections.

A FrameSample carries whatever the pose estimator produced for one video
frame. Joints that were not detected, fell below the visibility threshold or
landed off-screen are simply absent and read back as None. LegFrame and
FootFrame flatten the joints an exercise needs into scalar fields so the
smoother can filter them one by one.
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from rehab_counter.cv.geometry import angle_at, distance
from rehab_counter.models.repetition import LimbSide

logger = logging.getLogger(__name__)


class MediaPipeLandmark(IntEnum):
    """MediaPipe Pose landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


NUM_LANDMARKS = len(MediaPipeLandmark)

# Landmarks whose world-space Z is kept
WORLD_Z_LANDMARKS = (
    MediaPipeLandmark.LEFT_SHOULDER,
    MediaPipeLandmark.RIGHT_SHOULDER,
    MediaPipeLandmark.LEFT_HEEL,
    MediaPipeLandmark.RIGHT_HEEL,
    MediaPipeLandmark.LEFT_FOOT_INDEX,
    MediaPipeLandmark.RIGHT_FOOT_INDEX,
)


@dataclass
class Keypoint:
    """Single joint in normalized image space."""
    x: float
    y: float
    z: Optional[float] = None
    visibility: float = 1.0

    def to_tuple(self) -> Tuple[float, ...]:
        if self.z is None:
            return (self.x, self.y)
        return (self.x, self.y, self.z)


@dataclass
class FrameSample:
    """Joint positions for a single video frame."""
    frame_index: int
    timestamp: float
    keypoints: Dict[int, Keypoint] = field(default_factory=dict)
    world_z: Dict[int, float] = field(default_factory=dict)

    def get(self, landmark: int) -> Optional[Keypoint]:
        return self.keypoints.get(int(landmark))

    def get_world_z(self, landmark: int) -> Optional[float]:
        return self.world_z.get(int(landmark))

    @property
    def is_empty(self) -> bool:
        return not self.keypoints

    @classmethod
    def from_landmarks(
        cls,
        landmarks,
        frame_index: int,
        timestamp: float,
        world_landmarks=None,
        visibility_threshold: float = 0.5,
    ) -> "FrameSample":
        """
        Build a sample from pose-estimator output.

        Args:
            landmarks: Sequence of objects with x, y, z (and optionally
                visibility) attributes, or an array of shape (N, 3) or (N, 4)
                holding x, y, z[, visibility] rows
            frame_index: Index of the frame in the session
            timestamp: Frame time in seconds
            world_landmarks: Same layout as `landmarks`, world coordinates
            visibility_threshold: Joints below this are left unknown

        Returns:
            FrameSample where rejected joints are absent
        """
        keypoints: Dict[int, Keypoint] = {}
        for index, (x, y, z, visibility) in enumerate(_rows(landmarks)):
            if visibility < visibility_threshold:
                continue
            # Off-screen coordinates are extrapolated by the estimator
            if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
                continue
            keypoints[index] = Keypoint(x=x, y=y, z=z, visibility=visibility)

        world_z: Dict[int, float] = {}
        if world_landmarks is not None:
            world_rows = list(_rows(world_landmarks))
            for landmark in WORLD_Z_LANDMARKS:
                if landmark >= len(world_rows):
                    continue
                _, _, z, visibility = world_rows[landmark]
                if z is None or visibility < visibility_threshold:
                    continue
                world_z[int(landmark)] = z

        return cls(
            frame_index=frame_index,
            timestamp=timestamp,
            keypoints=keypoints,
            world_z=world_z,
        )

    @classmethod
    def from_mediapipe_tasks(
        cls,
        result,
        frame_index: int,
        timestamp: float,
        visibility_threshold: float = 0.5,
    ) -> "FrameSample":
        """Create a FrameSample from a MediaPipe Tasks PoseLandmarkerResult."""
        pose_landmarks = getattr(result, "pose_landmarks", None)
        if not pose_landmarks:
            logger.debug(f"Frame {frame_index}: no pose detected")
            return cls(frame_index=frame_index, timestamp=timestamp)

        world = getattr(result, "pose_world_landmarks", None)
        return cls.from_landmarks(
            pose_landmarks[0],
            frame_index=frame_index,
            timestamp=timestamp,
            world_landmarks=world[0] if world else None,
            visibility_threshold=visibility_threshold,
        )


def _rows(landmarks):
    """Yield (x, y, z, visibility) for either landmark objects or an array."""
    if isinstance(landmarks, np.ndarray):
        array = np.asarray(landmarks, dtype=float)
        for row in array:
            z = float(row[2]) if len(row) > 2 else None
            visibility = float(row[3]) if len(row) > 3 else 1.0
            yield float(row[0]), float(row[1]), z, visibility
        return

    for landmark in landmarks:
        z = getattr(landmark, "z", None)
        visibility = getattr(landmark, "visibility", None)
        yield (
            float(landmark.x),
            float(landmark.y),
            None if z is None else float(z),
            1.0 if visibility is None else float(visibility),
        )


def _side_landmark(side: LimbSide, joint: str) -> MediaPipeLandmark:
    return MediaPipeLandmark[f"{side.name}_{joint}"]


def _point(x: Optional[float], y: Optional[float]) -> Optional[Sequence[float]]:
    if x is None or y is None:
        return None
    return (x, y)


@dataclass
class LegFrame:
    """Hip, knee and ankle coordinates of both legs."""
    frame_index: int
    timestamp: float
    left_hip_x: Optional[float] = None
    left_hip_y: Optional[float] = None
    left_knee_x: Optional[float] = None
    left_knee_y: Optional[float] = None
    left_ankle_x: Optional[float] = None
    left_ankle_y: Optional[float] = None
    right_hip_x: Optional[float] = None
    right_hip_y: Optional[float] = None
    right_knee_x: Optional[float] = None
    right_knee_y: Optional[float] = None
    right_ankle_x: Optional[float] = None
    right_ankle_y: Optional[float] = None

    @classmethod
    def from_sample(cls, sample: FrameSample) -> "LegFrame":
        values: Dict[str, Optional[float]] = {}
        for side in LimbSide:
            for joint in ("HIP", "KNEE", "ANKLE"):
                keypoint = sample.get(_side_landmark(side, joint))
                prefix = f"{side.value}_{joint.lower()}"
                values[f"{prefix}_x"] = keypoint.x if keypoint else None
                values[f"{prefix}_y"] = keypoint.y if keypoint else None
        return cls(frame_index=sample.frame_index, timestamp=sample.timestamp, **values)

    def joint(self, side: LimbSide, joint: str) -> Optional[Sequence[float]]:
        prefix = f"{side.value}_{joint}"
        return _point(getattr(self, f"{prefix}_x"), getattr(self, f"{prefix}_y"))

    def knee_angle(self, side: LimbSide) -> Optional[float]:
        """Hip-knee-ankle angle in degrees, None if any joint is unknown."""
        hip = self.joint(side, "hip")
        knee = self.joint(side, "knee")
        ankle = self.joint(side, "ankle")
        if hip is None or knee is None or ankle is None:
            return None
        return angle_at(hip, knee, ankle)


@dataclass
class FootFrame:
    """
    Heel and toe coordinates of both feet plus the world-space depths used
    for alignment scoring.
    """
    frame_index: int
    timestamp: float
    left_heel_x: Optional[float] = None
    left_heel_y: Optional[float] = None
    left_heel_z: Optional[float] = None
    right_heel_x: Optional[float] = None
    right_heel_y: Optional[float] = None
    right_heel_z: Optional[float] = None
    left_toe_x: Optional[float] = None
    left_toe_y: Optional[float] = None
    left_toe_z: Optional[float] = None
    right_toe_x: Optional[float] = None
    right_toe_y: Optional[float] = None
    right_toe_z: Optional[float] = None
    left_foot_length: Optional[float] = None
    right_foot_length: Optional[float] = None
    world_left_heel_z: Optional[float] = None
    world_right_heel_z: Optional[float] = None
    world_left_toe_z: Optional[float] = None
    world_right_toe_z: Optional[float] = None
    world_left_shoulder_z: Optional[float] = None
    world_right_shoulder_z: Optional[float] = None

    @classmethod
    def from_sample(cls, sample: FrameSample) -> "FootFrame":
        values: Dict[str, Optional[float]] = {}
        for side in LimbSide:
            heel = sample.get(_side_landmark(side, "HEEL"))
            toe = sample.get(_side_landmark(side, "FOOT_INDEX"))
            for name, keypoint in (("heel", heel), ("toe", toe)):
                prefix = f"{side.value}_{name}"
                values[f"{prefix}_x"] = keypoint.x if keypoint else None
                values[f"{prefix}_y"] = keypoint.y if keypoint else None
                values[f"{prefix}_z"] = keypoint.z if keypoint else None

            if heel is not None and toe is not None and heel.z is not None and toe.z is not None:
                values[f"{side.value}_foot_length"] = distance(heel.to_tuple(), toe.to_tuple())
            else:
                values[f"{side.value}_foot_length"] = None

            values[f"world_{side.value}_heel_z"] = sample.get_world_z(_side_landmark(side, "HEEL"))
            values[f"world_{side.value}_toe_z"] = sample.get_world_z(_side_landmark(side, "FOOT_INDEX"))
            values[f"world_{side.value}_shoulder_z"] = sample.get_world_z(_side_landmark(side, "SHOULDER"))

        return cls(frame_index=sample.frame_index, timestamp=sample.timestamp, **values)

    def heel_x(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"{side.value}_heel_x")

    def toe_x(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"{side.value}_toe_x")

    def foot_length(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"{side.value}_foot_length")

    def world_heel_z(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"world_{side.value}_heel_z")

    def world_toe_z(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"world_{side.value}_toe_z")

    def world_shoulder_z(self, side: LimbSide) -> Optional[float]:
        return getattr(self, f"world_{side.value}_shoulder_z")
