"""Engine configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Pose input
    landmark_visibility_threshold: float = 0.5  # Below this the joint is unknown

    # Signal smoothing (EMA)
    ema_alpha: float = 0.3
    ema_history_size: int = 5

    # Angle plausibility gate
    gate_history_size: int = 5
    gate_stability_window: int = 3  # Samples used for the stability check
    gate_stability_threshold_degrees: float = 15.0
    gate_conflict_difference_degrees: float = 60.0  # Left/right disagreement worth inspecting
    gate_lift_angle_degrees: float = 60.0  # Below this the limb is clearly lifted
    gate_standing_angle_degrees: float = 120.0  # Above this the limb is straight
    gate_misdetection_angle_degrees: float = 30.0
    gate_min_plausible_angle: float = 20.0
    gate_max_plausible_angle: float = 200.0

    # Consecutive unknown readings before a limb is considered lost
    tracking_lost_frames: int = 5

    # High knee (hip-knee-ankle angle, standard 90 degrees +/- 20%)
    high_knee_reset_angle: float = 145.0
    high_knee_success_min: float = 72.0
    high_knee_success_max: float = 108.0
    high_knee_failure_min: float = 54.0
    high_knee_failure_max: float = 126.0

    # Stride (hip-knee-ankle angle, standard 120 degrees)
    stride_reset_angle: float = 145.0
    stride_count_band_min: float = 102.0
    stride_count_band_max: float = 145.0
    stride_success_min: float = 108.0  # -10%
    stride_success_max: float = 132.0  # +10%
    stride_failure_min: float = 102.0  # -15%
    stride_failure_max: float = 138.0  # +15%
    stride_invalid_max: float = 145.0
    stride_angle_window: int = 5  # Moving average over known readings, 1 disables

    # Heel movement / direction alignment
    heel_movement_ratio: float = 0.02  # Fraction of foot length per frame
    heel_moving_frames: int = 5
    heel_stationary_frames: int = 7
    heel_detection_reset_frames: int = 5
    heel_no_count_ratio: float = 0.2
    heel_success_ratio: float = 0.3
    heel_shoulder_z_factor: float = 1.1

    class Config:
        env_file = ".env"
        env_prefix = "REHAB_"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
