# wt/analysis/config.py

from dataclasses import dataclass, fields

@dataclass(frozen=True)
class PipelineConfig:
    """
    Configuration for one tracking session's signal-processing pipeline.

    Fixed for the lifetime of a session; start a new session to change it.

    Attributes
    ----------
    max_accuracy_m
        Fixes reporting a horizontal accuracy radius above this (m) are rejected.
    max_speed_mps
        Maximum plausible speed (m/s) between the last accepted point and a new fix.
    kalman_q
        Kalman process noise (m/s² white-noise acceleration). Larger trusts fixes more.
    walking_speed_threshold_mps
        Smoothed speed (m/s) above which the user counts as walking.
    stable_duration_ms
        Time (ms) speed must stay at/below the threshold before walking stops.
    simplify_tolerance_m
        Maximum deviation (m) of a dropped point from the simplified polyline.
    simplify_max_window
        Maximum points held pending before one is forced into the polyline.
    smooth_segments
        Interpolated points per span in the post-session spline.
    """
    max_accuracy_m:              float = 50.0
    max_speed_mps:               float = 30.0
    kalman_q:                    float = 3.0
    walking_speed_threshold_mps: float = 0.3
    stable_duration_ms:          int   = 3000
    simplify_tolerance_m:        float = 5.0
    simplify_max_window:         int   = 64
    smooth_segments:             int   = 8

    def __post_init__(self) -> None:
        for name in ("max_accuracy_m", "max_speed_mps", "simplify_tolerance_m"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0, got {getattr(self, name)!r}")
        for name in ("kalman_q", "walking_speed_threshold_mps", "stable_duration_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)!r}")
        if self.simplify_max_window < 2:
            raise ValueError(f"simplify_max_window must be >= 2, got {self.simplify_max_window!r}")
        if self.smooth_segments < 1:
            raise ValueError(f"smooth_segments must be >= 1, got {self.smooth_segments!r}")

    @classmethod
    def walking(cls):
        """Preset for pedestrian sessions (default thresholds)."""
        return cls()

    @classmethod
    def running(cls):
        """Preset for running sessions (livelier filter, quicker stop detection)."""
        return cls(
            kalman_q=5.0,
            walking_speed_threshold_mps=1.0,
            stable_duration_ms=2000,
        )

    @classmethod
    def preset(cls, name: str):
        """Look up a preset by name ('walking' or 'running')."""
        match name:
            case "walking":
                return cls.walking()
            case "running":
                return cls.running()
        raise ValueError(f"unknown preset {name!r}; use 'walking' or 'running'")

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
