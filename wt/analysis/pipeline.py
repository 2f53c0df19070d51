"""
Per-session owner of the location/motion pipeline.

For each raw fix:
- Stage 1-3: accuracy gate, speed gate, Kalman smoothing (GpsFilter)
- Stage 4: append to the path log and simplified polyline
- Stage 5: integrate distance
- Stage 6: feed smoothed velocity to the movement stabilizer
Step-counter readings go to the step estimator, gated by stage 6 and
checked against the GPS movement since the previous reading.

One pipeline per session: build it when the session starts, drop it when
the session ends. Writers should be a single task; the lock only makes
concurrent readers see consistent snapshots.
"""

from __future__ import annotations

import threading
from typing import Iterable, Optional

from wt.analysis.config import PipelineConfig
from wt.analysis.filters import AccuracyFilter, GpsFilter, SpeedFilter
from wt.analysis.kalman import KalmanFilter
from wt.analysis.movement import MovementStateStabilizer
from wt.analysis.path import DistanceCalculator, PathSmoother
from wt.analysis.steps import StepEstimator
from wt.analysis.types import (
    Accepted,
    FilterOutcome,
    FilteredPoint,
    MovementState,
    RawFix,
    SessionSnapshot,
    SessionValidation,
)
from wt.analysis.validation import SessionValidator, StepCountValidator
from wt.utils.log import get_logger

logger = get_logger(__name__)


class TrackingPipeline:
    """
    Stateful pipeline turning raw fixes and step counts into path, distance,
    steps and movement state for one session.
    """
    def __init__(self, cfg: Optional[PipelineConfig] = None) -> None:
        self.cfg = cfg or PipelineConfig()
        kalman = KalmanFilter(self.cfg.kalman_q)
        # fresh instance is already clean; the explicit reset marks session start
        kalman.reset()
        self.gps = GpsFilter(
            AccuracyFilter(self.cfg.max_accuracy_m),
            SpeedFilter(self.cfg.max_speed_mps),
            kalman,
        )
        self.smoother = PathSmoother(self.cfg.simplify_tolerance_m, self.cfg.simplify_max_window)
        self.distance = DistanceCalculator()
        self.stabilizer = MovementStateStabilizer(
            self.cfg.walking_speed_threshold_mps, self.cfg.stable_duration_ms
        )
        self.steps = StepEstimator(self.stabilizer, StepCountValidator())
        self.session_validator = SessionValidator()
        self._last_outcome: Optional[FilterOutcome] = None
        self._first_accepted_ms: Optional[int] = None
        self._meters_at_last_reading = 0.0
        self._lock = threading.Lock()
        logger.info("Starting tracking session: %s", self.cfg.as_dict())

    def process(self, fix: RawFix) -> FilterOutcome:
        """
        Run one raw fix through every stage and return its filter outcome.
        """
        with self._lock:
            return self._process(fix)

    def process_batch(self, fixes: Iterable[RawFix]) -> list[FilterOutcome]:
        """
        Same as calling `process` for each fix in order.
        """
        with self._lock:
            return [self._process(fix) for fix in fixes]

    def _process(self, fix: RawFix) -> FilterOutcome:
        outcome = self.gps.process(fix)
        match outcome:
            case Accepted(point=point):
                if self._first_accepted_ms is None:
                    self._first_accepted_ms = point.timestamp_ms
                self.smoother.append(point)
                self.distance.integrate(point)
                self.stabilizer.on_velocity_sample(point.smoothed_velocity_mps, point.timestamp_ms)
        self._last_outcome = outcome
        return outcome

    def on_sensor_step_count(
        self,
        raw_cumulative_count: int,
        timestamp_ms: Optional[int] = None,
        acceleration: Optional[float] = None,
    ) -> int:
        """
        Feed one cumulative step-counter reading; return the session step total.

        The reading is checked against the path distance covered since the
        previous reading and the current smoothed velocity.
        """
        with self._lock:
            total_meters = self.distance.total_meters
            gps_distance = total_meters - self._meters_at_last_reading
            self._meters_at_last_reading = total_meters
            last = self.gps.last_accepted
            speed = last.smoothed_velocity_mps if last is not None else 0.0
            return self.steps.on_sensor_step_count(
                raw_cumulative_count, timestamp_ms, gps_distance, speed, acceleration
            )

    @property
    def total_meters(self) -> float:
        with self._lock:
            return self.distance.total_meters

    @property
    def total_steps(self) -> int:
        with self._lock:
            return self.steps.total_steps

    @property
    def movement_state(self) -> MovementState:
        with self._lock:
            return self.stabilizer.state

    def simplified_path(self) -> tuple[FilteredPoint, ...]:
        with self._lock:
            return self.smoother.simplified_path()

    def retained_vertices(self) -> tuple[FilteredPoint, ...]:
        with self._lock:
            return self.smoother.retained_vertices()

    def smoothed_curve(self) -> list[tuple[float, float]]:
        """Post-session spline through the path."""
        with self._lock:
            return self.smoother.smoothed_curve(self.cfg.smooth_segments)

    def validate(self) -> SessionValidation:
        """Plausibility verdict on the totals so far."""
        with self._lock:
            return self._validate()

    def _validate(self) -> SessionValidation:
        last = self.gps.last_accepted
        if self._first_accepted_ms is None or last is None:
            duration_ms = 0
        else:
            duration_ms = last.timestamp_ms - self._first_accepted_ms
        return self.session_validator.validate(
            self.distance.total_meters, self.steps.total_steps, duration_ms
        )

    def snapshot(self) -> SessionSnapshot:
        """
        Consistent point-in-time view of every output.
        """
        with self._lock:
            return SessionSnapshot(
                total_meters=self.distance.total_meters,
                total_steps=self.steps.total_steps,
                movement_state=self.stabilizer.state,
                simplified_path=self.smoother.simplified_path(),
                accepted=self.gps.accepted,
                rejected_low_accuracy=self.gps.rejected_low_accuracy,
                rejected_implausible_speed=self.gps.rejected_implausible_speed,
                last_outcome=self._last_outcome,
                transitions=self.stabilizer.transitions,
                validation=self._validate(),
            )

    def stats(self) -> dict:
        """
        Filter thresholds and counters, step diagnostics and the session verdict.
        """
        with self._lock:
            validation = self._validate()
            return {
                **self.gps.stats(),
                "path_points": len(self.smoother),
                "retained_vertices": len(self.smoother.retained_vertices()),
                "discarded_steps": self.steps.discarded_steps,
                "step_counter_resets": self.steps.resets_detected,
                "rejected_step_readings": {r.value: n for r, n in self.steps.rejected_readings.items()},
                "validation": {
                    "action": validation.action.value,
                    "flags": [f.value for f in validation.flags],
                    "should_count_steps": validation.should_count_steps,
                },
            }
