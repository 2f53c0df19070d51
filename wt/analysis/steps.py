"""
Session step counting from the hardware cumulative step counter.
"""

from __future__ import annotations

from collections import Counter
from copy import copy
from typing import Optional

from wt.analysis.movement import MovementStateStabilizer
from wt.analysis.types import MovementState, StepAccumulator, StepRejection
from wt.analysis.validation import StepCountValidator
from wt.utils.log import get_logger

logger = get_logger(__name__)

# projected_steps never runs further ahead of the sensor than this
MAX_PROJECTED_AHEAD = 10


class StepEstimator:
    """
    Turn cumulative-since-boot counter readings into a session step total,
    counting only while the GPS-derived movement state says WALKING.

    Readings taken while stationary still move the baseline forward, so
    fidgeting with the phone at a crossing is dropped rather than deferred.
    A reading below the baseline means the device rebooted or the counter
    wrapped; it becomes the new baseline and contributes nothing.
    """

    def __init__(
        self,
        stabilizer: MovementStateStabilizer,
        validator: Optional[StepCountValidator] = None,
    ) -> None:
        self.stabilizer = stabilizer
        self.validator = validator
        self._acc = StepAccumulator()
        self.discarded_steps = 0
        self.resets_detected = 0
        self.rejected_readings: Counter[StepRejection] = Counter()
        self._cadence_sps = 0.0
        self._last_counted_ms: Optional[int] = None

    @property
    def total_steps(self) -> int:
        return self._acc.total_steps

    @property
    def accumulator(self) -> StepAccumulator:
        return copy(self._acc)

    @property
    def cadence_sps(self) -> float:
        """Steps per second over the last counted interval."""
        return self._cadence_sps

    def on_sensor_step_count(
        self,
        raw_cumulative_count: int,
        timestamp_ms: Optional[int] = None,
        gps_distance_m: Optional[float] = None,
        gps_speed_mps: Optional[float] = None,
        acceleration: Optional[float] = None,
    ) -> int:
        """
        Feed one counter reading; return the session total.

        Parameters
        ----------
        raw_cumulative_count
            The device's cumulative step counter (not a delta).
        timestamp_ms
            Reading time; only used to estimate cadence for `projected_steps`.
        gps_distance_m, gps_speed_mps, acceleration
            What the GPS (and accelerometer, if any) saw since the previous
            reading. With a validator and both GPS values given, a delta the
            validator rejects is discarded instead of counted.
        """
        last = self._acc.last_raw_sensor_count
        if last is None:
            delta = 0
        else:
            delta = raw_cumulative_count - last
            if delta < 0:
                self.resets_detected += 1
                logger.info("Step counter went back from %d to %d, rebasing", last, raw_cumulative_count)
                delta = 0
        self._acc.last_raw_sensor_count = raw_cumulative_count

        if self.stabilizer.state is not MovementState.WALKING:
            self.discarded_steps += delta
            self._cadence_sps = 0.0
            self._last_counted_ms = None
            return self._acc.total_steps

        if last is not None and self.validator and gps_distance_m is not None and gps_speed_mps is not None:
            rejection = self.validator.validate(delta, gps_distance_m, gps_speed_mps, acceleration)
            if rejection is not None:
                self.rejected_readings[rejection] += 1
                self.discarded_steps += delta
                logger.debug("Step reading rejected (%s): %d steps dropped", rejection.value, delta)
                return self._acc.total_steps

        self._acc.total_steps += delta
        self._update_cadence(delta, timestamp_ms)
        return self._acc.total_steps

    def _update_cadence(self, delta: int, timestamp_ms: Optional[int]) -> None:
        if timestamp_ms is None:
            return
        if self._last_counted_ms is not None and timestamp_ms > self._last_counted_ms:
            self._cadence_sps = delta / ((timestamp_ms - self._last_counted_ms) / 1000.0)
        self._last_counted_ms = timestamp_ms

    def projected_steps(self, now_ms: int) -> int:
        """
        Display estimate between sensor readings: the total plus what the
        current cadence predicts since the last reading, at most
        MAX_PROJECTED_AHEAD steps ahead. Never changes the total.
        """
        total = self._acc.total_steps
        if (
            self.stabilizer.state is not MovementState.WALKING
            or self._last_counted_ms is None
            or now_ms <= self._last_counted_ms
        ):
            return total
        ahead = int(self._cadence_sps * (now_ms - self._last_counted_ms) / 1000.0)
        return total + min(ahead, MAX_PROJECTED_AHEAD)
