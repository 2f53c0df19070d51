"""
GPS fix gating: accuracy gate, speed gate, and the GpsFilter chain that
runs both before handing surviving fixes to the Kalman smoother.

Order is fixed: accuracy -> speed -> Kalman. The speed gate compares the
*raw* candidate against the last *accepted* raw fix, not its smoothed
position, so a sharp but teleported fix never reaches the filter state. A rejected fix leaves the
chain exactly as it was, apart from the diagnostic counters.
"""

from __future__ import annotations

from typing import Optional

from wt.analysis.kalman import KalmanFilter
from wt.analysis.types import (
    Accepted,
    FilteredPoint,
    FilterOutcome,
    RawFix,
    RejectedImplausibleSpeed,
    RejectedLowAccuracy,
)
from wt.utils.geo import haversine
from wt.utils.log import get_logger

logger = get_logger(__name__)


class AccuracyFilter:
    """
    Reject fixes whose reported accuracy radius is worse than `max_accuracy_m`.
    A fix exactly at the threshold passes.
    """
    def __init__(self, max_accuracy_m: float = 50.0) -> None:
        self.max_accuracy_m = max_accuracy_m

    def evaluate(self, fix: RawFix) -> bool:
        return fix.horizontal_accuracy_m <= self.max_accuracy_m


class SpeedFilter:
    """
    Reject fixes implying an implausible speed from the last accepted raw fix.
    """
    def __init__(self, max_speed_mps: float = 30.0) -> None:
        self.max_speed_mps = max_speed_mps

    @staticmethod
    def implied_speed(candidate: RawFix, last_accepted: RawFix) -> Optional[float]:
        """
        Speed in m/s needed to get from `last_accepted` to `candidate`,
        or None when no time has passed (duplicate or out-of-order fix).
        """
        dt = (candidate.timestamp_ms - last_accepted.timestamp_ms) / 1000.0
        if dt <= 0:
            return None
        return haversine(last_accepted.latlon, candidate.latlon) / dt

    def evaluate(self, candidate: RawFix, last_accepted: Optional[RawFix]) -> bool:
        """
        True if the candidate passes. The first fix of a session always passes;
        a fix that does not advance the clock never does.
        """
        if last_accepted is None:
            return True
        speed = self.implied_speed(candidate, last_accepted)
        if speed is None:
            return False
        return speed <= self.max_speed_mps


class GpsFilter:
    """
    Accuracy gate, speed gate and Kalman smoother chained into one call.
    """

    def __init__(
        self,
        accuracy_filter: AccuracyFilter,
        speed_filter: SpeedFilter,
        kalman_filter: KalmanFilter,
    ) -> None:
        self.accuracy_filter = accuracy_filter
        self.speed_filter = speed_filter
        self.kalman_filter = kalman_filter
        self.last_accepted: Optional[FilteredPoint] = None
        self.last_accepted_fix: Optional[RawFix] = None
        self.accepted = 0
        self.rejected_low_accuracy = 0
        self.rejected_implausible_speed = 0

    @classmethod
    def create(
        cls,
        max_accuracy_m: float = 50.0,
        max_speed_mps: float = 30.0,
        q: float = 3.0,
    ) -> "GpsFilter":
        """Build a chain with fresh filters for a new session."""
        return cls(AccuracyFilter(max_accuracy_m), SpeedFilter(max_speed_mps), KalmanFilter(q))

    def process(self, fix: RawFix) -> FilterOutcome:
        """
        Run one raw fix through the chain.

        Returns
        -------
        FilterOutcome
            `Accepted(point)` if both gates passed, otherwise the rejection
            that stopped it.
        """
        if not self.accuracy_filter.evaluate(fix):
            self.rejected_low_accuracy += 1
            logger.debug(
                "Accuracy gate: %.1fm > %.1fm, dropped fix at t=%d",
                fix.horizontal_accuracy_m, self.accuracy_filter.max_accuracy_m, fix.timestamp_ms,
            )
            return RejectedLowAccuracy(fix.horizontal_accuracy_m)

        if not self.speed_filter.evaluate(fix, self.last_accepted_fix):
            self.rejected_implausible_speed += 1
            speed = self.speed_filter.implied_speed(fix, self.last_accepted_fix)
            if speed is None:
                logger.debug(
                    "Speed gate: timestamp %d does not advance past %d",
                    fix.timestamp_ms, self.last_accepted_fix.timestamp_ms,
                )
            else:
                logger.debug(
                    "Speed gate: %.1fm/s > %.1fm/s, dropped fix at t=%d",
                    speed, self.speed_filter.max_speed_mps, fix.timestamp_ms,
                )
            return RejectedImplausibleSpeed(speed)

        point = self.kalman_filter.update(fix)
        self.last_accepted = point
        self.last_accepted_fix = fix
        self.accepted += 1
        return Accepted(point)

    def stats(self) -> dict:
        """
        Thresholds and counters, for diagnostics.
        """
        return {
            "max_accuracy_m": self.accuracy_filter.max_accuracy_m,
            "max_speed_mps": self.speed_filter.max_speed_mps,
            "kalman_q": self.kalman_filter.q,
            "accepted": self.accepted,
            "rejected_low_accuracy": self.rejected_low_accuracy,
            "rejected_implausible_speed": self.rejected_implausible_speed,
        }
