"""
Plausibility checks on step counts and finished-session totals.

Two levels:
- StepCountValidator: per counter reading, against what the GPS saw since
  the previous reading
- SessionValidator: on the session totals (distance, steps, duration)

Rejection is reserved for the physically impossible. Most suspicious
patterns only exclude the steps and keep the walk.
"""

from __future__ import annotations

from typing import Optional

from wt.analysis.types import (
    FlagEffect,
    SessionValidation,
    StepRejection,
    SuspicionFlag,
    ValidationAction,
)
from wt.utils.log import get_logger

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Session thresholds (metres, km/h, steps)
MIN_STRIDE_M            = 0.2
MAX_STRIDE_M            = 2.0
MAX_AVG_SPEED_KMH       = 20.0
MAX_SESSION_STEPS       = 100_000
MIN_GPS_MOVEMENT_M      = 10.0   # below this the GPS saw no real movement
STATIONARY_STRIDE_M     = 0.3
STATIONARY_MIN_STEPS    = 300
SHAKING_MAX_SPEED_KMH   = 1.0
SHAKING_STRIDE_M        = 0.25

# Per-reading thresholds (metres, m/s, m/s²)
SHAKE_MAX_DISTANCE_M    = 1.5
SHAKE_MIN_ACCELERATION  = 2.5
VEHICLE_MIN_SPEED_MPS   = 3.5
# -----------------------------------------------------------------------------


def average_stride(total_meters: float, total_steps: int) -> float:
    if total_steps <= 0:
        return 0.0
    return total_meters / total_steps


def average_speed_kmh(total_meters: float, duration_ms: int) -> float:
    if duration_ms <= 0:
        return 0.0
    return total_meters / (duration_ms / 1000.0) * 3.6


class SessionValidator:
    """
    Flag sessions whose totals do not look like a walk.
    """

    def validate(self, total_meters: float, total_steps: int, duration_ms: int) -> SessionValidation:
        flags: list[SuspicionFlag] = []
        self._check_physical(total_meters, total_steps, duration_ms, flags)
        self._check_patterns(total_meters, total_steps, duration_ms, flags)

        should_count_steps = not any(f.effect is FlagEffect.EXCLUDE_STEPS for f in flags)
        if any(f.effect is FlagEffect.REJECT_SESSION for f in flags):
            action = ValidationAction.REJECT
        elif flags:
            action = ValidationAction.ACCEPT_FLAGGED
        else:
            action = ValidationAction.ACCEPT

        if flags:
            logger.debug(
                "Session validation: %s, flags=%s, count steps=%s",
                action.value, [f.value for f in flags], should_count_steps,
            )
        return SessionValidation(action, tuple(flags), should_count_steps)

    @staticmethod
    def _check_physical(
        total_meters: float, total_steps: int, duration_ms: int, flags: list[SuspicionFlag]
    ) -> None:
        if total_steps > 0 and total_meters > 0:
            stride = total_meters / total_steps
            if stride < MIN_STRIDE_M or stride > MAX_STRIDE_M:
                flags.append(SuspicionFlag.IMPOSSIBLE_STRIDE)

        if average_speed_kmh(total_meters, duration_ms) > MAX_AVG_SPEED_KMH:
            flags.append(SuspicionFlag.IMPOSSIBLE_SPEED)

        if total_steps > MAX_SESSION_STEPS:
            flags.append(SuspicionFlag.EXCESSIVE_STEPS)

    @staticmethod
    def _check_patterns(
        total_meters: float, total_steps: int, duration_ms: int, flags: list[SuspicionFlag]
    ) -> None:
        if total_meters >= MIN_GPS_MOVEMENT_M:
            return
        stride = average_stride(total_meters, total_steps)

        # walking on the spot
        if stride <= STATIONARY_STRIDE_M and total_steps > STATIONARY_MIN_STEPS:
            flags.append(SuspicionFlag.STATIONARY_WALKING)

        # phone shaken in hand
        if (
            total_steps > 0
            and average_speed_kmh(total_meters, duration_ms) < SHAKING_MAX_SPEED_KMH
            and stride < SHAKING_STRIDE_M
        ):
            flags.append(SuspicionFlag.SHAKING_PATTERN)


class StepCountValidator:
    """
    Check one step-counter delta against the GPS movement since the previous
    reading. Only called while the session is walking.
    """

    def validate(
        self,
        step_delta: int,
        gps_distance_m: float,
        gps_speed_mps: float,
        acceleration: Optional[float] = None,
    ) -> Optional[StepRejection]:
        """
        Return the reason to drop this delta, or None to count it.

        Parameters
        ----------
        step_delta
            Steps since the previous reading.
        gps_distance_m
            Distance along the accepted path since the previous reading.
        gps_speed_mps
            Current smoothed velocity.
        acceleration
            Peak acceleration magnitude since the previous reading, if the
            device reports one. Without it the phone-shake check is skipped.
        """
        if (
            acceleration is not None
            and gps_distance_m < SHAKE_MAX_DISTANCE_M
            and acceleration > SHAKE_MIN_ACCELERATION
        ):
            return StepRejection.PHONE_SHAKE
        if gps_speed_mps > VEHICLE_MIN_SPEED_MPS and step_delta == 0:
            return StepRejection.VEHICLE_MOVEMENT
        return None
