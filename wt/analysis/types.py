# wt/analysis/types.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class RawFix:
    """
    Single raw GPS reading as delivered by the location provider.

    Parameters
    ----------
    latitude : float
        Latitude in decimal degrees.
    longitude : float
        Longitude in decimal degrees.
    horizontal_accuracy_m : float
        Reported horizontal accuracy radius in metres (>= 0, smaller is better).
    timestamp_ms : int
        Fix time in epoch milliseconds.
    speed_mps : float, optional
        Sensor-reported speed in m/s, if any.
    altitude_m : float, optional
        Altitude in metres, if any.

    Raises
    ------
    ValueError
        If the coordinates are out of range or the accuracy is negative/NaN.
    """
    latitude: float
    longitude: float
    horizontal_accuracy_m: float
    timestamp_ms: int
    speed_mps: Optional[float] = None
    altitude_m: Optional[float] = None

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude!r}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude!r}")
        if math.isnan(self.horizontal_accuracy_m) or self.horizontal_accuracy_m < 0:
            raise ValueError(f"horizontal accuracy must be >= 0, got {self.horizontal_accuracy_m!r}")

    @property
    def latlon(self) -> tuple[float, float]:
        return self.latitude, self.longitude


@dataclass(frozen=True)
class FilteredPoint:
    """
    Kalman-smoothed position produced for one accepted fix.

    Parameters
    ----------
    latitude : float
        Smoothed latitude in decimal degrees.
    longitude : float
        Smoothed longitude in decimal degrees.
    timestamp_ms : int
        Timestamp of the fix this point was produced from.
    smoothed_velocity_mps : float
        Magnitude of the filter's velocity estimate in m/s.
    """
    latitude: float
    longitude: float
    timestamp_ms: int
    smoothed_velocity_mps: float

    @property
    def latlon(self) -> tuple[float, float]:
        return self.latitude, self.longitude


@dataclass(frozen=True)
class Accepted:
    """Fix passed every gate; `point` is its smoothed position."""
    point: FilteredPoint


@dataclass(frozen=True)
class RejectedLowAccuracy:
    """Fix reported an accuracy radius above the configured maximum."""
    accuracy_m: float


@dataclass(frozen=True)
class RejectedImplausibleSpeed:
    """
    Fix implied a speed above the configured maximum.

    `implied_speed_mps` is None when the timestamp did not advance past the
    last accepted point (duplicate or out-of-order fix).
    """
    implied_speed_mps: Optional[float]


FilterOutcome = Union[Accepted, RejectedLowAccuracy, RejectedImplausibleSpeed]


def outcome_name(outcome: FilterOutcome) -> str:
    """Stable snake_case tag for an outcome, used in logs and JSON."""
    match outcome:
        case Accepted():
            return "accepted"
        case RejectedLowAccuracy():
            return "rejected_low_accuracy"
        case RejectedImplausibleSpeed():
            return "rejected_implausible_speed"
    raise TypeError(f"not a filter outcome: {outcome!r}")


@dataclass(frozen=True)
class KalmanState:
    """
    Snapshot of one KalmanFilter.

    Parameters
    ----------
    origin : tuple of float
        (lat, lon) of the first accepted fix; the local east/north frame is
        anchored here so the filter works in metres.
    x : tuple of float
        State vector [east, north, v_east, v_north].
    P : tuple of tuple of float
        4x4 error covariance.
    timestamp_ms : int
        Latest fix time folded in.
    """
    origin: tuple[float, float]
    x: tuple[float, ...]
    P: tuple[tuple[float, ...], ...]
    timestamp_ms: int

    @property
    def position(self) -> tuple[float, float]:
        return self.x[0], self.x[1]

    @property
    def velocity_mps(self) -> float:
        return math.hypot(self.x[2], self.x[3])


class MovementState(str, Enum):
    STATIONARY = "stationary"
    WALKING = "walking"


@dataclass(frozen=True)
class StateTransition:
    timestamp_ms: int
    previous: MovementState
    current: MovementState


@dataclass
class StepAccumulator:
    """
    Running session step total.

    Parameters
    ----------
    total_steps : int
        Steps counted while walking.
    last_raw_sensor_count : int, optional
        Last cumulative hardware counter value seen; None before the first sample.
    """
    total_steps: int = 0
    last_raw_sensor_count: Optional[int] = None


@dataclass
class DistanceAccumulator:
    """
    Running session distance.

    Parameters
    ----------
    total_meters : float
        Integrated great-circle distance.
    last_integrated_index : int
        Index in the path of the last point integrated, -1 before the first.
    """
    total_meters: float = 0.0
    last_integrated_index: int = -1


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Point-in-time view of a tracking session, safe to hand to readers.
    """
    total_meters: float
    total_steps: int
    movement_state: MovementState
    simplified_path: tuple[FilteredPoint, ...]
    accepted: int
    rejected_low_accuracy: int
    rejected_implausible_speed: int
    last_outcome: Optional[FilterOutcome] = None
    transitions: tuple[StateTransition, ...] = field(default_factory=tuple)
    validation: Optional[SessionValidation] = None


class ValidationAction(str, Enum):
    ACCEPT = "accept"
    ACCEPT_FLAGGED = "accept_flagged"
    REJECT = "reject"


class FlagEffect(str, Enum):
    REJECT_SESSION = "reject_session"
    EXCLUDE_STEPS = "exclude_steps"


class SuspicionFlag(str, Enum):
    """
    Reasons a finished session looks implausible.

    Physically impossible sessions are rejected outright; anything that only
    casts doubt on the step count keeps the session but excludes its steps.
    """
    IMPOSSIBLE_STRIDE = "impossible_stride"
    IMPOSSIBLE_SPEED = "impossible_speed"
    EXCESSIVE_STEPS = "excessive_steps"
    STATIONARY_WALKING = "stationary_walking"
    SHAKING_PATTERN = "shaking_pattern"

    @property
    def effect(self) -> FlagEffect:
        if self in (SuspicionFlag.IMPOSSIBLE_SPEED, SuspicionFlag.EXCESSIVE_STEPS):
            return FlagEffect.REJECT_SESSION
        return FlagEffect.EXCLUDE_STEPS


@dataclass(frozen=True)
class SessionValidation:
    """
    Verdict on a session's totals.

    Parameters
    ----------
    action : ValidationAction
        REJECT if any flag rejects the session, ACCEPT_FLAGGED if any flag
        was raised at all, otherwise ACCEPT.
    flags : tuple of SuspicionFlag
        Every flag raised, in check order.
    should_count_steps : bool
        False if any flag excludes the step count.
    """
    action: ValidationAction
    flags: tuple[SuspicionFlag, ...] = ()
    should_count_steps: bool = True


class StepRejection(str, Enum):
    PHONE_SHAKE = "phone_shake"
    VEHICLE_MOVEMENT = "vehicle_movement"
