"""
Constant-velocity Kalman filter for smoothing accepted GPS fixes.

State is [east, north, v_east, v_north] in a local metric frame anchored
at the first fix:

    predict:  x = F x,                 P = F P F^T + Q
    correct:  K = P H^T S^-1,          x = x + K (z - H x),    P = (I - K H) P

with S = H P H^T + R and, per axis, Q = q² [[dt³/3, dt²/2], [dt²/2, dt]]
(white-noise acceleration). The measurement noise R comes from each fix's
reported accuracy, so a fix that only just passed the accuracy gate moves
the estimate less than a sharp one.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from wt.analysis.types import FilteredPoint, KalmanState, RawFix
from wt.utils.geo import from_local, to_local
from wt.utils.log import get_logger

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
MIN_ACCURACY_M        = 1.0    # floor for R; a reported 0 m would freeze the gain at 1
INITIAL_VELOCITY_VAR  = 100.0  # (m/s)², i.e. no idea how fast we start
# -----------------------------------------------------------------------------

# GPS measures position only
H = np.array([
    [1.0, 0.0, 0.0, 0.0],
    [0.0, 1.0, 0.0, 0.0],
])


def transition_matrix(dt: float) -> np.ndarray:
    # e(t+dt) = e(t) + v_e*dt, same for north; velocity carried over
    return np.array([
        [1.0, 0.0, dt, 0.0],
        [0.0, 1.0, 0.0, dt],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def process_noise(dt: float, q: float) -> np.ndarray:
    q2 = q * q
    pp, pv, vv = q2 * dt ** 3 / 3, q2 * dt ** 2 / 2, q2 * dt
    return np.array([
        [pp, 0.0, pv, 0.0],
        [0.0, pp, 0.0, pv],
        [pv, 0.0, vv, 0.0],
        [0.0, pv, 0.0, vv],
    ])


class KalmanFilter:
    """
    Stateful 2-D position/velocity smoother for one tracking session.

    Parameters
    ----------
    q
        Process noise: standard deviation of the unmodelled acceleration in
        m/s². Larger values follow new fixes more closely, smaller values
        lean on the constant-velocity model. 3.0 suits pedestrians.
    """

    def __init__(self, q: float = 3.0) -> None:
        if q < 0:
            raise ValueError(f"q must be >= 0, got {q!r}")
        self.q = q
        self.x: Optional[np.ndarray] = None
        self.P: Optional[np.ndarray] = None
        self.origin: Optional[tuple[float, float]] = None
        self.timestamp_ms: Optional[int] = None
        self.reset()

    @property
    def initialized(self) -> bool:
        return self.x is not None

    @property
    def state(self) -> Optional[KalmanState]:
        """Immutable snapshot of the current state, or None before the first fix."""
        if self.x is None:
            return None
        return KalmanState(
            origin=self.origin,
            x=tuple(float(v) for v in self.x),
            P=tuple(tuple(float(v) for v in row) for row in self.P),
            timestamp_ms=self.timestamp_ms,
        )

    def reset(self) -> None:
        """
        Forget everything. Only meant for session start: calling this
        mid-session makes the next fix restart the path from scratch.
        """
        self.x = None
        self.P = None
        self.origin = None
        self.timestamp_ms = None

    def predict(self, dt: float) -> None:
        F = transition_matrix(dt)
        self.x = F @ self.x
        self.P = F @ self.P @ F.T + process_noise(dt, self.q)

    def correct(self, z: np.ndarray, r: float) -> None:
        R = np.eye(2) * r
        innovation = z - H @ self.x
        S = H @ self.P @ H.T + R
        K = self.P @ H.T @ np.linalg.inv(S)
        self.x = self.x + K @ innovation
        self.P = (np.eye(4) - K @ H) @ self.P

    def update(self, fix: RawFix) -> FilteredPoint:
        """
        Fold one accepted fix into the estimate and return the smoothed point.
        """
        r = max(fix.horizontal_accuracy_m, MIN_ACCURACY_M) ** 2

        if self.x is None:
            self.origin = fix.latlon
            self.x = np.zeros(4)
            self.P = np.diag([r, r, INITIAL_VELOCITY_VAR, INITIAL_VELOCITY_VAR])
            self.timestamp_ms = fix.timestamp_ms
            logger.debug("Kalman initialised at %.6f, %.6f (±%.1fm)", fix.latitude, fix.longitude, r ** 0.5)
            return FilteredPoint(fix.latitude, fix.longitude, fix.timestamp_ms, 0.0)

        dt = (fix.timestamp_ms - self.timestamp_ms) / 1000.0
        if dt > 0:
            self.predict(dt)

        self.correct(np.array(to_local(fix.latlon, self.origin)), r)
        self.timestamp_ms = max(self.timestamp_ms, fix.timestamp_ms)

        east, north, v_east, v_north = (float(v) for v in self.x)
        lat, lon = from_local((east, north), self.origin)
        return FilteredPoint(lat, lon, fix.timestamp_ms, float(np.hypot(v_east, v_north)))
