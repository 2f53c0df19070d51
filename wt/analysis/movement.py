"""
Walking / stationary detection with hysteresis.
"""

from __future__ import annotations

from typing import Optional

from wt.analysis.types import MovementState, StateTransition
from wt.utils.log import get_logger

logger = get_logger(__name__)


class MovementStateStabilizer:
    """
    Two-state machine driven by the smoothed velocity.

    Starting to walk is immediate: the first sample above the threshold
    switches to WALKING. Stopping is sticky: velocity has to stay at or
    below the threshold for `stable_duration_ms` without interruption,
    timed from the first low sample, so a single slow fix at a corner or
    a short GPS dropout does not end the walk.
    """

    def __init__(self, threshold_mps: float = 0.3, stable_duration_ms: int = 3000) -> None:
        self.threshold_mps = threshold_mps
        self.stable_duration_ms = stable_duration_ms
        self._state = MovementState.STATIONARY
        self._below_since: Optional[int] = None
        self._transitions: list[StateTransition] = []

    @property
    def state(self) -> MovementState:
        return self._state

    @property
    def transitions(self) -> tuple[StateTransition, ...]:
        return tuple(self._transitions)

    @property
    def last_transition_ms(self) -> Optional[int]:
        return self._transitions[-1].timestamp_ms if self._transitions else None

    def on_velocity_sample(self, velocity: float, timestamp_ms: int) -> MovementState:
        """
        Feed one velocity sample (m/s) and return the resulting state.
        """
        if velocity > self.threshold_mps:
            self._below_since = None
            if self._state is MovementState.STATIONARY:
                self._switch(MovementState.WALKING, timestamp_ms)
            return self._state

        if self._state is MovementState.WALKING:
            if self._below_since is None:
                self._below_since = timestamp_ms
            if timestamp_ms - self._below_since >= self.stable_duration_ms:
                self._below_since = None
                self._switch(MovementState.STATIONARY, timestamp_ms)
        return self._state

    def _switch(self, new_state: MovementState, timestamp_ms: int) -> None:
        self._transitions.append(StateTransition(timestamp_ms, self._state, new_state))
        logger.info("Movement %s -> %s at t=%d", self._state.value, new_state.value, timestamp_ms)
        self._state = new_state
