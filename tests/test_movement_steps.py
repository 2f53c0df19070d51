"""Tests for the movement-state hysteresis and the step estimator."""

from __future__ import annotations

import pytest

from wt.analysis.movement import MovementStateStabilizer
from wt.analysis.steps import MAX_PROJECTED_AHEAD, StepEstimator
from wt.analysis.types import MovementState, StateTransition

WALK = 1.2
STILL = 0.1


@pytest.fixture()
def stabilizer() -> MovementStateStabilizer:
    return MovementStateStabilizer(threshold_mps=0.3, stable_duration_ms=3000)


@pytest.fixture()
def walking(stabilizer: MovementStateStabilizer) -> MovementStateStabilizer:
    stabilizer.on_velocity_sample(WALK, 0)
    return stabilizer


def test_initial_state_is_stationary(stabilizer: MovementStateStabilizer) -> None:
    assert stabilizer.state is MovementState.STATIONARY
    assert stabilizer.transitions == ()
    assert stabilizer.last_transition_ms is None


def test_low_samples_keep_stationary(stabilizer: MovementStateStabilizer) -> None:
    for t in range(0, 10_000, 1000):
        assert stabilizer.on_velocity_sample(STILL, t) is MovementState.STATIONARY


def test_walking_starts_on_first_fast_sample(stabilizer: MovementStateStabilizer) -> None:
    assert stabilizer.on_velocity_sample(WALK, 500) is MovementState.WALKING
    assert stabilizer.transitions == (
        StateTransition(500, MovementState.STATIONARY, MovementState.WALKING),
    )


def test_threshold_itself_counts_as_slow(stabilizer: MovementStateStabilizer) -> None:
    assert stabilizer.on_velocity_sample(0.3, 0) is MovementState.STATIONARY


def test_single_low_sample_does_not_stop(walking: MovementStateStabilizer) -> None:
    assert walking.on_velocity_sample(STILL, 1000) is MovementState.WALKING
    assert walking.on_velocity_sample(WALK, 2000) is MovementState.WALKING
    # timer restarted by the fast sample
    assert walking.on_velocity_sample(STILL, 4000) is MovementState.WALKING
    assert walking.on_velocity_sample(STILL, 6000) is MovementState.WALKING
    assert walking.on_velocity_sample(STILL, 7000) is MovementState.STATIONARY


def test_stops_after_full_stable_duration(walking: MovementStateStabilizer) -> None:
    assert walking.on_velocity_sample(STILL, 1000) is MovementState.WALKING
    assert walking.on_velocity_sample(STILL, 3999) is MovementState.WALKING
    assert walking.on_velocity_sample(STILL, 4000) is MovementState.STATIONARY
    assert walking.last_transition_ms == 4000
    assert [t.current for t in walking.transitions] == [
        MovementState.WALKING,
        MovementState.STATIONARY,
    ]


def test_duration_counts_from_first_low_sample_after_gap(walking: MovementStateStabilizer) -> None:
    # no samples for a while, then one slow sample: not enough on its own
    assert walking.on_velocity_sample(STILL, 60_000) is MovementState.WALKING
    assert walking.on_velocity_sample(STILL, 63_000) is MovementState.STATIONARY


def test_zero_stable_duration_stops_on_first_low_sample() -> None:
    stabilizer = MovementStateStabilizer(threshold_mps=0.3, stable_duration_ms=0)
    assert stabilizer.on_velocity_sample(1.0, 0) is MovementState.WALKING
    assert stabilizer.on_velocity_sample(0.0, 1000) is MovementState.STATIONARY
    assert stabilizer.last_transition_ms == 1000


def test_steps_first_sample_is_baseline(walking: MovementStateStabilizer) -> None:
    est = StepEstimator(walking)
    assert est.on_sensor_step_count(100) == 0
    assert est.accumulator.last_raw_sensor_count == 100


def test_steps_counted_while_walking(walking: MovementStateStabilizer) -> None:
    est = StepEstimator(walking)
    est.on_sensor_step_count(100)
    assert est.on_sensor_step_count(250) == 150


def test_counter_reset_rebases(walking: MovementStateStabilizer) -> None:
    est = StepEstimator(walking)
    est.on_sensor_step_count(100)
    est.on_sensor_step_count(250)

    assert est.on_sensor_step_count(50) == 150
    assert est.accumulator.last_raw_sensor_count == 50
    assert est.resets_detected == 1

    assert est.on_sensor_step_count(60) == 160


def test_steps_discarded_while_stationary(stabilizer: MovementStateStabilizer) -> None:
    est = StepEstimator(stabilizer)
    est.on_sensor_step_count(1000)
    assert est.on_sensor_step_count(1012) == 0
    assert est.discarded_steps == 12
    assert est.accumulator.last_raw_sensor_count == 1012

    stabilizer.on_velocity_sample(WALK, 5000)
    # only steps after the last stationary reading count
    assert est.on_sensor_step_count(1030) == 18


def test_projected_steps_uses_cadence(walking: MovementStateStabilizer) -> None:
    est = StepEstimator(walking)
    est.on_sensor_step_count(100, timestamp_ms=0)
    est.on_sensor_step_count(110, timestamp_ms=5000)
    assert est.cadence_sps == pytest.approx(2.0)

    assert est.projected_steps(7000) == 14
    assert est.projected_steps(60_000) == 10 + MAX_PROJECTED_AHEAD
    assert est.projected_steps(4000) == 10
    assert est.total_steps == 10


def test_projected_steps_while_stationary(stabilizer: MovementStateStabilizer) -> None:
    est = StepEstimator(stabilizer)
    est.on_sensor_step_count(100, timestamp_ms=0)
    est.on_sensor_step_count(110, timestamp_ms=5000)
    assert est.projected_steps(7000) == 0
