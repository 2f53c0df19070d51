"""Shared fixtures for the wt test-suite."""

from __future__ import annotations

from typing import Callable

import pytest

from wt.analysis.types import RawFix

START_LAT = 37.5665
START_LON = 126.9780
METERS_PER_DEG_LAT = 111_195.0


def make_fix(lat: float, lon: float, t_ms: int, accuracy: float = 5.0) -> RawFix:
    return RawFix(latitude=lat, longitude=lon, horizontal_accuracy_m=accuracy, timestamp_ms=t_ms)


@pytest.fixture()
def walk_north() -> Callable[..., list[RawFix]]:
    """Factory for a straight walk heading north at a steady speed."""

    def _walk(
        n: int,
        speed_mps: float = 1.4,
        interval_ms: int = 1000,
        accuracy: float = 5.0,
        t0_ms: int = 0,
    ) -> list[RawFix]:
        step_deg = speed_mps * interval_ms / 1000.0 / METERS_PER_DEG_LAT
        return [
            make_fix(START_LAT + i * step_deg, START_LON, t0_ms + i * interval_ms, accuracy)
            for i in range(n)
        ]

    return _walk
