"""
Path bookkeeping for a session: the append-only log of smoothed points,
its online-simplified polyline, and the incremental distance integrator.
"""

from __future__ import annotations

from copy import copy

from wt.analysis.types import DistanceAccumulator, FilteredPoint
from wt.utils.geo import haversine, point_segment_distance, wrap_longitude
from wt.utils.log import get_logger

logger = get_logger(__name__)


class PathSmoother:
    """
    Append log plus a simplified polyline maintained point by point.

    Points since the last retained vertex (the anchor) wait in a window.
    When a new point arrives, every waiting point is checked against the
    segment anchor -> new point; if one strays further than `tolerance_m`,
    the newest waiting point is the corner, so it is retained and becomes
    the anchor. A full window forces its newest point in, which bounds the
    work per append.

    The newest point always closes the polyline, so the path reaches the
    latest position even on a long straight leg with no retained corner.
    """

    def __init__(self, tolerance_m: float = 5.0, max_window: int = 64) -> None:
        self.tolerance_m = tolerance_m
        self.max_window = max_window
        self._points: list[FilteredPoint] = []
        self._retained: list[FilteredPoint] = []
        self._pending: list[FilteredPoint] = []

    def __len__(self) -> int:
        return len(self._points)

    def append(self, point: FilteredPoint) -> None:
        self._points.append(point)

        if not self._retained:
            self._retained.append(point)
            return

        if self._pending:
            anchor = self._retained[-1]
            corner = any(
                point_segment_distance(p.latlon, anchor.latlon, point.latlon) > self.tolerance_m
                for p in self._pending
            )
            if corner or len(self._pending) >= self.max_window:
                self._retained.append(self._pending[-1])
                self._pending = []

        self._pending.append(point)

    def points(self) -> tuple[FilteredPoint, ...]:
        """Every appended point, in order."""
        return tuple(self._points)

    def retained_vertices(self) -> tuple[FilteredPoint, ...]:
        """
        Vertices fixed so far. Later calls only ever extend this.
        """
        return tuple(self._retained)

    def simplified_path(self) -> tuple[FilteredPoint, ...]:
        """
        Retained vertices closed by the newest point.

        Snapshot: the retained prefix is never removed or reordered and the
        length never shrinks. Only the closing point moves forward as new
        points arrive.
        """
        if self._pending:
            return tuple(self._retained) + (self._pending[-1],)
        return tuple(self._retained)

    def smoothed_curve(self, segments: int = 8) -> list[tuple[float, float]]:
        """
        Catmull-Rom spline through the finished path, as (lat, lon) pairs.

        Meant for the end of a session. The curve passes through every
        vertex of `simplified_path()` with `segments` points per span.
        """
        vertices = [p.latlon for p in self.simplified_path()]
        if len(vertices) < 2 or segments < 1:
            return vertices
        if len(vertices) == 2:
            return _interpolate_linear(vertices[0], vertices[1], segments)

        curve = [vertices[0]]
        for i in range(len(vertices) - 1):
            p0 = vertices[i - 1] if i > 0 else vertices[i]
            p1 = vertices[i]
            p2 = vertices[i + 1]
            p3 = vertices[i + 2] if i < len(vertices) - 2 else vertices[i + 1]
            for j in range(1, segments + 1):
                curve.append(_catmull_rom(p0, p1, p2, p3, j / segments))
        logger.debug("Spline: %d vertices -> %d points", len(vertices), len(curve))
        return curve


def _catmull_rom(p0, p1, p2, p3, t: float) -> tuple[float, float]:
    t2 = t * t
    t3 = t2 * t

    def blend(a: float, b: float, c: float, d: float) -> float:
        return 0.5 * (
            2 * b
            + (-a + c) * t
            + (2 * a - 5 * b + 4 * c - d) * t2
            + (-a + 3 * b - 3 * c + d) * t3
        )

    lat = blend(p0[0], p1[0], p2[0], p3[0])
    # unwrap around p1 so a path crossing the antimeridian stays continuous
    lon1 = p1[1]
    lon0 = lon1 + wrap_longitude(p0[1] - lon1)
    lon2 = lon1 + wrap_longitude(p2[1] - lon1)
    lon3 = lon1 + wrap_longitude(p3[1] - lon1)
    lon = blend(lon0, lon1, lon2, lon3)
    return lat, wrap_longitude(lon)


def _interpolate_linear(a, b, segments: int) -> list[tuple[float, float]]:
    d_lon = wrap_longitude(b[1] - a[1])
    out = [a]
    for j in range(1, segments + 1):
        t = j / segments
        out.append((a[0] + (b[0] - a[0]) * t, wrap_longitude(a[1] + d_lon * t)))
    return out


class DistanceCalculator:
    """
    Incremental great-circle distance over the accepted points.

    `integrate` must be called exactly once per accepted point, in order;
    replaying a point counts it twice. The running total never goes down.
    """

    def __init__(self) -> None:
        self._acc = DistanceAccumulator()
        self._previous: FilteredPoint | None = None

    @property
    def total_meters(self) -> float:
        return self._acc.total_meters

    @property
    def accumulator(self) -> DistanceAccumulator:
        return copy(self._acc)

    def integrate(self, new_point: FilteredPoint) -> float:
        """
        Add the leg from the previous point to `new_point`; return the total.
        """
        if self._previous is not None:
            self._acc.total_meters += haversine(self._previous.latlon, new_point.latlon)
        self._previous = new_point
        self._acc.last_integrated_index += 1
        return self._acc.total_meters
