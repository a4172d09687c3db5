"""
Sloped (interpolated) bathymetry.

Models the seafloor from a set of control points using piecewise linear
interpolation, held constant beyond the first and last control ranges.
Control ranges must be strictly increasing; unlike a measured surface
profile they are never silently re-sorted, since an out-of-order table is
almost always a data error.
"""

from __future__ import annotations

import bisect
import numpy as np
from typing import Sequence

from acoustic_prop.environment.base import BathymetryInterface
from acoustic_prop.errors import InvalidEnvironment


class SlopedBottom(BathymetryInterface):
    """Piecewise linear seafloor through control points.

    Parameters
    ----------
    ranges : sequence of float
        Control ranges in meters, strictly increasing.
    depths : sequence of float
        Bottom depth at each control range, strictly positive.
    """

    def __init__(self, ranges: Sequence[float], depths: Sequence[float]) -> None:
        self.ranges = tuple(float(r) for r in ranges)
        self.depths = tuple(float(z) for z in depths)

        if len(self.ranges) != len(self.depths):
            raise InvalidEnvironment("ranges and depths must have the same length")
        if len(self.ranges) < 2:
            raise InvalidEnvironment("At least 2 control points are required")
        if np.any(np.diff(self.ranges) <= 0):
            raise InvalidEnvironment("bathymetry ranges must be strictly increasing")
        if min(self.depths) <= 0:
            raise InvalidEnvironment("bathymetry depths must be > 0")

        self._slopes = tuple(
            (self.depths[i + 1] - self.depths[i]) / (self.ranges[i + 1] - self.ranges[i])
            for i in range(len(self.ranges) - 1)
        )

    def _segment(self, r: float) -> int:
        i = bisect.bisect_right(self.ranges, r) - 1
        return min(max(i, 0), len(self.ranges) - 2)

    def evaluate(self, r: np.ndarray | float) -> np.ndarray | float:
        """Evaluate bottom depth via interpolation."""
        if np.ndim(r) == 0:
            if r <= self.ranges[0]:
                return self.depths[0]
            if r >= self.ranges[-1]:
                return self.depths[-1]
            i = self._segment(r)
            return self.depths[i] + self._slopes[i] * (r - self.ranges[i])
        return np.interp(np.asarray(r, dtype=np.float64), self.ranges, self.depths)

    def slope(self, r: np.ndarray | float) -> np.ndarray | float:
        """Slope of the segment containing r, zero outside the control points."""
        if np.ndim(r) == 0:
            if r < self.ranges[0] or r >= self.ranges[-1]:
                return 0.0
            return self._slopes[self._segment(r)]
        return np.array([self.slope(float(x)) for x in np.ravel(r)]).reshape(np.shape(r))

    def get_bounds(self) -> tuple[float, float]:
        return (self.ranges[0], self.ranges[-1])

    @property
    def max_depth(self) -> float:
        return max(self.depths)

    @property
    def is_flat(self) -> bool:
        return all(s == 0.0 for s in self._slopes)

    @property
    def n_points(self) -> int:
        return len(self.ranges)

    @staticmethod
    def wedge(
        depth_start: float,
        depth_end: float,
        range_end: float,
    ) -> "SlopedBottom":
        """Uniform slope from depth_start at r=0 to depth_end at range_end."""
        return SlopedBottom([0.0, range_end], [depth_start, depth_end])

    def to_dict(self) -> dict:
        return {"kind": "sloped", "ranges": list(self.ranges), "depths": list(self.depths)}

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, SlopedBottom)
            and other.ranges == self.ranges
            and other.depths == self.depths
        )

    def __hash__(self) -> int:
        return hash(("sloped", self.ranges, self.depths))

    def __repr__(self) -> str:
        return (
            f"SlopedBottom(n_points={self.n_points}, "
            f"r=[{self.ranges[0] / 1e3:.2f}, {self.ranges[-1] / 1e3:.2f}]km, "
            f"z=[{min(self.depths):.1f}, {self.max_depth:.1f}]m)"
        )
