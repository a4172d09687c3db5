"""
Flat (constant depth) bathymetry.

The simplest seafloor: z = D for every range. Reflections off it only flip
the vertical slowness, which keeps the horizontal slowness (Snell
invariant) exactly constant along the ray.
"""

from __future__ import annotations

import numpy as np

from acoustic_prop.environment.base import BathymetryInterface
from acoustic_prop.errors import InvalidEnvironment


class FlatBottom(BathymetryInterface):
    """Flat seafloor at constant depth.

    Parameters
    ----------
    depth : float
        Water depth in meters, strictly positive.
    """

    def __init__(self, depth: float) -> None:
        if not depth > 0:
            raise InvalidEnvironment("bottom depth must be > 0")
        self.depth = float(depth)

    def evaluate(self, r: np.ndarray | float) -> np.ndarray | float:
        """z = D"""
        if np.ndim(r) == 0:
            return self.depth
        return np.full_like(np.asarray(r, dtype=np.float64), self.depth)

    def slope(self, r: np.ndarray | float) -> np.ndarray | float:
        """dz/dr = 0"""
        if np.ndim(r) == 0:
            return 0.0
        return np.zeros_like(np.asarray(r, dtype=np.float64))

    def get_bounds(self) -> tuple[float, float]:
        return (0.0, np.inf)

    @property
    def max_depth(self) -> float:
        return self.depth

    @property
    def is_flat(self) -> bool:
        return True

    def get_points(self, n: int, r_min: float | None = None,
                   r_max: float | None = None) -> tuple[np.ndarray, np.ndarray]:
        if r_max is None:
            raise ValueError("a flat bottom is unbounded; pass r_max")
        return super().get_points(n, r_min, r_max)

    def to_dict(self) -> dict:
        return {"kind": "flat", "depth": self.depth}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FlatBottom) and other.depth == self.depth

    def __hash__(self) -> int:
        return hash(("flat", self.depth))

    def __repr__(self) -> str:
        return f"FlatBottom(depth={self.depth:.2f})"
