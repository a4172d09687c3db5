"""
Abstract base class for bathymetry representations.

All bathymetry classes must implement the BathymetryInterface protocol,
providing methods for evaluating the bottom depth, its slope, and
discretization into point arrays for plotting or export.
"""

from __future__ import annotations

import numpy as np
from abc import ABC, abstractmethod
from typing import Optional


class BathymetryInterface(ABC):
    """Abstract interface for seafloor geometries.

    The seafloor is a 2D curve z = f(r) giving the water depth at each
    horizontal range. It is assumed single-valued in range (no overhangs)
    and strictly positive.
    """

    @abstractmethod
    def evaluate(self, r: np.ndarray | float) -> np.ndarray | float:
        """Evaluate bottom depth z = f(r).

        Parameters
        ----------
        r : array-like or float
            Horizontal range(s) in meters.

        Returns
        -------
        z : array-like or float
            Bottom depth(s) at the given range(s).
        """

    @abstractmethod
    def slope(self, r: np.ndarray | float) -> np.ndarray | float:
        """Evaluate bottom slope dz/dr at range r."""

    @abstractmethod
    def get_bounds(self) -> tuple[float, float]:
        """Range interval over which the bathymetry is explicitly defined."""

    @property
    @abstractmethod
    def max_depth(self) -> float:
        """Deepest point of the seafloor."""

    @property
    def is_flat(self) -> bool:
        return False

    @abstractmethod
    def to_dict(self) -> dict:
        """Plain-data representation (see :func:`bathymetry_from_dict`)."""

    def get_points(self, n: int, r_min: Optional[float] = None,
                   r_max: Optional[float] = None) -> tuple[np.ndarray, np.ndarray]:
        """Discretize the seafloor into n evenly-spaced points.

        Parameters
        ----------
        n : int
            Number of points.
        r_min, r_max : float, optional
            Override the default bounds.

        Returns
        -------
        rB, zB : np.ndarray
            Arrays of shape (n,) with range and depth of the bottom points.
        """
        bounds = self.get_bounds()
        r_min = bounds[0] if r_min is None else r_min
        r_max = bounds[1] if r_max is None else r_max

        rB = np.linspace(r_min, r_max, n, dtype=np.float64)
        zB = np.asarray(self.evaluate(rB), dtype=np.float64)
        return rB, zB

    def normal(self, r: float) -> tuple[float, float]:
        """Unit normal at range r, pointing up into the water column.

        Returns
        -------
        nr, nz : float
            Components of the unit normal vector (depth positive down).
        """
        m = float(self.slope(r))
        norm = np.sqrt(1.0 + m ** 2)
        return m / norm, -1.0 / norm


def bathymetry_from_dict(data: dict) -> BathymetryInterface:
    """Rebuild a bathymetry object from :meth:`BathymetryInterface.to_dict`."""
    from acoustic_prop.environment.flat import FlatBottom
    from acoustic_prop.environment.sloped import SlopedBottom

    kind = data.get("kind")
    if kind == "flat":
        return FlatBottom(depth=data["depth"])
    if kind == "sloped":
        return SlopedBottom(data["ranges"], data["depths"])
    raise ValueError(f"unknown bathymetry kind '{kind}'")
