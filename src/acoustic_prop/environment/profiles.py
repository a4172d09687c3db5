"""
Sound-speed profiles c(z).

A profile is a tagged variant: one frozen dataclass carrying a ``kind``
from a closed set plus the parameters of that kind. Every kind has a single
evaluator returning the triple (c, dc/dz, d²c/dz²) so that one call per
Runge-Kutta stage gives the integrator everything it needs.

Kinds
-----
isovelocity   c = c0
linear        c = c0 + g·z
munk          canonical Munk deep-water profile
tabulated     piecewise linear through (depth, speed) points
spline        cubic spline through (depth, speed) points (scipy CubicSpline)
"""

from __future__ import annotations

import bisect
import math
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence


class ProfileKind(str, Enum):
    ISOVELOCITY = "isovelocity"
    LINEAR = "linear"
    MUNK = "munk"
    TABULATED = "tabulated"
    SPLINE = "spline"


# — Munk defaults ————————————————————————————————————————————————————————————
MUNK_C0      = 1500.0
MUNK_AXIS    = 1300.0
MUNK_SCALE   = 1300.0
MUNK_EPSILON = 0.00737


@dataclass(frozen=True)
class SoundSpeedProfile:
    """Sound speed as a function of depth.

    Use the constructors (:meth:`isovelocity`, :meth:`linear`, :meth:`munk`,
    :meth:`tabulated`) rather than filling the fields by hand.

    Parameters
    ----------
    kind : ProfileKind
        Profile family.
    c0 : float
        Reference speed in m/s (surface speed for linear, axis speed for Munk).
    gradient : float
        Linear gradient dc/dz in 1/s (linear kind only).
    axis_depth, scale_depth, epsilon : float
        Munk sound-channel axis depth, scale depth and perturbation.
    depths, speeds : tuple of float
        Tabulated points (tabulated and spline kinds), depths strictly
        increasing.
    """

    kind: ProfileKind
    c0: float = 1500.0
    gradient: float = 0.0
    axis_depth: float = MUNK_AXIS
    scale_depth: float = MUNK_SCALE
    epsilon: float = MUNK_EPSILON
    depths: tuple = ()
    speeds: tuple = ()
    _spline: Optional[object] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ProfileKind(self.kind))
        object.__setattr__(self, "depths", tuple(float(d) for d in self.depths))
        object.__setattr__(self, "speeds", tuple(float(c) for c in self.speeds))

        if self.kind in (ProfileKind.TABULATED, ProfileKind.SPLINE):
            if len(self.depths) != len(self.speeds):
                raise ValueError("depths and speeds must have the same length")
            if len(self.depths) < 2:
                raise ValueError("At least 2 profile points are required")
            if np.any(np.diff(self.depths) <= 0):
                raise ValueError("profile depths must be strictly increasing")
            if min(self.speeds) <= 0:
                raise ValueError("profile speeds must be > 0")
        elif self.c0 <= 0:
            raise ValueError("c0 must be > 0")

        if self.kind is ProfileKind.SPLINE:
            from scipy.interpolate import CubicSpline
            spline = CubicSpline(np.asarray(self.depths), np.asarray(self.speeds))
            object.__setattr__(
                self, "_spline", (spline, spline.derivative(1), spline.derivative(2))
            )

    # — Constructors ——————————————————————————————————————————————————————————

    @classmethod
    def isovelocity(cls, c0: float = 1500.0) -> "SoundSpeedProfile":
        return cls(kind=ProfileKind.ISOVELOCITY, c0=c0)

    @classmethod
    def linear(cls, c0: float, gradient: float) -> "SoundSpeedProfile":
        """c(z) = c0 + gradient·z."""
        return cls(kind=ProfileKind.LINEAR, c0=c0, gradient=gradient)

    @classmethod
    def munk(
        cls,
        c0: float = MUNK_C0,
        axis_depth: float = MUNK_AXIS,
        scale_depth: float = MUNK_SCALE,
        epsilon: float = MUNK_EPSILON,
    ) -> "SoundSpeedProfile":
        """Munk (1974) profile.

        c(z) = c0·[1 + ε(η − 1 + e^(−η))],  η = 2(z − z_axis)/B
        """
        return cls(
            kind=ProfileKind.MUNK,
            c0=c0,
            axis_depth=axis_depth,
            scale_depth=scale_depth,
            epsilon=epsilon,
        )

    @classmethod
    def tabulated(
        cls,
        depths: Sequence[float],
        speeds: Sequence[float],
        method: str = "linear",
    ) -> "SoundSpeedProfile":
        """Profile through measured points.

        Parameters
        ----------
        depths, speeds : sequence of float
            Measured profile, depths strictly increasing.
        method : str
            'linear' (piecewise linear, zero curvature) or 'cubic'
            (scipy CubicSpline, smooth gradient).
        """
        if method == "cubic":
            kind = ProfileKind.SPLINE
        elif method == "linear":
            kind = ProfileKind.TABULATED
        else:
            raise ValueError(f"unknown interpolation method '{method}'")
        return cls(kind=kind, depths=tuple(depths), speeds=tuple(speeds))

    # — Evaluation ————————————————————————————————————————————————————————————

    def evaluate(self, z: float) -> tuple[float, float, float]:
        """Return (c, dc/dz, d²c/dz²) at depth z."""
        return _EVALUATORS[self.kind](self, z)

    def sound_speed(self, z: float) -> float:
        return self.evaluate(z)[0]

    def gradient_at(self, z: float) -> float:
        return self.evaluate(z)[1]

    def curvature_at(self, z: float) -> float:
        return self.evaluate(z)[2]

    def covers(self, max_depth: float) -> bool:
        """Whether the profile is defined over [0, max_depth]."""
        if self.kind in (ProfileKind.TABULATED, ProfileKind.SPLINE):
            return self.depths[0] <= 0.0 and self.depths[-1] >= max_depth
        return True

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "c0": self.c0,
            "gradient": self.gradient,
            "axis_depth": self.axis_depth,
            "scale_depth": self.scale_depth,
            "epsilon": self.epsilon,
            "depths": list(self.depths),
            "speeds": list(self.speeds),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SoundSpeedProfile":
        return cls(**data)


# ——————————————————————————————————————————————————————————————————————————————
# Per-kind evaluators
# ——————————————————————————————————————————————————————————————————————————————

def _eval_isovelocity(profile: SoundSpeedProfile, z: float) -> tuple[float, float, float]:
    return profile.c0, 0.0, 0.0


def _eval_linear(profile: SoundSpeedProfile, z: float) -> tuple[float, float, float]:
    return profile.c0 + profile.gradient * z, profile.gradient, 0.0


def _eval_munk(profile: SoundSpeedProfile, z: float) -> tuple[float, float, float]:
    a   = 2.0 / profile.scale_depth
    eta = a * (z - profile.axis_depth)
    e   = math.exp(-eta)
    k   = profile.c0 * profile.epsilon
    return (
        profile.c0 + k * (eta - 1.0 + e),
        k * a * (1.0 - e),
        k * a * a * e,
    )


def _eval_tabulated(profile: SoundSpeedProfile, z: float) -> tuple[float, float, float]:
    depths = profile.depths
    speeds = profile.speeds
    n      = len(depths)

    # Constant extrapolation outside the table
    if z < depths[0]:
        return speeds[0], 0.0, 0.0
    if z > depths[-1]:
        return speeds[-1], 0.0, 0.0

    i = bisect.bisect_right(depths, z) - 1
    i = min(max(i, 0), n - 2)
    slope = (speeds[i + 1] - speeds[i]) / (depths[i + 1] - depths[i])
    return speeds[i] + slope * (z - depths[i]), slope, 0.0


def _eval_spline(profile: SoundSpeedProfile, z: float) -> tuple[float, float, float]:
    c, dc, d2c = profile._spline
    return float(c(z)), float(dc(z)), float(d2c(z))


_EVALUATORS = {
    ProfileKind.ISOVELOCITY: _eval_isovelocity,
    ProfileKind.LINEAR:      _eval_linear,
    ProfileKind.MUNK:        _eval_munk,
    ProfileKind.TABULATED:   _eval_tabulated,
    ProfileKind.SPLINE:      _eval_spline,
}
