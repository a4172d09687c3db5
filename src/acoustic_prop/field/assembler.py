"""
Transmission-loss field assembly.

Each ray is sampled at the range columns of the output grid and its
complex pressure is spread over the neighbouring depth cells:

    p(r, z) += A · w · exp(i·(ω·τ' + φ))

τ' = τ + Δz·sin θ / c is the travel time moved along the wavefront from
the ray to the field point and φ the accumulated boundary and caustic
phase. Two deposition kernels are available:

hat
    Geometric hat beam: triangular weight w = 1 − n/W over the normal
    distance n = |Δz·cos θ| from the ray, with half-width W = |q|·Δθ0
    (the distance to the neighbouring ray of the fan). Adjacent hats sum
    to one, so the field interpolates smoothly between rays.
nearest
    All of a ray's pressure goes to the nearest depth cell, weighted by
    min(1, W / dz).

Rays are deposited one after another in list order, so the result only
depends on the list, not on how the rays were produced.
"""

from __future__ import annotations

import logging
import math
import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Sequence

from acoustic_prop.config import GridSpec
from acoustic_prop.errors import NoValidRays
from acoustic_prop.raytracing.integrator import MIN_SPREADING, Ray

logger = logging.getLogger(__name__)

DEFAULT_FLOOR_DB  = 200.0
_SINGLE_RAY_WIDTH = math.radians(1.0)  # Beam width of a lone ray (rad)


@dataclass(frozen=True)
class TransmissionLossGrid:
    """Transmission loss on a range-depth grid.

    Attributes
    ----------
    ranges : np.ndarray
        Range axis in meters, shape (n_ranges,).
    depths : np.ndarray
        Depth axis in meters, shape (n_depths,).
    tl : np.ndarray
        Transmission loss in dB, shape (n_depths, n_ranges).
    pressure : np.ndarray
        Complex pressure relative to 1 m from the source, same shape.
        Real and non-negative for incoherent summation.
    frequency : float
        Frequency in Hz.
    floor_db : float
        TL value used where no energy arrived.
    mode : str
        'coherent' or 'incoherent'.
    """

    ranges:    np.ndarray = field(repr=False)
    depths:    np.ndarray = field(repr=False)
    tl:        np.ndarray = field(repr=False)
    pressure:  np.ndarray = field(repr=False)
    frequency: float      = 0.0
    floor_db:  float      = DEFAULT_FLOOR_DB
    mode:      str        = "coherent"

    @property
    def shape(self) -> tuple[int, int]:
        return self.tl.shape

    @property
    def extent(self) -> tuple[float, float, float, float]:
        """(r_min, r_max, z_max, z_min) for ``imshow`` with depth down."""
        return (
            float(self.ranges[0]), float(self.ranges[-1]),
            float(self.depths[-1]), float(self.depths[0]),
        )

    def at(self, r: float, z: float) -> float:
        """TL at the grid node nearest to (r, z)."""
        i = int(np.argmin(np.abs(self.depths - z)))
        j = int(np.argmin(np.abs(self.ranges - r)))
        return float(self.tl[i, j])

    def depth_slice(self, z: float) -> np.ndarray:
        """TL versus range at the grid depth nearest to z."""
        return self.tl[int(np.argmin(np.abs(self.depths - z)))]


def _fan_spacing(rays: Sequence[Ray]) -> dict:
    """Angular spacing (radians) around each launch angle of the fan."""
    angles = np.unique([ray.launch_angle for ray in rays])
    if len(angles) < 2:
        return {float(a): _SINGLE_RAY_WIDTH for a in angles}
    spacing = np.radians(np.gradient(angles))
    return {float(a): float(d) for a, d in zip(angles, spacing)}


def _sample_columns(ray: Ray, ranges: np.ndarray):
    """Interpolate a ray at the grid range columns it reaches.

    Returns
    -------
    cols : np.ndarray
        Indices of the grid columns covered by the ray.
    values : dict
        Ray quantities at those columns.
    """
    r = ray.range
    cols = np.nonzero((ranges >= r[0]) & (ranges <= r[-1]))[0]
    if cols.size == 0:
        return cols, {}

    R   = ranges[cols]
    idx = np.clip(np.searchsorted(r, R, side="right") - 1, 0, len(r) - 2)
    dr  = r[idx + 1] - r[idx]
    t   = np.where(dr > 0.0, (R - r[idx]) / np.where(dr > 0.0, dr, 1.0), 0.0)

    def lerp(values):
        return values[idx] + t * (values[idx + 1] - values[idx])

    values = {
        "range":       R,
        "depth":       lerp(ray.depth),
        "amplitude":   lerp(ray.amplitude),
        "travel_time": lerp(ray.travel_time),
        "angle":       lerp(ray.angle),
        "q":           lerp(ray.q),
        "sound_speed": lerp(ray.sound_speed),
        # Phase only changes at bounces and caustics
        "phase":       np.where(t >= 1.0, ray.phase[idx + 1], ray.phase[idx]),
    }
    return cols, values


def _deposit_hat(acc, depths, cols, v, dtheta, omega, frequency, coherent):
    """Spread one ray over the depth cells inside its hat beam."""
    q_abs   = np.abs(v["q"])
    c       = v["sound_speed"]
    cos_t   = np.abs(np.cos(v["angle"]))
    sin_t   = np.sin(v["angle"])

    half_width = q_abs * dtheta
    min_width  = 0.5 * c / frequency
    width      = np.maximum(half_width, min_width)

    # Keep A²·W constant where the beam is widened to half a wavelength
    r      = v["range"]
    q_eff  = width / dtheta
    scale  = np.sqrt(np.maximum(r * q_abs, MIN_SPREADING) / np.maximum(r * q_eff, MIN_SPREADING))
    amp    = v["amplitude"] * scale

    dz     = depths[:, None] - v["depth"][None, :]
    normal = np.abs(dz) * cos_t[None, :]
    weight = 1.0 - normal / width[None, :]
    rows, k = np.nonzero(weight > 0.0)
    if rows.size == 0:
        return

    w = weight[rows, k] * amp[k]
    if coherent:
        tau = v["travel_time"][k] + dz[rows, k] * sin_t[k] / c[k]
        acc[rows, cols[k]] += w * np.exp(1j * (omega * tau + v["phase"][k]))
    else:
        acc[rows, cols[k]] += w * w


def _deposit_nearest(acc, depths, cols, v, dtheta, omega, coherent):
    """Drop one ray into the nearest depth cell of every column."""
    n_depths = len(depths)
    dz_cell  = (depths[-1] - depths[0]) / max(n_depths - 1, 1)
    if dz_cell <= 0.0:
        rows = np.zeros(len(cols), dtype=np.int64)
        weight = np.ones(len(cols))
    else:
        rows   = np.rint((v["depth"] - depths[0]) / dz_cell).astype(np.int64)
        weight = np.minimum(1.0, np.abs(v["q"]) * dtheta / dz_cell)

    inside = (rows >= 0) & (rows < n_depths)
    if not np.any(inside):
        return
    rows, k = rows[inside], np.nonzero(inside)[0]

    w = weight[k] * v["amplitude"][k]
    if coherent:
        contrib = w * np.exp(1j * (omega * v["travel_time"][k] + v["phase"][k]))
    else:
        contrib = w * w
    np.add.at(acc, (rows, cols[k]), contrib)


def assemble_transmission_loss(
    rays:      Sequence[Ray],
    grid_spec: GridSpec,
    frequency: Optional[float] = None,
    method:    str             = "hat",
    mode:      str             = "coherent",
    floor_db:  float           = DEFAULT_FLOOR_DB,
) -> TransmissionLossGrid:
    """Sum ray contributions into a transmission-loss grid.

    Parameters
    ----------
    rays : sequence of Ray
        Traced fan, deposited in the given order.
    grid_spec : GridSpec
        Output grid.
    frequency : float, optional
        Frequency in Hz. Defaults to the frequency the rays were traced at.
    method : str
        Deposition kernel, 'hat' or 'nearest'.
    mode : str
        'coherent' sums complex pressure, 'incoherent' sums intensity.
    floor_db : float
        Upper bound of the reported TL (no-energy cells).

    Returns
    -------
    TransmissionLossGrid

    Raises
    ------
    NoValidRays
        If no ray has at least two samples without being truncated.
    """
    if method not in ("hat", "nearest"):
        raise ValueError(f"unknown deposition method '{method}'")
    if mode not in ("coherent", "incoherent"):
        raise ValueError(f"unknown summation mode '{mode}'")
    if floor_db <= 0:
        raise ValueError("floor_db must be > 0")

    valid = [ray for ray in rays if ray.n_samples >= 2 and not ray.truncated]
    if not valid:
        raise NoValidRays(f"none of {len(rays)} rays can be deposited")
    if len(valid) < len(rays):
        logger.warning("Skipping %d invalid rays", len(rays) - len(valid))

    if frequency is None:
        frequency = valid[0].frequency
    if frequency <= 0:
        raise ValueError("frequency must be > 0")

    ranges   = grid_spec.ranges()
    depths   = grid_spec.depths()
    omega    = 2.0 * math.pi * frequency
    coherent = mode == "coherent"
    spacing  = _fan_spacing(rays)

    acc = np.zeros((len(depths), len(ranges)),
                   dtype=np.complex128 if coherent else np.float64)

    for ray in valid:
        cols, values = _sample_columns(ray, ranges)
        if cols.size == 0:
            continue
        dtheta = spacing[ray.launch_angle]
        if method == "hat":
            _deposit_hat(acc, depths, cols, values, dtheta, omega, frequency, coherent)
        else:
            _deposit_nearest(acc, depths, cols, values, dtheta, omega, coherent)

    if coherent:
        pressure = acc
    else:
        pressure = np.sqrt(acc).astype(np.complex128)

    magnitude = np.abs(pressure)
    with np.errstate(divide="ignore"):
        tl = -20.0 * np.log10(magnitude)
    tl = np.where(np.isfinite(tl), np.minimum(tl, floor_db), floor_db)

    logger.debug(
        "Assembled %d rays on a %dx%d grid (%s, %s)",
        len(valid), len(depths), len(ranges), method, mode,
    )

    return TransmissionLossGrid(
        ranges=ranges,
        depths=depths,
        tl=tl,
        pressure=pressure,
        frequency=float(frequency),
        floor_db=float(floor_db),
        mode=mode,
    )
