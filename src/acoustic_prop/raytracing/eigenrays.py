"""
Eigenray search.

An eigenray is a ray that connects the source to a given receiver. The
search traces a scan fan to the receiver range, looks at the depth miss
err(θ) = z(r_rcv; θ) − z_rcv of every scan ray, and refines each sign
change between neighbouring angles by bisection.

Rays that only touch the receiver depth (a local extremum of z(θ), as at a
caustic) produce no sign change. With ``tangent_scan`` enabled, local
minima of |err| are re-sampled on a finer grid to recover them.
"""

from __future__ import annotations

import logging
import math
import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from acoustic_prop.environment.model import Environment
from acoustic_prop.errors import EigenraySearchNotConverged, InvalidEnvironment, JobCancelled
from acoustic_prop.raytracing.integrator import Ray, Termination, trace_ray

logger = logging.getLogger(__name__)

# — Tangent refinement ——————————————————————————————————————————————————————
TANGENT_SAMPLES = 9
TANGENT_LEVELS  = 4


@dataclass(frozen=True)
class Eigenray:
    """A ray landing within tolerance of the receiver.

    Attributes
    ----------
    ray : Ray
        Trajectory traced to the receiver range.
    target_range, target_depth : float
        Receiver position in meters.
    depth_error : float
        Signed depth miss at the receiver in meters.
    n_iterations : int
        Refinement traces spent on this eigenray (0 for a scan hit).
    converged : bool
        Whether |depth_error| reached the requested tolerance.
    """

    ray:          Ray
    target_range: float
    target_depth: float
    depth_error:  float
    n_iterations: int
    converged:    bool = True

    @property
    def launch_angle(self) -> float:
        return self.ray.launch_angle

    @property
    def travel_time(self) -> float:
        return self.ray.travel_time_at(self.target_range)

    @property
    def amplitude(self) -> float:
        return float(np.interp(self.target_range, self.ray.range, self.ray.amplitude))

    @property
    def phase(self) -> float:
        return float(self.ray.phase[-1])

    @property
    def n_surface(self) -> int:
        return self.ray.n_surface

    @property
    def n_bottom(self) -> int:
        return self.ray.n_bottom


@dataclass(frozen=True)
class UnconvergedBracket:
    """Diagnostic for a bracket that exhausted its bisection budget."""

    angle_low:    float
    angle_high:   float
    depth_error:  float
    n_iterations: int


class _Shooter:
    """Traces rays to the receiver range and measures their depth miss."""

    def __init__(self, environment, source_depth, frequency, receiver_range,
                 receiver_depth, step_size, max_steps, should_cancel=None):
        self.environment    = environment
        self.source_depth   = source_depth
        self.frequency      = frequency
        self.receiver_range = receiver_range
        self.receiver_depth = receiver_depth
        self.step_size      = step_size
        self.max_steps      = max_steps
        self.should_cancel  = should_cancel
        self.n_traces       = 0

    def __call__(self, angle: float) -> tuple[Ray, float]:
        if self.should_cancel is not None and self.should_cancel():
            raise JobCancelled(f"eigenray search cancelled after {self.n_traces} rays")
        self.n_traces += 1
        ray = trace_ray(
            self.environment,
            source_depth=self.source_depth,
            launch_angle=float(angle),
            frequency=self.frequency,
            max_range=self.receiver_range,
            step_size=self.step_size,
            max_steps=self.max_steps,
        )
        if ray.termination is not Termination.MAX_RANGE:
            return ray, math.nan
        return ray, ray.depth_at(self.receiver_range) - self.receiver_depth

    def eigenray(self, ray: Ray, error: float, n_iterations: int,
                 converged: bool = True) -> Eigenray:
        return Eigenray(
            ray=ray,
            target_range=self.receiver_range,
            target_depth=self.receiver_depth,
            depth_error=error,
            n_iterations=n_iterations,
            converged=converged,
        )


def _bisect(shoot: _Shooter, a: float, fa: float, b: float, fb: float,
            tolerance: float, max_iterations: int):
    """Bisect a sign-change bracket.

    Returns ``(Eigenray, None)`` on convergence, else
    ``(None, UnconvergedBracket)``.
    """
    best = fa if abs(fa) < abs(fb) else fb
    n = 0
    for n in range(1, max_iterations + 1):
        mid = 0.5 * (a + b)
        ray, fm = shoot(mid)
        if math.isnan(fm):
            break
        if abs(fm) < abs(best):
            best = fm
        if abs(fm) < tolerance:
            return shoot.eigenray(ray, fm, n), None
        if math.copysign(1.0, fm) == math.copysign(1.0, fa):
            a, fa = mid, fm
        else:
            b, fb = mid, fm

    return None, UnconvergedBracket(
        angle_low=float(a), angle_high=float(b), depth_error=float(best), n_iterations=n,
    )


def _refine_tangent(shoot: _Shooter, lo: float, hi: float, tolerance: float,
                    max_iterations: int):
    """Zoom into a local minimum of |err| looking for a touch or a crossing.

    Returns a list of ``(Eigenray | None, UnconvergedBracket | None)``
    outcomes, empty when the minimum does not reach the receiver depth.
    """
    start = shoot.n_traces
    for _ in range(TANGENT_LEVELS):
        angles = np.linspace(lo, hi, TANGENT_SAMPLES)
        shots  = [shoot(a) for a in angles]
        errors = np.array([f for _, f in shots])
        if np.all(np.isnan(errors)):
            return []

        outcomes = []
        for i in range(len(angles) - 1):
            f1, f2 = errors[i], errors[i + 1]
            if f1 * f2 < 0.0:
                outcomes.append(_bisect(shoot, angles[i], f1, angles[i + 1], f2,
                                        tolerance, max_iterations))
        if outcomes:
            return outcomes

        k = int(np.nanargmin(np.abs(errors)))
        if abs(errors[k]) < tolerance:
            ray, err = shots[k]
            return [(shoot.eigenray(ray, err, shoot.n_traces - start), None)]

        lo = angles[max(k - 1, 0)]
        hi = angles[min(k + 1, len(angles) - 1)]

    return []


def find_eigenrays(
    environment:        Environment,
    source_depth:       float,
    frequency:          float,
    receiver_range:     float,
    receiver_depth:     float,
    angle_fan:          Sequence[float],
    depth_tolerance:    float          = 0.1,
    max_iterations:     int            = 60,
    step_size:          Optional[float] = None,
    max_steps:          Optional[int]   = None,
    tangent_scan:       bool           = True,
    return_unconverged: bool           = False,
    strict:             bool           = False,
    should_cancel:      Optional[Callable[[], bool]] = None,
):
    """Find the rays that connect a source to a receiver.

    Parameters
    ----------
    environment : Environment
        Waveguide description.
    source_depth : float
        Source depth in meters.
    frequency : float
        Frequency in Hz (sets attenuation and boundary losses of the rays).
    receiver_range, receiver_depth : float
        Receiver position in meters.
    angle_fan : sequence of float
        Scan launch angles in degrees. Sorted internally.
    depth_tolerance : float
        Convergence tolerance on |z(r_rcv) − z_rcv| in meters.
    max_iterations : int
        Bisection cap per bracket.
    step_size : float, optional
        Integration step in meters. Defaults to receiver_range / 500.
    max_steps : int, optional
        Step cap per traced ray.
    tangent_scan : bool
        Refine local minima of |err| that show no sign change.
    return_unconverged : bool
        Also return the diagnostics of unconverged brackets.
    strict : bool
        Raise instead of warning when a bracket does not converge.
    should_cancel : callable, optional
        Checked before every traced ray; abandons the search when True.

    Returns
    -------
    list of Eigenray
        Converged eigenrays ordered by launch angle. With
        ``return_unconverged`` a tuple ``(eigenrays, unconverged)``.

    Raises
    ------
    EigenraySearchNotConverged
        With ``strict=True``, when any bracket hit the iteration cap.
    JobCancelled
        If ``should_cancel`` fired.
    """
    if receiver_range <= 0:
        raise ValueError("receiver_range must be > 0")
    if depth_tolerance <= 0:
        raise ValueError("depth_tolerance must be > 0")
    if max_iterations < 1:
        raise ValueError("max_iterations must be >= 1")
    environment.validate_source(source_depth)
    bottom = environment.bottom_depth(receiver_range)
    if not 0.0 <= receiver_depth <= bottom:
        raise InvalidEnvironment(
            f"receiver depth {receiver_depth} m outside water column [0, {bottom}] m"
        )

    angles = np.unique(np.asarray(angle_fan, dtype=np.float64))
    if angles.size == 0:
        raise ValueError("angle_fan must not be empty")
    if step_size is None:
        step_size = receiver_range / 500.0

    shoot = _Shooter(environment, source_depth, frequency, receiver_range,
                     receiver_depth, step_size, max_steps, should_cancel)

    shots  = [shoot(a) for a in angles]
    errors = np.array([f for _, f in shots])

    eigenrays: list[Eigenray] = []
    unconverged: list[UnconvergedBracket] = []

    def collect(outcome):
        found, failed = outcome
        if found is not None:
            eigenrays.append(found)
        if failed is not None:
            unconverged.append(failed)

    for i, (ray, err) in enumerate(shots):
        if err == 0.0:
            eigenrays.append(shoot.eigenray(ray, err, 0))

    for i in range(len(angles) - 1):
        f1, f2 = errors[i], errors[i + 1]
        if f1 * f2 < 0.0:
            collect(_bisect(shoot, angles[i], f1, angles[i + 1], f2,
                            depth_tolerance, max_iterations))

    if tangent_scan and len(angles) >= 3:
        magnitude = np.abs(errors)
        for i in range(1, len(angles) - 1):
            window = errors[i - 1:i + 2]
            if np.any(np.isnan(window)) or np.any(window == 0.0):
                continue
            same_sign = np.all(window > 0.0) or np.all(window < 0.0)
            if not same_sign:
                continue
            if magnitude[i] < magnitude[i - 1] and magnitude[i] < magnitude[i + 1]:
                for outcome in _refine_tangent(shoot, angles[i - 1], angles[i + 1],
                                               depth_tolerance, max_iterations):
                    collect(outcome)

    eigenrays.sort(key=lambda e: e.launch_angle)

    logger.debug(
        "Eigenray search: %d found, %d unconverged, %d rays traced",
        len(eigenrays), len(unconverged), shoot.n_traces,
    )
    if unconverged:
        for bracket in unconverged:
            logger.warning(
                "Eigenray bracket [%.6f, %.6f] deg not converged after %d iterations "
                "(depth error %.3g m)",
                bracket.angle_low, bracket.angle_high, bracket.n_iterations,
                bracket.depth_error,
            )
        if strict:
            raise EigenraySearchNotConverged(unconverged)

    if return_unconverged:
        return eigenrays, unconverged
    return eigenrays
