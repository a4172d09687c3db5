"""
Single-ray integrator.

Advances one ray through a range-independent Environment with a fixed
arc-length step and classic 4th-order Runge-Kutta, resolving every surface
and bottom crossing exactly (the step is bisected to the boundary rather
than letting a bounce slip through a step).

Ray equations
-------------
With slowness components ξ = cos θ / c and ζ = sin θ / c (θ positive
downward) the state y = (r, z, ξ, ζ, τ, q, p) obeys

    dr/ds = c·ξ        dz/ds = c·ζ
    dξ/ds = 0          dζ/ds = −c_z / c²
    dτ/ds = 1 / c
    dq/ds = c·p        dp/ds = −(c_nn / c²)·q,   c_nn = c_zz·(c·ξ)²

ξ is the Snell invariant. (q, p) is the dynamic ray-tracing pair, started
at q = 0, p = 1/c0, so that q is the normal width of the ray tube per
radian of launch angle. The pressure amplitude along the ray is

    A = sqrt(c·cos θ0 / (c0·r·|q|)) · L

where L collects boundary reflection magnitudes and the volume attenuation
exp(−α·ds) of every step. Each sign change of q (a caustic) adds −π/2 to
the ray phase.

State machine
-------------
Traveling → (SurfaceBounce | BottomBounce)* → Terminated, terminating on
max range, on the step cap (ray flagged ``truncated``), or when a sloped
bottom turns the ray back toward the source.
"""

from __future__ import annotations

import logging
import math
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from acoustic_prop.environment.model import Environment
from acoustic_prop.errors import RayEscaped

logger = logging.getLogger(__name__)

# — Constants ————————————————————————————————————————————————————————————————
BISECT_MAXITER = 60
BISECT_TOL     = 1e-9    # Arc-length resolution of a boundary hit (m)
RANGE_EPS      = 1e-6    # Range tolerance for landing on max_range (m)
MIN_SPREADING  = 1.0     # Floor of r·|q| (m²): unit reference distance


class Termination(str, Enum):
    MAX_RANGE = "max_range"
    STEP_LIMIT = "step_limit"
    BACKSCATTERED = "backscattered"


class Boundary(str, Enum):
    SURFACE = "surface"
    BOTTOM = "bottom"


@dataclass
class RayState:
    """Mutable state of one in-flight ray.

    Owned by exactly one call to :func:`trace_ray`; never shared.
    """

    r:         float
    z:         float
    xi:        float
    zeta:      float
    p:         float
    q:         float = 0.0
    s:         float = 0.0
    tau:       float = 0.0
    loss:      float = 1.0
    phase:     float = 0.0
    n_surface: int   = 0
    n_bottom:  int   = 0
    n_steps:   int   = 0

    def vector(self) -> tuple:
        return (self.r, self.z, self.xi, self.zeta, self.tau, self.q, self.p)

    def load(self, y: tuple) -> None:
        self.r, self.z, self.xi, self.zeta, self.tau, self.q, self.p = y

    @property
    def angle(self) -> float:
        """Local ray angle θ in radians, positive downward."""
        return math.atan2(self.zeta, self.xi)


@dataclass(frozen=True)
class BounceEvent:
    """One boundary reflection along a ray.

    Attributes
    ----------
    range, depth : float
        Reflection point in meters.
    boundary : Boundary
        Which boundary was hit.
    grazing_angle : float
        Grazing angle in radians.
    coefficient : float
        Reflection magnitude applied to the amplitude.
    phase : float
        Reflection phase in radians.
    """

    range:         float
    depth:         float
    boundary:      Boundary
    grazing_angle: float
    coefficient:   float
    phase:         float


@dataclass(frozen=True)
class Ray:
    """Immutable trajectory of one traced ray.

    Per-sample arrays all share the same length. A reflection is stored as
    two consecutive samples at the same point: the arriving state, then the
    reflected state.

    Attributes
    ----------
    launch_angle : float
        Launch angle in degrees, positive downward.
    source_depth : float
        Source depth in meters.
    frequency : float
        Frequency in Hz used for attenuation and boundary losses.
    range, depth : np.ndarray
        Sample positions in meters.
    amplitude : np.ndarray
        Pressure amplitude relative to 1 m from the source.
    arc_length : np.ndarray
        Arc length s in meters.
    travel_time : np.ndarray
        Travel time τ in seconds.
    phase : np.ndarray
        Accumulated boundary and caustic phase in radians.
    angle : np.ndarray
        Local ray angle in radians.
    q : np.ndarray
        Ray-tube width per radian of launch angle (m/rad).
    sound_speed : np.ndarray
        Sound speed at each sample.
    surface_bounces, bottom_bounces : np.ndarray
        Cumulative bounce counts at each sample.
    bounces : tuple of BounceEvent
        Reflections in order of occurrence.
    termination : Termination
        Why integration stopped.
    """

    launch_angle:    float
    source_depth:    float
    frequency:       float
    range:           np.ndarray = field(repr=False)
    depth:           np.ndarray = field(repr=False)
    amplitude:       np.ndarray = field(repr=False)
    arc_length:      np.ndarray = field(repr=False)
    travel_time:     np.ndarray = field(repr=False)
    phase:           np.ndarray = field(repr=False)
    angle:           np.ndarray = field(repr=False)
    q:               np.ndarray = field(repr=False)
    sound_speed:     np.ndarray = field(repr=False)
    surface_bounces: np.ndarray = field(repr=False)
    bottom_bounces:  np.ndarray = field(repr=False)
    bounces:         tuple      = field(default=(), repr=False)
    termination:     Termination = Termination.MAX_RANGE

    @property
    def truncated(self) -> bool:
        """True when the ray hit the step cap (escaped ray)."""
        return self.termination is Termination.STEP_LIMIT

    @property
    def n_samples(self) -> int:
        return len(self.range)

    @property
    def n_surface(self) -> int:
        return int(self.surface_bounces[-1])

    @property
    def n_bottom(self) -> int:
        return int(self.bottom_bounces[-1])

    @property
    def final_range(self) -> float:
        return float(self.range[-1])

    def depth_at(self, r: float) -> float:
        """Linearly interpolated depth at range r (NaN outside the ray).

        Ranges up to RANGE_EPS past either end resolve to the end point.
        """
        if not self._covers(r):
            return float("nan")
        return float(np.interp(r, self.range, self.depth))

    def travel_time_at(self, r: float) -> float:
        if not self._covers(r):
            return float("nan")
        return float(np.interp(r, self.range, self.travel_time))

    def _covers(self, r: float) -> bool:
        return self.range[0] - RANGE_EPS <= r <= self.range[-1] + RANGE_EPS


class _Recorder:
    """Collects samples of a ray while it is integrated."""

    def __init__(self) -> None:
        self.columns = {name: [] for name in _SAMPLE_FIELDS}

    def add(self, state: RayState, c: float, cos0: float, c0: float) -> None:
        spreading = max(state.r * abs(state.q), MIN_SPREADING)
        amplitude = math.sqrt(c * cos0 / (c0 * spreading)) * state.loss

        cols = self.columns
        cols["range"].append(state.r)
        cols["depth"].append(state.z)
        cols["amplitude"].append(amplitude)
        cols["arc_length"].append(state.s)
        cols["travel_time"].append(state.tau)
        cols["phase"].append(state.phase)
        cols["angle"].append(state.angle)
        cols["q"].append(state.q)
        cols["sound_speed"].append(c)
        cols["surface_bounces"].append(state.n_surface)
        cols["bottom_bounces"].append(state.n_bottom)

    def arrays(self) -> dict:
        out = {}
        for name, values in self.columns.items():
            dtype = np.int64 if name.endswith("bounces") else np.float64
            arr = np.asarray(values, dtype=dtype)
            arr.flags.writeable = False
            out[name] = arr
        return out


_SAMPLE_FIELDS = (
    "range", "depth", "amplitude", "arc_length", "travel_time", "phase",
    "angle", "q", "sound_speed", "surface_bounces", "bottom_bounces",
)


# ——————————————————————————————————————————————————————————————————————————————
# ODE right-hand side and Runge-Kutta step
# ——————————————————————————————————————————————————————————————————————————————

def _derivatives(profile, y: tuple) -> tuple:
    """Right-hand side of the ray + dynamic ray equations."""
    _, z, xi, zeta, _, q, p = y
    c, cz, czz = profile.evaluate(z)
    c2  = c * c
    cnn = czz * (c * xi) ** 2
    return (c * xi, c * zeta, 0.0, -cz / c2, 1.0 / c, c * p, -cnn / c2 * q)


def _axpy(y: tuple, k: tuple, h: float) -> tuple:
    return tuple(a + h * b for a, b in zip(y, k))


def rk4_step(profile, y: tuple, h: float) -> tuple:
    """Advance the state vector by arc length h with classic RK4."""
    k1 = _derivatives(profile, y)
    k2 = _derivatives(profile, _axpy(y, k1, 0.5 * h))
    k3 = _derivatives(profile, _axpy(y, k2, 0.5 * h))
    k4 = _derivatives(profile, _axpy(y, k3, h))
    return tuple(
        a + h / 6.0 * (b1 + 2.0 * b2 + 2.0 * b3 + b4)
        for a, b1, b2, b3, b4 in zip(y, k1, k2, k3, k4)
    )


def _violated(environment: Environment, y: tuple) -> Optional[Boundary]:
    """Boundary the state lies beyond, if any."""
    r, z = y[0], y[1]
    if z < 0.0:
        return Boundary.SURFACE
    if z > environment.bottom_depth(r):
        return Boundary.BOTTOM
    return None


def _bisect_crossing(environment: Environment, profile, y: tuple, h: float) -> tuple:
    """Find the arc length at which a step leaves the water column.

    Returns
    -------
    h_hit : float
        Largest arc length found that stays inside the water column.
    boundary : Boundary
        Boundary crossed just after h_hit.
    """
    lo, hi  = 0.0, h
    crossed = _violated(environment, rk4_step(profile, y, hi))

    for _ in range(BISECT_MAXITER):
        if hi - lo <= BISECT_TOL:
            break
        mid = 0.5 * (lo + hi)
        hit = _violated(environment, rk4_step(profile, y, mid))
        if hit is None:
            lo = mid
        else:
            hi      = mid
            crossed = hit

    return lo, crossed


def _reflect(
    environment: Environment,
    state:       RayState,
    boundary:    Boundary,
    frequency:   float,
) -> BounceEvent:
    """Apply a specular reflection to the state, in place."""
    theta = state.angle

    if boundary is Boundary.SURFACE:
        state.z = 0.0
        grazing = abs(theta)
        coeff   = environment.surface_reflection_coefficient(grazing, frequency)
        phase   = environment.surface.phase(grazing)
        state.zeta = -state.zeta
        state.n_surface += 1
    else:
        state.z = environment.bottom_depth(state.r)
        slope   = environment.bottom_slope(state.r)
        if slope == 0.0:
            grazing = abs(theta)
            state.zeta = -state.zeta
        else:
            # Mirror the direction about the local bottom tangent
            tilt    = math.atan(slope)
            grazing = abs(theta - tilt)
            theta_r = 2.0 * tilt - theta
            c       = environment.sound_speed(state.z)
            state.xi   = math.cos(theta_r) / c
            state.zeta = math.sin(theta_r) / c
        R     = environment.bottom_reflection(grazing, state.r)
        coeff = abs(R)
        phase = math.atan2(R.imag, R.real)
        state.n_bottom += 1

    state.loss  *= coeff
    state.phase += phase

    return BounceEvent(
        range=state.r,
        depth=state.z,
        boundary=boundary,
        grazing_angle=grazing,
        coefficient=coeff,
        phase=phase,
    )


# ——————————————————————————————————————————————————————————————————————————————
# Public entry point
# ——————————————————————————————————————————————————————————————————————————————

def trace_ray(
    environment:     Environment,
    source_depth:    float,
    launch_angle:    float,
    frequency:       float,
    max_range:       float,
    step_size:       float,
    max_steps:       Optional[int] = None,
    raise_on_escape: bool          = False,
) -> Ray:
    """Trace a single ray from the source to max_range.

    Parameters
    ----------
    environment : Environment
        Waveguide description.
    source_depth : float
        Source depth in meters.
    launch_angle : float
        Launch angle in degrees, positive downward, |angle| < 90.
    frequency : float
        Frequency in Hz (volume attenuation and surface roughness loss).
    max_range : float
        Range at which the ray stops, in meters. The last step is
        shortened to land on it.
    step_size : float
        Arc-length step in meters.
    max_steps : int, optional
        Hard cap on steps. Defaults to ten times max_range/step_size.
    raise_on_escape : bool
        Raise RayEscaped instead of returning a truncated ray.

    Returns
    -------
    Ray
        The frozen trajectory.
    """
    if not abs(launch_angle) < 90.0:
        raise ValueError("launch angle must be within (-90, 90) degrees")
    if step_size <= 0 or max_range <= 0:
        raise ValueError("step_size and max_range must be > 0")
    environment.validate_source(source_depth)

    if max_steps is None:
        max_steps = 10 * int(math.ceil(max_range / step_size)) + 1000

    profile = environment.sound_speed_profile
    theta0  = math.radians(launch_angle)
    c0      = environment.sound_speed(source_depth)
    cos0    = math.cos(theta0)
    alpha   = environment.volume_attenuation(frequency, source_depth, units="np/m")

    state = RayState(
        r=0.0,
        z=source_depth,
        xi=cos0 / c0,
        zeta=math.sin(theta0) / c0,
        p=1.0 / c0,
    )

    recorder = _Recorder()
    recorder.add(state, c0, cos0, c0)
    bounces = []
    termination = Termination.MAX_RANGE

    while state.r < max_range - RANGE_EPS:
        if state.n_steps >= max_steps:
            termination = Termination.STEP_LIMIT
            break

        y = state.vector()
        c = environment.sound_speed(state.z)
        h = step_size

        # Shorten the last step so the ray lands on max_range
        cos_theta = c * state.xi
        remaining = max_range - state.r
        landing = cos_theta * h > remaining
        if landing:
            h = remaining / cos_theta

        y_new    = rk4_step(profile, y, h)
        boundary = _violated(environment, y_new)
        if boundary is not None:
            h, boundary = _bisect_crossing(environment, profile, y, h)
            y_new = rk4_step(profile, y, h)

        q_old = state.q
        state.load(y_new)
        state.s       += h
        state.loss    *= math.exp(-alpha * h)
        state.n_steps += 1
        if q_old * state.q < 0.0:
            state.phase -= 0.5 * math.pi

        # A landing step ends within RK4 error of max_range
        if (landing and boundary is None) or abs(max_range - state.r) < RANGE_EPS:
            state.r = max_range

        if boundary is None:
            recorder.add(state, environment.sound_speed(state.z), cos0, c0)
            continue

        # Snap onto the boundary, record arrival, reflect, record departure
        state.z = 0.0 if boundary is Boundary.SURFACE else environment.bottom_depth(state.r)
        recorder.add(state, environment.sound_speed(state.z), cos0, c0)
        bounces.append(_reflect(environment, state, boundary, frequency))
        recorder.add(state, environment.sound_speed(state.z), cos0, c0)

        if state.xi <= 0.0:
            termination = Termination.BACKSCATTERED
            break

    if termination is Termination.STEP_LIMIT:
        logger.warning(
            "Ray at %.4f deg truncated after %d steps at r=%.1f m",
            launch_angle, state.n_steps, state.r,
        )
        if raise_on_escape:
            raise RayEscaped(launch_angle, state.n_steps)

    return Ray(
        launch_angle=float(launch_angle),
        source_depth=float(source_depth),
        frequency=float(frequency),
        bounces=tuple(bounces),
        termination=termination,
        **recorder.arrays(),
    )
