"""
Configuration module for acoustic propagation computations.

Defines dataclasses for seabed sediments, propagation requests, output
grids, and engine (routing/queueing) settings used throughout the
ray-tracing and transmission-loss pipeline.

All units are SI (meters, seconds, m/s, kg/m³, Hz) unless noted otherwise.
Angles in requests are in degrees, positive downward.
"""

from __future__ import annotations

import math
import numpy as np
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Sediment:
    """Fluid sediment half-space properties.

    Parameters
    ----------
    name : str
        Human-readable sediment name.
    sound_speed : float
        Compressional wave speed in m/s.
    density : float
        Bulk density in kg/m³.
    attenuation : float
        Compressional attenuation in dB per wavelength.
    """

    name: str
    sound_speed: float
    density: float
    attenuation: float = 0.0

    def __post_init__(self) -> None:
        if self.sound_speed <= 0:
            raise ValueError("sediment sound_speed must be > 0")
        if self.density <= 0:
            raise ValueError("sediment density must be > 0")
        if self.attenuation < 0:
            raise ValueError("sediment attenuation must be >= 0")

    @property
    def impedance(self) -> float:
        """Characteristic acoustic impedance ρ·c in kg/(m²·s)."""
        return self.density * self.sound_speed

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Sediment":
        return cls(**data)


# — Pre-defined sediments (Hamilton-style mean values) ————————————————————————
SAND = Sediment(
    name="Sand",
    sound_speed=1650.0,
    density=1900.0,
    attenuation=0.8,
)

SILT = Sediment(
    name="Silt",
    sound_speed=1575.0,
    density=1700.0,
    attenuation=1.0,
)

CLAY = Sediment(
    name="Clay",
    sound_speed=1500.0,
    density=1500.0,
    attenuation=0.2,
)

GRAVEL = Sediment(
    name="Gravel",
    sound_speed=1800.0,
    density=2000.0,
    attenuation=0.6,
)

# Impedance-matched to standard water: no bottom return at all.
MATCHED_WATER = Sediment(
    name="Matched water",
    sound_speed=1500.0,
    density=1000.0,
    attenuation=0.0,
)

WATER_DENSITY = 1000.0


class OutputType(str, Enum):
    """Product requested from a propagation run."""

    TRANSMISSION_LOSS = "transmission_loss"
    RAY_PATHS = "ray_paths"
    EIGENRAYS = "eigenrays"


@dataclass(frozen=True)
class PropagationRequest:
    """Parameters of one propagation run.

    Parameters
    ----------
    source_depth : float
        Source depth in meters.
    frequency : float
        Source frequency in Hz.
    max_range : float
        Maximum horizontal range in meters.
    range_step : float
        Integration arc-length step in meters. Also the default spacing of
        the output range axis.
    n_rays : int
        Number of launch angles in the fan.
    max_angle : float
        Half-aperture of the fan in degrees; the fan spans
        [-max_angle, max_angle].
    output : OutputType
        Requested product.
    n_depths : int
        Number of depth samples of the output TL grid.
    receiver_range, receiver_depth : float, optional
        Receiver position, required for eigenray output.
    depth_tolerance : float
        Eigenray convergence tolerance on depth miss, in meters.
    max_bisections : int
        Iteration cap of each eigenray bracket.
    max_steps : int, optional
        Hard bound on integration steps per ray. Defaults to ten times the
        number of steps needed to reach max_range along a horizontal ray.
    mode : str
        Field summation: 'coherent' or 'incoherent'.
    """

    source_depth: float
    frequency: float
    max_range: float
    range_step: float
    n_rays: int = 101
    max_angle: float = 20.0
    output: OutputType = OutputType.TRANSMISSION_LOSS
    n_depths: int = 101
    receiver_range: Optional[float] = None
    receiver_depth: Optional[float] = None
    depth_tolerance: float = 0.1
    max_bisections: int = 60
    max_steps: Optional[int] = None
    mode: str = "coherent"

    def __post_init__(self) -> None:
        object.__setattr__(self, "output", OutputType(self.output))
        if self.frequency <= 0:
            raise ValueError("frequency must be > 0")
        if self.max_range <= 0:
            raise ValueError("max_range must be > 0")
        if self.range_step <= 0 or self.range_step > self.max_range:
            raise ValueError("range_step must be in (0, max_range]")
        if self.n_rays < 1:
            raise ValueError("n_rays must be >= 1")
        if not 0.0 <= self.max_angle < 90.0:
            raise ValueError("max_angle must be in [0, 90) degrees")
        if self.n_depths < 2:
            raise ValueError("n_depths must be >= 2")
        if self.mode not in ("coherent", "incoherent"):
            raise ValueError(f"unknown summation mode '{self.mode}'")
        if self.output is OutputType.EIGENRAYS and (
            self.receiver_range is None or self.receiver_depth is None
        ):
            raise ValueError("eigenray output needs receiver_range and receiver_depth")
        if self.max_steps is None:
            object.__setattr__(self, "max_steps", 10 * self.range_steps + 1000)

    @property
    def range_steps(self) -> int:
        """Number of integration steps along a horizontal ray."""
        return int(math.ceil(self.max_range / self.range_step))

    def launch_angles(self) -> np.ndarray:
        """Evenly spaced launch angles of the fan in degrees."""
        if self.n_rays == 1:
            return np.zeros(1)
        return np.linspace(-self.max_angle, self.max_angle, self.n_rays)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["output"] = self.output.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PropagationRequest":
        return cls(**data)


@dataclass(frozen=True)
class GridSpec:
    """Range-depth grid of the transmission-loss output.

    Defines a 2D rectangular grid of field points in the (range, depth)
    plane. Both axes include their end points.

    Parameters
    ----------
    range_min, range_max : float
        Horizontal extent in meters.
    depth_min, depth_max : float
        Vertical extent in meters.
    n_ranges, n_depths : int
        Number of samples along each axis.
    """

    range_min: float
    range_max: float
    n_ranges: int
    depth_min: float
    depth_max: float
    n_depths: int

    def __post_init__(self) -> None:
        if self.n_ranges < 1 or self.n_depths < 1:
            raise ValueError("grid needs at least one sample per axis")
        if self.range_max < self.range_min or self.depth_max < self.depth_min:
            raise ValueError("grid extents must be ordered")

    def ranges(self) -> np.ndarray:
        return np.linspace(self.range_min, self.range_max, self.n_ranges)

    def depths(self) -> np.ndarray:
        return np.linspace(self.depth_min, self.depth_max, self.n_depths)

    @classmethod
    def for_request(cls, request: PropagationRequest, max_depth: float) -> "GridSpec":
        """Default output grid of a request: one column per range step."""
        n_ranges = request.range_steps
        return cls(
            range_min=request.max_range / n_ranges,
            range_max=request.max_range,
            n_ranges=n_ranges,
            depth_min=0.0,
            depth_max=max_depth,
            n_depths=request.n_depths,
        )


@dataclass(frozen=True)
class EngineConfig:
    """Routing and job-orchestration settings.

    None of these touch the numerics: the same request produces the same
    result on either execution path.

    Parameters
    ----------
    workload_threshold : int
        Ray-steps at or above which a request is queued instead of run
        synchronously.
    workload_ceiling : int
        Ray-steps above which a request is rejected outright.
    n_workers : int
        Parallel ray workers used by queued jobs.
    n_job_threads : int
        Number of orchestrator threads popping the job queue.
    job_timeout : float
        Wall-clock ceiling per job in seconds.
    progress_interval : float
        Minimum seconds between two progress events of a job.
    event_queue_size : int
        Capacity of the progress event stream; events beyond it are dropped.
    """

    workload_threshold: int = 2_000_000
    workload_ceiling: int = 2_000_000_000
    n_workers: int = 4
    n_job_threads: int = 1
    job_timeout: float = 3600.0
    progress_interval: float = 0.5
    event_queue_size: int = 1000

    def __post_init__(self) -> None:
        if self.workload_threshold <= 0:
            raise ValueError("workload_threshold must be > 0")
        if self.workload_ceiling < self.workload_threshold:
            raise ValueError("workload_ceiling must be >= workload_threshold")
        if self.n_workers < 1 or self.n_job_threads < 1:
            raise ValueError("worker counts must be >= 1")
        if self.job_timeout <= 0:
            raise ValueError("job_timeout must be > 0")
