"""
Error kinds raised by the propagation engine.

Environment and request problems surface before any ray is traced.
Per-ray problems (escaped rays, unconverged eigenray brackets) are recorded
on the result and logged; they only become exceptions when every ray fails
or when the caller asks for strict behaviour.
"""

from __future__ import annotations


class PropagationError(Exception):
    """Base class for all engine errors."""


class InvalidEnvironment(PropagationError, ValueError):
    """Environment or source geometry rejected before tracing."""


class RayEscaped(PropagationError):
    """A ray hit the integration step cap without terminating normally."""

    def __init__(self, launch_angle: float, n_steps: int) -> None:
        super().__init__(
            f"ray launched at {launch_angle:.4f} deg exceeded {n_steps} steps"
        )
        self.launch_angle = launch_angle
        self.n_steps = n_steps


class EigenraySearchNotConverged(PropagationError):
    """One or more eigenray brackets hit the bisection cap."""

    def __init__(self, brackets: list) -> None:
        super().__init__(
            f"{len(brackets)} eigenray bracket(s) did not converge"
        )
        self.brackets = brackets


class WorkloadTooLarge(PropagationError):
    """Estimated ray-steps exceed the unconstrained path's ceiling."""

    def __init__(self, workload: int, ceiling: int) -> None:
        super().__init__(
            f"workload of {workload} ray-steps exceeds ceiling of {ceiling}"
        )
        self.workload = workload
        self.ceiling = ceiling


class NoValidRays(PropagationError):
    """Every ray in the fan failed, so no field can be assembled."""


class JobError(PropagationError):
    """Base class for terminal job states other than success."""


class JobFailed(JobError):
    """Internal solver error while running a queued job."""


class JobCancelled(JobError):
    """The job was cancelled before it completed."""


class JobTimeout(JobError):
    """The job exceeded its wall-clock ceiling."""
