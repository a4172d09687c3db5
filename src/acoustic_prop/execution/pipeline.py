"""
The trace-then-assemble pipeline shared by both execution paths.

Synchronous calls and queued jobs both end up in :func:`run_propagation`
with the request untouched; only the worker count and the progress /
cancellation hooks differ, and neither of them touches the numerics.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from acoustic_prop.config import GridSpec, OutputType, PropagationRequest
from acoustic_prop.environment.model import Environment
from acoustic_prop.field.assembler import TransmissionLossGrid, assemble_transmission_loss
from acoustic_prop.raytracing.fan import CancelCheck, ProgressCallback, trace_rays
from acoustic_prop.raytracing.eigenrays import find_eigenrays

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropagationResult:
    """Output of one propagation run.

    Only the member matching ``request.output`` is filled in.

    Attributes
    ----------
    request : PropagationRequest
        The request that produced this result.
    rays : list of Ray, optional
        Traced fan (ray-path output).
    grid : TransmissionLossGrid, optional
        TL field (transmission-loss output).
    eigenrays : list of Eigenray, optional
        Source-receiver eigenrays (eigenray output).
    unconverged : tuple of UnconvergedBracket
        Eigenray brackets that hit the bisection cap.
    elapsed : float
        Wall-clock seconds spent in the pipeline.
    """

    request:     PropagationRequest
    rays:        Optional[list] = None
    grid:        Optional[TransmissionLossGrid] = None
    eigenrays:   Optional[list] = None
    unconverged: tuple = ()
    elapsed:     float = 0.0


def run_propagation(
    environment:   Environment,
    request:       PropagationRequest,
    n_workers:     int                        = 1,
    progress:      Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck]      = None,
    grid_spec:     Optional[GridSpec]         = None,
) -> PropagationResult:
    """Run one request end to end.

    Parameters
    ----------
    environment : Environment
        Waveguide description.
    request : PropagationRequest
        What to compute.
    n_workers : int
        Parallel ray workers for the fan.
    progress : callable, optional
        ``progress(done, total)`` after each ray of the fan.
    should_cancel : callable, optional
        Checked between rays; raises JobCancelled when it returns True.
    grid_spec : GridSpec, optional
        Output grid overriding :meth:`GridSpec.for_request`.

    Returns
    -------
    PropagationResult
    """
    t0 = time.perf_counter()
    logger.info(
        "Running %s: %d rays, f=%.1f Hz, max range %.0f m",
        request.output.value, request.n_rays, request.frequency, request.max_range,
    )

    if request.output is OutputType.EIGENRAYS:
        eigenrays, unconverged = find_eigenrays(
            environment,
            source_depth=request.source_depth,
            frequency=request.frequency,
            receiver_range=request.receiver_range,
            receiver_depth=request.receiver_depth,
            angle_fan=request.launch_angles(),
            depth_tolerance=request.depth_tolerance,
            max_iterations=request.max_bisections,
            step_size=request.range_step,
            max_steps=request.max_steps,
            return_unconverged=True,
            should_cancel=should_cancel,
        )
        if progress is not None:
            progress(request.n_rays, request.n_rays)
        return PropagationResult(
            request=request,
            eigenrays=eigenrays,
            unconverged=tuple(unconverged),
            elapsed=time.perf_counter() - t0,
        )

    rays = trace_rays(environment, request, n_workers=n_workers,
                      progress=progress, should_cancel=should_cancel)

    if request.output is OutputType.RAY_PATHS:
        return PropagationResult(request=request, rays=rays,
                                 elapsed=time.perf_counter() - t0)

    if grid_spec is None:
        grid_spec = GridSpec.for_request(request, environment.max_depth)
    grid = assemble_transmission_loss(rays, grid_spec, request.frequency,
                                      mode=request.mode)

    elapsed = time.perf_counter() - t0
    logger.info("Propagation finished in %.2f s", elapsed)
    return PropagationResult(request=request, grid=grid, elapsed=elapsed)
