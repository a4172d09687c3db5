"""
Ray fan tracer.

Launches one independent ray per angle of the request's fan. Rays share
only the read-only Environment, so they can be spread over worker
processes with joblib; results are always consumed in launch-angle order,
which makes the multi-worker output identical to the sequential one.
"""

from __future__ import annotations

import logging
import numpy as np
from typing import Callable, Optional

from joblib import Parallel, delayed

from acoustic_prop.config import PropagationRequest
from acoustic_prop.environment.model import Environment
from acoustic_prop.errors import JobCancelled
from acoustic_prop.raytracing.integrator import Ray, trace_ray

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


def trace_rays(
    environment:   Environment,
    request:       PropagationRequest,
    n_workers:     int                        = 1,
    progress:      Optional[ProgressCallback] = None,
    should_cancel: Optional[CancelCheck]      = None,
    angles:        Optional[np.ndarray]       = None,
) -> list[Ray]:
    """Trace the full launch fan of a request.

    Parameters
    ----------
    environment : Environment
        Waveguide description, shared read-only by every ray.
    request : PropagationRequest
        Source, frequency, fan and integration parameters.
    n_workers : int
        Number of joblib workers. 1 traces in the calling thread.
    progress : callable, optional
        ``progress(done, total)`` called after each finished ray.
    should_cancel : callable, optional
        Checked between rays; when it returns True the fan is abandoned.
    angles : np.ndarray, optional
        Launch angles in degrees overriding ``request.launch_angles()``.

    Returns
    -------
    list of Ray
        One ray per launch angle, in launch-angle order.

    Raises
    ------
    InvalidEnvironment
        If the source lies outside the water column.
    JobCancelled
        If ``should_cancel`` fired between two rays.
    """
    if n_workers < 1:
        raise ValueError("n_workers must be >= 1")
    environment.validate_source(request.source_depth)

    if angles is None:
        angles = request.launch_angles()
    angles = np.asarray(angles, dtype=np.float64)
    total  = len(angles)

    kwargs = dict(
        source_depth=request.source_depth,
        frequency=request.frequency,
        max_range=request.max_range,
        step_size=request.range_step,
        max_steps=request.max_steps,
    )

    logger.debug(
        "Tracing %d rays over [%.2f, %.2f] deg with %d worker(s)",
        total, angles.min(), angles.max(), n_workers,
    )

    if n_workers == 1:
        results = (
            trace_ray(environment, launch_angle=float(a), **kwargs) for a in angles
        )
    else:
        results = Parallel(n_jobs=n_workers, return_as="generator")(
            delayed(trace_ray)(environment, launch_angle=float(a), **kwargs)
            for a in angles
        )

    rays: list[Ray] = []
    try:
        for ray in results:
            rays.append(ray)
            if progress is not None:
                progress(len(rays), total)
            if should_cancel is not None and len(rays) < total and should_cancel():
                logger.info("Fan cancelled after %d/%d rays", len(rays), total)
                raise JobCancelled(f"cancelled after {len(rays)} of {total} rays")
    finally:
        close = getattr(results, "close", None)
        if close is not None:
            close()

    n_truncated = sum(ray.truncated for ray in rays)
    if n_truncated:
        logger.warning("%d of %d rays truncated at the step limit", n_truncated, total)

    return rays
