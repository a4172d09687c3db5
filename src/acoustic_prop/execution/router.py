"""
Routing of requests between the synchronous and the queued path.

The decision only looks at the estimated workload (ray-steps); it never
changes a numerical parameter of the request.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from acoustic_prop.config import EngineConfig, PropagationRequest
from acoustic_prop.environment.model import Environment
from acoustic_prop.errors import WorkloadTooLarge
from acoustic_prop.execution.pipeline import run_propagation

logger = logging.getLogger(__name__)


class Route(str, Enum):
    SYNC = "sync"
    QUEUED = "queued"


def estimate_workload(request: PropagationRequest) -> int:
    """Ray-steps of a request: n_rays · ceil(max_range / range_step)."""
    return request.n_rays * request.range_steps


class ExecutionRouter:
    """Dispatch requests to the constrained or the unconstrained path.

    Parameters
    ----------
    config : EngineConfig, optional
        Threshold, ceiling and worker settings.
    orchestrator : JobOrchestrator, optional
        Queue for heavy requests. Created and started on first use when
        omitted.
    """

    def __init__(self, config: Optional[EngineConfig] = None, orchestrator=None):
        self.config = config or EngineConfig()
        self._orchestrator = orchestrator

    @property
    def orchestrator(self):
        if self._orchestrator is None:
            from acoustic_prop.execution.jobs import JobOrchestrator
            self._orchestrator = JobOrchestrator(self.config)
            self._orchestrator.start()
        return self._orchestrator

    def route(self, request: PropagationRequest) -> Route:
        """Pick the execution path of a request.

        Raises
        ------
        WorkloadTooLarge
            If the workload exceeds the configured ceiling.
        """
        workload = estimate_workload(request)
        if workload > self.config.workload_ceiling:
            raise WorkloadTooLarge(workload, self.config.workload_ceiling)
        if workload >= self.config.workload_threshold:
            return Route.QUEUED
        return Route.SYNC

    def execute(self, environment: Environment, request: PropagationRequest,
                priority: int = 0):
        """Run a request on its route.

        Returns
        -------
        PropagationResult or JobHandle
            The result itself for the synchronous path, a handle to poll
            for the queued path.
        """
        route = self.route(request)
        logger.info("Routing request (%d ray-steps) to %s path",
                    estimate_workload(request), route.value)
        if route is Route.SYNC:
            return run_propagation(environment, request, n_workers=1)
        return self.orchestrator.submit(environment, request, priority=priority)
