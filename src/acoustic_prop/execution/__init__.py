"""
Execution layer: routing, job orchestration and the JSON job boundary.

Threads, queues and timers live here only; the numerical core never
touches them.
"""

from acoustic_prop.execution.jobs import JobEvent, JobHandle, JobOrchestrator, JobStatus
from acoustic_prop.execution.pipeline import PropagationResult, run_propagation
from acoustic_prop.execution.router import ExecutionRouter, Route, estimate_workload
from acoustic_prop.execution.serialization import (
    dumps_job,
    environment_from_json,
    environment_to_json,
    loads_job,
    request_from_json,
    request_to_json,
)

__all__ = [
    "JobEvent",
    "JobHandle",
    "JobOrchestrator",
    "JobStatus",
    "PropagationResult",
    "run_propagation",
    "ExecutionRouter",
    "Route",
    "estimate_workload",
    "dumps_job",
    "loads_job",
    "environment_to_json",
    "environment_from_json",
    "request_to_json",
    "request_from_json",
]
