"""
JSON boundary for environments, requests and queued jobs.

Python's json module writes floats with their shortest round-trip repr,
so every double survives a dump/load cycle unchanged. That is what lets a
queued job reproduce the synchronous result bit for bit.
"""

from __future__ import annotations

import json
import numpy as np

from acoustic_prop.config import PropagationRequest
from acoustic_prop.environment.model import Environment

JOB_FORMAT_VERSION = 1


def _encode(value):
    """json ``default`` hook for numpy scalars and arrays."""
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _dumps(data: dict) -> str:
    return json.dumps(data, sort_keys=True, allow_nan=False, default=_encode)


def environment_to_json(environment: Environment) -> str:
    return _dumps(environment.to_dict())


def environment_from_json(text: str) -> Environment:
    return Environment.from_dict(json.loads(text))


def request_to_json(request: PropagationRequest) -> str:
    return _dumps(request.to_dict())


def request_from_json(text: str) -> PropagationRequest:
    return PropagationRequest.from_dict(json.loads(text))


def dumps_job(environment: Environment, request: PropagationRequest,
              priority: int = 0) -> str:
    """Serialize everything a worker needs to run one job."""
    return _dumps({
        "version": JOB_FORMAT_VERSION,
        "environment": environment.to_dict(),
        "request": request.to_dict(),
        "priority": priority,
    })


def loads_job(text: str) -> tuple[Environment, PropagationRequest, int]:
    """Inverse of :func:`dumps_job`.

    Raises
    ------
    ValueError
        If the payload was written by an unknown format version.
    """
    data = json.loads(text)
    version = data.get("version")
    if version != JOB_FORMAT_VERSION:
        raise ValueError(f"unsupported job format version {version!r}")
    return (
        Environment.from_dict(data["environment"]),
        PropagationRequest.from_dict(data["request"]),
        int(data.get("priority", 0)),
    )
