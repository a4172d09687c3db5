"""
Ray tracing: single-ray integration, fan tracing and eigenray search.
"""

from acoustic_prop.raytracing.eigenrays import Eigenray, UnconvergedBracket, find_eigenrays
from acoustic_prop.raytracing.fan import trace_rays
from acoustic_prop.raytracing.integrator import (
    BounceEvent,
    Boundary,
    Ray,
    RayState,
    Termination,
    trace_ray,
)

__all__ = [
    "BounceEvent",
    "Boundary",
    "Ray",
    "RayState",
    "Termination",
    "trace_ray",
    "trace_rays",
    "Eigenray",
    "UnconvergedBracket",
    "find_eigenrays",
]
