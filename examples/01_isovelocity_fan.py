"""
Example 01: Ray Fan in a Shallow-Water Duct

Traces a fan of rays in an isovelocity waveguide over sand, checks the
first bottom bounce against straight-line geometry and plots the rays
colored by their boundary interactions.
"""

import sys
import pathlib

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import math
import numpy as np
import matplotlib.pyplot as plt

from acoustic_prop.config import OutputType, PropagationRequest
from acoustic_prop.raytracing import Boundary, trace_rays
from acoustic_prop.utils.scenarios import shallow_duct
from acoustic_prop.utils.visualization import plot_environment, plot_rays


def main():
    # — Configuration ————————————————————————————————————————————————————————
    environment = shallow_duct(depth=100.0)
    request = PropagationRequest(
        source_depth=30.0,
        frequency=500.0,
        max_range=5000.0,
        range_step=10.0,
        n_rays=61,
        max_angle=20.0,
        output=OutputType.RAY_PATHS,
    )

    print(f"Water depth: {environment.max_depth:.0f} m, "
          f"c = {environment.sound_speed(0.0):.0f} m/s")
    print(f"Tracing {request.n_rays} rays over ±{request.max_angle:.0f}° "
          f"to {request.max_range / 1e3:.1f} km...")

    # — Ray-Tracing ———————————————————————————————————————————————————————————
    rays = trace_rays(environment, request, n_workers=2)

    n_refracted = sum(ray.n_surface == 0 and ray.n_bottom == 0 for ray in rays)
    n_bottom    = sum(ray.n_bottom > 0 for ray in rays)
    print(f"Refracted only: {n_refracted}, bottom-reflected: {n_bottom}")

    # — Validate the first bounce against geometry ————————————————————————————
    print("\n— Geometric Validation —")
    for ray in rays[-5:]:
        first = next(b for b in ray.bounces if b.boundary is Boundary.BOTTOM)
        expected = (environment.max_depth - request.source_depth) / math.tan(
            math.radians(ray.launch_angle)
        )
        print(f"θ0={ray.launch_angle:+6.2f}°  first bottom bounce at "
              f"{first.range:8.2f} m (expected {expected:8.2f} m), "
              f"|R|={first.coefficient:.4f}")

    print(f"Final amplitude range: [{min(r.amplitude[-1] for r in rays):.3e}, "
          f"{max(r.amplitude[-1] for r in rays):.3e}]")

    # — Visualization —————————————————————————————————————————————————————————
    fig, axes = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    plot_environment(environment, request.max_range,
                     source_depth=request.source_depth, ax=axes[0])
    plot_rays(rays, environment=environment, title="Shallow Duct: Ray Fan", ax=axes[1])

    plt.tight_layout()
    plt.savefig("isovelocity_fan.png", dpi=150, bbox_inches="tight")
    plt.show()
    print("\nSaved: isovelocity_fan.png")


if __name__ == "__main__":
    main()
