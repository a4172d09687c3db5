"""
Example 03: Lloyd's Mirror Transmission Loss

Computes the coherent and incoherent TL of a source below a
pressure-release surface, compares the first interference null with the
closed-form image-source prediction and plots both fields.
"""

import sys
import pathlib

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import numpy as np
import matplotlib.pyplot as plt

from acoustic_prop.config import GridSpec, OutputType, PropagationRequest
from acoustic_prop.execution import ExecutionRouter
from acoustic_prop.field import assemble_transmission_loss
from acoustic_prop.utils.scenarios import lloyds_mirror, lloyds_mirror_null
from acoustic_prop.utils.visualization import plot_transmission_loss


def main():
    # — Configuration ————————————————————————————————————————————————————————
    environment = lloyds_mirror(depth=100.0)
    request = PropagationRequest(
        source_depth=50.0,
        frequency=1000.0,
        max_range=5000.0,
        range_step=10.0,
        n_rays=401,
        max_angle=20.0,
        output=OutputType.RAY_PATHS,
    )
    grid_spec = GridSpec(
        range_min=100.0, range_max=5000.0, n_ranges=491,
        depth_min=0.0,   depth_max=100.0,  n_depths=201,
    )

    # — Ray-Tracing ———————————————————————————————————————————————————————————
    router = ExecutionRouter()
    print(f"Route: {router.route(request).value}")
    rays = router.execute(environment, request).rays

    coherent   = assemble_transmission_loss(rays, grid_spec, mode="coherent")
    incoherent = assemble_transmission_loss(rays, grid_spec, mode="incoherent")

    # — Validate the first null ——————————————————————————————————————————————
    print("\n— Image-Source Validation —")
    receiver_depth = 50.0
    expected = lloyds_mirror_null(request.source_depth, receiver_depth, request.frequency)
    row      = coherent.depth_slice(receiver_depth)
    window   = coherent.ranges > 0.5 * expected
    r_null   = coherent.ranges[window][np.argmax(row[window])]

    print(f"Predicted first null: {expected:.1f} m")
    print(f"Computed first null:  {r_null:.1f} m "
          f"(TL {row[window].max():.1f} dB vs "
          f"{incoherent.at(r_null, receiver_depth):.1f} dB incoherent)")

    # — Visualization —————————————————————————————————————————————————————————
    fig, axes = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    plot_transmission_loss(coherent, tl_range=(40, 90), title="Lloyd's Mirror", ax=axes[0])
    plot_transmission_loss(incoherent, tl_range=(40, 90), title="Lloyd's Mirror", ax=axes[1])
    axes[0].axvline(expected / 1e3, color="w", linestyle="--", linewidth=1)

    plt.tight_layout()
    plt.savefig("lloyds_mirror.png", dpi=150, bbox_inches="tight")
    plt.show()
    print("\nSaved: lloyds_mirror.png")


if __name__ == "__main__":
    main()
