"""
Example 02: Eigenrays in the Munk Sound Channel

Finds every ray connecting a source on the channel axis to a receiver at
50 km range, prints the arrival structure and plots the eigenrays.
"""

import sys
import pathlib

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "src"))

import numpy as np
import matplotlib.pyplot as plt

from acoustic_prop.raytracing import find_eigenrays
from acoustic_prop.utils.scenarios import munk_deep_water
from acoustic_prop.utils.visualization import plot_eigenrays


def main():
    # — Configuration ————————————————————————————————————————————————————————
    environment    = munk_deep_water(depth=5000.0)
    source_depth   = 1000.0                       # on the channel axis
    receiver_range = 50_000.0
    receiver_depth = 800.0
    angle_fan      = np.linspace(-14.0, 14.0, 281)

    print(f"Source: {source_depth:.0f} m, receiver: "
          f"({receiver_range / 1e3:.0f} km, {receiver_depth:.0f} m)")
    print(f"Scanning {len(angle_fan)} launch angles...")

    # — Eigenray search ———————————————————————————————————————————————————————
    eigenrays, unconverged = find_eigenrays(
        environment,
        source_depth=source_depth,
        frequency=50.0,
        receiver_range=receiver_range,
        receiver_depth=receiver_depth,
        angle_fan=angle_fan,
        depth_tolerance=0.5,
        step_size=100.0,
        return_unconverged=True,
    )

    print(f"\nFound {len(eigenrays)} eigenrays "
          f"({len(unconverged)} unconverged brackets)")
    print(f"{'θ0 (deg)':>10} {'τ (s)':>10} {'A':>10} {'S/B':>6} {'iters':>6}")
    for eig in sorted(eigenrays, key=lambda e: e.travel_time):
        print(f"{eig.launch_angle:+10.3f} {eig.travel_time:10.4f} "
              f"{eig.amplitude:10.3e} {eig.n_surface:>2}/{eig.n_bottom:<3} "
              f"{eig.n_iterations:6d}")

    if eigenrays:
        spread = max(e.travel_time for e in eigenrays) - min(e.travel_time for e in eigenrays)
        print(f"\nArrival spread: {spread * 1e3:.1f} ms")

    # — Visualization —————————————————————————————————————————————————————————
    fig, ax = plot_eigenrays(eigenrays, environment=environment,
                             title="Munk Channel: Eigenrays", figsize=(14, 6))

    plt.tight_layout()
    plt.savefig("munk_eigenrays.png", dpi=150, bbox_inches="tight")
    plt.show()
    print("\nSaved: munk_eigenrays.png")


if __name__ == "__main__":
    main()
