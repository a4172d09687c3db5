"""
Plotting utilities for ray fans, eigenrays and transmission loss.

All functions return (Figure, Axes) and accept an optional `ax` argument
for embedding into multi-panel figures. Ranges are shown in km, depths in
m, with depth increasing downward.
"""

from __future__ import annotations

import numpy as np
import matplotlib
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes
from typing import Optional, Sequence


def _figure(ax: Optional[Axes], figsize: tuple[float, float]) -> tuple[Figure, Axes]:
    if ax is None:
        return plt.subplots(1, 1, figsize=figsize)
    return ax.get_figure(), ax


def plot_environment(
    environment,
    max_range: float,
    source_depth: Optional[float] = None,
    receiver: Optional[tuple[float, float]] = None,
    n_points: int = 300,
    title: str = "Environment",
    figsize: tuple[float, float] = (12, 5),
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot the sound-speed profile beside the waveguide geometry.

    Parameters
    ----------
    environment : Environment
        Waveguide to draw.
    max_range : float
        Range extent in meters.
    source_depth : float, optional
        Draws the source at range zero.
    receiver : tuple, optional
        (range, depth) of a receiver in meters.
    n_points : int
        Samples of the profile and the bottom.
    ax : Axes, optional
        Axes for the geometry. The profile panel is only drawn when the
        function creates its own figure.

    Returns
    -------
    fig, ax
    """
    if ax is None:
        fig, (ax_c, ax) = plt.subplots(
            1, 2, figsize=figsize, gridspec_kw={"width_ratios": [1, 4]}, sharey=True
        )
        z = np.linspace(0.0, environment.max_depth, n_points)
        c = np.array([environment.sound_speed(zi) for zi in z])
        ax_c.plot(c, z, "b-", linewidth=2)
        ax_c.set_xlabel("c (m/s)")
        ax_c.set_ylabel("Depth (m)")
        ax_c.grid(True, alpha=0.3)
    else:
        fig = ax.get_figure()

    r, zb = environment.bathymetry.get_points(n_points, 0.0, max_range)
    ax.plot(r / 1e3, zb, "k-", linewidth=2, label="Bottom")
    ax.fill_between(r / 1e3, zb, environment.max_depth * 1.05, color="tan", alpha=0.5)
    ax.axhline(0.0, color="b", linewidth=1)

    if source_depth is not None:
        ax.scatter([0.0], [source_depth], color="red", s=40, zorder=5, label="Source")
    if receiver is not None:
        ax.scatter([receiver[0] / 1e3], [receiver[1]], color="green", marker="v",
                   s=40, zorder=5, label="Receiver")

    ax.set_xlim(0.0, max_range / 1e3)
    ax.set_ylim(environment.max_depth * 1.05, 0.0)
    ax.set_xlabel("Range (km)")
    ax.set_title(title)
    ax.legend(loc="best", fontsize=8)
    ax.grid(True, alpha=0.3)

    return fig, ax


def plot_rays(
    rays: Sequence,
    environment=None,
    max_rays: int = 200,
    color_by_bounces: bool = True,
    title: str = "Ray Paths",
    figsize: tuple[float, float] = (12, 5),
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot ray trajectories.

    Parameters
    ----------
    rays : sequence of Ray
        Traced rays.
    environment : Environment, optional
        Draws the bottom when given.
    max_rays : int
        Thins the fan to at most this many rays.
    color_by_bounces : bool
        Color rays as in Bellhop plots: black for refracted-only paths,
        blue for surface-only, red for bottom-reflected.
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    fig, ax = _figure(ax, figsize)

    stride = max(1, int(np.ceil(len(rays) / max_rays)))
    for ray in rays[::stride]:
        if not color_by_bounces:
            color = "b"
        elif ray.n_bottom > 0:
            color = "r"
        elif ray.n_surface > 0:
            color = "b"
        else:
            color = "k"
        ax.plot(ray.range / 1e3, ray.depth, color=color, linewidth=0.5, alpha=0.7)

    if environment is not None and len(rays):
        r_max = max(ray.final_range for ray in rays)
        r, zb = environment.bathymetry.get_points(300, 0.0, r_max)
        ax.plot(r / 1e3, zb, "k-", linewidth=2)

    ax.set_xlabel("Range (km)")
    ax.set_ylabel("Depth (m)")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    if not ax.yaxis_inverted():
        ax.invert_yaxis()

    return fig, ax


def plot_eigenrays(
    eigenrays: Sequence,
    environment=None,
    title: str = "Eigenrays",
    figsize: tuple[float, float] = (12, 5),
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot eigenray paths with their launch angles and travel times.

    Parameters
    ----------
    eigenrays : sequence of Eigenray
    environment : Environment, optional
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    n_before = len(ax.get_lines()) if ax is not None else 0
    fig, ax = plot_rays([e.ray for e in eigenrays], environment=environment,
                        color_by_bounces=False, title=title, figsize=figsize, ax=ax)

    lines = ax.get_lines()[n_before:n_before + len(eigenrays)]
    cmap  = matplotlib.colormaps["viridis"]
    t_max = max((e.travel_time for e in eigenrays), default=1.0)
    for line, eig in zip(lines, eigenrays):
        line.set_linewidth(1.2)
        line.set_label(
            f"{eig.launch_angle:+.2f}°  {eig.travel_time:.4f} s  "
            f"(S{eig.n_surface}/B{eig.n_bottom})"
        )
        line.set_color(cmap(eig.travel_time / t_max))

    if eigenrays:
        target = eigenrays[0]
        ax.scatter([target.target_range / 1e3], [target.target_depth],
                   color="green", marker="v", s=40, zorder=5)
        ax.legend(loc="best", fontsize=7)

    return fig, ax


def plot_transmission_loss(
    grid,
    tl_range: tuple[float, float] = (40.0, 100.0),
    title: str = "Transmission Loss",
    figsize: tuple[float, float] = (12, 5),
    cmap: str = "jet_r",
    ax: Optional[Axes] = None,
) -> tuple[Figure, Axes]:
    """Plot a TL field in dB.

    Parameters
    ----------
    grid : TransmissionLossGrid
        Assembled field.
    tl_range : tuple
        (vmin, vmax) of the color scale in dB.
    cmap : str
        Colormap name. Reversed jet follows the usual acoustics convention
        (loud is red).
    ax : Axes, optional

    Returns
    -------
    fig, ax
    """
    fig, ax = _figure(ax, figsize)

    r0, r1, z1, z0 = grid.extent
    im = ax.imshow(
        grid.tl,
        extent=(r0 / 1e3, r1 / 1e3, z1, z0),
        cmap=cmap,
        vmin=tl_range[0],
        vmax=tl_range[1],
        aspect="auto",
    )
    plt.colorbar(im, ax=ax, label="TL (dB re 1 m)")

    ax.set_xlabel("Range (km)")
    ax.set_ylabel("Depth (m)")
    ax.set_title(f"{title}: {grid.frequency:.0f} Hz ({grid.mode})")

    return fig, ax
