"""
Smoke tests for the plotting helpers (non-interactive backend).
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from acoustic_prop.config import GridSpec, OutputType, PropagationRequest
from acoustic_prop.field import assemble_transmission_loss
from acoustic_prop.raytracing import find_eigenrays, trace_rays
from acoustic_prop.utils.scenarios import shallow_duct, upslope_wedge
from acoustic_prop.utils.visualization import (
    plot_eigenrays,
    plot_environment,
    plot_rays,
    plot_transmission_loss,
)


class TestPlots:
    """Each helper returns (fig, ax) and draws into a given axes."""

    def setup_method(self):
        self.env = shallow_duct(100.0)
        self.request = PropagationRequest(
            source_depth=30.0, frequency=200.0, max_range=2000.0, range_step=20.0,
            n_rays=31, max_angle=10.0, output=OutputType.RAY_PATHS,
        )
        self.rays = trace_rays(self.env, self.request)

    def teardown_method(self):
        plt.close("all")

    def test_environment(self):
        fig, ax = plot_environment(upslope_wedge(), 4000.0, source_depth=30.0,
                                   receiver=(3000.0, 40.0))
        assert ax.get_xlim() == pytest.approx((0.0, 4.0))
        assert len(fig.axes) == 2

    def test_rays_thinned(self):
        fig, ax = plot_rays(self.rays, environment=self.env, max_rays=10)
        # 8 of 31 rays (stride 4) plus the bottom line
        assert len(ax.get_lines()) == 9
        assert ax.yaxis_inverted()

    def test_eigenrays_on_existing_axes(self):
        eigenrays = find_eigenrays(self.env, 30.0, 200.0, 2000.0, 60.0,
                                   np.linspace(-10.0, 10.0, 41), step_size=20.0)
        fig, ax = plt.subplots()
        ax.plot([0.0, 1.0], [0.0, 1.0])
        fig2, ax2 = plot_eigenrays(eigenrays, ax=ax)
        assert ax2 is ax and fig2 is fig
        assert len(ax.get_legend().get_texts()) == len(eigenrays)

    def test_transmission_loss(self):
        grid = assemble_transmission_loss(
            self.rays, GridSpec(100.0, 2000.0, 20, 0.0, 100.0, 21)
        )
        fig, ax = plot_transmission_loss(grid)
        assert "200 Hz" in ax.get_title()
        assert len(ax.get_images()) == 1
