"""
Tests for transmission-loss assembly: Lloyd's mirror interference,
boundary energy loss, deposition kernels and failure modes.
"""

import math
import numpy as np
import pytest

from acoustic_prop.config import SAND, GridSpec, OutputType, PropagationRequest
from acoustic_prop.environment import (
    AttenuationModel,
    BottomBoundary,
    Environment,
    FlatBottom,
    SoundSpeedProfile,
)
from acoustic_prop.errors import NoValidRays
from acoustic_prop.field import TransmissionLossGrid, assemble_transmission_loss
from acoustic_prop.raytracing import trace_ray, trace_rays
from acoustic_prop.utils.scenarios import lloyds_mirror, lloyds_mirror_null, rigid_duct


class TestLloydsMirror:
    """Direct + surface-reflected interference below a pressure-release surface."""

    @classmethod
    def setup_class(cls):
        cls.env = lloyds_mirror(100.0)
        cls.request = PropagationRequest(
            source_depth=50.0,
            frequency=1000.0,
            max_range=5000.0,
            range_step=10.0,
            n_rays=201,
            max_angle=10.0,
            output=OutputType.RAY_PATHS,
        )
        cls.rays = trace_rays(cls.env, cls.request)
        cls.grid_spec = GridSpec(
            range_min=2000.0, range_max=5000.0, n_ranges=301,
            depth_min=0.0, depth_max=100.0, n_depths=101,
        )

    def test_null_position(self):
        grid = assemble_transmission_loss(self.rays, self.grid_spec)
        row = grid.depth_slice(50.0)
        r_null = grid.ranges[int(np.argmax(row))]
        expected = lloyds_mirror_null(50.0, 50.0, 1000.0)
        np.testing.assert_allclose(expected, 3333.33, atol=0.01)
        assert abs(r_null - expected) < 200.0
        assert row.max() > 35.0

    def test_grid_metadata(self):
        grid = assemble_transmission_loss(self.rays, self.grid_spec)
        assert isinstance(grid, TransmissionLossGrid)
        assert grid.shape == (101, 301)
        assert grid.pressure.dtype == np.complex128
        assert grid.frequency == 1000.0
        assert grid.mode == "coherent"
        assert grid.extent == (2000.0, 5000.0, 100.0, 0.0)

    def test_incoherent_fills_the_null(self):
        coherent = assemble_transmission_loss(self.rays, self.grid_spec)
        incoherent = assemble_transmission_loss(self.rays, self.grid_spec, mode="incoherent")
        j = int(np.argmax(coherent.depth_slice(50.0)))
        assert incoherent.depth_slice(50.0)[j] < coherent.depth_slice(50.0)[j] - 20.0
        assert np.all(incoherent.pressure.imag == 0.0)

    def test_spherical_spreading_off_null(self):
        """Away from the null TL stays within 6 dB of 20·log10(r)."""
        grid = assemble_transmission_loss(self.rays, self.grid_spec, mode="incoherent")
        row = grid.depth_slice(50.0)
        spherical = 20.0 * np.log10(grid.ranges)
        assert np.all(np.abs(row - spherical) < 6.0)

    def test_deterministic(self):
        a = assemble_transmission_loss(self.rays, self.grid_spec)
        b = assemble_transmission_loss(list(self.rays), self.grid_spec)
        np.testing.assert_array_equal(a.tl, b.tl)

    def test_nearest_method(self):
        grid = assemble_transmission_loss(self.rays, self.grid_spec, method="nearest")
        assert np.all(grid.tl <= grid.floor_db)
        assert np.any(grid.depth_slice(50.0) < grid.floor_db)

    def test_floor_below_bottom(self):
        spec = GridSpec(2000.0, 5000.0, 31, 0.0, 150.0, 16)
        grid = assemble_transmission_loss(self.rays, spec, floor_db=180.0)
        np.testing.assert_array_equal(grid.depth_slice(150.0), 180.0)

    def test_at_lookup(self):
        grid = assemble_transmission_loss(self.rays, self.grid_spec)
        assert grid.at(3004.0, 50.4) == grid.tl[50, 100]


class TestBoundaryLoss:
    """Each bottom bounce removes 20·log10|R| dB."""

    def setup_method(self):
        lossy = Environment(
            sound_speed_profile=SoundSpeedProfile.isovelocity(1500.0),
            bathymetry=FlatBottom(100.0),
            bottom=BottomBoundary.halfspace(SAND),
            attenuation=AttenuationModel("none"),
        )
        kwargs = dict(source_depth=50.0, launch_angle=12.0, frequency=500.0,
                      max_range=5000.0, step_size=10.0)
        self.sand = trace_ray(lossy, **kwargs)
        self.rigid = trace_ray(rigid_duct(100.0), **kwargs)
        self.R = lossy.bottom_reflection_coefficient(math.radians(12.0))

    def test_same_geometry(self):
        np.testing.assert_array_equal(self.sand.range, self.rigid.range)
        np.testing.assert_array_equal(self.sand.bottom_bounces, self.rigid.bottom_bounces)

    def test_loss_per_bounce(self):
        assert 0.0 < self.R < 1.0
        delta_tl = 20.0 * np.log10(self.rigid.amplitude / self.sand.amplitude)
        expected = -20.0 * self.sand.bottom_bounces * math.log10(self.R)
        np.testing.assert_allclose(delta_tl, expected, atol=1e-9)

    def test_loss_increases_with_bounces(self):
        delta_tl = 20.0 * np.log10(self.rigid.amplitude / self.sand.amplitude)
        counts = np.unique(self.sand.bottom_bounces)
        assert len(counts) >= 5
        per_count = [delta_tl[self.sand.bottom_bounces == n].mean() for n in counts]
        assert np.all(np.diff(per_count) > 0.0)


class TestFailures:
    """Invalid ray sets and arguments."""

    def setup_method(self):
        self.env = rigid_duct(100.0)
        self.spec = GridSpec(100.0, 1000.0, 10, 0.0, 100.0, 11)

    def test_no_rays(self):
        with pytest.raises(NoValidRays):
            assemble_transmission_loss([], self.spec, frequency=100.0)

    def test_all_truncated(self):
        rays = [trace_ray(self.env, 50.0, a, 100.0, 1000.0, 10.0, max_steps=2)
                for a in (-1.0, 0.0, 1.0)]
        assert all(ray.truncated for ray in rays)
        with pytest.raises(NoValidRays):
            assemble_transmission_loss(rays, self.spec)

    def test_truncated_rays_skipped(self):
        good = [trace_ray(self.env, 50.0, a, 100.0, 1000.0, 10.0) for a in (-1.0, 1.0)]
        bad = trace_ray(self.env, 50.0, 0.0, 100.0, 1000.0, 10.0, max_steps=2)
        grid = assemble_transmission_loss(good + [bad], self.spec)
        assert np.all(np.isfinite(grid.tl))

    def test_invalid_options(self):
        rays = [trace_ray(self.env, 50.0, 0.0, 100.0, 1000.0, 10.0)]
        with pytest.raises(ValueError):
            assemble_transmission_loss(rays, self.spec, method="gaussian")
        with pytest.raises(ValueError):
            assemble_transmission_loss(rays, self.spec, mode="semi-coherent")
