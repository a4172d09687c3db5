"""
Tests for single-ray integration: geometry, Snell invariant, dynamic ray
tracing, boundary handling and termination.
"""

import logging
import math
import numpy as np
import pytest

from acoustic_prop.config import SAND
from acoustic_prop.environment import (
    AttenuationModel,
    BottomBoundary,
    Environment,
    FlatBottom,
    SlopedBottom,
    SoundSpeedProfile,
    thorp,
)
from acoustic_prop.errors import InvalidEnvironment, RayEscaped
from acoustic_prop.raytracing import Boundary, Termination, trace_ray
from acoustic_prop.utils.scenarios import munk_deep_water, rigid_duct


def _free_field(depth: float = 200.0, attenuation: str = "none") -> Environment:
    return Environment(
        sound_speed_profile=SoundSpeedProfile.isovelocity(1500.0),
        bathymetry=FlatBottom(depth),
        attenuation=AttenuationModel(attenuation),
    )


class TestStraightRays:
    """Isovelocity water: rays are straight lines."""

    def setup_method(self):
        self.env = _free_field()

    def test_horizontal_ray_stays_level(self):
        ray = trace_ray(self.env, source_depth=100.0, launch_angle=0.0,
                        frequency=100.0, max_range=50_000.0, step_size=50.0)
        assert ray.termination is Termination.MAX_RANGE
        assert not ray.truncated
        assert np.max(np.abs(ray.depth - 100.0)) < 1e-3 * 100.0
        assert ray.n_surface == 0 and ray.n_bottom == 0
        np.testing.assert_allclose(ray.final_range, 50_000.0, atol=1e-6)

    def test_travel_time_and_arc_length(self):
        ray = trace_ray(self.env, 100.0, 0.0, 100.0, 3000.0, 25.0)
        np.testing.assert_allclose(ray.arc_length, ray.range, atol=1e-9)
        np.testing.assert_allclose(ray.travel_time, ray.range / 1500.0, atol=1e-12)

    def test_tube_width_grows_with_arc_length(self):
        """With c constant, q = s and the amplitude falls off as 1/r."""
        ray = trace_ray(self.env, 100.0, 0.0, 100.0, 10_000.0, 50.0)
        np.testing.assert_allclose(ray.q, ray.arc_length, rtol=1e-9)
        np.testing.assert_allclose(ray.amplitude[-1], 1.0 / 10_000.0, rtol=1e-9)

    def test_slanted_ray_depth(self):
        ray = trace_ray(self.env, 100.0, 5.0, 100.0, 1000.0, 10.0)
        expected = 100.0 + ray.range * math.tan(math.radians(5.0))
        np.testing.assert_allclose(ray.depth, expected, atol=1e-8)

    def test_arrays_read_only(self):
        ray = trace_ray(self.env, 100.0, 0.0, 100.0, 500.0, 50.0)
        with pytest.raises(ValueError):
            ray.depth[0] = 1.0


class TestSnellInvariant:
    """cos θ / c(z) must stay constant along a ray."""

    @pytest.mark.parametrize("angle", [-8.0, 3.0, 12.0])
    def test_munk(self, angle):
        env = munk_deep_water()
        ray = trace_ray(env, source_depth=1000.0, launch_angle=angle, frequency=50.0,
                        max_range=60_000.0, step_size=50.0)
        invariant = np.cos(ray.angle) / ray.sound_speed
        np.testing.assert_allclose(invariant, invariant[0], rtol=1e-6)

    def test_linear_gradient_with_bounces(self):
        env = Environment(
            sound_speed_profile=SoundSpeedProfile.linear(1500.0, 0.05),
            bathymetry=FlatBottom(500.0),
            bottom=BottomBoundary.rigid(),
        )
        ray = trace_ray(env, 250.0, 10.0, 200.0, 20_000.0, 20.0)
        assert ray.n_surface > 0
        invariant = np.cos(ray.angle) / ray.sound_speed
        np.testing.assert_allclose(invariant, invariant[0], rtol=1e-6)


class TestLandingOnMaxRange:
    """Curved rays end exactly on max_range and resolve a depth there."""

    def setup_method(self):
        self.env = munk_deep_water()
        self.fan = np.linspace(-12.0, 12.0, 97)
        self.rays = [trace_ray(self.env, 1000.0, angle, 50.0, 20_000.0, 40.0)
                     for angle in self.fan]

    def test_final_range_exact(self):
        for ray in self.rays:
            assert ray.termination is Termination.MAX_RANGE
            assert ray.final_range == 20_000.0

    def test_depth_resolved_at_max_range(self):
        depths = np.array([ray.depth_at(20_000.0) for ray in self.rays])
        assert np.all(np.isfinite(depths))
        np.testing.assert_array_equal(depths, [ray.depth[-1] for ray in self.rays])
        assert np.all(np.isfinite([ray.travel_time_at(20_000.0) for ray in self.rays]))

    def test_linear_gradient(self):
        env = Environment(
            sound_speed_profile=SoundSpeedProfile.linear(1500.0, 0.05),
            bathymetry=FlatBottom(500.0),
            bottom=BottomBoundary.rigid(),
        )
        ray = trace_ray(env, 250.0, 7.0, 200.0, 12_345.6, 30.0)
        assert ray.final_range == 12_345.6
        assert math.isfinite(ray.depth_at(12_345.6))

    def test_depth_outside_ray_is_nan(self):
        ray = self.rays[0]
        assert math.isnan(ray.depth_at(20_000.1))
        assert math.isnan(ray.depth_at(-0.1))


class TestBoundaries:
    """Reflections are located exactly and recorded as sample pairs."""

    def setup_method(self):
        self.env = rigid_duct(100.0)

    def test_first_bottom_bounce(self):
        ray = trace_ray(self.env, 50.0, 10.0, 100.0, 2000.0, 10.0)
        first = ray.bounces[0]
        assert first.boundary is Boundary.BOTTOM
        np.testing.assert_allclose(first.range, 50.0 / math.tan(math.radians(10.0)), rtol=1e-9)
        assert first.depth == 100.0
        np.testing.assert_allclose(first.grazing_angle, math.radians(10.0), rtol=1e-9)
        assert first.coefficient == 1.0

    def test_bounce_sample_pairs(self):
        ray = trace_ray(self.env, 50.0, 10.0, 100.0, 2000.0, 10.0)
        pairs = np.nonzero(np.diff(ray.range) == 0.0)[0]
        assert len(pairs) == len(ray.bounces) == ray.n_surface + ray.n_bottom
        for i in pairs:
            assert ray.depth[i] == ray.depth[i + 1]
            np.testing.assert_allclose(ray.angle[i + 1], -ray.angle[i], rtol=1e-12)

    def test_depth_stays_in_water_column(self):
        ray = trace_ray(self.env, 30.0, -25.0, 100.0, 5000.0, 10.0)
        assert ray.depth.min() >= 0.0
        assert ray.depth.max() <= 100.0
        assert ray.n_surface >= 10

    def test_bounce_counts_are_cumulative(self):
        ray = trace_ray(self.env, 50.0, 10.0, 100.0, 3000.0, 10.0)
        assert np.all(np.diff(ray.surface_bounces) >= 0)
        assert np.all(np.diff(ray.bottom_bounces) >= 0)
        assert ray.surface_bounces[-1] == ray.n_surface

    def test_surface_phase(self):
        """Each surface bounce advances the phase by π, a rigid bottom by 0."""
        ray = trace_ray(self.env, 50.0, -10.0, 100.0, 3000.0, 10.0)
        np.testing.assert_allclose(ray.phase[-1], ray.n_surface * math.pi, rtol=1e-12)

    def test_sloped_bottom_backscatter(self):
        """A steep upslope turns the ray back after three bottom bounces."""
        env = Environment(
            sound_speed_profile=SoundSpeedProfile.isovelocity(1500.0),
            bathymetry=SlopedBottom([0.0, 1000.0], [200.0, 20.0]),
            bottom=BottomBoundary.halfspace(SAND),
        )
        ray = trace_ray(env, 10.0, 30.0, 100.0, 5000.0, 5.0)
        tilt = math.degrees(math.atan(0.18))
        np.testing.assert_allclose(ray.bounces[0].grazing_angle,
                                   math.radians(30.0 + tilt), rtol=1e-6)
        assert ray.termination is Termination.BACKSCATTERED
        assert ray.n_bottom == 3
        assert ray.n_surface == 2
        assert ray.final_range < 1000.0


class TestLosses:
    """Volume attenuation and boundary loss along a ray."""

    def test_thorp_attenuation(self):
        lossless = trace_ray(_free_field(attenuation="none"), 100.0, 0.0, 1000.0, 10_000.0, 50.0)
        lossy = trace_ray(_free_field(attenuation="thorp"), 100.0, 0.0, 1000.0, 10_000.0, 50.0)
        delta_db = 20.0 * np.log10(lossless.amplitude[-1] / lossy.amplitude[-1])
        np.testing.assert_allclose(delta_db, thorp(1000.0) * 10.0, rtol=1e-6)

    def test_bottom_loss_per_bounce(self):
        env = Environment(
            sound_speed_profile=SoundSpeedProfile.isovelocity(1500.0),
            bathymetry=FlatBottom(100.0),
            bottom=BottomBoundary.halfspace(SAND),
            attenuation=AttenuationModel("none"),
        )
        ray = trace_ray(env, 50.0, 10.0, 100.0, 3000.0, 10.0)
        R = env.bottom_reflection_coefficient(math.radians(10.0))
        for bounce in ray.bounces:
            if bounce.boundary is Boundary.BOTTOM:
                np.testing.assert_allclose(bounce.coefficient, R, rtol=1e-9)


class TestTermination:
    """Step limit and argument validation."""

    def setup_method(self):
        self.env = _free_field()

    def test_step_limit_truncates(self, caplog):
        with caplog.at_level(logging.WARNING, logger="acoustic_prop.raytracing.integrator"):
            ray = trace_ray(self.env, 100.0, 0.0, 100.0, 10_000.0, 50.0, max_steps=5)
        assert ray.truncated
        assert ray.termination is Termination.STEP_LIMIT
        assert ray.n_samples == 6
        assert "truncated" in caplog.text

    def test_raise_on_escape(self):
        with pytest.raises(RayEscaped) as info:
            trace_ray(self.env, 100.0, 0.0, 100.0, 10_000.0, 50.0,
                      max_steps=5, raise_on_escape=True)
        assert info.value.n_steps == 5

    def test_last_step_lands_on_max_range(self):
        ray = trace_ray(self.env, 100.0, 3.0, 100.0, 1234.5, 100.0)
        assert ray.final_range == 1234.5

    def test_invalid_arguments(self):
        with pytest.raises(InvalidEnvironment):
            trace_ray(self.env, 0.0, 0.0, 100.0, 1000.0, 10.0)
        with pytest.raises(InvalidEnvironment):
            trace_ray(self.env, 250.0, 0.0, 100.0, 1000.0, 10.0)
        with pytest.raises(ValueError):
            trace_ray(self.env, 100.0, 90.0, 100.0, 1000.0, 10.0)
        with pytest.raises(ValueError):
            trace_ray(self.env, 100.0, 0.0, 100.0, 1000.0, 0.0)
