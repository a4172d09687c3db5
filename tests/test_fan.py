"""
Tests for the ray fan tracer: ordering, progress, cancellation and
worker-count independence.
"""

import numpy as np
import pytest

from acoustic_prop.config import OutputType, PropagationRequest
from acoustic_prop.errors import InvalidEnvironment, JobCancelled
from acoustic_prop.raytracing import trace_rays
from acoustic_prop.utils.scenarios import shallow_duct


class TestTraceRays:
    """Test fan tracing."""

    def setup_method(self):
        self.env = shallow_duct(100.0)
        self.request = PropagationRequest(
            source_depth=40.0,
            frequency=500.0,
            max_range=3000.0,
            range_step=20.0,
            n_rays=21,
            max_angle=15.0,
            output=OutputType.RAY_PATHS,
        )

    def test_one_ray_per_angle_in_order(self):
        rays = trace_rays(self.env, self.request)
        assert len(rays) == 21
        np.testing.assert_array_equal(
            [ray.launch_angle for ray in rays], self.request.launch_angles()
        )
        for ray in rays:
            np.testing.assert_allclose(ray.final_range, 3000.0, atol=1e-6)

    def test_progress_callback(self):
        calls = []
        trace_rays(self.env, self.request, progress=lambda done, total: calls.append((done, total)))
        assert calls == [(i, 21) for i in range(1, 22)]

    def test_cancel_between_rays(self):
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) >= 3

        with pytest.raises(JobCancelled):
            trace_rays(self.env, self.request, should_cancel=should_cancel)
        assert len(calls) == 3

    def test_single_ray_fan(self):
        request = PropagationRequest(source_depth=40.0, frequency=500.0, max_range=1000.0,
                                     range_step=10.0, n_rays=1)
        rays = trace_rays(self.env, request)
        assert len(rays) == 1
        assert rays[0].launch_angle == 0.0

    def test_custom_angles(self):
        rays = trace_rays(self.env, self.request, angles=[-1.0, 0.5])
        assert [ray.launch_angle for ray in rays] == [-1.0, 0.5]

    def test_workers_give_identical_rays(self):
        serial = trace_rays(self.env, self.request, n_workers=1)
        parallel = trace_rays(self.env, self.request, n_workers=2)
        assert len(serial) == len(parallel)
        for a, b in zip(serial, parallel):
            assert a.launch_angle == b.launch_angle
            np.testing.assert_array_equal(a.range, b.range)
            np.testing.assert_array_equal(a.depth, b.depth)
            np.testing.assert_array_equal(a.amplitude, b.amplitude)
            np.testing.assert_array_equal(a.phase, b.phase)

    def test_invalid_source(self):
        request = PropagationRequest(source_depth=150.0, frequency=500.0,
                                     max_range=1000.0, range_step=10.0)
        with pytest.raises(InvalidEnvironment):
            trace_rays(self.env, request)

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            trace_rays(self.env, self.request, n_workers=0)
