"""
Tests for request, grid and engine configuration objects.
"""

import numpy as np
import pytest

from acoustic_prop.config import (
    SAND,
    EngineConfig,
    GridSpec,
    OutputType,
    PropagationRequest,
    Sediment,
)


class TestPropagationRequest:
    """Test request defaults and validation."""

    def test_defaults(self):
        request = PropagationRequest(source_depth=50.0, frequency=100.0,
                                     max_range=1005.0, range_step=10.0)
        assert request.range_steps == 101
        assert request.max_steps == 10 * 101 + 1000
        assert request.output is OutputType.TRANSMISSION_LOSS

    def test_launch_angles(self):
        request = PropagationRequest(source_depth=50.0, frequency=100.0,
                                     max_range=1000.0, range_step=10.0,
                                     n_rays=5, max_angle=10.0)
        np.testing.assert_allclose(request.launch_angles(), [-10.0, -5.0, 0.0, 5.0, 10.0])

    def test_output_from_string(self):
        request = PropagationRequest(source_depth=50.0, frequency=100.0,
                                     max_range=1000.0, range_step=10.0,
                                     output="ray_paths")
        assert request.output is OutputType.RAY_PATHS

    @pytest.mark.parametrize("overrides", [
        dict(frequency=0.0),
        dict(max_range=-1.0),
        dict(range_step=2000.0),
        dict(n_rays=0),
        dict(max_angle=90.0),
        dict(n_depths=1),
        dict(mode="semi-coherent"),
        dict(output=OutputType.EIGENRAYS),
    ])
    def test_invalid(self, overrides):
        params = dict(source_depth=50.0, frequency=100.0, max_range=1000.0, range_step=10.0)
        params.update(overrides)
        with pytest.raises(ValueError):
            PropagationRequest(**params)


class TestGridSpec:
    """Test output grid construction."""

    def test_axes_include_end_points(self):
        spec = GridSpec(0.0, 1000.0, 11, 10.0, 50.0, 5)
        np.testing.assert_allclose(spec.ranges(), np.arange(0.0, 1001.0, 100.0))
        np.testing.assert_allclose(spec.depths(), [10.0, 20.0, 30.0, 40.0, 50.0])

    def test_for_request(self):
        request = PropagationRequest(source_depth=50.0, frequency=100.0,
                                     max_range=1000.0, range_step=25.0, n_depths=11)
        spec = GridSpec.for_request(request, max_depth=200.0)
        assert spec.n_ranges == 40
        np.testing.assert_allclose(spec.ranges()[[0, -1]], [25.0, 1000.0])
        np.testing.assert_allclose(spec.depths()[[0, -1]], [0.0, 200.0])

    def test_invalid(self):
        with pytest.raises(ValueError):
            GridSpec(0.0, 1000.0, 0, 0.0, 100.0, 10)
        with pytest.raises(ValueError):
            GridSpec(1000.0, 0.0, 10, 0.0, 100.0, 10)


class TestEngineConfig:
    """Test routing and queue settings validation."""

    def test_defaults(self):
        config = EngineConfig()
        assert config.workload_threshold <= config.workload_ceiling

    @pytest.mark.parametrize("overrides", [
        dict(workload_threshold=0),
        dict(workload_threshold=100, workload_ceiling=10),
        dict(n_workers=0),
        dict(n_job_threads=0),
        dict(job_timeout=0.0),
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            EngineConfig(**overrides)


class TestSediment:
    """Test sediment presets."""

    def test_sand_impedance(self):
        assert SAND.impedance == 1900.0 * 1650.0

    def test_round_trip(self):
        assert Sediment.from_dict(SAND.to_dict()) == SAND

    def test_invalid(self):
        with pytest.raises(ValueError):
            Sediment("Bad", -1.0, 1000.0)
