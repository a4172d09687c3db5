"""
Canonical propagation scenarios for validation and testing.

Each builder returns a ready Environment (and, where useful, a matching
PropagationRequest) for a textbook case whose answer is known in closed
form or from the literature, so the ray tracer and the field assembler
can be checked without external data.
"""

from __future__ import annotations

from acoustic_prop.config import (
    MATCHED_WATER,
    OutputType,
    PropagationRequest,
    SAND,
    Sediment,
)
from acoustic_prop.environment import (
    AttenuationModel,
    BottomBoundary,
    Environment,
    FlatBottom,
    SlopedBottom,
    SoundSpeedProfile,
)


def lloyds_mirror(
    depth: float = 100.0,
    sound_speed: float = 1500.0,
) -> Environment:
    """Free-field source below a pressure-release surface.

    The bottom is an impedance-matched half-space (R = 0) and volume
    attenuation is off, so the only arrivals are the direct and the
    surface-reflected ray. Their interference nulls sit at

        r_m = 2·z_s·z_r / (m·λ),  m = 1, 2, ...

    Parameters
    ----------
    depth : float
        Water depth in meters.
    sound_speed : float
        Uniform sound speed in m/s.
    """
    matched = Sediment(
        name="Matched water",
        sound_speed=sound_speed,
        density=MATCHED_WATER.density,
        attenuation=0.0,
    )
    return Environment(
        sound_speed_profile=SoundSpeedProfile.isovelocity(sound_speed),
        bathymetry=FlatBottom(depth),
        bottom=BottomBoundary.halfspace(matched),
        attenuation=AttenuationModel("none"),
    )


def lloyds_mirror_null(source_depth: float, receiver_depth: float,
                       frequency: float, order: int = 1,
                       sound_speed: float = 1500.0) -> float:
    """Range of the m-th Lloyd's mirror interference null (far field)."""
    wavelength = sound_speed / frequency
    return 2.0 * source_depth * receiver_depth / (order * wavelength)


def shallow_duct(
    depth: float = 100.0,
    sound_speed: float = 1500.0,
    sediment: Sediment = SAND,
) -> Environment:
    """Isovelocity shallow-water waveguide over a sediment half-space."""
    return Environment(
        sound_speed_profile=SoundSpeedProfile.isovelocity(sound_speed),
        bathymetry=FlatBottom(depth),
        bottom=BottomBoundary.halfspace(sediment),
    )


def rigid_duct(depth: float = 100.0, sound_speed: float = 1500.0) -> Environment:
    """Isovelocity waveguide with a lossless rigid bottom."""
    return Environment(
        sound_speed_profile=SoundSpeedProfile.isovelocity(sound_speed),
        bathymetry=FlatBottom(depth),
        bottom=BottomBoundary.rigid(),
        attenuation=AttenuationModel("none"),
    )


def munk_deep_water(depth: float = 5000.0) -> Environment:
    """Canonical Munk sound channel over a sandy bottom."""
    return Environment(
        sound_speed_profile=SoundSpeedProfile.munk(),
        bathymetry=FlatBottom(depth),
        bottom=BottomBoundary.halfspace(SAND),
    )


def upslope_wedge(
    depth_start: float = 200.0,
    depth_end: float = 50.0,
    range_end: float = 4000.0,
    sound_speed: float = 1500.0,
) -> Environment:
    """Isovelocity wedge shoaling linearly toward the coast."""
    return Environment(
        sound_speed_profile=SoundSpeedProfile.isovelocity(sound_speed),
        bathymetry=SlopedBottom.wedge(depth_start, depth_end, range_end),
        bottom=BottomBoundary.halfspace(SAND),
    )


def munk_request(
    output: OutputType = OutputType.TRANSMISSION_LOSS,
    frequency: float = 50.0,
    max_range: float = 100_000.0,
) -> PropagationRequest:
    """Source on the Munk channel axis with a ±14° fan."""
    return PropagationRequest(
        source_depth=1000.0,
        frequency=frequency,
        max_range=max_range,
        range_step=100.0,
        n_rays=201,
        max_angle=14.0,
        output=output,
        n_depths=251,
        receiver_range=max_range if output is OutputType.EIGENRAYS else None,
        receiver_depth=800.0 if output is OutputType.EIGENRAYS else None,
    )
