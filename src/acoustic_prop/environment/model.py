"""
Immutable description of a range-independent ocean waveguide.

Environment bundles the sound-speed profile, bathymetry, boundary
reflection models and volume attenuation, validates them together, and
exposes the evaluation queries the ray integrator needs. It holds no
mutable state, so one instance is safely shared by every ray of a request
and by every worker thread or process.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from acoustic_prop.config import WATER_DENSITY
from acoustic_prop.environment.attenuation import AttenuationModel
from acoustic_prop.environment.base import BathymetryInterface, bathymetry_from_dict
from acoustic_prop.environment.boundaries import BottomBoundary, SurfaceBoundary
from acoustic_prop.environment.flat import FlatBottom
from acoustic_prop.environment.profiles import SoundSpeedProfile
from acoustic_prop.errors import InvalidEnvironment

# Depth samples used to check the profile stays positive
_PROFILE_CHECK_POINTS = 257


@dataclass(frozen=True)
class Environment:
    """Ocean waveguide: water column, surface and seafloor.

    Parameters
    ----------
    sound_speed_profile : SoundSpeedProfile
        c(z) in m/s, defined over [0, max_depth].
    bathymetry : BathymetryInterface
        Bottom depth as a function of range.
    surface : SurfaceBoundary
        Sea-surface reflection model.
    bottom : BottomBoundary
        Seafloor reflection model.
    attenuation : AttenuationModel
        Volume attenuation model.
    water_density : float
        Water density in kg/m³.

    Raises
    ------
    InvalidEnvironment
        If the profile does not cover the water column or is not positive.
    """

    sound_speed_profile: SoundSpeedProfile
    bathymetry: BathymetryInterface = field(default_factory=lambda: FlatBottom(100.0))
    surface: SurfaceBoundary = field(default_factory=SurfaceBoundary)
    bottom: BottomBoundary = field(default_factory=BottomBoundary)
    attenuation: AttenuationModel = field(default_factory=AttenuationModel)
    water_density: float = WATER_DENSITY

    def __post_init__(self) -> None:
        if not isinstance(self.bathymetry, BathymetryInterface):
            raise InvalidEnvironment("bathymetry must implement BathymetryInterface")
        if self.water_density <= 0:
            raise InvalidEnvironment("water_density must be > 0")

        max_depth = self.max_depth
        if not self.sound_speed_profile.covers(max_depth):
            raise InvalidEnvironment(
                f"sound speed profile does not cover [0, {max_depth:.1f}] m"
            )
        for i in range(_PROFILE_CHECK_POINTS):
            z = max_depth * i / (_PROFILE_CHECK_POINTS - 1)
            c = self.sound_speed_profile.sound_speed(z)
            if not (c > 0.0 and math.isfinite(c)):
                raise InvalidEnvironment(f"non-positive sound speed {c} at depth {z:.1f} m")

    # — Geometry ——————————————————————————————————————————————————————————————

    @property
    def max_depth(self) -> float:
        """Deepest point of the water column."""
        return self.bathymetry.max_depth

    def bottom_depth(self, r: float) -> float:
        return self.bathymetry.evaluate(r)

    def bottom_slope(self, r: float) -> float:
        return self.bathymetry.slope(r)

    def validate_source(self, source_depth: float) -> None:
        """Reject a source outside the water column at range zero.

        Raises
        ------
        InvalidEnvironment
        """
        bottom = self.bottom_depth(0.0)
        if not 0.0 < source_depth < bottom:
            raise InvalidEnvironment(
                f"source depth {source_depth} m outside water column (0, {bottom}) m"
            )

    # — Sound speed ———————————————————————————————————————————————————————————

    def sound_speed(self, depth: float) -> float:
        return self.sound_speed_profile.evaluate(depth)[0]

    def sound_speed_gradient(self, depth: float) -> float:
        """dc/dz, analytic for every profile kind."""
        return self.sound_speed_profile.evaluate(depth)[1]

    def sound_speed_curvature(self, depth: float) -> float:
        """d²c/dz²."""
        return self.sound_speed_profile.evaluate(depth)[2]

    # — Boundaries ————————————————————————————————————————————————————————————

    def bottom_reflection(self, grazing_angle: float, r: float = 0.0) -> complex:
        """Complex bottom reflection coefficient at range r."""
        water_speed = self.sound_speed(self.bottom_depth(r))
        return self.bottom.reflection(grazing_angle, water_speed, self.water_density)

    def bottom_reflection_coefficient(self, grazing_angle: float, r: float = 0.0) -> float:
        """|R| of the seafloor at a grazing angle (radians)."""
        return abs(self.bottom_reflection(grazing_angle, r))

    def bottom_reflection_phase(self, grazing_angle: float, r: float = 0.0) -> float:
        """arg R of the seafloor at a grazing angle (radians)."""
        R = self.bottom_reflection(grazing_angle, r)
        return math.atan2(R.imag, R.real)

    def surface_reflection_coefficient(self, grazing_angle: float,
                                       frequency: float = 0.0) -> float:
        return self.surface.coefficient(grazing_angle, frequency, self.sound_speed(0.0))

    def volume_attenuation(self, frequency: float, depth: float = 0.0,
                           units: str = "np/m") -> float:
        return self.attenuation.alpha(frequency, depth, units)

    # — Serialization —————————————————————————————————————————————————————————

    def to_dict(self) -> dict:
        return {
            "sound_speed_profile": self.sound_speed_profile.to_dict(),
            "bathymetry": self.bathymetry.to_dict(),
            "surface": self.surface.to_dict(),
            "bottom": self.bottom.to_dict(),
            "attenuation": self.attenuation.to_dict(),
            "water_density": self.water_density,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Environment":
        return cls(
            sound_speed_profile=SoundSpeedProfile.from_dict(data["sound_speed_profile"]),
            bathymetry=bathymetry_from_dict(data["bathymetry"]),
            surface=SurfaceBoundary.from_dict(data["surface"]),
            bottom=BottomBoundary.from_dict(data["bottom"]),
            attenuation=AttenuationModel.from_dict(data["attenuation"]),
            water_density=data["water_density"],
        )
