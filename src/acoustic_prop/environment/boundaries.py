"""
Reflecting boundaries of the water column.

SurfaceBoundary models the pressure-release sea surface (phase flip of π)
with an optional flat loss and an optional roughness loss. BottomBoundary
models the seafloor as a fluid half-space (Rayleigh reflection), or as an
ideal rigid / pressure-release boundary.

All grazing angles are in radians, measured from the boundary plane.
"""

from __future__ import annotations

import cmath
import math
from dataclasses import dataclass
from enum import Enum

from acoustic_prop.config import Sediment, SAND, WATER_DENSITY

# 40·π·log10(e): converts dB/λ to the loss tangent of the complex wavenumber
_DB_PER_WAVELENGTH = 40.0 * math.pi * math.log10(math.e)


@dataclass(frozen=True)
class SurfaceBoundary:
    """Pressure-release sea surface.

    Parameters
    ----------
    loss_db : float
        Fixed reflection loss in dB applied at every bounce. 0 is a
        perfect reflector.
    roughness : float
        RMS wave height in meters. Adds the coherent (Eckart) roughness
        loss exp(-2·(k·σ·sin θ)²), which grows with grazing angle.
    """

    loss_db: float = 0.0
    roughness: float = 0.0

    def __post_init__(self) -> None:
        if self.loss_db < 0:
            raise ValueError("surface loss_db must be >= 0")
        if self.roughness < 0:
            raise ValueError("surface roughness must be >= 0")

    def coefficient(self, grazing: float, frequency: float = 0.0,
                    sound_speed: float = 1500.0) -> float:
        """Magnitude of the reflection coefficient (<= 1)."""
        magnitude = 10.0 ** (-self.loss_db / 20.0)
        if self.roughness > 0.0 and frequency > 0.0:
            k = 2.0 * math.pi * frequency / sound_speed
            magnitude *= math.exp(-2.0 * (k * self.roughness * math.sin(grazing)) ** 2)
        return magnitude

    def phase(self, grazing: float) -> float:
        """Phase shift of a pressure-release reflection."""
        return math.pi

    def to_dict(self) -> dict:
        return {"loss_db": self.loss_db, "roughness": self.roughness}

    @classmethod
    def from_dict(cls, data: dict) -> "SurfaceBoundary":
        return cls(**data)


class BottomKind(str, Enum):
    HALFSPACE = "halfspace"
    RIGID = "rigid"
    VACUUM = "vacuum"


@dataclass(frozen=True)
class BottomBoundary:
    """Seafloor reflection model.

    Parameters
    ----------
    kind : BottomKind
        'halfspace' (Rayleigh fluid half-space), 'rigid' (R = +1) or
        'vacuum' (R = -1).
    sediment : Sediment
        Half-space properties (used by the 'halfspace' kind only).
    loss_db : float
        Extra fixed loss in dB applied on top of the model.
    """

    kind: BottomKind = BottomKind.HALFSPACE
    sediment: Sediment = SAND
    loss_db: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", BottomKind(self.kind))
        if self.loss_db < 0:
            raise ValueError("bottom loss_db must be >= 0")

    @classmethod
    def halfspace(cls, sediment: Sediment, loss_db: float = 0.0) -> "BottomBoundary":
        return cls(kind=BottomKind.HALFSPACE, sediment=sediment, loss_db=loss_db)

    @classmethod
    def rigid(cls) -> "BottomBoundary":
        return cls(kind=BottomKind.RIGID)

    @classmethod
    def vacuum(cls) -> "BottomBoundary":
        return cls(kind=BottomKind.VACUUM)

    def reflection(self, grazing: float, water_speed: float,
                   water_density: float = WATER_DENSITY) -> complex:
        """Complex plane-wave reflection coefficient at a grazing angle.

        For the half-space, with m = ρ_b/ρ_w and n = (c_w/c_b)(1 + iδ):

            R = (m·sin θ − √(n² − cos² θ)) / (m·sin θ + √(n² − cos² θ))

        Parameters
        ----------
        grazing : float
            Grazing angle in radians.
        water_speed : float
            Sound speed in the water just above the bottom.
        water_density : float
            Water density in kg/m³.

        Returns
        -------
        complex
            Reflection coefficient, |R| <= 1.
        """
        scale = 10.0 ** (-self.loss_db / 20.0)
        if self.kind is BottomKind.RIGID:
            return complex(scale)
        if self.kind is BottomKind.VACUUM:
            return complex(-scale)

        sediment = self.sediment
        delta = sediment.attenuation / _DB_PER_WAVELENGTH
        n     = (water_speed / sediment.sound_speed) * complex(1.0, delta)
        m     = sediment.density / water_density

        sin_g = math.sin(grazing)
        cos_g = math.cos(grazing)
        root  = cmath.sqrt(n * n - cos_g * cos_g)

        denom = m * sin_g + root
        if abs(denom) == 0.0:
            return complex(-scale)
        return scale * (m * sin_g - root) / denom

    def critical_angle(self, water_speed: float) -> float:
        """Grazing angle below which a lossless half-space reflects totally."""
        if self.kind is not BottomKind.HALFSPACE:
            return math.pi / 2.0
        ratio = water_speed / self.sediment.sound_speed
        if ratio >= 1.0:
            return 0.0  # No critical angle (c_b <= c_w)
        return math.acos(ratio)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "sediment": self.sediment.to_dict(),
            "loss_db": self.loss_db,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BottomBoundary":
        return cls(
            kind=data["kind"],
            sediment=Sediment.from_dict(data["sediment"]),
            loss_db=data.get("loss_db", 0.0),
        )
