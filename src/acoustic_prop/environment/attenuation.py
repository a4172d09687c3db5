"""
Volume attenuation of sea water.

Thorp's empirical absorption formula, with conversion helpers between
dB/km (the oceanographic convention) and Np/m (what the ray amplitude
decays with: A ← A·exp(−α·ds)).
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# 20·log10(e) dB per neper, times 1000 m per km
_DB_PER_KM_PER_NP_PER_M = 20.0 * math.log10(math.e) * 1000.0


def thorp(frequency: float) -> float:
    """Thorp absorption coefficient in dB/km.

    α = 0.11 f²/(1+f²) + 44 f²/(4100+f²) + 2.75e-4 f² + 0.003,
    with f in kHz.

    Parameters
    ----------
    frequency : float
        Frequency in Hz.
    """
    f2 = (frequency / 1000.0) ** 2
    return 0.11 * f2 / (1.0 + f2) + 44.0 * f2 / (4100.0 + f2) + 2.75e-4 * f2 + 0.003


def db_per_km_to_np_per_m(alpha: float) -> float:
    return alpha / _DB_PER_KM_PER_NP_PER_M


@dataclass(frozen=True)
class AttenuationModel:
    """Frequency-dependent volume attenuation.

    Parameters
    ----------
    kind : str
        'thorp', 'none' or 'constant'.
    db_per_km : float
        Attenuation for the 'constant' kind.
    """

    kind: str = "thorp"
    db_per_km: float = 0.0

    def __post_init__(self) -> None:
        if self.kind not in ("thorp", "none", "constant"):
            raise ValueError(f"unknown attenuation model '{self.kind}'")
        if self.db_per_km < 0:
            raise ValueError("db_per_km must be >= 0")

    def alpha(self, frequency: float, depth: float = 0.0, units: str = "np/m") -> float:
        """Attenuation coefficient.

        Parameters
        ----------
        frequency : float
            Frequency in Hz.
        depth : float
            Depth in meters. Thorp's formula is depth independent; the
            argument is kept so every model shares one signature.
        units : str
            'np/m' or 'db/km'.
        """
        if self.kind == "thorp":
            value = thorp(frequency)
        elif self.kind == "constant":
            value = self.db_per_km
        else:
            value = 0.0

        units = units.lower()
        if units == "db/km":
            return value
        if units == "np/m":
            return db_per_km_to_np_per_m(value)
        raise ValueError(f"unknown attenuation units '{units}'")

    def to_dict(self) -> dict:
        return {"kind": self.kind, "db_per_km": self.db_per_km}

    @classmethod
    def from_dict(cls, data: dict) -> "AttenuationModel":
        return cls(**data)
