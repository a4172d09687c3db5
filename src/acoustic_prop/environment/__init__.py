"""
Environment model for range-independent ocean acoustics.

Provides sound-speed profiles, flat and sloped bathymetry, surface and
bottom reflection models, volume attenuation, and the Environment value
type that bundles them.
"""

from acoustic_prop.environment.attenuation import AttenuationModel, thorp
from acoustic_prop.environment.base import BathymetryInterface, bathymetry_from_dict
from acoustic_prop.environment.boundaries import BottomBoundary, BottomKind, SurfaceBoundary
from acoustic_prop.environment.flat import FlatBottom
from acoustic_prop.environment.model import Environment
from acoustic_prop.environment.profiles import ProfileKind, SoundSpeedProfile
from acoustic_prop.environment.sloped import SlopedBottom

__all__ = [
    "AttenuationModel",
    "thorp",
    "BathymetryInterface",
    "bathymetry_from_dict",
    "BottomBoundary",
    "BottomKind",
    "SurfaceBoundary",
    "FlatBottom",
    "SlopedBottom",
    "Environment",
    "ProfileKind",
    "SoundSpeedProfile",
]
