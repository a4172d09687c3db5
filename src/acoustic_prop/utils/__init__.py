"""
utils — Utility helpers for the acoustic_prop package.

Submodules
----------
scenarios       Canonical validation environments.
visualization   Environment, ray, eigenray and TL plotting.
"""

from . import scenarios, visualization

__all__ = ["scenarios", "visualization"]
