"""
Field assembly: coherent and incoherent transmission loss from ray fans.
"""

from acoustic_prop.field.assembler import TransmissionLossGrid, assemble_transmission_loss

__all__ = ["TransmissionLossGrid", "assemble_transmission_loss"]
