"""Quantum circuit construction and sampling.

``circuit`` validates gate specifications, ``simulator`` samples circuits
locally with :mod:`numpy`, and ``hardware`` submits them to the IBM
Quantum runtime when a credential is configured.
"""

from . import circuit
from . import simulator
from .handler import Backend, QuantumHandler

__all__ = ["Backend", "QuantumHandler", "circuit", "simulator"]
