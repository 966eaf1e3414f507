"""Numerical model construction and training, backed by :mod:`torch`.

``network`` turns layer specifications into a ``torch.nn.Sequential`` and
back; ``training`` validates training parameters and runs the training
loop; ``handler`` exposes both at the dispatch boundary.
"""

from . import network
from . import training

__all__ = ["network", "training"]
