"""ZeroMQ implementation of the compute-side connection manager."""

from . import server
from .server import Server
