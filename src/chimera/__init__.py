""" Python implementation of the Chimera compute dispatch system. This
    includes the planning-side client, which decomposes problems into
    structured instructions, and the compute daemon, which validates those
    instructions and executes them on neural-network, accelerator, and
    quantum-circuit backends.
"""

# Utility components.

from . import json
from . import errors
from . import limits

# Submodules used by multiple other components.

from . import protocol
from . import config
from . import handler
from . import dispatch

# Compute backends.

from . import model
from . import accelerator
from . import quantum

# Primary public-facing interfaces.

from . import transport
from . import planner

from .config import Configuration
from .daemon import Daemon
from .dispatch import Dispatcher
from .planner import Planner, Problem
from .protocol import Instruction, Module, Response

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
