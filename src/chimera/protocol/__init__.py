from . import fields
from . import message
from . import validator

from .message import Instruction, Module, Response, Status
from .validator import validate


"""
Chimera Protocol Layer
======================

This package defines the messages exchanged between the planning side and
the compute side, and the structural validation applied to every inbound
instruction.

The protocol layer MUST NOT depend on any transport implementation.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Planning side (planner.py)
    Builds one Instruction per sub-task

    │
    ▼
Transport (transport/)
    Moves newline-terminated frames
    - client: plain TCP socket
    - server: ZeroMQ STREAM socket, one line in, one line out

    │
    ▼
Instruction Validator (validator.py)
    Size ceiling, JSON, required fields, module allow-list
    Raises ValidationError on the first violation

    │
    ▼
Dispatcher (dispatch.py)
    Routes to the module handler, wraps the result or error

    │
    ▼
Message Model (message.py)
    - Module (closed enumeration)
    - Instruction
    - Response (success | error envelope)

    │
    ▼
Field Vocabulary (fields.py)
    Canonical names for envelope and payload keys

---------------------------------------------------------------------

Design Principles
-----------------

1. Structured instructions only
   Payloads are closed schemas interpreted by a handler; nothing on the
   wire is ever evaluated as code.

2. One envelope per instruction
   Every instruction receives exactly one Response, even when validation
   or the handler fails.

3. Layer isolation
   Dependencies only flow downward:
       Transport -> Dispatcher -> Handler
   Never upward.

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
