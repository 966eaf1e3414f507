"""Instruction validation.

Turns one raw line from the wire into an :class:`Instruction`, or raises
:class:`ValidationError` naming the first violated constraint. The checks
are purely structural; each handler validates its own payload.
"""

from __future__ import annotations

import logging
from typing import Union

from .. import json
from ..errors import ValidationError
from . import fields
from .message import Instruction, Module

logger = logging.getLogger(__name__)


def validate(raw: Union[bytes, str], config) -> Instruction:
    """Validate *raw* against *config* (a :class:`chimera.config.Configuration`).

    Checks, in order: size ceiling, JSON well-formedness, presence of the
    ``module`` and ``payload`` fields, membership of ``module`` in the
    allow-list, and finally that ``payload`` is an object.
    """

    if isinstance(raw, str):
        raw = raw.encode("utf-8")

    limit = config.limits.max_payload_size
    if len(raw) > limit:
        raise ValidationError(f"instruction exceeds maximum size of {limit} bytes")

    try:
        decoded = json.loads(raw)
    except json.DecodeError as exc:
        raise ValidationError(f"failed to parse instruction: {exc}") from None

    if not isinstance(decoded, dict):
        raise ValidationError("instruction must be a JSON object")

    if fields.MODULE not in decoded:
        raise ValidationError("instruction missing 'module' field")

    if fields.PAYLOAD not in decoded:
        if fields.CODE in decoded:
            raise ValidationError("free-form 'code' instructions are not accepted, send a structured 'payload'")
        raise ValidationError("instruction missing 'payload' field")

    name = decoded[fields.MODULE]
    if not isinstance(name, str):
        raise ValidationError("'module' must be a string")

    try:
        module = Module(name)
    except ValueError:
        raise ValidationError(f"invalid module: {name}") from None

    if not config.allows(module):
        raise ValidationError(f"module not allowed: {name}")

    payload = decoded[fields.PAYLOAD]
    if not isinstance(payload, dict):
        raise ValidationError("'payload' must be a JSON object")

    return Instruction(module, payload)
