""" A class representation of the two messages exchanged on the wire: the
    :class:`Instruction` sent by the planning side, and the :class:`Response`
    envelope returned by the compute side. Both are encapsulated as a single
    line of JSON; the line terminator is added by the transport.
"""

from __future__ import annotations

import enum
from typing import Any, Dict, Optional

from .. import json
from . import fields


class Module(enum.Enum):
    """ The closed set of compute modules an instruction may name. The
        historical names of the backing libraries are accepted as aliases.
    """

    MODEL = 'ModelModule'
    ACCELERATOR = 'AcceleratorModule'
    QUANTUM = 'QuantumModule'

    @classmethod
    def _missing_(cls, value):
        try:
            return _aliases[value]
        except (KeyError, TypeError):
            return None


_aliases = {
    'Flux': Module.MODEL,
    'CUDA': Module.ACCELERATOR,
    'Yao': Module.QUANTUM,
}


class Status(enum.Enum):
    SUCCESS = fields.SUCCESS
    ERROR = fields.ERROR



class Instruction:
    """ A request naming a target :class:`Module` and the structured
        *payload* for that module. Instances are built by the planning side
        for each sub-task, or by :func:`chimera.protocol.validator.validate`
        on the compute side; either way they are consumed exactly once.
    """

    def __init__(self, module: Module, payload: Dict[str, Any]):

        if not isinstance(module, Module):
            module = Module(module)

        self.module = module
        self.payload = payload


    def __eq__(self, other):
        if not isinstance(other, Instruction):
            return NotImplemented
        return self.module == other.module and self.payload == other.payload


    def __repr__(self):
        return 'Instruction(%s, %r)' % (self.module.value, self.payload)


    def to_dict(self) -> Dict[str, Any]:
        return {fields.MODULE: self.module.value, fields.PAYLOAD: self.payload}


    def encapsulate(self) -> bytes:
        return json.dumps(self.to_dict())


# end of class Instruction



class Response:
    """ The uniform envelope returned for every instruction. A successful
        response carries the handler-specific *data*; an error response
        carries a human-readable *message* and the *category* of the error,
        and never carries data. Use :func:`success` and :func:`failure`
        rather than calling the constructor directly.
    """

    def __init__(self, status: Status, message: Optional[str] = None, data: Optional[Dict[str, Any]] = None, category: Optional[str] = None):

        if status == Status.ERROR:
            if not message:
                raise ValueError('error responses must carry a message')
            if data is not None:
                raise ValueError('error responses cannot carry data')

        self.status = status
        self.message = message
        self.data = data
        self.category = category

        self._encapsulated = None


    @classmethod
    def success(cls, data: Dict[str, Any], message: Optional[str] = None) -> 'Response':
        return cls(Status.SUCCESS, message=message, data=data)


    @classmethod
    def failure(cls, category: str, message: str) -> 'Response':
        return cls(Status.ERROR, message=message, category=category)


    @classmethod
    def from_dict(cls, block: Dict[str, Any]) -> 'Response':
        status = Status(block[fields.STATUS])
        return cls(status,
                   message=block.get(fields.MESSAGE),
                   data=block.get(fields.DATA),
                   category=block.get(fields.CATEGORY))


    @classmethod
    def decode(cls, line: bytes) -> 'Response':
        return cls.from_dict(json.loads(line))


    @property
    def ok(self) -> bool:
        return self.status == Status.SUCCESS


    def __repr__(self):
        if self.ok:
            return 'Response(success, %r)' % (self.data)
        return 'Response(error, %s: %s)' % (self.category, self.message)


    def to_dict(self) -> Dict[str, Any]:

        block: Dict[str, Any] = {fields.STATUS: self.status.value}

        if self.message is not None:
            block[fields.MESSAGE] = self.message
        if self.category is not None:
            block[fields.CATEGORY] = self.category
        if self.data is not None:
            block[fields.DATA] = self.data

        return block


    def encapsulate(self) -> bytes:
        ''' Return the JSON encoding of this response. Calling this method
            multiple times will return the cached encapsulation rather than
            generate it anew.
        '''

        if self._encapsulated:
            return self._encapsulated

        self._encapsulated = json.dumps(self.to_dict())
        return self._encapsulated


# end of class Response


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
