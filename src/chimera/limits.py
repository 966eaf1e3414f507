""" The resource-limit policy: a fixed table of ceilings consulted by the
    instruction validator and by every handler. A :class:`Limits` instance
    is immutable; it is built once, as part of the
    :class:`chimera.config.Configuration`, and passed to each component.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Mapping


MEBIBYTE = 1024 ** 2


@dataclasses.dataclass(frozen=True)
class Limits:
    """ Ceilings for a single instruction. The attribute names mirror the
        upper-case names used in the configuration file, lower-cased.
    """

    max_payload_size: int = 100_000
    max_layers: int = 100
    max_neurons: int = 10_000
    max_epochs: int = 100
    min_data_size: int = 10
    max_qubits: int = 50
    max_gates: int = 1000
    max_shots: int = 100_000
    max_simulated_qubits: int = 20
    min_memory_available: int = 512 * MEBIBYTE
    max_memory_usage: float = 0.8

    def __post_init__(self):

        for field in dataclasses.fields(self):
            value = getattr(self, field.name)

            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError('limit %s must be numeric, not %r' % (field.name, value))

            if value <= 0:
                raise ValueError('limit %s must be positive, not %r' % (field.name, value))

        if self.max_memory_usage > 1:
            raise ValueError('limit max_memory_usage is a fraction, not %r' % (self.max_memory_usage))

        if self.max_simulated_qubits > self.max_qubits:
            raise ValueError('limit max_simulated_qubits cannot exceed max_qubits')


    @classmethod
    def from_dict(cls, block: Mapping[str, Any]) -> 'Limits':
        """ Build a :class:`Limits` instance from a configuration block. Keys
            are case-insensitive, so both MAX_LAYERS and max_layers work;
            unknown keys are an error rather than silently ignored.
        """

        known = set(field.name for field in dataclasses.fields(cls))
        kwargs: Dict[str, Any] = dict()

        for key, value in block.items():
            name = str(key).lower()
            if name not in known:
                raise ValueError('unknown resource limit: ' + str(key))
            kwargs[name] = value

        return cls(**kwargs)


    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
