"""Quantum circuit construction from gate specifications.

Qubits are numbered from 1. Every gate is validated (kind, index range,
arity) before any part of the circuit is constructed.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Dict, List, Tuple

from ..errors import QuantumError
from ..protocol import fields


class GateKind(enum.Enum):
    H = "H"
    X = "X"
    Y = "Y"
    Z = "Z"
    T = "T"
    S = "S"
    CNOT = "CNOT"

    @property
    def arity(self) -> int:
        return 2 if self == GateKind.CNOT else 1


@dataclasses.dataclass(frozen=True)
class Gate:
    """One gate; for CNOT, ``qubits`` is ``(control, target)``."""

    kind: GateKind
    qubits: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {fields.TYPE: self.kind.value, fields.QUBITS: list(self.qubits)}


@dataclasses.dataclass(frozen=True)
class Circuit:
    n_qubits: int
    gates: Tuple[Gate, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {fields.N_QUBITS: self.n_qubits, fields.GATES: [gate.to_dict() for gate in self.gates]}


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_gate(gate: Any, n_qubits: int, limits, index: int = 0) -> Gate:
    """Validate one gate specification against a circuit of ``n_qubits``."""

    if not isinstance(gate, dict):
        raise QuantumError(f"gate {index}: specification must be an object")

    kind = gate.get(fields.TYPE, gate.get(fields.KIND))
    if kind is None or fields.QUBITS not in gate:
        raise QuantumError(f"gate {index}: specification missing 'type' or 'qubits' field")

    try:
        kind = GateKind(kind)
    except ValueError:
        raise QuantumError(f"gate {index}: unsupported gate type: {kind}") from None

    qubits = gate[fields.QUBITS]
    if not isinstance(qubits, list) or len(qubits) == 0 or any(not _is_count(q) or q <= 0 for q in qubits):
        raise QuantumError(f"gate {index}: qubits must be a non-empty list of positive integers")

    if max(qubits) > limits.max_qubits:
        raise QuantumError(f"gate {index}: qubit index exceeds maximum: {limits.max_qubits}")

    if max(qubits) > n_qubits:
        raise QuantumError(f"gate {index}: qubit index {max(qubits)} exceeds circuit width {n_qubits}")

    if len(qubits) != kind.arity:
        if kind == GateKind.CNOT:
            raise QuantumError(f"gate {index}: CNOT gate requires exactly two qubits")
        raise QuantumError(f"gate {index}: single-qubit gate {kind.value} requires exactly one qubit")

    if kind == GateKind.CNOT and qubits[0] == qubits[1]:
        raise QuantumError(f"gate {index}: CNOT control and target must differ")

    return Gate(kind, tuple(qubits))


def build(n_qubits: Any, gate_specs: Any, limits) -> Circuit:
    """Validate the qubit count and every gate, then construct the circuit."""

    if not _is_count(n_qubits):
        raise QuantumError("n_qubits must be an integer")

    if n_qubits <= 0 or n_qubits > limits.max_qubits:
        raise QuantumError(f"invalid number of qubits: must be between 1 and {limits.max_qubits}")

    if not isinstance(gate_specs, list):
        raise QuantumError("gates must be a list of gate specifications")

    if len(gate_specs) == 0:
        raise QuantumError("no gates specified for circuit")

    if len(gate_specs) > limits.max_gates:
        raise QuantumError(f"number of gates exceeds maximum: {limits.max_gates}")

    gates: List[Gate] = [parse_gate(gate, n_qubits, limits, index) for index, gate in enumerate(gate_specs)]
    return Circuit(n_qubits, tuple(gates))
