"""State-vector simulation of a :class:`Circuit`, backed by :mod:`numpy`.

The state of an n-qubit register is held as an n-dimensional array of
shape ``(2,) * n``. Qubit ``k`` is bit ``k - 1`` of the basis-state index,
which places it on axis ``n - k``; bitstrings are rendered most
significant bit first, so qubit 1 is the rightmost character.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy

from ..errors import QuantumError
from .circuit import Circuit, Gate, GateKind


_SQRT_HALF = 1 / numpy.sqrt(2)

unitaries = {
    GateKind.H: numpy.array([[_SQRT_HALF, _SQRT_HALF], [_SQRT_HALF, -_SQRT_HALF]], dtype=numpy.complex128),
    GateKind.X: numpy.array([[0, 1], [1, 0]], dtype=numpy.complex128),
    GateKind.Y: numpy.array([[0, -1j], [1j, 0]], dtype=numpy.complex128),
    GateKind.Z: numpy.array([[1, 0], [0, -1]], dtype=numpy.complex128),
    GateKind.S: numpy.array([[1, 0], [0, 1j]], dtype=numpy.complex128),
    GateKind.T: numpy.array([[1, 0], [0, numpy.exp(1j * numpy.pi / 4)]], dtype=numpy.complex128),
}


def _axis(n_qubits: int, qubit: int) -> int:
    return n_qubits - qubit


def zero_state(n_qubits: int) -> numpy.ndarray:
    state = numpy.zeros((2,) * n_qubits, dtype=numpy.complex128)
    state[(0,) * n_qubits] = 1
    return state


def apply(state: numpy.ndarray, gate: Gate) -> numpy.ndarray:
    """Return ``state`` after applying ``gate``."""

    n_qubits = state.ndim

    if gate.kind == GateKind.CNOT:
        control = _axis(n_qubits, gate.qubits[0])
        target = _axis(n_qubits, gate.qubits[1])

        state = state.copy()
        index = [slice(None)] * n_qubits
        index[control] = 1
        index = tuple(index)

        # Removing the control axis shifts every later axis down by one.
        if target > control:
            target -= 1

        state[index] = numpy.flip(state[index], axis=target).copy()
        return state

    axis = _axis(n_qubits, gate.qubits[0])
    state = numpy.tensordot(unitaries[gate.kind], state, axes=([1], [axis]))
    return numpy.moveaxis(state, 0, axis)


def evolve(circuit: Circuit) -> numpy.ndarray:
    """Final state of ``circuit`` applied to the all-zero register, flattened."""

    state = zero_state(circuit.n_qubits)
    for gate in circuit.gates:
        state = apply(state, gate)
    return state.reshape(-1)


def probabilities(circuit: Circuit) -> numpy.ndarray:
    state = evolve(circuit)
    probabilities = numpy.abs(state) ** 2
    return probabilities / probabilities.sum()


def sample(circuit: Circuit, shots: int, seed: Optional[int] = None) -> Dict[str, int]:
    """Measure ``circuit`` ``shots`` times and return the bitstring counts.

    A single multinomial draw assigns every shot to exactly one outcome,
    so the counts always sum to ``shots``.
    """

    rng = numpy.random.default_rng(seed)
    counts = rng.multinomial(shots, probabilities(circuit))

    width = circuit.n_qubits
    return {format(index, f"0{width}b"): int(count) for index, count in enumerate(counts) if count > 0}


class Simulator:
    """Local state-vector backend."""

    name = "simulator"

    def __init__(self, limits):
        self.limits = limits

    def run(self, circuit: Circuit, shots: int, seed: Optional[int] = None) -> Dict[str, int]:
        if circuit.n_qubits > self.limits.max_simulated_qubits:
            raise QuantumError(
                f"circuit of {circuit.n_qubits} qubits exceeds simulator capacity of "
                f"{self.limits.max_simulated_qubits} qubits"
            )
        return sample(circuit, shots, seed)
