import numpy
import pytest

from chimera.errors import QuantumError
from chimera.limits import Limits
from chimera.quantum import circuit, simulator


def gate(kind, *qubits):
    return {'type': kind, 'qubits': list(qubits)}


def build(n_qubits, *gates):
    return circuit.build(n_qubits, list(gates), Limits())


def test_circuit_build():

    built = build(2, gate('H', 1), gate('CNOT', 1, 2))
    assert built.n_qubits == 2
    assert [g.kind for g in built.gates] == [circuit.GateKind.H, circuit.GateKind.CNOT]
    assert built.gates[1].qubits == (1, 2)
    assert built.to_dict() == {'n_qubits': 2, 'gates': [gate('H', 1), gate('CNOT', 1, 2)]}


def test_circuit_rejections():

    limits = Limits(max_qubits=4, max_gates=3, max_simulated_qubits=4)

    bad_circuits = (
        (0, [gate('H', 1)]),
        (5, [gate('H', 1)]),
        (2.0, [gate('H', 1)]),
        (True, [gate('H', 1)]),
        (2, []),
        (2, 'H'),
        (2, [gate('H', 1)] * 4),
        (2, [gate('H', 3)]),
        (2, [gate('H', 0)]),
        (2, [gate('H', 1, 2)]),
        (2, [gate('CNOT', 1)]),
        (2, [gate('CNOT', 1, 1)]),
        (2, [gate('RX', 1)]),
        (2, [{'type': 'H'}]),
        (2, [{'qubits': [1]}]),
        (2, [gate('H')]),
        (2, [gate('H', True)]),
        (2, ['H']),
    )

    for n_qubits, gates in bad_circuits:
        with pytest.raises(QuantumError):
            circuit.build(n_qubits, gates, limits)


def test_error_names_offending_gate():

    with pytest.raises(QuantumError) as caught:
        build(2, gate('H', 1), gate('X', 2), gate('CNOT', 2, 2))

    assert caught.value.reason.startswith('gate 2:')


def test_bit_ordering():

    # Qubit 1 is the rightmost character of a bitstring.

    counts = simulator.sample(build(3, gate('X', 1)), 10, seed=1)
    assert counts == {'001': 10}

    counts = simulator.sample(build(3, gate('X', 3)), 10, seed=1)
    assert counts == {'100': 10}


def test_gates():

    cases = (
        ((gate('X', 1),), {'1': 7}),
        ((gate('X', 1), gate('X', 1)), {'0': 7}),
        ((gate('Y', 1),), {'1': 7}),
        ((gate('Z', 1),), {'0': 7}),
        ((gate('H', 1), gate('H', 1)), {'0': 7}),
        ((gate('H', 1), gate('Z', 1), gate('H', 1)), {'1': 7}),
        ((gate('H', 1), gate('S', 1), gate('S', 1), gate('H', 1)), {'1': 7}),
        ((gate('H', 1),) + (gate('T', 1),) * 4 + (gate('H', 1),), {'1': 7}),
    )

    for gates, expected in cases:
        assert simulator.sample(build(1, *gates), 7, seed=0) == expected


def test_cnot():

    # Control on qubit 2, target qubit 1.

    assert simulator.sample(build(2, gate('X', 2), gate('CNOT', 2, 1)), 5) == {'11': 5}
    assert simulator.sample(build(2, gate('CNOT', 2, 1)), 5) == {'00': 5}

    # Non-adjacent qubits in a wider register.

    counts = simulator.sample(build(4, gate('X', 1), gate('CNOT', 1, 4)), 5)
    assert counts == {'1001': 5}

    counts = simulator.sample(build(4, gate('X', 4), gate('CNOT', 4, 2)), 5)
    assert counts == {'1010': 5}


def test_bell_state():

    bell = build(2, gate('H', 1), gate('CNOT', 1, 2))

    probabilities = simulator.probabilities(bell)
    assert numpy.allclose(probabilities, [0.5, 0, 0, 0.5])

    counts = simulator.sample(bell, 1000, seed=42)
    assert set(counts) <= {'00', '11'}
    assert sum(counts.values()) == 1000
    assert 400 < counts['00'] < 600


def test_counts_sum_to_shots():

    wide = build(5, *[gate('H', q) for q in range(1, 6)])

    for shots in (1, 2, 3, 17, 100, 999):
        counts = simulator.sample(wide, shots, seed=shots)
        assert sum(counts.values()) == shots
        assert all(len(bits) == 5 for bits in counts)


def test_seed_is_reproducible():

    superposed = build(3, gate('H', 1), gate('H', 2), gate('H', 3))
    assert simulator.sample(superposed, 500, seed=9) == simulator.sample(superposed, 500, seed=9)


def test_simulator_capacity():

    limits = Limits(max_simulated_qubits=3)
    wide = circuit.build(4, [gate('H', 4)], limits)

    with pytest.raises(QuantumError):
        simulator.Simulator(limits).run(wide, 10)

    narrow = circuit.build(3, [gate('H', 3)], limits)
    counts = simulator.Simulator(limits).run(narrow, 10, seed=1)
    assert sum(counts.values()) == 10


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
