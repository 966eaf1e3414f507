import sys

import pytest

from chimera.errors import QuantumError
from chimera.quantum import Backend, QuantumHandler
from chimera.quantum.hardware import Hardware


BELL = {
    'n_qubits': 2,
    'gates': [{'type': 'H', 'qubits': [1]}, {'type': 'CNOT', 'qubits': [1, 2]}],
}


class FakeHardware:

    name = 'hardware'

    def __init__(self):
        self.runs = list()

    def run(self, circuit, shots, seed=None):
        self.runs.append((circuit, shots))
        return {'00': shots}


def test_bell_circuit(config):

    handler = QuantumHandler(config)

    payload = dict(BELL)
    payload['n_shots'] = 100

    result = handler.handle(payload)
    assert result['backend'] == 'simulator'
    assert result['n_shots'] == 100
    assert result['n_qubits'] == 2
    assert sum(result['results'].values()) == 100
    assert all(len(bits) == 2 for bits in result['results'])
    assert set(result['results']) <= {'00', '11'}


def test_default_shots(config):

    result = QuantumHandler(config).handle(dict(BELL))
    assert result['n_shots'] == 100
    assert sum(result['results'].values()) == 100


def test_nested_form(config):

    handler = QuantumHandler(config)

    payload = {'circuit': BELL, 'params': {'n_shots': 64, 'backend': 'simulator', 'seed': 5}}
    first = handler.handle(payload)
    second = handler.handle(payload)

    assert first['n_shots'] == 64
    assert sum(first['results'].values()) == 64
    assert first['results'] == second['results']

    # Parameters are optional in the nested form too.

    result = handler.handle({'circuit': BELL})
    assert result['n_shots'] == 100

    with pytest.raises(QuantumError):
        handler.handle({'circuit': 'H 1'})


def test_invalid_execution(config):

    handler = QuantumHandler(config)

    for shots in (0, -5, 100001, 2.5, True, '100'):
        payload = dict(BELL)
        payload['n_shots'] = shots
        with pytest.raises(QuantumError):
            handler.handle(payload)

    for seed in (-1, 1.5, 'lucky'):
        payload = dict(BELL)
        payload['seed'] = seed
        with pytest.raises(QuantumError):
            handler.handle(payload)

    payload = dict(BELL)
    payload['backend'] = 'annealer'
    with pytest.raises(QuantumError):
        handler.handle(payload)

    with pytest.raises(QuantumError):
        handler.handle({'gates': BELL['gates']})


def test_hardware_requires_credential(config):

    assert config.quantum_api_key is None
    handler = QuantumHandler(config)

    payload = dict(BELL)
    payload['backend'] = 'hardware'

    with pytest.raises(QuantumError) as caught:
        handler.handle(payload)

    # Fail closed: no silent fallback to the simulator.

    assert 'QUANTUM_API_KEY' in caught.value.reason

    with pytest.raises(QuantumError):
        Hardware('')


def test_hardware_not_installed(config, monkeypatch):

    # A None entry in sys.modules makes the import fail.

    monkeypatch.setitem(sys.modules, 'qiskit', None)
    monkeypatch.setitem(sys.modules, 'qiskit_ibm_runtime', None)

    handler = QuantumHandler(config.replace(quantum_api_key='token'))

    payload = dict(BELL)
    payload['backend'] = 'hardware'

    with pytest.raises(QuantumError) as caught:
        handler.handle(payload)

    assert 'not installed' in caught.value.reason


def test_injected_hardware(config):

    hardware = FakeHardware()
    handler = QuantumHandler(config, hardware=hardware)

    built = handler.build(BELL['n_qubits'], BELL['gates'])
    result = handler.execute(built, 10, Backend.HARDWARE.value)

    assert result['backend'] == 'hardware'
    assert result['results'] == {'00': 10}
    assert hardware.runs == [(built, 10)]


def test_translate():

    qiskit = pytest.importorskip('qiskit')

    from chimera.limits import Limits
    from chimera.quantum import circuit

    built = circuit.build(BELL['n_qubits'], BELL['gates'], Limits())
    translated = Hardware('token').translate(built)

    assert isinstance(translated, qiskit.QuantumCircuit)
    assert translated.num_qubits == 2

    names = [instruction.operation.name for instruction in translated.data]
    assert names[:2] == ['h', 'cx']
    assert names.count('measure') == 2


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
