import pathlib

import pytest

from chimera.config import Configuration, load
from chimera.limits import Limits, MEBIBYTE
from chimera.protocol.message import Module


def test_limit_defaults():

    limits = Limits()
    assert limits.max_payload_size == 100000
    assert limits.max_layers == 100
    assert limits.max_neurons == 10000
    assert limits.max_epochs == 100
    assert limits.min_data_size == 10
    assert limits.max_qubits == 50
    assert limits.max_gates == 1000
    assert limits.max_shots == 100000
    assert limits.max_simulated_qubits == 20
    assert limits.min_memory_available == 512 * MEBIBYTE
    assert limits.max_memory_usage == 0.8


def test_limit_validation():

    with pytest.raises(ValueError):
        Limits(max_layers=0)

    with pytest.raises(ValueError):
        Limits(max_layers=True)

    with pytest.raises(ValueError):
        Limits(max_memory_usage=1.5)

    with pytest.raises(ValueError):
        Limits(max_qubits=10, max_simulated_qubits=12)


def test_limits_from_dict():

    limits = Limits.from_dict({'MAX_LAYERS': 5, 'max_shots': 10})
    assert limits.max_layers == 5
    assert limits.max_shots == 10
    assert limits.max_neurons == 10000

    assert Limits.from_dict(limits.to_dict()) == limits

    with pytest.raises(ValueError):
        Limits.from_dict({'MAX_BANANAS': 1})


def test_defaults():

    config = load(environ={})

    assert config.host == 'localhost'
    assert config.port == 5000
    assert config.modules == frozenset(Module)
    assert config.workers == 8
    assert config.idle_timeout == 300
    assert config.quantum_api_key is None
    assert config.quantum_channel == 'ibm_quantum_platform'
    assert config.log_level == 'INFO'
    assert config.limits == Limits()


def test_environment():

    environ = dict()
    environ['CHIMERA_HOST'] = '0.0.0.0'
    environ['CHIMERA_PORT'] = '6001'
    environ['CHIMERA_MODULES'] = 'ModelModule, Yao'
    environ['CHIMERA_WORKERS'] = '2'
    environ['CHIMERA_IDLE_TIMEOUT'] = '12.5'
    environ['QUANTUM_API_KEY'] = 'secret'
    environ['CHIMERA_LOG_LEVEL'] = 'debug'

    config = load(environ=environ)

    assert config.host == '0.0.0.0'
    assert config.port == 6001
    assert config.modules == frozenset((Module.MODEL, Module.QUANTUM))
    assert config.workers == 2
    assert config.idle_timeout == 12.5
    assert config.quantum_api_key == 'secret'
    assert config.log_level == 'DEBUG'

    # The credential never appears in the representation.

    assert 'secret' not in repr(config)


def test_precedence(tmp_path):

    path = tmp_path / 'chimera.yaml'
    path.write_text(
        'host: filehost\n'
        'port: 7000\n'
        'workers: 3\n'
        'limits:\n'
        '  MAX_SHOTS: 500\n'
        '  MAX_LAYERS: 4\n'
    )

    environ = {'CHIMERA_CONFIG': str(path), 'CHIMERA_PORT': '7001'}

    config = load(environ=environ, workers=None)
    assert config.host == 'filehost'
    assert config.port == 7001
    assert config.workers == 3
    assert config.limits.max_shots == 500
    assert config.limits.max_layers == 4

    # Explicit overrides win over everything else; None means unset.

    config = load(str(path), environ=environ, port=0, host=None)
    assert config.port == 0
    assert config.host == 'filehost'


def test_example_file():

    path = pathlib.Path(__file__).parent.parent / 'doc' / 'example' / 'chimera.yaml'
    config = load(str(path), environ={})

    assert config == Configuration()


def test_invalid(tmp_path):

    with pytest.raises(ValueError):
        load(environ={'CHIMERA_MODULES': 'ModelModule,ShellModule'})

    with pytest.raises(ValueError):
        load(environ={'CHIMERA_PORT': '70000'})

    with pytest.raises(ValueError):
        load(environ={}, workers=0)

    path = tmp_path / 'bad.yaml'
    path.write_text('bogus_setting: 1\n')

    with pytest.raises(ValueError):
        load(str(path), environ={})

    path.write_text('- a\n- list\n')

    with pytest.raises(ValueError):
        load(str(path), environ={})


def test_immutable():

    config = Configuration()

    with pytest.raises(Exception):
        config.port = 1

    other = config.replace(port=1)
    assert other.port == 1
    assert config.port == 5000
    assert other.allows(Module.MODEL)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
