import chimera
import pytest

from chimera.errors import ValidationError
from chimera.protocol import validate
from chimera.protocol.message import Module


def rejected(raw, config):

    with pytest.raises(ValidationError) as caught:
        validate(raw, config)

    return caught.value.reason


def test_valid(config):

    instruction = validate(b'{"module": "ModelModule", "payload": {"layers": []}}', config)
    assert instruction.module is Module.MODEL
    assert instruction.payload == {'layers': []}

    # Text is accepted as well as bytes, and aliases resolve.

    instruction = validate('{"module": "Yao", "payload": {}}', config)
    assert instruction.module is Module.QUANTUM


def test_malformed(config):

    assert 'failed to parse' in rejected(b'{"module": "ModelModule", ', config)
    assert 'JSON object' in rejected(b'[1, 2, 3]', config)
    assert "'module'" in rejected(b'{"payload": {}}', config)
    assert "'payload'" in rejected(b'{"module": "ModelModule"}', config)
    assert "'payload'" in rejected(b'{"module": "ModelModule", "payload": [1]}', config)
    assert "'module'" in rejected(b'{"module": 7, "payload": {}}', config)


def test_code_is_not_accepted(config):

    reason = rejected(b'{"module": "ModelModule", "code": "rm -rf /"}', config)
    assert 'code' in reason


def test_unknown_module(config):

    reason = rejected(b'{"module": "ShellModule", "payload": {}}', config)
    assert reason == 'invalid module: ShellModule'


def test_allow_list(config):

    restricted = config.replace(modules=frozenset((Module.QUANTUM,)))

    validate(b'{"module": "QuantumModule", "payload": {}}', restricted)
    reason = rejected(b'{"module": "ModelModule", "payload": {}}', restricted)
    assert reason == 'module not allowed: ModelModule'


def test_size_ceiling(config):

    limits = chimera.limits.Limits(max_payload_size=64)
    small = config.replace(limits=limits)

    padding = 'x' * 64
    raw = '{"module": "ModelModule", "payload": {"pad": "%s"}}' % (padding)

    reason = rejected(raw, small)
    assert 'maximum size' in reason

    # The same instruction passes under the default ceiling.

    validate(raw, config)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
