import copy

import numpy
import pytest
import torch

from chimera.errors import ModelError
from chimera.limits import Limits
from chimera.model import network, training
from chimera.model.handler import ModelHandler


LAYERS = [
    {'type': 'dense', 'input_dim': 2, 'output_dim': 8, 'activation': 'tanh'},
    {'type': 'dense', 'input_dim': 8, 'output_dim': 2, 'activation': 'softmax'},
]


def classification_data(count=20, seed=3):
    """ Two linearly separable clusters with one-hot targets. """

    rng = numpy.random.default_rng(seed)
    data = list()

    for index in range(count):
        label = index % 2
        center = -1.0 if label == 0 else 1.0
        point = (center + 0.1 * rng.standard_normal(2)).tolist()
        target = [1.0, 0.0] if label == 0 else [0.0, 1.0]
        data.append([point, target])

    return data


def params(**changes):

    block = {
        'epochs': 20,
        'learning_rate': 0.05,
        'loss_function': 'crossentropy',
        'data': classification_data(),
    }
    block.update(changes)
    return block


def test_parse():

    parsed = training.parse(params(), Limits())
    assert parsed.epochs == 20
    assert parsed.loss is training.Loss.CROSSENTROPY
    assert len(parsed.samples) == 20

    # Samples may also be given as objects.

    data = [{'input': [0.0, 1.0], 'target': [1.0, 0.0]}] * 10
    parsed = training.parse(params(data=data), Limits())
    assert parsed.samples[0] == ([0.0, 1.0], [1.0, 0.0])


def test_parse_rejections():

    limits = Limits()

    bad_params = (
        'not an object',
        params(epochs=0),
        params(epochs=101),
        params(epochs=2.0),
        params(epochs=True),
        params(learning_rate=0),
        params(learning_rate=-0.1),
        params(learning_rate=float('inf')),
        params(learning_rate='fast'),
        params(loss_function='hinge'),
        params(loss_function=None),
        params(data=classification_data(count=9)),
        params(data='lots'),
        params(data=[[[1.0, 2.0]]] * 10),
        params(data=[[[1.0, 'x'], [1.0, 0.0]]] * 10),
        params(data=[[[], [1.0, 0.0]]] * 10),
        params(data=[{'input': [1.0, 2.0]}] * 10),
    )

    for block in bad_params:
        with pytest.raises(ModelError):
            training.parse(block, limits)


def test_insufficient_data_is_idempotent():

    model = network.build(LAYERS, Limits())
    before = copy.deepcopy(model.state_dict())

    reasons = list()

    for attempt in range(2):
        with pytest.raises(ModelError) as caught:
            training.parse(params(data=classification_data(count=5)), Limits())
        reasons.append(caught.value.reason)

    assert reasons[0] == reasons[1]

    after = model.state_dict()
    for name in before:
        assert torch.equal(before[name], after[name])


def test_train_classification():

    torch.manual_seed(0)

    model = network.build(LAYERS, Limits())
    result = training.train(model, training.parse(params(epochs=30), Limits()))

    assert result['epochs'] == 30
    assert 0.0 <= result['accuracy'] <= 1.0
    assert result['accuracy'] > 0.9
    assert numpy.isfinite(result['loss'])

    names = [weight['name'] for weight in result['weights']]
    assert names == ['0.weight', '0.bias', '2.weight', '2.bias']
    assert result['weights'][0]['shape'] == [8, 2]
    assert len(result['weights'][0]['values']) == 8


def test_train_mse():

    layers = [{'type': 'dense', 'input_dim': 1, 'output_dim': 1}]
    data = [[[x / 10], [2 * x / 10]] for x in range(10)]

    model = network.build(layers, Limits())
    result = training.train(model, training.parse(params(loss_function='mse', data=data, epochs=5), Limits()))

    assert result['accuracy'] == 0.0
    assert result['epochs'] == 5


def test_width_mismatch():

    model = network.build(LAYERS, Limits())
    data = [[[1.0, 2.0, 3.0], [1.0, 0.0]]] * 10

    with pytest.raises(ModelError) as caught:
        training.train(model, training.parse(params(data=data), Limits()))

    assert 'sample 0' in caught.value.reason


def test_numerical_failure():

    layers = [{'type': 'dense', 'input_dim': 1, 'output_dim': 1}]
    data = [[[1e30], [1e30]]] * 10

    model = network.build(layers, Limits())

    with pytest.raises(ModelError) as caught:
        training.train(model, training.parse(params(loss_function='mse', data=data, learning_rate=1e10), Limits()))

    assert 'numerical failure' in caught.value.reason


def test_handler_with_training(config):

    handler = ModelHandler(config)

    data = handler.handle({'layers': LAYERS, 'params': params(epochs=2)})
    assert len(data['network']) == 2
    assert data['epochs'] == 2
    assert 'weights' in data
    assert 'accuracy' in data

    # Invalid training parameters are rejected before any construction.

    with pytest.raises(ModelError):
        handler.handle({'layers': LAYERS, 'params': params(epochs=0)})


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
