"""Network construction from layer specifications.

A network is an ordered sequence of dense layers, each optionally followed
by an activation. The whole sequence is validated, including the
dimensional compatibility of every adjacent pair, before any layer is
constructed; a failure never leaves a partially built model behind.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Dict, List, Sequence

import torch
from torch import nn

from ..errors import ModelError
from ..protocol import fields


class Activation(enum.Enum):
    RELU = "relu"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    SOFTMAX = "softmax"
    IDENTITY = "identity"


class LayerKind(enum.Enum):
    DENSE = "dense"


def _activation_module(activation: Activation) -> nn.Module:
    if activation == Activation.RELU:
        return nn.ReLU()
    if activation == Activation.SIGMOID:
        return nn.Sigmoid()
    if activation == Activation.TANH:
        return nn.Tanh()
    if activation == Activation.SOFTMAX:
        return nn.Softmax(dim=-1)
    raise ModelError(f"no module for activation: {activation.value}")


_module_activations = {
    nn.ReLU: Activation.RELU,
    nn.Sigmoid: Activation.SIGMOID,
    nn.Tanh: Activation.TANH,
    nn.Softmax: Activation.SOFTMAX,
}


@dataclasses.dataclass(frozen=True)
class LayerSpec:
    """A validated dense layer specification."""

    input_dim: int
    output_dim: int
    activation: Activation = Activation.IDENTITY
    kind: LayerKind = LayerKind.DENSE

    def to_dict(self) -> Dict[str, Any]:
        return {
            fields.TYPE: self.kind.value,
            fields.INPUT_DIM: self.input_dim,
            fields.OUTPUT_DIM: self.output_dim,
            fields.ACTIVATION: self.activation.value,
        }


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_layer(layer: Any, limits, index: int = 0) -> LayerSpec:
    """Parse and range-check one layer specification.

    ``index`` is only used to name the offending layer in error messages.
    """

    if not isinstance(layer, dict):
        raise ModelError(f"layer {index}: specification must be an object")

    kind = layer.get(fields.TYPE, layer.get(fields.KIND))
    try:
        kind = LayerKind(kind)
    except ValueError:
        raise ModelError(f"layer {index}: invalid or unsupported layer type: {kind if kind is not None else 'missing'}") from None

    if fields.INPUT_DIM not in layer or fields.OUTPUT_DIM not in layer:
        raise ModelError(f"layer {index}: missing input_dim or output_dim")

    input_dim = layer[fields.INPUT_DIM]
    output_dim = layer[fields.OUTPUT_DIM]

    if not _is_count(input_dim) or not _is_count(output_dim) or input_dim <= 0 or output_dim <= 0:
        raise ModelError(f"layer {index}: input_dim and output_dim must be positive integers")

    if input_dim > limits.max_neurons or output_dim > limits.max_neurons:
        raise ModelError(f"layer {index}: dimensions exceed maximum neurons: {limits.max_neurons}")

    name = layer.get(fields.ACTIVATION, Activation.IDENTITY.value)
    try:
        activation = Activation(name)
    except ValueError:
        raise ModelError(f"layer {index}: invalid activation function: {name}") from None

    return LayerSpec(input_dim, output_dim, activation, kind)


def parse(layer_specs: Any, limits) -> List[LayerSpec]:
    """Validate a whole layer sequence, returning the parsed specifications.

    Every layer is checked, and then every adjacent pair, before anything
    is returned; the first violation is reported with its layer index.
    """

    if not isinstance(layer_specs, list):
        raise ModelError("layers must be a list of layer specifications")

    if len(layer_specs) == 0:
        raise ModelError("no layers specified for network")

    if len(layer_specs) > limits.max_layers:
        raise ModelError(f"number of layers exceeds maximum: {limits.max_layers}")

    specs = [parse_layer(layer, limits, index) for index, layer in enumerate(layer_specs)]

    for index in range(len(specs) - 1):
        current = specs[index]
        following = specs[index + 1]
        if current.output_dim != following.input_dim:
            raise ModelError(
                f"incompatible layer dimensions at layer {index}: output_dim {current.output_dim} "
                f"does not match input_dim {following.input_dim} of layer {index + 1}"
            )

    return specs


def construct(specs: Sequence[LayerSpec]) -> nn.Sequential:
    """Construct the torch module for an already validated sequence."""

    layers: List[nn.Module] = []
    for spec in specs:
        layers.append(nn.Linear(spec.input_dim, spec.output_dim))
        if spec.activation != Activation.IDENTITY:
            layers.append(_activation_module(spec.activation))

    return nn.Sequential(*layers)


def build(layer_specs: Any, limits) -> nn.Sequential:
    """Validate ``layer_specs`` and construct the network on the CPU."""

    return construct(parse(layer_specs, limits))


def describe(model: nn.Module) -> List[Dict[str, Any]]:
    """Re-derive the layer specifications of a constructed network.

    This is the inverse of :func:`build`: ``describe(build(specs))``
    reproduces the dimension pairs and activations of ``specs``.
    """

    described: List[LayerSpec] = []

    for module in model.children():
        if isinstance(module, nn.Linear):
            described.append(LayerSpec(module.in_features, module.out_features))
            continue

        activation = _module_activations.get(type(module))
        if activation is None or not described or described[-1].activation != Activation.IDENTITY:
            raise ModelError(f"cannot describe network module: {type(module).__name__}")

        described[-1] = dataclasses.replace(described[-1], activation=activation)

    return [spec.to_dict() for spec in described]


def dimensions(model: nn.Module) -> tuple:
    """Return the (input, output) widths of a network."""

    linear = [module for module in model.children() if isinstance(module, nn.Linear)]
    if not linear:
        raise ModelError("network has no dense layers")
    return linear[0].in_features, linear[-1].out_features


def device_of(model: nn.Module) -> torch.device:
    for parameter in model.parameters():
        return parameter.device
    return torch.device("cpu")
