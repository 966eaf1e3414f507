"""Network training.

Training parameters are validated in full before the model is touched, so
a rejected request is idempotent: it fails the same way every time and
leaves the model exactly as it was.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import math
import numbers
from typing import Any, Dict, List, Sequence, Tuple

import torch
from torch import nn
from torch.nn import functional

from ..errors import ModelError
from ..protocol import fields
from . import network

logger = logging.getLogger(__name__)


EPSILON = 1e-7


class Loss(enum.Enum):
    CROSSENTROPY = "crossentropy"
    MSE = "mse"


Sample = Tuple[List[float], List[float]]


@dataclasses.dataclass(frozen=True)
class TrainingParams:
    """Validated training parameters."""

    epochs: int
    learning_rate: float
    loss: Loss
    samples: Tuple[Sample, ...]


def crossentropy(prediction: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    """Cross-entropy of a probability vector against a one-hot target."""

    return -(target * torch.log(prediction.clamp_min(EPSILON))).sum(dim=-1).mean()


def mse(prediction: torch.Tensor, target: torch.Tensor) -> torch.Tensor:
    return functional.mse_loss(prediction, target)


_loss_functions = {
    Loss.CROSSENTROPY: crossentropy,
    Loss.MSE: mse,
}


def _vector(value: Any) -> bool:
    if not isinstance(value, list) or len(value) == 0:
        return False
    for element in value:
        if isinstance(element, bool) or not isinstance(element, numbers.Real):
            return False
        if not math.isfinite(element):
            return False
    return True


def _sample(sample: Any, index: int) -> Sample:

    if isinstance(sample, dict):
        if fields.INPUT not in sample or fields.TARGET not in sample:
            raise ModelError(f"sample {index}: missing 'input' or 'target'")
        pair = (sample[fields.INPUT], sample[fields.TARGET])
    elif isinstance(sample, list) and len(sample) == 2:
        pair = (sample[0], sample[1])
    else:
        raise ModelError(f"sample {index}: must be an [input, target] pair")

    if not _vector(pair[0]) or not _vector(pair[1]):
        raise ModelError(f"sample {index}: input and target must be non-empty vectors of finite numbers")

    return pair


def parse(params: Any, limits) -> TrainingParams:
    """Validate training parameters, raising :class:`ModelError` on the first problem."""

    if not isinstance(params, dict):
        raise ModelError("training parameters must be an object")

    epochs = params.get(fields.EPOCHS)
    if not isinstance(epochs, int) or isinstance(epochs, bool) or epochs <= 0 or epochs > limits.max_epochs:
        raise ModelError(f"invalid epochs: must be an integer between 1 and {limits.max_epochs}")

    learning_rate = params.get(fields.LEARNING_RATE)
    if isinstance(learning_rate, bool) or not isinstance(learning_rate, numbers.Real) \
            or not math.isfinite(learning_rate) or learning_rate <= 0:
        raise ModelError("invalid learning_rate: must be a positive number")

    name = params.get(fields.LOSS_FUNCTION)
    try:
        loss = Loss(name)
    except ValueError:
        raise ModelError(f"invalid or unsupported loss_function: {name if name is not None else 'missing'}") from None

    data = params.get(fields.DATA)
    if not isinstance(data, list) or len(data) < limits.min_data_size:
        raise ModelError(f"insufficient or invalid data: must be a list with at least {limits.min_data_size} samples")

    samples = tuple(_sample(sample, index) for index, sample in enumerate(data))

    return TrainingParams(epochs, float(learning_rate), loss, samples)


def prepare(samples: Sequence[Sample], model: nn.Module) -> List[Tuple[torch.Tensor, torch.Tensor]]:
    """Check sample widths against the network and convert them to tensors."""

    input_dim, output_dim = network.dimensions(model)
    device = network.device_of(model)

    prepared = []
    for index, (input, target) in enumerate(samples):
        if len(input) != input_dim:
            raise ModelError(f"sample {index}: input has {len(input)} values, network expects {input_dim}")
        if len(target) != output_dim:
            raise ModelError(f"sample {index}: target has {len(target)} values, network produces {output_dim}")

        x = torch.tensor(input, dtype=torch.float32, device=device)
        y = torch.tensor(target, dtype=torch.float32, device=device)
        prepared.append((x, y))

    return prepared


def serialize(model: nn.Module) -> List[Dict[str, Any]]:
    """Host-side representation of every tensor in the model's state."""

    weights = []
    for name, tensor in model.state_dict().items():
        tensor = tensor.detach().cpu()
        weights.append({"name": name, "shape": list(tensor.shape), "values": tensor.tolist()})
    return weights


def train(model: nn.Module, params: TrainingParams) -> Dict[str, Any]:
    """Train ``model`` in place and return its weights and final accuracy.

    Accuracy is only meaningful for classification, so it is reported as
    0.0 for the ``mse`` loss.
    """

    data = prepare(params.samples, model)
    loss_function = _loss_functions[params.loss]
    classification = params.loss == Loss.CROSSENTROPY

    optimizer = torch.optim.Adam(model.parameters(), lr=params.learning_rate)
    model.train()

    average = 0.0
    accuracy = 0.0

    try:
        for epoch in range(1, params.epochs + 1):
            total_loss = 0.0
            correct = 0
            total = 0

            for x, y in data:
                prediction = model(x)
                loss = loss_function(prediction, y)

                if not torch.isfinite(loss):
                    raise ModelError(f"numerical failure during epoch {epoch}: loss is {loss.item()}")

                total_loss += loss.item()

                if classification:
                    correct += int(torch.argmax(prediction, dim=-1).item() == torch.argmax(y, dim=-1).item())
                    total += 1

                optimizer.zero_grad()
                loss.backward()
                optimizer.step()

            average = total_loss / len(data)
            accuracy = correct / total if classification else 0.0
            logger.info("epoch %d/%d: loss = %.6f, accuracy = %.4f", epoch, params.epochs, average, accuracy)

    except RuntimeError as exc:
        raise ModelError(f"training failed: {exc}") from exc

    for name, parameter in model.named_parameters():
        if not torch.isfinite(parameter).all():
            raise ModelError(f"numerical failure: parameter {name} is not finite")

    model.eval()

    return {
        fields.WEIGHTS: serialize(model),
        fields.ACCURACY: float(accuracy),
        fields.LOSS: float(average),
        fields.EPOCHS: params.epochs,
    }
