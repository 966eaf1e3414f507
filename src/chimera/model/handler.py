"""Handler for the ModelModule: network construction and training."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from torch import nn

from .. import handler
from ..errors import ModelError
from ..protocol import fields
from ..protocol.message import Module
from . import network
from . import training

logger = logging.getLogger(__name__)


class ModelHandler(handler.Handler):
    """Build a dense network from layer specifications and optionally train it.

    The ``accelerator`` is the process-wide
    :class:`chimera.accelerator.AcceleratorHandler`; constructed models are
    handed to it for placement, and the caller sees the same result shape
    whether the model lands on the accelerator or stays on the CPU.
    """

    module = Module.MODEL

    def __init__(self, config, accelerator=None):
        super().__init__(config)
        self.accelerator = accelerator

    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:

        if fields.LAYERS in payload:
            layers = payload[fields.LAYERS]
        elif fields.NETWORK in payload:
            layers = payload[fields.NETWORK]
        else:
            raise ModelError("payload missing valid 'layers' field")

        # Parse training parameters up front, so a bad request never pays
        # for constructing (and placing) a network.
        params: Optional[training.TrainingParams] = None
        if payload.get(fields.PARAMS) is not None:
            params = training.parse(payload[fields.PARAMS], self.limits)

        model = self.build(layers)
        data: Dict[str, Any] = {
            fields.NETWORK: network.describe(model),
            fields.DEVICE: str(network.device_of(model)),
        }

        if params is None:
            logger.info("network created without training")
        else:
            data.update(training.train(model, params))

        return data

    def build(self, layer_specs: Any) -> nn.Module:
        """Validate ``layer_specs`` and construct the network, placed on the
        accelerator when one is available."""

        model = network.build(layer_specs, self.limits)

        if self.accelerator is not None:
            model = self.accelerator.place(model)

        logger.info("created network with %d layers on %s", len(layer_specs), network.device_of(model))
        return model

    def train(self, model: nn.Module, params: Any) -> Dict[str, Any]:
        """Validate ``params`` and train ``model``, returning weights and accuracy."""

        return training.train(model, training.parse(params, self.limits))
