"""Handler for the QuantumModule: circuit construction and execution."""

from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Optional

from .. import handler
from ..errors import QuantumError
from ..protocol import fields
from ..protocol.message import Module
from . import circuit
from .hardware import Hardware
from .simulator import Simulator

logger = logging.getLogger(__name__)


DEFAULT_SHOTS = 100


class Backend(enum.Enum):
    SIMULATOR = "simulator"
    HARDWARE = "hardware"


class QuantumHandler(handler.Handler):
    """Build circuits from gate specifications and sample them.

    The simulator is always available. The hardware backend is created on
    first use from the configured credential; ``hardware`` may be supplied
    to substitute a pre-built backend object with the same ``run`` method.
    """

    module = Module.QUANTUM

    def __init__(self, config, hardware=None):
        super().__init__(config)
        self.simulator = Simulator(self.limits)
        self.hardware = hardware

    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:

        if fields.CIRCUIT in payload:
            spec = payload[fields.CIRCUIT]
            options = payload.get(fields.PARAMS) or {}
            if not isinstance(spec, dict) or not isinstance(options, dict):
                raise QuantumError("circuit and params must be objects")
        else:
            spec = payload
            options = payload

        handler.require(spec, fields.N_QUBITS, fields.GATES, error=QuantumError)

        built = self.build(spec[fields.N_QUBITS], spec[fields.GATES])
        return self.execute(
            built,
            options.get(fields.N_SHOTS, DEFAULT_SHOTS),
            options.get(fields.BACKEND, Backend.SIMULATOR.value),
            options.get(fields.SEED),
        )

    def build(self, n_qubits: Any, gate_specs: Any) -> circuit.Circuit:
        built = circuit.build(n_qubits, gate_specs, self.limits)
        logger.debug("built circuit with %d qubits and %d gates", built.n_qubits, len(built.gates))
        return built

    def execute(self, built: circuit.Circuit, shots: Any, backend: Any = Backend.SIMULATOR.value,
                seed: Optional[int] = None) -> Dict[str, Any]:
        """Sample ``built`` ``shots`` times on the selected backend."""

        if not isinstance(shots, int) or isinstance(shots, bool) or shots <= 0 or shots > self.limits.max_shots:
            raise QuantumError(f"invalid n_shots: must be an integer between 1 and {self.limits.max_shots}")

        if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool) or seed < 0):
            raise QuantumError("seed must be a non-negative integer")

        try:
            backend = Backend(backend)
        except ValueError:
            raise QuantumError(f"unsupported backend: {backend}") from None

        if backend == Backend.HARDWARE:
            results = self._hardware().run(built, shots, seed)
        else:
            results = self.simulator.run(built, shots, seed)

        logger.info("executed %d shots of a %d-qubit circuit on %s", shots, built.n_qubits, backend.value)

        return {
            fields.RESULTS: results,
            fields.N_SHOTS: shots,
            fields.BACKEND: backend.value,
            fields.N_QUBITS: built.n_qubits,
        }

    def _hardware(self):
        if self.hardware is None:
            self.hardware = Hardware(self.config.quantum_api_key, self.config.quantum_channel)
        return self.hardware
