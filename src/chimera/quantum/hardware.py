""" Execution of a :class:`Circuit` on quantum hardware through the IBM
    Quantum runtime. The :mod:`qiskit` and :mod:`qiskit_ibm_runtime`
    packages are an optional install (the ``hardware`` extra); they are
    imported on first use, and their absence is reported to the caller as
    a :class:`QuantumError` like any other hardware failure.
"""

import logging

from ..errors import QuantumError
from .circuit import GateKind


logger = logging.getLogger(__name__)


class Hardware:
    """ Remote backend. The *token* is the configured credential; the
        least busy operational device on *channel* is selected on first
        use and reused afterwards. A *backend* may be supplied directly,
        in which case no service lookup takes place.
    """

    name = 'hardware'

    def __init__(self, token, channel='ibm_quantum_platform', backend=None):

        if not token:
            raise QuantumError('quantum hardware requires a configured QUANTUM_API_KEY')

        self.token = token
        self.channel = channel
        self.backend = backend


    def _select(self):

        if self.backend is not None:
            return self.backend

        try:
            from qiskit_ibm_runtime import QiskitRuntimeService
        except ImportError as e:
            raise QuantumError('quantum hardware support is not installed: ' + str(e)) from e

        try:
            service = QiskitRuntimeService(channel=self.channel, token=self.token)
            backend = service.least_busy(operational=True, simulator=False)
        except Exception as e:
            raise QuantumError('unable to reach quantum hardware service: ' + str(e)) from e

        logger.info('selected quantum hardware backend %s', backend.name)
        self.backend = backend
        return backend


    def translate(self, circuit):
        """ Return a :class:`qiskit.QuantumCircuit` equivalent to *circuit*,
            with every qubit measured. Qubit 1 maps to qiskit qubit 0, and
            qiskit orders its bitstrings the same way the simulator does.
        """

        try:
            from qiskit import QuantumCircuit
        except ImportError as e:
            raise QuantumError('quantum hardware support is not installed: ' + str(e)) from e

        qc = QuantumCircuit(circuit.n_qubits)

        for gate in circuit.gates:
            qubits = [qubit - 1 for qubit in gate.qubits]

            if gate.kind == GateKind.CNOT:
                qc.cx(*qubits)
            else:
                method = getattr(qc, gate.kind.value.lower())
                method(qubits[0])

        qc.measure_all()
        return qc


    def run(self, circuit, shots, seed=None):
        """ Submit *circuit* and block until the counts are available. The
            *seed* is accepted for interface parity with the simulator and
            ignored; hardware sampling is not reproducible.
        """

        qc = self.translate(circuit)
        backend = self._select()

        try:
            from qiskit import transpile
            from qiskit_ibm_runtime import SamplerV2
        except ImportError as e:
            raise QuantumError('quantum hardware support is not installed: ' + str(e)) from e

        try:
            compiled = transpile(qc, backend=backend)
            job = SamplerV2(mode=backend).run([compiled], shots=shots)
            logger.info('submitted job %s to %s', job.job_id(), backend.name)
            result = job.result()
            counts = result[0].data.meas.get_counts()
        except Exception as e:
            raise QuantumError('quantum hardware execution failed: ' + str(e)) from e

        return dict((str(key), int(value)) for key, value in counts.items())


# end of class Hardware

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
