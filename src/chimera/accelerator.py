""" Accelerator (GPU) resource management. The accelerator is a process-wide
    shared resource: every handler that wants to use it goes through the one
    :class:`AcceleratorHandler` owned by the daemon, which decides whether a
    computation is routed to the accelerator or left on the CPU.

    Unavailability is never an error, it is only a routing decision. A
    driver that cannot even be queried is an error, and is reported as an
    :class:`chimera.errors.AcceleratorError`.
"""

from __future__ import annotations

import contextlib
import enum
import gc
import logging
import numbers
import threading
from typing import Any, Dict, NamedTuple, Optional, Tuple

import numpy
import torch

from . import handler
from .errors import AcceleratorError
from .model import network
from .protocol import fields
from .protocol.message import Module

logger = logging.getLogger(__name__)


class Action(enum.Enum):
    PROBE = 'probe'
    STATUS = 'status'
    RECLAIM = 'reclaim'
    RUN = 'run'


class CudaRuntime:
    """ Thin wrapper around :mod:`torch.cuda`, so that the handler can be
        exercised against a substitute runtime where no GPU is present.
    """

    def __init__(self, index: int = 0):
        self.index = index

    @property
    def device(self) -> torch.device:
        return torch.device('cuda', self.index)

    def functional(self) -> bool:
        return torch.cuda.is_available()

    def memory(self) -> Tuple[int, int]:
        """ Return (free, total) device memory in bytes. """
        return torch.cuda.mem_get_info(self.index)

    def empty_cache(self) -> None:
        torch.cuda.empty_cache()


class MemorySnapshot(NamedTuple):

    functional: bool
    free: int
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {'functional': self.functional, 'free_memory': self.free, 'total_memory': self.total}



class _SharedLock:
    """ A readers/writer lock. Any number of threads may hold it shared;
        holding it exclusive waits for every shared holder to finish and
        keeps new ones out until released.
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False


    @contextlib.contextmanager
    def shared(self):

        with self._condition:
            while self._writer:
                self._condition.wait()
            self._readers += 1

        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()


    @contextlib.contextmanager
    def exclusive(self):

        with self._condition:
            while self._writer or self._readers > 0:
                self._condition.wait()
            self._writer = True

        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()


# end of class _SharedLock



class AcceleratorHandler(handler.Handler):
    """ Handler for the AcceleratorModule. The *runtime* defaults to a
        :class:`CudaRuntime`; anything with the same four members will do.

        Probing reads a fresh :class:`MemorySnapshot` under a shared lock, so
        concurrent probes never block each other; memory reclamation mutates
        accelerator-global state and takes the lock exclusively.
    """

    module = Module.ACCELERATOR

    def __init__(self, config, runtime=None):

        handler.Handler.__init__(self, config)

        if runtime is None:
            runtime = CudaRuntime()

        self.runtime = runtime
        self._lock = _SharedLock()


    @property
    def device(self) -> torch.device:
        if self.probe():
            return self.runtime.device
        return torch.device('cpu')


    def handle(self, payload):

        name = payload.get(fields.ACTION, Action.PROBE.value)

        try:
            action = Action(name)
        except ValueError:
            raise AcceleratorError('invalid action: %s' % (name)) from None

        if action == Action.PROBE:
            available = self.probe()
            device = self.runtime.device if available else torch.device('cpu')
            return {'available': available, fields.DEVICE: str(device)}

        if action == Action.STATUS:
            return self.status()

        if action == Action.RECLAIM:
            return {'reclaimed': self.reclaim()}

        handler.require(payload, fields.NETWORK, fields.DATA, error=AcceleratorError)

        data = payload[fields.DATA]
        if not isinstance(data, dict):
            raise AcceleratorError("'data' must be an object with 'input' and 'target'")

        handler.require(data, fields.INPUT, fields.TARGET, error=AcceleratorError)

        model = network.build(payload[fields.NETWORK], self.limits)
        return self.run(model, data[fields.INPUT], data[fields.TARGET])


    def snapshot(self) -> MemorySnapshot:
        with self._lock.shared():
            return self._snapshot()


    def _snapshot(self) -> MemorySnapshot:

        try:
            functional = bool(self.runtime.functional())
            if not functional:
                return MemorySnapshot(False, 0, 0)

            free, total = self.runtime.memory()
        except Exception as exc:
            logger.error('accelerator driver error: %s', exc)
            raise AcceleratorError('accelerator driver misconfigured or unavailable: %s' % (exc)) from exc

        return MemorySnapshot(True, int(free), int(total))


    def _assess(self, snapshot: MemorySnapshot) -> bool:

        if not snapshot.functional:
            logger.warning('accelerator is not functional, using CPU')
            return False

        minimum = self.limits.min_memory_available
        if snapshot.free < minimum:
            logger.warning('insufficient accelerator memory: %d bytes free, %d required', snapshot.free, minimum)
            return False

        if snapshot.total <= 0:
            logger.warning('accelerator reports no memory')
            return False

        ratio = snapshot.free / snapshot.total
        if ratio < 1 - self.limits.max_memory_usage:
            logger.warning('accelerator memory usage exceeds threshold: %.1f%% free', ratio * 100)
            return False

        return True


    def probe(self) -> bool:
        """ Return True if the accelerator is functional and has enough free
            memory, both in absolute terms and as a fraction of the total.
        """

        return self._assess(self.snapshot())


    def status(self) -> Dict[str, Any]:

        snapshot = self.snapshot()
        available = self._assess(snapshot)

        status = snapshot.to_dict()
        status['available'] = available
        status[fields.DEVICE] = str(self.runtime.device if available else torch.device('cpu'))
        return status


    def place(self, obj):
        """ Move a model, tensor, or float32 array to the accelerator. When the
            accelerator is not available the object is returned unchanged.
        """

        if not self.probe():
            return obj

        device = self.runtime.device

        if isinstance(obj, (torch.nn.Module, torch.Tensor)):
            logger.info('moving %s to %s', type(obj).__name__, device)
            return obj.to(device)

        if isinstance(obj, numpy.ndarray) and obj.dtype == numpy.float32:
            logger.info('moving array %s to %s', obj.shape, device)
            return torch.from_numpy(obj).to(device)

        raise AcceleratorError('unsupported type for accelerator transfer: %s' % (type(obj).__name__))


    def reclaim(self) -> bool:
        """ Best-effort release of cached accelerator memory. Returns False if
            the accelerator is unavailable or the release failed.
        """

        with self._lock.exclusive():
            try:
                if not self._assess(self._snapshot()):
                    return False

                gc.collect()
                self.runtime.empty_cache()
                free, _total = self.runtime.memory()
            except Exception as exc:
                logger.warning('accelerator memory reclamation failed: %s', exc)
                return False

        logger.info('accelerator memory reclaimed: %d bytes free', free)
        return True


    def run(self, model, input, target) -> Dict[str, Any]:
        """ One forward pass of *model* over *input*, scored against *target*
            with a mean squared distance. Operands are validated before any
            transfer; results are always returned as host-side values.
        """

        if not isinstance(model, torch.nn.Module):
            raise AcceleratorError('model must be a network, not %s' % (type(model).__name__))

        input = _as_array(input, fields.INPUT)
        target = _as_array(target, fields.TARGET)

        self.reclaim()

        try:
            model = self.place(model)
            input = self.place(torch.from_numpy(input))
            target = self.place(torch.from_numpy(target))

            with torch.no_grad():
                output = model(input)

            if output.shape != target.shape:
                raise AcceleratorError('target shape %s does not match output shape %s' % (tuple(target.shape), tuple(output.shape)))

            loss = torch.mean((output - target) ** 2)

            result = {
                fields.OUTPUT: output.cpu().tolist(),
                fields.LOSS: float(loss.cpu().item()),
                fields.DEVICE: str(output.device),
            }
        except RuntimeError as exc:
            raise AcceleratorError('accelerator computation failed: %s' % (exc)) from exc
        finally:
            self.reclaim()

        logger.info('accelerator computation completed: loss = %g', result[fields.LOSS])
        return result


# end of class AcceleratorHandler



def _as_array(value, name: str) -> numpy.ndarray:
    """ Convert a JSON vector or matrix of numbers to a float32 array,
        rejecting anything else before it gets near a device.
    """

    if not isinstance(value, list) or len(value) == 0:
        raise AcceleratorError('%s must be a non-empty vector or matrix of numbers' % (name))

    rows = value if isinstance(value[0], list) else [value]
    width: Optional[int] = None

    for row in rows:
        if not isinstance(row, list) or len(row) == 0:
            raise AcceleratorError('%s must be a non-empty vector or matrix of numbers' % (name))

        if width is None:
            width = len(row)
        elif len(row) != width:
            raise AcceleratorError('%s rows must all have the same length' % (name))

        for element in row:
            if isinstance(element, bool) or not isinstance(element, numbers.Real):
                raise AcceleratorError('%s must contain only numbers, found %r' % (name, element))

    return numpy.asarray(value, dtype=numpy.float32)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
