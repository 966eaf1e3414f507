import chimera
import pytest
import torch

from chimera.accelerator import AcceleratorHandler
from chimera.transport.client import Client


GIBIBYTE = 1024 ** 3


class FakeRuntime:
    """ Stand-in for :class:`chimera.accelerator.CudaRuntime`. The reported
        device is the CPU, so that tensors can genuinely be "moved" to it
        on a machine without a GPU.
    """

    def __init__(self, functional=False, free=0, total=0, error=None):
        self._functional = functional
        self.free = free
        self.total = total
        self.error = error
        self.emptied = 0

    @property
    def device(self):
        return torch.device('cpu')

    def functional(self):
        if self.error is not None:
            raise self.error
        return self._functional

    def memory(self):
        if self.error is not None:
            raise self.error
        return self.free, self.total

    def empty_cache(self):
        self.emptied += 1


@pytest.fixture
def config():
    return chimera.config.Configuration(host='localhost', port=0, workers=4, idle_timeout=30)


@pytest.fixture
def make_runtime():
    return FakeRuntime


@pytest.fixture
def offline_runtime():
    return FakeRuntime(functional=False)


@pytest.fixture
def online_runtime():
    return FakeRuntime(functional=True, free=4 * GIBIBYTE, total=8 * GIBIBYTE)


@pytest.fixture
def accelerator(config, offline_runtime):
    return AcceleratorHandler(config, runtime=offline_runtime)


@pytest.fixture
def daemon(config, offline_runtime):

    daemon = chimera.Daemon(config, runtime=offline_runtime)
    daemon.start()

    yield daemon

    daemon.close()


@pytest.fixture
def client(daemon):

    client = Client('localhost', daemon.port, timeout=30)

    yield client

    client.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
