import logging
import threading

from . import config as configuration
from .accelerator import AcceleratorHandler
from .dispatch import Dispatcher
from .errors import AcceleratorError
from .model.handler import ModelHandler
from .protocol.message import Module
from .quantum.handler import QuantumHandler
from .transport.zmq.server import Server


logger = logging.getLogger(__name__)


class Daemon:
    """ The :class:`Daemon` assembles the compute side: one handler per
        allowed module, a :class:`chimera.dispatch.Dispatcher` routing to
        them, and a :class:`chimera.transport.zmq.server.Server` accepting
        connections on behalf of the dispatcher.

        The *config* is a :class:`chimera.config.Configuration`; if it is
        not provided one is loaded from the environment. The accelerator
        handler is always constructed, even when the AcceleratorModule is
        not allowed on the wire, since the model handler places its
        networks through it. *runtime* and *hardware* are handed to the
        accelerator and quantum handlers respectively, and are normally
        only specified by tests.
    """

    def __init__(self, config=None, runtime=None, hardware=None):

        if config is None:
            config = configuration.load()

        self.config = config

        self.accelerator = AcceleratorHandler(config, runtime=runtime)

        handlers = list()

        if config.allows(Module.MODEL):
            handlers.append(ModelHandler(config, accelerator=self.accelerator))
        if config.allows(Module.ACCELERATOR):
            handlers.append(self.accelerator)
        if config.allows(Module.QUANTUM):
            handlers.append(QuantumHandler(config, hardware=hardware))

        self.dispatcher = Dispatcher(config, handlers)
        self.server = None

        self._stopped = threading.Event()


    def start(self):
        """ Begin accepting connections. The listening port is available as
            :attr:`port` once this returns.
        """

        if self.server is None:
            self.server = Server(self.config, self.dispatcher.respond)

            try:
                available = self.accelerator.probe()
            except AcceleratorError as e:
                logger.warning('accelerator unusable: %s', e.reason)
            else:
                logger.info('accelerator available: %s', available)

            allowed = sorted(module.value for module in self.config.modules)
            logger.info('serving %s on %s', ', '.join(allowed), self.server.endpoint)


    @property
    def port(self):
        if self.server is None:
            return None
        return self.server.port


    def run(self):
        """ Start the daemon and block until :func:`close` is called.
        """

        self.start()
        self._stopped.wait()


    def close(self):

        if self.server is not None:
            self.server.close()
            self.server = None

        self.dispatcher.close()

        if not self.config.allows(Module.ACCELERATOR):
            self.accelerator.close()

        self._stopped.set()


# end of class Daemon

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
