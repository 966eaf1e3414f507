""" The dispatcher routes a validated :class:`Instruction` to the handler
    registered for its module, and normalizes whatever happens there into a
    :class:`Response` envelope. This is the fault boundary of the compute
    side: no exception raised by a handler propagates past this module,
    since that would terminate a connection shared with other requests.
"""

import enum
import itertools
import logging
import threading

from . import json
from .errors import INTERNAL_ERROR, ChimeraError, ValidationError
from .protocol.message import Response
from .protocol.validator import validate

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    RECEIVED = 'received'
    VALIDATED = 'validated'
    EXECUTING = 'executing'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'


# Permitted transitions. SUCCEEDED and FAILED are terminal; nothing returns
# to VALIDATED once EXECUTING has been entered.

transitions = {
    Stage.RECEIVED: frozenset((Stage.VALIDATED, Stage.FAILED)),
    Stage.VALIDATED: frozenset((Stage.EXECUTING, Stage.FAILED)),
    Stage.EXECUTING: frozenset((Stage.SUCCEEDED, Stage.FAILED)),
    Stage.SUCCEEDED: frozenset(),
    Stage.FAILED: frozenset(),
}



class Task:
    """ Lifecycle record for a single instruction as it moves through the
        dispatcher. A :class:`Task` that enters :attr:`Stage.FAILED` always
        carries a *reason*.
    """

    def __init__(self):

        self.id = _id_next()
        self.stage = Stage.RECEIVED
        self.module = None
        self.reason = None


    def __repr__(self):
        return 'Task(%s, %s)' % (self.id, self.stage.value)


    def advance(self, stage, reason=None):

        if stage not in transitions[self.stage]:
            raise RuntimeError('invalid task transition: %s -> %s' % (self.stage.value, stage.value))

        if stage == Stage.FAILED:
            if not reason:
                raise ValueError('a failed task must carry a reason')
            self.reason = reason

        logger.debug('task %s: %s -> %s', self.id, self.stage.value, stage.value)
        self.stage = stage


    @property
    def done(self):
        return self.stage == Stage.SUCCEEDED or self.stage == Stage.FAILED


# end of class Task



class Dispatcher:
    """ Route instructions to module handlers. The *config* is the immutable
        :class:`chimera.config.Configuration` for this process; *handlers*
        is an iterable of :class:`chimera.handler.Handler` instances, one
        per module.
    """

    def __init__(self, config, handlers=()):

        self.config = config
        self.handlers = dict()

        for handler in handlers:
            self.register(handler)


    def register(self, handler):

        module = handler.module

        if module in self.handlers:
            raise RuntimeError('duplicate handler not allowed: ' + module.value)

        self.handlers[module] = handler


    def close(self):

        for handler in self.handlers.values():
            handler.close()


    def respond(self, raw):
        """ Handle one raw line from the wire and return the encoded response
            line, without the line terminator. This never raises.
        """

        response = self.handle(raw)

        try:
            return response.encapsulate()
        except (json.EncodeError, TypeError, ValueError) as exc:
            logger.exception('failed to encode response')
            response = Response.failure(INTERNAL_ERROR, 'failed to encode response: %s' % (exc))
            return response.encapsulate()


    def handle(self, raw):
        """ Validate and dispatch one raw instruction, returning a
            :class:`Response`. Validation failures become error envelopes
            here, before any handler runs.
        """

        task = Task()

        try:
            instruction = validate(raw, self.config)
        except ValidationError as exc:
            task.advance(Stage.FAILED, exc.reason)
            logger.warning('rejected instruction: %s', exc.reason)
            return Response.failure(exc.category, exc.reason)

        task.advance(Stage.VALIDATED)
        return self._dispatch(task, instruction)


    def dispatch(self, instruction):
        """ Dispatch an :class:`Instruction` that has already been validated,
            returning a :class:`Response`.
        """

        task = Task()
        task.advance(Stage.VALIDATED)
        return self._dispatch(task, instruction)


    def _dispatch(self, task, instruction):

        module = instruction.module
        task.module = module

        try:
            handler = self.handlers[module]
        except KeyError:
            # The validator should make this unreachable; the allow-list and
            # the registered handlers are both derived from the configuration.
            reason = 'unsupported module: ' + module.value
            task.advance(Stage.FAILED, reason)
            logger.error(reason)
            return Response.failure(ValidationError.__name__, reason)

        task.advance(Stage.EXECUTING)

        try:
            data = handler.handle(instruction.payload)
        except ChimeraError as exc:
            task.advance(Stage.FAILED, exc.reason)
            logger.warning('%s failed: %s: %s', module.value, exc.category, exc.reason)
            return Response.failure(exc.category, exc.reason)
        except Exception as exc:
            reason = '%s handler failed: %s' % (module.value, exc)
            task.advance(Stage.FAILED, reason)
            logger.exception('unexpected failure in %s handler', module.value)
            return Response.failure(INTERNAL_ERROR, reason)

        if not isinstance(data, dict):
            reason = '%s handler returned %s, expected a mapping' % (module.value, type(data).__name__)
            task.advance(Stage.FAILED, reason)
            logger.error(reason)
            return Response.failure(INTERNAL_ERROR, reason)

        task.advance(Stage.SUCCEEDED)
        return Response.success(data)


# end of class Dispatcher



_id_lock = threading.Lock()
_id_ticker = itertools.count(1)


def _id_next():
    """ Return the next task identification number, used only to correlate
        log messages for a single instruction.
    """

    with _id_lock:
        id = next(_id_ticker)

    return '%08x' % (id & 0xFFFFFFFF)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
