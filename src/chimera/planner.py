""" The planning side: decompose a problem into per-module sub-tasks with
    the help of a knowledge base, send each sub-task to the compute daemon
    as a structured :class:`Instruction`, and collect the responses.

    The knowledge base is an external collaborator; anything that provides
    the two methods of :class:`KnowledgeBase` will do.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Protocol

from .protocol import fields
from .protocol.message import Instruction, Module, Response
from .transport.base import TransportError

logger = logging.getLogger(__name__)


REQUIRES = 'requires'


class KnowledgeBase(Protocol):

    def query(self, pattern: str) -> List[Dict[str, Any]]:
        """ Return the concepts matching *pattern*, each as a dictionary
            with ``concept`` and ``relationships`` keys.
        """

    def infer(self, concept: str) -> List[Dict[str, Any]]:
        """ Return the relationships that can be inferred for *concept*,
            each as a dictionary with ``relation`` and ``target`` keys.
        """


# Capability names, as they appear in the knowledge base, mapped onto the
# module that provides them.

capabilities = {
    'neural-network': Module.MODEL,
    'model': Module.MODEL,
    'quantum-circuit': Module.QUANTUM,
    'quantum': Module.QUANTUM,
    'accelerator': Module.ACCELERATOR,
    'gpu': Module.ACCELERATOR,
}


@dataclasses.dataclass
class Problem:
    """ A problem to solve: the *concept* names it for the knowledge base,
        and the optional parameter blocks feed the sub-task payloads.
    """

    concept: str
    network: Optional[List[Dict[str, Any]]] = None
    training: Optional[Dict[str, Any]] = None
    circuit: Optional[Dict[str, Any]] = None
    execution: Optional[Dict[str, Any]] = None
    accelerator: Optional[Dict[str, Any]] = None


@dataclasses.dataclass
class SubTask:
    module: Module
    payload: Dict[str, Any]

    def instruction(self) -> Instruction:
        return Instruction(self.module, self.payload)


@dataclasses.dataclass
class Outcome:
    """ The result of one sub-task: either the daemon's *response*, or the
        *error* raised while trying to deliver it.
    """

    subtask: SubTask
    response: Optional[Response] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.response is not None and self.response.ok


@dataclasses.dataclass
class PlanResult:
    problem: Problem
    outcomes: List[Outcome] = dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def responses(self) -> List[Optional[Response]]:
        return [outcome.response for outcome in self.outcomes]



class Planner:
    """ Decompose problems using *kb* and solve them through *client*, a
        :class:`chimera.transport.base.Transport` (typically a
        :class:`chimera.transport.client.Client`). Either may be omitted
        when only the corresponding half of the work is needed.
    """

    def __init__(self, kb: Optional[KnowledgeBase] = None, client=None):
        self.kb = kb
        self.client = client


    def requirements(self, concept: str) -> List[Module]:
        """ Return the modules the knowledge base says *concept* requires,
            in order of first mention, without duplicates.
        """

        if self.kb is None:
            return []

        relationships = list(self.kb.infer(concept))
        for match in self.kb.query(concept):
            relationships.extend(match.get('relationships', ()))

        modules = []
        for relationship in relationships:
            if relationship.get('relation') != REQUIRES:
                continue

            module = capabilities.get(relationship.get('target'))
            if module is not None and module not in modules:
                modules.append(module)

        return modules


    def decompose(self, problem: Problem) -> List[SubTask]:

        modules = self.requirements(problem.concept)

        if modules:
            logger.debug('%s requires %s', problem.concept, ', '.join(module.value for module in modules))
        else:
            modules = self._present(problem)
            logger.debug('no guidance for %s, using parameter blocks', problem.concept)

        return [SubTask(module, self.payload(problem, module)) for module in modules]


    @staticmethod
    def _present(problem: Problem) -> List[Module]:

        modules = []

        if problem.network is not None or problem.training is not None:
            modules.append(Module.MODEL)
        if problem.circuit is not None:
            modules.append(Module.QUANTUM)
        if problem.accelerator is not None:
            modules.append(Module.ACCELERATOR)

        return modules


    @staticmethod
    def payload(problem: Problem, module: Module) -> Dict[str, Any]:
        """ Assemble the instruction payload for *module* from the parameter
            blocks of *problem*.
        """

        payload: Dict[str, Any] = dict()

        if module == Module.MODEL:
            payload[fields.LAYERS] = problem.network or []
            if problem.training is not None:
                payload[fields.PARAMS] = problem.training

        elif module == Module.QUANTUM:
            payload[fields.CIRCUIT] = problem.circuit or {}
            if problem.execution is not None:
                payload[fields.PARAMS] = problem.execution

        elif module == Module.ACCELERATOR:
            payload.update(problem.accelerator or {})

        return payload


    def solve(self, problem: Problem) -> PlanResult:
        """ Send every sub-task of *problem* in order. A transport failure
            is recorded against its sub-task; the remaining sub-tasks still
            run.
        """

        if self.client is None:
            raise RuntimeError('a client is required to solve problems')

        result = PlanResult(problem)

        for subtask in self.decompose(problem):
            outcome = Outcome(subtask)

            try:
                outcome.response = self.client.send(subtask.instruction())
            except TransportError as e:
                outcome.error = '%s: %s' % (e.category, e.reason)
                logger.warning('%s sub-task failed: %s', subtask.module.value, outcome.error)
            else:
                if not outcome.response.ok:
                    logger.warning('%s sub-task failed: %s', subtask.module.value, outcome.response.message)

            result.outcomes.append(outcome)

        return result


# end of class Planner


def solve(problem: Problem, kb: Optional[KnowledgeBase], client) -> PlanResult:
    return Planner(kb, client).solve(problem)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
