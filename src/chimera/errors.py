"""Error taxonomy shared by the validator, the dispatcher and the handlers.

Every error raised inside the compute side derives from
:class:`ChimeraError`. The dispatcher converts them into error envelopes
tagged with :attr:`ChimeraError.category`; nothing below the transport
ever closes a connection.
"""


# Category of an error envelope for a failure that is not a ChimeraError.

INTERNAL_ERROR = "InternalError"


class ChimeraError(Exception):
    """Base class for all errors raised by chimera components."""

    @property
    def category(self) -> str:
        return type(self).__name__

    @property
    def reason(self) -> str:
        if self.args:
            return str(self.args[0])
        return self.category


class ValidationError(ChimeraError):
    """A raw instruction was malformed, oversized, or not allowed."""


class ModelError(ChimeraError):
    """A layer or training specification was invalid, or training failed."""


class AcceleratorError(ChimeraError):
    """Driver fault, unsupported transfer type, or bad accelerator input."""


class QuantumError(ChimeraError):
    """A circuit or execution request was invalid, or the backend failed."""
