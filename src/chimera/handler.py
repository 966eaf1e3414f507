"""Common contract for the three module handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from .protocol.message import Module


class Handler(ABC):
    """Minimal contract for a module handler.

    A handler receives the already-validated instruction payload, validates
    it against its own closed schema, and returns the ``data`` block of a
    successful response. Failures are raised as the handler's own
    :class:`chimera.errors.ChimeraError` subclass; the dispatcher owns the
    conversion into an error envelope.
    """

    module: Module

    def __init__(self, config):
        self.config = config
        self.limits = config.limits

    @abstractmethod
    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Execute one instruction payload and return the response data."""

    def close(self) -> None:
        """Release any resources held by the handler."""


def require(payload: Dict[str, Any], *keys: str, error=ValueError) -> None:
    """Raise *error* naming the first of *keys* missing from *payload*."""

    missing = [key for key in keys if key not in payload]
    if missing:
        quoted = " or ".join(f"'{key}'" for key in missing)
        raise error(f"payload missing {quoted} field")
