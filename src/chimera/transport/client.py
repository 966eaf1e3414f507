"""Planning-side client for the compute daemon.

The wire is a plain TCP stream of newline-terminated JSON, so the client
needs nothing beyond a standard socket. Public surface area mirrors the
server side of the request channel:
    - Client class
    - client(address, port) cache helper
    - send(address, port, instruction)
"""

from __future__ import annotations

import logging
import socket as pysocket
import threading
from typing import Dict, Optional, Tuple

from ..json import DecodeError
from ..protocol.message import Instruction, Response
from .base import Transport, TransportConnectionError, TransportError, TransportTimeout
from .framing import LineBuffer, frame

logger = logging.getLogger(__name__)


class Client(Transport):
    """Issue instructions over one TCP connection and receive responses.

    One instruction is outstanding at a time; concurrent callers are
    serialized. A timeout leaves the stream out of step with the requests,
    so the connection is dropped and re-established on the next call.
    """

    timeout = 60.0

    def __init__(self, address: str, port: int, timeout: Optional[float] = None):
        self.address = address
        self.port = int(port)

        if timeout is not None:
            self.timeout = timeout

        self.socket: Optional[pysocket.socket] = None
        self._buffer = LineBuffer()
        self._lines = []
        self._lock = threading.Lock()

    def __repr__(self):
        return f"Client({self.address}:{self.port})"

    @property
    def is_open(self) -> bool:
        return self.socket is not None

    def open(self) -> None:
        if self.socket is not None:
            return

        try:
            self.socket = pysocket.create_connection((self.address, self.port), timeout=self.timeout)
        except pysocket.timeout as exc:
            raise TransportTimeout(f"{self.address}:{self.port}: no connection in {self.timeout:.2f} sec") from exc
        except OSError as exc:
            raise TransportConnectionError(f"{self.address}:{self.port}: {exc}") from exc

        self._buffer = LineBuffer()
        self._lines = []
        logger.debug("connected to %s:%d", self.address, self.port)

    def close(self) -> None:
        if self.socket is None:
            return

        try:
            self.socket.close()
        finally:
            self.socket = None

    def send(self, instruction: Instruction) -> Response:
        """Send one instruction and block until its response arrives."""

        if isinstance(instruction, Instruction):
            line = instruction.encapsulate()
        elif isinstance(instruction, str):
            line = instruction.encode("utf-8")
        else:
            line = bytes(instruction)

        with self._lock:
            self.open()
            try:
                self.socket.sendall(frame(line))
            except OSError as exc:
                self.close()
                raise TransportConnectionError(f"{self.address}:{self.port}: send failed: {exc}") from exc

            return self._receive(self.timeout)

    def recv(self, timeout: Optional[float] = None) -> Response:
        with self._lock:
            if self.socket is None:
                raise TransportConnectionError(f"{self.address}:{self.port}: not connected")
            return self._receive(self.timeout if timeout is None else timeout)

    def _receive(self, timeout: Optional[float]) -> Response:
        line = self._readline(timeout)

        try:
            return Response.decode(line)
        except (DecodeError, KeyError, ValueError, TypeError) as exc:
            raise TransportError(f"{self.address}:{self.port}: malformed response: {exc}") from exc

    def _readline(self, timeout: Optional[float]) -> bytes:
        self.socket.settimeout(timeout)

        while not self._lines:
            try:
                data = self.socket.recv(65536)
            except pysocket.timeout as exc:
                self.close()
                raise TransportTimeout(f"{self.address}:{self.port}: no response in {timeout:.2f} sec") from exc
            except OSError as exc:
                self.close()
                raise TransportConnectionError(f"{self.address}:{self.port}: receive failed: {exc}") from exc

            if data == b"":
                self.close()
                raise TransportConnectionError(f"{self.address}:{self.port}: connection closed by server")

            self._lines.extend(self._buffer.feed(data))

        return self._lines.pop(0)


# --- convenience helpers ---

_client_cache: Dict[Tuple[str, int], Client] = {}
_client_lock = threading.Lock()


def client(address: str, port: int) -> Client:
    key = (address, int(port))
    with _client_lock:
        c = _client_cache.get(key)
        if c is None:
            c = Client(address, int(port))
            _client_cache[key] = c
        return c


def send(address: str, port: int, instruction: Instruction) -> Response:
    return client(address, port).send(instruction)
