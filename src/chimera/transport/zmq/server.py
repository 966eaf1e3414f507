"""ZeroMQ connection manager for newline-delimited instructions.

A ``STREAM`` socket accepts plain TCP connections, so any client that can
write a line of JSON to a socket can talk to the compute side. A single
background thread owns the socket; instructions are executed on a pool of
worker threads, and the responses are handed back to the socket thread
through a queue.

Each connection has at most one instruction in flight. Further lines
received on the same connection wait in that connection's backlog until
the response for the previous line has been written, so responses on a
connection are always returned in the order the instructions arrived.
A connection whose backlog grows past ``maximum_backlog`` lines, or whose
outgoing pipe is full because the peer stopped reading, is closed; the
socket thread never blocks on any one peer.
"""

from __future__ import annotations

import atexit
import collections
import concurrent.futures
import logging
import queue
import socket as pysocket
import threading
import time
from typing import Callable, Deque, Dict, Optional, Set

import zmq

from ...errors import INTERNAL_ERROR, ValidationError
from ...protocol.message import Response
from ..base import TransportConnectionError, TransportError, TransportPortError
from ..framing import OVERSIZED, Frame, LineBuffer, frame


logger = logging.getLogger(__name__)

minimum_port = 10079
maximum_port = 13679
maximum_backlog = 64
zmq_context = zmq.Context()


class Connection:
    """Per-connection state, only touched by the socket thread."""

    def __init__(self, identity: bytes, limit: Optional[int]):
        self.identity = identity
        self.buffer = LineBuffer(limit)
        self.backlog: Deque[Frame] = collections.deque()
        self.busy = False
        self.last = time.monotonic()

    def __repr__(self):
        return f"Connection({self.identity.hex()})"

    def idle(self, now: float) -> float:
        if self.busy or self.backlog:
            return 0.0
        return now - self.last


class Server:
    """Receive instructions via a ZeroMQ STREAM socket, respond to them.

    ``respond`` is called on a worker thread with one complete line
    (without the terminator) and must return the encoded response line;
    in practice it is :meth:`chimera.dispatch.Dispatcher.respond`. A
    ``port`` of 0 binds the first free port in the auto-assignment range.
    """

    def __init__(self, config, respond: Callable[[bytes], bytes]):
        self.config = config
        self.respond = respond
        self.address = config.host
        self.limit = config.limits.max_payload_size
        self.idle_timeout = config.idle_timeout

        self.socket = zmq_context.socket(zmq.STREAM)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.setsockopt(zmq.STREAM_NOTIFY, 1)

        self._interface = self._resolve(self.address)

        if config.port == 0:
            self.port = self._bind_any()
        else:
            self.port = config.port
            try:
                self.socket.bind(f"tcp://{self._interface}:{self.port}")
            except zmq.ZMQError as exc:
                self.socket.close()
                raise TransportPortError(f"port already in use: {self.port}") from exc

        self.connections: Dict[bytes, Connection] = {}
        self._closed: Set[bytes] = set()
        self._closing: Set[bytes] = set()

        # Response queue for thread-safe sending
        self._responses = queue.SimpleQueue()

        internal = f"inproc://chimera.Server:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self.shutdown = False
        self.workers = concurrent.futures.ThreadPoolExecutor(
            max_workers=config.workers, thread_name_prefix="chimera-worker"
        )
        self.thread = threading.Thread(target=self.run, name="chimera-server", daemon=True)
        self.thread.start()

        logger.info("listening on %s:%d", self.address, self.port)

    @staticmethod
    def _resolve(address: str) -> str:
        if address == "*":
            return address
        try:
            return pysocket.gethostbyname(address)
        except OSError as exc:
            raise TransportPortError(f"unable to resolve address {address!r}: {exc}") from exc

    def _bind_any(self) -> int:
        for port in range(minimum_port, maximum_port + 1):
            try:
                self.socket.bind(f"tcp://{self._interface}:{port}")
                return port
            except zmq.ZMQError:
                continue
        self.socket.close()
        raise TransportPortError(f"no ports available in range {minimum_port}:{maximum_port}")

    @property
    def endpoint(self) -> str:
        return f"{self.address}:{self.port}"

    def close(self, timeout: Optional[float] = 5) -> None:
        """Stop the socket thread, drop every connection, and release the port."""

        if self.shutdown:
            return

        self.shutdown = True
        self._signal()
        self.thread.join(timeout)
        self.workers.shutdown(wait=False, cancel_futures=True)

        with self._signal_lock:
            self._signal_tx.close()

        logger.info("stopped listening on %s:%d", self.address, self.port)

    # --- worker side ---

    def _signal(self) -> None:
        # PAIR sockets are not thread safe; workers share the sending end.
        with self._signal_lock:
            if not self._signal_tx.closed:
                self._signal_tx.send(b"")

    def _work(self, identity: bytes, line: bytes) -> None:
        try:
            response = self.respond(line)
        except Exception as exc:
            logger.exception("unhandled failure while responding")
            response = Response.failure(INTERNAL_ERROR, f"failed to process instruction: {exc}").encapsulate()

        self._responses.put((identity, response))
        self._signal()

    # --- socket thread ---

    def _write(self, identity: bytes, data: bytes) -> None:
        try:
            self.socket.send_multipart((identity, data), flags=zmq.NOBLOCK)
        except zmq.Again:
            raise TransportError(f"outgoing pipe full for {identity.hex()}") from None
        except zmq.ZMQError as exc:
            raise TransportConnectionError(f"unable to send to {identity.hex()}: {exc}") from exc

    def _send(self, connection: Connection, response: bytes) -> bool:
        try:
            self._write(connection.identity, frame(response))
        except TransportError as exc:
            self._disconnect(connection, str(exc))
            return False

        connection.last = time.monotonic()
        return True

    def _disconnect(self, connection: Connection, reason: str) -> None:
        identity = connection.identity
        self.connections.pop(identity, None)
        self._closed.add(identity)
        connection.backlog.clear()

        # An empty data frame asks the STREAM socket to close the TCP connection.
        # A peer whose pipe is full cannot take it yet; retry until it can.
        try:
            self._write(identity, b"")
        except TransportConnectionError:
            logger.debug("%r already gone", connection)
        except TransportError:
            self._closing.add(identity)

        logger.info("closed %r: %s", connection, reason)

    def _retry_closing(self) -> None:
        for identity in list(self._closing):
            try:
                self._write(identity, b"")
            except TransportConnectionError:
                self._closing.discard(identity)
            except TransportError:
                continue
            else:
                self._closing.discard(identity)

    def _advance(self, connection: Connection) -> None:
        """Start the next backlogged line, unless one is already in flight."""

        while not connection.busy and connection.backlog:
            line = connection.backlog.popleft()

            if line is OVERSIZED:
                logger.warning("%r: discarded instruction over %d bytes", connection, self.limit)
                message = f"instruction exceeds maximum size of {self.limit} bytes"
                if not self._send(connection, Response.failure(ValidationError.__name__, message).encapsulate()):
                    return
                continue

            if not line.strip():
                self._disconnect(connection, "empty line received")
                return

            connection.busy = True
            self.workers.submit(self._work, connection.identity, line)

    def _incoming(self, identity: bytes, data: bytes) -> None:

        if data == b"":
            # Connect and disconnect notifications both arrive as an empty frame.
            connection = self.connections.pop(identity, None)
            if connection is not None:
                logger.info("%r disconnected", connection)
            elif identity in self._closed:
                self._closed.discard(identity)
                self._closing.discard(identity)
            else:
                connection = Connection(identity, self.limit)
                self.connections[identity] = connection
                logger.info("%r connected", connection)
            return

        connection = self.connections.get(identity)
        if connection is None:
            if identity in self._closed:
                return
            connection = Connection(identity, self.limit)
            self.connections[identity] = connection

        connection.last = time.monotonic()
        connection.backlog.extend(connection.buffer.feed(data))

        if len(connection.backlog) > maximum_backlog:
            self._disconnect(connection, f"more than {maximum_backlog} instructions pending")
            return

        self._advance(connection)

    def _outgoing(self) -> None:
        # Clear one signal and send at most one response.
        self._signal_rx.recv(flags=zmq.NOBLOCK)

        try:
            identity, response = self._responses.get(block=False)
        except queue.Empty:
            return

        connection = self.connections.get(identity)
        if connection is None:
            logger.debug("dropping response for closed connection %s", identity.hex())
            return

        if self._send(connection, response):
            connection.busy = False
            self._advance(connection)

    def _expire(self) -> None:
        now = time.monotonic()
        for connection in list(self.connections.values()):
            if connection.idle(now) > self.idle_timeout:
                self._disconnect(connection, f"idle for more than {self.idle_timeout:g} seconds")

    def _poll(self, poller: zmq.Poller, interval: int) -> None:
        for active, _flag in poller.poll(interval):
            if active == self._signal_rx:
                self._outgoing()
            elif active == self.socket:
                identity, data = self.socket.recv_multipart()
                self._incoming(identity, data)

        self._expire()
        self._retry_closing()

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        interval = max(10, int(min(1.0, self.idle_timeout / 2) * 1000))

        try:
            while not self.shutdown:
                try:
                    self._poll(poller, interval)
                except zmq.ContextTerminated:
                    break
                except Exception:
                    logger.exception("unhandled failure in the connection manager")
        finally:
            self.socket.close()
            self._signal_rx.close()


def _cleanup() -> None:
    zmq_context.destroy(linger=0)


atexit.register(_cleanup)
