"""Newline framing for the byte stream of one TCP connection.

Each frame is one line of UTF-8 JSON terminated by ``\\n``. A trailing
``\\r`` is tolerated and removed. Lines longer than the configured limit
are never accumulated: once the limit is crossed the remaining bytes of
that line are dropped, and the line is reported as :data:`OVERSIZED`
when its terminator finally arrives.
"""

from __future__ import annotations

from typing import List, Optional, Union


TERMINATOR = b"\n"


class _Oversized:

    def __repr__(self):
        return "OVERSIZED"


OVERSIZED = _Oversized()

Frame = Union[bytes, _Oversized]


class LineBuffer:
    """Accumulate received bytes and split them into complete lines."""

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit
        self.buffer = bytearray()
        self.discarding = False

    def __len__(self):
        return len(self.buffer)

    def feed(self, data: bytes) -> List[Frame]:
        """Add ``data`` and return every line it completes, in order."""

        self.buffer += data
        lines: List[Frame] = []

        while True:
            index = self.buffer.find(TERMINATOR)
            if index < 0:
                break

            line = bytes(self.buffer[:index])
            del self.buffer[: index + 1]

            if self.discarding:
                self.discarding = False
                lines.append(OVERSIZED)
                continue

            if line.endswith(b"\r"):
                line = line[:-1]

            if self.limit is not None and len(line) > self.limit:
                lines.append(OVERSIZED)
            else:
                lines.append(line)

        if self.discarding:
            self.buffer.clear()
        elif self.limit is not None and len(self.buffer) > self.limit:
            self.discarding = True
            self.buffer.clear()

        return lines


def frame(line: bytes) -> bytes:
    """Terminate one encoded message for the wire."""

    return line + TERMINATOR
