"""Growable byte buffer with a reserved prepend area."""

from __future__ import annotations

import socket

from reactornet.logger import log_info


def _check_length(length: int) -> int:
    if length < 0:
        raise ValueError(f"negative length: {length}")
    return length


class Buffer:
    """Byte buffer split into prependable, readable and writable regions."""

    CHEAP_PREPEND = 8
    INITIAL_SIZE = 1024
    EXTRA_READ_SIZE = 65536

    def __init__(self, init_size: int = INITIAL_SIZE) -> None:
        _check_length(init_size)
        self._buf = bytearray(init_size + self.CHEAP_PREPEND)
        self._read = self.CHEAP_PREPEND
        self._write = self.CHEAP_PREPEND

    def readable_bytes(self) -> int:
        return self._write - self._read

    def writable_bytes(self) -> int:
        return len(self._buf) - self._write

    def prependable_bytes(self) -> int:
        return self._read

    def __len__(self) -> int:
        return self.readable_bytes()

    def peek(self) -> bytes:
        """Return a copy of the readable data without consuming it."""
        return bytes(self._buf[self._read:self._write])

    def retrieve(self, length: int) -> None:
        """Consume ``length`` bytes; consuming more than is readable empties the buffer."""
        if _check_length(length) <= self.readable_bytes():
            self._read += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        self._read = self._write = self.CHEAP_PREPEND

    def retrieve_as_bytes(self, length: int) -> bytes:
        _check_length(length)
        data = bytes(self._buf[self._read:self._read + min(length, self.readable_bytes())])
        self.retrieve(length)
        return data

    def retrieve_all_as_bytes(self) -> bytes:
        return self.retrieve_as_bytes(self.readable_bytes())

    def retrieve_as_string(self, length: int) -> str:
        return self.retrieve_as_bytes(length).decode("utf-8", errors="replace")

    def retrieve_all_as_string(self) -> str:
        return self.retrieve_as_string(self.readable_bytes())

    def ensure_writable_bytes(self, length: int) -> None:
        if _check_length(length) > self.writable_bytes():
            self._make_space(length)

    def append(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append data to the writable region, growing or compacting as needed."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = bytes(data)
        size = len(data)
        self.ensure_writable_bytes(size)
        self._buf[self._write:self._write + size] = data
        self._write += size

    def read_fd(self, sock: socket.socket) -> int:
        """Receive from ``sock`` into the buffer; 0 means the peer closed.

        Socket errors propagate as OSError.
        """
        writable = self.writable_bytes()
        size = writable + self.EXTRA_READ_SIZE if writable < self.EXTRA_READ_SIZE else writable
        data = sock.recv(size)
        self.append(data)
        log_info(
            "Success Read %d Bytes, str is %s\n",
            len(data),
            data.decode("utf-8", errors="replace"),
        )
        return len(data)

    def write_fd(self, sock: socket.socket) -> int:
        """Send readable data to ``sock`` without consuming it; return bytes sent."""
        with memoryview(self._buf) as view:
            return sock.send(view[self._read:self._write])

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self._read - self.CHEAP_PREPEND < length:
            self._buf.extend(bytes(self._write + length - len(self._buf)))
        else:
            readable = self.readable_bytes()
            start = self.CHEAP_PREPEND
            self._buf[start:start + readable] = self._buf[self._read:self._write]
            self._read = start
            self._write = start + readable