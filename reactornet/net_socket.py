"""Thin owner of a TCP socket and its options."""

from __future__ import annotations

import contextlib
import socket

from reactornet.inet_address import InetAddress
from reactornet.logger import log_fatal

LISTEN_BACKLOG = 10


def create_nonblocking() -> Socket:
    """Create a non-blocking IPv4 TCP socket; failure is fatal."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    except OSError as exc:
        log_fatal("listen socket create err:%d\n", exc.errno or 0)
    sock.setblocking(False)
    return Socket(sock)


class Socket:
    """Owns a socket object and closes it when done."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def fileno(self) -> int:
        return self.sock.fileno()

    def bind_address(self, address: InetAddress) -> None:
        self.sock.bind(address.sockaddr())

    def listen(self) -> None:
        self.sock.listen(LISTEN_BACKLOG)

    def accept(self) -> tuple[socket.socket, InetAddress]:
        """Accept a connection as a non-blocking socket with its peer address.

        Raises BlockingIOError when nothing is pending.
        """
        conn, addr = self.sock.accept()
        conn.setblocking(False)
        return conn, InetAddress.from_sockaddr(addr)

    def _set_option(self, level: int, option: int, on: bool) -> None:
        self.sock.setsockopt(level, option, 1 if on else 0)

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_option(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_option(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        option = getattr(socket, "SO_REUSEPORT", None)
        if option is None:
            return
        with contextlib.suppress(OSError):
            self._set_option(socket.SOL_SOCKET, option, on)

    def set_keep_alive(self, on: bool) -> None:
        self._set_option(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def shutdown_write(self) -> None:
        """Close the writing half of the connection."""
        with contextlib.suppress(OSError):
            self.sock.shutdown(socket.SHUT_WR)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()