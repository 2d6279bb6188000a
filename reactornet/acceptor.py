"""Listening socket that hands each accepted connection to a callback."""

from __future__ import annotations

import socket
from typing import Any, Callable

from reactornet.channel import Channel
from reactornet.inet_address import InetAddress
from reactornet.logger import log_error, log_info
from reactornet.net_socket import create_nonblocking
from reactornet.timestamp import Timestamp

NewConnectionCallback = Callable[[socket.socket, InetAddress], None]


class Acceptor:
    """Accepts connections on ``listen_addr`` inside ``loop``.

    ``new_connection_callback`` receives the accepted non-blocking socket and
    the peer address; without one, accepted sockets are closed at once.
    """

    def __init__(self, loop: Any, listen_addr: InetAddress, reuse_port: bool = True) -> None:
        self.loop = loop
        self._socket = create_nonblocking()
        try:
            self._socket.set_reuse_addr(True)
            self._socket.set_reuse_port(reuse_port)
            self._socket.bind_address(listen_addr)
        except OSError:
            self._socket.close()
            raise
        self._channel = Channel(loop, self._socket.sock)
        self._channel.read_callback = self._handle_read
        self.new_connection_callback: NewConnectionCallback | None = None
        self.listening = False
        self._closed = False

    def listen(self) -> None:
        """Start watching for and accepting new connections."""
        self._channel.enable_reading()
        log_info("Start listening\n")
        self._socket.listen()
        self.listening = True

    def address(self) -> InetAddress:
        """The address the listening socket is bound to."""
        return InetAddress.from_sockaddr(self._socket.sock.getsockname())

    def close(self) -> None:
        """Stop watching the socket and close it; call from the loop thread."""
        if self._closed:
            return
        self._closed = True
        self._channel.disable_all()
        self._channel.remove()
        self._socket.close()
        self.listening = False

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self._socket.accept()
        except OSError:
            log_error("Acceptor Error!\n")
            return
        log_info("Accept Connection!\n")
        if self.new_connection_callback:
            self.new_connection_callback(conn, peer_addr)
        else:
            conn.close()