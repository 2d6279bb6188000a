"""TCP server: accepts in a base loop and serves connections in a loop pool."""

from __future__ import annotations

import enum
import functools
import socket
import threading
from typing import Any, Callable

from reactornet.acceptor import Acceptor
from reactornet.inet_address import InetAddress
from reactornet.logger import log_fatal
from reactornet.loop_thread import EventLoopThreadPool
from reactornet.tcp_connection import (
    ConnectionCallback,
    MessageCallback,
    TcpConnection,
    WriteCompleteCallback,
)

ThreadInitCallback = Callable[[Any], None]


class ServerOption(enum.Enum):
    NO_REUSE_PORT = 0
    REUSE_PORT = 1


class TcpServer:
    """Listens on an address and hands connections to loops in turn."""

    def __init__(
        self,
        loop: Any,
        listen_addr: InetAddress,
        name: str,
        option: ServerOption = ServerOption.REUSE_PORT,
    ) -> None:
        if loop is None:
            log_fatal("MainLoop is nullptr\n")
        self.loop = loop
        self.name = name
        self.ip_port = listen_addr.to_ip_port()
        self._acceptor = Acceptor(loop, listen_addr, option == ServerOption.REUSE_PORT)
        self._acceptor.new_connection_callback = self._new_connection
        self.thread_pool = EventLoopThreadPool(loop, name)
        self.connection_callback: ConnectionCallback | None = None
        self.message_callback: MessageCallback | None = None
        self.write_complete_callback: WriteCompleteCallback | None = None
        self.thread_init_callback: ThreadInitCallback | None = None
        self.connections: dict[str, TcpConnection] = {}
        self._next_conn_id = 0
        self._started = False
        self._closed = False
        self._start_lock = threading.Lock()

    def set_thread_num(self, count: int) -> None:
        """Serve connections in ``count`` extra loop threads; 0 uses the base loop."""
        self.thread_pool.thread_num = count

    def start(self) -> None:
        """Start the loop threads and begin listening; later calls do nothing."""
        with self._start_lock:
            if self._started:
                return
            self._started = True
        self.thread_pool.start(self.thread_init_callback)
        self.loop.run_in_loop(self._acceptor.listen)

    def address(self) -> InetAddress:
        """The address the server is bound to."""
        return self._acceptor.address()

    def close(self) -> None:
        """Destroy every connection, stop listening and stop the loop threads.

        Call from the base loop's thread once it is no longer looping.
        """
        if self._closed:
            return
        self._closed = True
        connections = list(self.connections.values())
        self.connections.clear()
        for conn in connections:
            conn.loop.run_in_loop(conn.connect_destroyed)
        self._acceptor.close()
        self.thread_pool.stop()

    def _new_connection(self, sock: socket.socket, peer_addr: InetAddress) -> None:
        io_loop = self.thread_pool.get_next_loop()
        conn_name = f"{self.name} {self.ip_port} {self._next_conn_id}"
        self._next_conn_id += 1
        try:
            local_addr = InetAddress.from_sockaddr(sock.getsockname())
        except OSError:
            sock.close()
            log_fatal("GetSockName Error!\n")
        conn = TcpConnection(io_loop, conn_name, sock, local_addr, peer_addr)
        self.connections[conn_name] = conn
        conn.message_callback = self.message_callback
        conn.connection_callback = self.connection_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection
        io_loop.run_in_loop(conn.connect_established)

    def _remove_connection(self, conn: TcpConnection) -> None:
        self.loop.run_in_loop(functools.partial(self._remove_connection_in_loop, conn))

    def _remove_connection_in_loop(self, conn: TcpConnection) -> None:
        self.connections.pop(conn.name, None)
        conn.loop.run_in_loop(conn.connect_destroyed)