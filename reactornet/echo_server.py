"""TCP echo server built on the reactor."""

from __future__ import annotations

import argparse
from typing import Any

from reactornet.buffer import Buffer
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.tcp_connection import TcpConnection
from reactornet.tcp_server import TcpServer
from reactornet.timestamp import Timestamp


class EchoServer:
    """Sends every received byte straight back to its sender."""

    def __init__(self, loop: Any, addr: InetAddress, name: str, thread_num: int = 3) -> None:
        self.loop = loop
        self.server = TcpServer(loop, addr, name)
        self.server.connection_callback = self._on_connection
        self.server.message_callback = self._on_message
        self.server.set_thread_num(thread_num)

    def start(self) -> None:
        self.server.start()

    def _on_connection(self, conn: TcpConnection) -> None:
        if conn.connected():
            log_info("Connection UP : %s", conn.peer_addr.to_ip_port())
        else:
            log_info("Connection DOWN : %s", conn.peer_addr.to_ip_port())

    def _on_message(self, conn: TcpConnection, buf: Buffer, receive_time: Timestamp) -> None:
        conn.send(buf.retrieve_all_as_bytes())


def main(argv: list[str] | None = None) -> int:
    """Run an echo server until interrupted."""
    parser = argparse.ArgumentParser(description="TCP echo server.")
    parser.add_argument("--ip", default="127.0.0.1", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    parser.add_argument("--threads", type=int, default=3, help="number of I/O threads")
    args = parser.parse_args(argv)
    with EventLoop() as loop:
        server = EchoServer(loop, InetAddress(args.port, args.ip), "EchoServer", args.threads)
        server.start()
        try:
            loop.loop()
        except KeyboardInterrupt:
            pass
        finally:
            server.server.close()
    return 0