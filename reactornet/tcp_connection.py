"""One established TCP connection served by an event loop."""

from __future__ import annotations

import enum
import errno
import functools
import os
import socket
from typing import Any, Callable

from reactornet.buffer import Buffer
from reactornet.channel import Channel
from reactornet.inet_address import InetAddress
from reactornet.logger import log_error, log_info
from reactornet.net_socket import Socket
from reactornet.timestamp import Timestamp

ConnectionCallback = Callable[["TcpConnection"], None]
CloseCallback = Callable[["TcpConnection"], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
HighWaterMarkCallback = Callable[["TcpConnection", int], None]
MessageCallback = Callable[["TcpConnection", Buffer, Timestamp], None]

DEFAULT_HIGH_WATER_MARK = 64 * 1024 * 1024
_FAULT_ERRNOS = (errno.EPIPE, errno.ECONNRESET)


class ConnectionState(enum.Enum):
    DISCONNECTED = 0
    CONNECTING = 1
    CONNECTED = 2
    DISCONNECTING = 3


class TcpConnection:
    """A connected socket with input and output buffers and user callbacks."""

    def __init__(
        self,
        loop: Any,
        name: str,
        sock: socket.socket,
        local_addr: InetAddress,
        peer_addr: InetAddress,
    ) -> None:
        self.loop = loop
        self.name = name
        self.state = ConnectionState.CONNECTING
        self.reading = True
        self.socket = Socket(sock)
        self.channel = Channel(loop, sock)
        self.local_addr = local_addr
        self.peer_addr = peer_addr
        self.connection_callback: ConnectionCallback | None = None
        self.message_callback: MessageCallback | None = None
        self.write_complete_callback: WriteCompleteCallback | None = None
        self.high_water_mark_callback: HighWaterMarkCallback | None = None
        self.close_callback: CloseCallback | None = None
        self.high_water_mark = DEFAULT_HIGH_WATER_MARK
        self.input_buffer = Buffer()
        self.output_buffer = Buffer()

        self.socket.set_keep_alive(True)
        self.channel.read_callback = self._handle_read
        self.channel.write_callback = self._handle_write
        self.channel.close_callback = self._handle_close
        self.channel.error_callback = self._handle_error

    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    def set_high_water_mark_callback(
        self, callback: HighWaterMarkCallback, high_water_mark: int
    ) -> None:
        """Call ``callback`` when queued output first reaches ``high_water_mark`` bytes."""
        self.high_water_mark_callback = callback
        self.high_water_mark = high_water_mark

    def send(self, data: bytes | bytearray | memoryview | str) -> None:
        """Send data; strings are encoded as UTF-8. Ignored unless connected."""
        if not self.connected():
            return
        payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if self.loop.is_in_loop_thread():
            self._send_in_loop(payload)
        else:
            self.loop.queue_in_loop(functools.partial(self._send_in_loop, payload))

    def send_file(self, file: Any, offset: int, count: int) -> None:
        """Send ``count`` bytes of ``file`` (descriptor or file object) from ``offset``."""
        if not self.connected():
            return
        fd = file if isinstance(file, int) else file.fileno()
        if self.loop.is_in_loop_thread():
            self._send_file_in_loop(fd, offset, count)
        else:
            self.loop.queue_in_loop(functools.partial(self._send_file_in_loop, fd, offset, count))

    def shutdown(self) -> None:
        """Close the writing half once all queued output is sent."""
        if self.connected():
            self.state = ConnectionState.DISCONNECTING
            self.loop.run_in_loop(self._shutdown_in_loop)

    def connect_established(self) -> None:
        """Start serving the connection; called once in its loop."""
        self.state = ConnectionState.CONNECTED
        self.channel.tie(self)
        self.channel.enable_reading()
        log_info("New Connection Established\n")
        if self.connection_callback:
            self.connection_callback(self)

    def connect_destroyed(self) -> None:
        """Stop serving the connection and close its socket."""
        if self.state == ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCONNECTED
            self.channel.disable_all()
            if self.connection_callback:
                self.connection_callback(self)
        self.channel.remove()
        self.socket.close()

    def _send_in_loop(self, data: bytes) -> None:
        log_info("SendInLoop\n")
        if self.state == ConnectionState.DISCONNECTED:
            log_error("disconnected, give up writing\n")
            return
        if self.state == ConnectionState.DISCONNECTING:
            log_error("Connection has been closed\n")
        sent = 0
        remaining = len(data)
        fault = False
        if not self.channel.is_writing() and self.output_buffer.readable_bytes() == 0:
            try:
                sent = self.socket.sock.send(data)
            except BlockingIOError:
                sent = 0
            except OSError as exc:
                sent = 0
                log_error("TcpConnection::sendInLoop\n")
                fault = exc.errno in _FAULT_ERRNOS
            else:
                log_info("Success Send %d Bytes\n", sent)
                remaining = len(data) - sent
                if remaining == 0 and self.write_complete_callback:
                    self.loop.queue_in_loop(functools.partial(self.write_complete_callback, self))
        if fault or remaining <= 0:
            return
        old_len = self.output_buffer.readable_bytes()
        if (
            old_len + remaining >= self.high_water_mark
            and old_len < self.high_water_mark
            and self.high_water_mark_callback
        ):
            self.loop.queue_in_loop(
                functools.partial(self.high_water_mark_callback, self, old_len + remaining)
            )
        self.output_buffer.append(data[sent:])
        if not self.channel.is_writing():
            self.channel.enable_writing()

    def _send_file_in_loop(self, fd: int, offset: int, count: int) -> None:
        if self.state == ConnectionState.DISCONNECTING:
            log_error("Disconnected!\n")
            return
        if self.state == ConnectionState.DISCONNECTED:
            return
        sent = 0
        remaining = count
        fault = False
        if not self.channel.is_writing() and self.output_buffer.readable_bytes() == 0:
            try:
                sent = self._sendfile(fd, offset, count)
            except BlockingIOError:
                sent = 0
            except OSError as exc:
                log_error("TcpConnection::sendFileInLoop\n")
                fault = exc.errno in _FAULT_ERRNOS
            else:
                if sent == 0 and count > 0:
                    log_error("TcpConnection::sendFileInLoop reached end of file\n")
                    return
                remaining -= sent
                if remaining == 0 and self.write_complete_callback:
                    self.loop.queue_in_loop(functools.partial(self.write_complete_callback, self))
        if not fault and remaining > 0:
            self.loop.queue_in_loop(
                functools.partial(self._send_file_in_loop, fd, offset + sent, remaining)
            )

    def _sendfile(self, fd: int, offset: int, count: int) -> int:
        out_fd = self.socket.fileno()
        if hasattr(os, "sendfile"):
            return os.sendfile(out_fd, fd, offset, count)
        return self.socket.sock.send(os.pread(fd, count, offset))

    def _shutdown_in_loop(self) -> None:
        if not self.channel.is_writing():
            self.socket.shutdown_write()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            size = self.input_buffer.read_fd(self.socket.sock)
        except BlockingIOError:
            return
        except OSError:
            log_error("handleread Error!\n")
            self._handle_error()
            return
        if size > 0:
            if self.message_callback:
                self.message_callback(self, self.input_buffer, receive_time)
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self.channel.is_writing():
            return
        try:
            written = self.output_buffer.write_fd(self.socket.sock)
        except BlockingIOError:
            return
        except OSError:
            log_error("TcpConnection::handleWrite\n")
            return
        if written <= 0:
            return
        self.output_buffer.retrieve(written)
        if self.output_buffer.readable_bytes() == 0:
            self.channel.disable_writing()
            if self.write_complete_callback:
                self.loop.queue_in_loop(functools.partial(self.write_complete_callback, self))
            if self.state == ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        log_info("handleclose()\n")
        self.state = ConnectionState.DISCONNECTED
        self.channel.disable_all()
        if self.connection_callback:
            self.connection_callback(self)
        if self.close_callback:
            self.close_callback(self)

    def _handle_error(self) -> None:
        try:
            err = self.socket.sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            err = exc.errno or 0
        log_error("TcpConnection::handleError name:%s - SO_ERROR:%d\n", self.name, err)