"""One-loop-per-thread reactor: polls channels and runs queued callbacks."""

from __future__ import annotations

import socket
import threading
from typing import Callable

from reactornet.channel import Channel
from reactornet.logger import FatalError, Logger, LogLevel, log_fatal, log_info
from reactornet.poller import new_default_poller
from reactornet.timestamp import Timestamp

POLL_TIMEOUT_MS = 10000

_local = threading.local()


def current_thread_id() -> int:
    """Identifier of the calling thread."""
    return threading.get_ident()


class LoopExistsError(FatalError):
    """Raised when a second event loop is created in the same thread."""


class EventLoop:
    """Event loop bound to the thread that creates it."""

    def __init__(self) -> None:
        if getattr(_local, "loop", None) is not None:
            Logger.get_instance().log(LogLevel.FATAL, "Exist Loop!\n")
            raise LoopExistsError("an event loop already exists in this thread")
        self._looping = False
        self._quitting = False
        self._closed = False
        self._poller = new_default_poller(self)
        self._poll_return_time = Timestamp()
        self._thread_id = current_thread_id()
        self._calling_pending = False
        self._pending: list[Callable[[], None]] = []
        self._lock = threading.Lock()
        try:
            self._wake_reader, self._wake_writer = socket.socketpair()
        except OSError:
            self._poller.close()
            log_fatal("EventFd Fail!\n")
        self._wake_reader.setblocking(False)
        self._wake_writer.setblocking(False)
        self._wake_channel = Channel(self, self._wake_reader)
        self._wake_channel.read_callback = self._handle_wakeup
        _local.loop = self
        self._wake_channel.enable_reading()

    def __copy__(self):
        raise TypeError("EventLoop cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("EventLoop cannot be copied")

    def loop(self) -> None:
        """Poll and dispatch until ``quit`` is called."""
        self._looping = True
        try:
            while not self._quitting:
                self._poll_return_time, active = self._poller.poll(POLL_TIMEOUT_MS)
                for channel in active:
                    channel.handle_event(self._poll_return_time)
                self._do_pending()
        finally:
            self._looping = False

    def quit(self) -> None:
        """Ask the loop to stop after its current iteration."""
        self._quitting = True
        if not self.is_in_loop_thread():
            self.wakeup()

    def poll_return_time(self) -> Timestamp:
        return self._poll_return_time

    def run_in_loop(self, callback: Callable[[], None]) -> None:
        """Run now if called from the loop thread, otherwise queue it."""
        if self.is_in_loop_thread():
            callback()
        else:
            self.queue_in_loop(callback)

    def queue_in_loop(self, callback: Callable[[], None]) -> None:
        """Queue ``callback`` to run in the loop thread after the next poll."""
        with self._lock:
            self._pending.append(callback)
        if not self.is_in_loop_thread() or self._calling_pending:
            self.wakeup()

    def wakeup(self) -> None:
        """Interrupt a blocking poll."""
        if self._closed:
            return
        try:
            self._wake_writer.send(b"\x01")
        except BlockingIOError:
            pass  # a wakeup is already pending
        except OSError:
            if self._closed:
                return
            log_fatal("Unable to Write!\n")

    def update_channel(self, channel: Channel) -> None:
        log_info("EventLoop::updateChannel\n")
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def is_in_loop_thread(self) -> bool:
        return self._thread_id == current_thread_id()

    def close(self) -> None:
        """Release the loop's resources; call from its own thread."""
        if self._closed:
            return
        self._wake_channel.disable_all()
        self._wake_channel.remove()
        self._quitting = True
        self._closed = True
        self._wake_reader.close()
        self._wake_writer.close()
        self._poller.close()
        if getattr(_local, "loop", None) is self:
            _local.loop = None

    def __enter__(self) -> EventLoop:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _handle_wakeup(self, receive_time: Timestamp) -> None:
        chunk_size = 4096
        first = True
        while True:
            try:
                chunk = self._wake_reader.recv(chunk_size)
            except BlockingIOError:
                break
            if not chunk:
                if first:
                    log_fatal("Unable to Read!\n")
                break
            first = False
            if len(chunk) < chunk_size:
                break
        log_info("Success Wakeup!\n")

    def _do_pending(self) -> None:
        self._calling_pending = True
        try:
            with self._lock:
                pending, self._pending = self._pending, []
            for callback in pending:
                callback()
        finally:
            self._calling_pending = False