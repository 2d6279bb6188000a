"""Binding of a descriptor to the events it is watched for and their handlers."""

from __future__ import annotations

import enum
import weakref
from typing import Any, Callable

from reactornet.logger import log_info
from reactornet.timestamp import Timestamp


class Event(enum.IntFlag):
    """Readiness bits, with the same values as the epoll flags."""

    NONE = 0
    IN = 0x001
    PRI = 0x002
    OUT = 0x004
    ERR = 0x008
    HUP = 0x010
    READ = IN | PRI
    WRITE = OUT


class Channel:
    """Watches one descriptor in a loop and dispatches its ready events.

    ``fd`` is an integer descriptor or an object with ``fileno()``.
    ``revents`` holds the events the poller last reported.
    """

    def __init__(self, loop: Any, fd: Any) -> None:
        self.loop = loop
        self.fd = fd
        self.events = Event.NONE
        self.revents = Event.NONE
        self.index = -1
        self.read_callback: Callable[[Timestamp], None] | None = None
        self.write_callback: Callable[[], None] | None = None
        self.close_callback: Callable[[], None] | None = None
        self.error_callback: Callable[[], None] | None = None
        self._tie: weakref.ref | None = None

    def tie(self, obj: Any) -> None:
        """Only dispatch events while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def handle_event(self, receive_time: Timestamp) -> None:
        if self._tie is None:
            self._dispatch(receive_time)
            return
        guard = self._tie()
        if guard is not None:
            self._dispatch(receive_time)

    def _dispatch(self, receive_time: Timestamp) -> None:
        revents = self.revents
        if revents & Event.HUP and not revents & Event.IN:
            log_info("handle_close\n")
            if self.close_callback:
                self.close_callback()
        elif revents & Event.ERR:
            log_info("handle_error\n")
            if self.error_callback:
                self.error_callback()
        elif revents & Event.READ:
            log_info("handle_read\n")
            if self.read_callback:
                self.read_callback(receive_time)
        elif revents & Event.OUT:
            log_info("handle_write\n")
            if self.write_callback:
                self.write_callback()

    def _update(self) -> None:
        self.loop.update_channel(self)

    def enable_reading(self) -> None:
        self.events |= Event.READ
        log_info("enableReading\n")
        self._update()

    def disable_reading(self) -> None:
        self.events &= ~Event.READ
        self._update()

    def enable_writing(self) -> None:
        self.events |= Event.WRITE
        self._update()

    def disable_writing(self) -> None:
        self.events &= ~Event.WRITE
        self._update()

    def disable_all(self) -> None:
        self.events = Event.NONE
        self._update()

    def is_none_event(self) -> bool:
        return self.events == Event.NONE

    def is_reading(self) -> bool:
        return bool(self.events & Event.READ)

    def is_writing(self) -> bool:
        return bool(self.events & Event.WRITE)

    def remove(self) -> None:
        """Stop watching this channel in its loop."""
        self.loop.remove_channel(self)