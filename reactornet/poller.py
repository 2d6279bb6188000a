"""Readiness pollers that map ready descriptors back to their channels."""

from __future__ import annotations

import abc
import enum
import selectors
from typing import Any

from reactornet.channel import Channel, Event
from reactornet.logger import log_info
from reactornet.timestamp import Timestamp


class ChannelState(enum.IntEnum):
    """Where a channel stands with respect to a poller."""

    NEW = -1
    ADDED = 1
    DELETED = 2


def _fileno(channel: Channel) -> int:
    fd = channel.fd
    return fd if isinstance(fd, int) else fd.fileno()


class Poller(abc.ABC):
    """Watches the descriptors of channels and reports the ready ones."""

    def __init__(self, loop: Any) -> None:
        self.loop = loop
        self.channels: dict[int, Channel] = {}

    @abc.abstractmethod
    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        """Wait up to ``timeout_ms`` (negative: forever); return time and ready channels."""

    @abc.abstractmethod
    def update_channel(self, channel: Channel) -> None:
        """Start, change or stop watching ``channel`` according to its events."""

    @abc.abstractmethod
    def remove_channel(self, channel: Channel) -> None:
        """Forget ``channel`` entirely."""

    def has_channel(self, channel: Channel) -> bool:
        """Whether this poller holds exactly ``channel`` for its descriptor."""
        return self.channels.get(self._key_for(channel)) is channel

    def close(self) -> None:
        self.channels.clear()

    def _key_for(self, channel: Channel) -> int:
        fd = _fileno(channel)
        if fd >= 0:
            return fd
        # The descriptor was closed; find the key it was registered under.
        return next((key for key, value in self.channels.items() if value is channel), fd)


class SelectorPoller(Poller):
    """Poller built on the platform's best ``selectors`` implementation."""

    def __init__(self, loop: Any) -> None:
        super().__init__(loop)
        self._selector = selectors.DefaultSelector()

    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        timeout = None if timeout_ms < 0 else timeout_ms / 1000
        ready = self._selector.select(timeout)
        now = Timestamp.now()
        if not ready:
            log_info("Time_Out!\n")
            return now, []
        log_info("poller got %d events\n", len(ready))
        active = []
        for key, mask in ready:
            channel = key.data
            revents = Event.NONE
            if mask & selectors.EVENT_READ:
                revents |= Event.IN
            if mask & selectors.EVENT_WRITE:
                revents |= Event.OUT
            channel.revents = revents
            active.append(channel)
        return now, active

    def update_channel(self, channel: Channel) -> None:
        fd = self._key_for(channel)
        if channel.index in (ChannelState.NEW, ChannelState.DELETED):
            self.channels[fd] = channel
            self._apply(fd, channel)
            channel.index = ChannelState.ADDED
            log_info("Poller::updateChannel %d Add\n", fd)
        elif channel.is_none_event():
            channel.index = ChannelState.DELETED
            self._apply(fd, channel)
            log_info("Poller::updateChannel %d DEL\n", fd)
        else:
            self._apply(fd, channel)
            log_info("Poller::updateChannel %d MOD\n", fd)

    def remove_channel(self, channel: Channel) -> None:
        fd = self._key_for(channel)
        if channel.index == ChannelState.ADDED and self._registered(fd):
            self._selector.unregister(fd)
        channel.index = ChannelState.NEW
        if self.channels.get(fd) is channel:
            del self.channels[fd]

    def close(self) -> None:
        self._selector.close()
        super().close()

    def _registered(self, fd: int) -> bool:
        try:
            self._selector.get_key(fd)
        except (KeyError, ValueError):
            return False
        return True

    def _apply(self, fd: int, channel: Channel) -> None:
        mask = 0
        if channel.events & Event.READ:
            mask |= selectors.EVENT_READ
        if channel.events & Event.WRITE:
            mask |= selectors.EVENT_WRITE
        registered = self._registered(fd)
        if mask == 0:
            if registered:
                self._selector.unregister(fd)
        elif registered:
            self._selector.modify(fd, mask, channel)
        else:
            self._selector.register(fd, mask, channel)


def new_default_poller(loop: Any) -> Poller:
    """Return the poller used by event loops."""
    return SelectorPoller(loop)