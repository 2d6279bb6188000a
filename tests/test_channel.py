import gc

import pytest

from reactornet.channel import Channel, Event
from reactornet.timestamp import Timestamp


class FakeLoop:
    def __init__(self):
        self.updated = []
        self.removed = []

    def update_channel(self, channel):
        self.updated.append(channel.events)

    def remove_channel(self, channel):
        self.removed.append(channel)


class Owner:
    pass


def make_channel():
    loop = FakeLoop()
    channel = Channel(loop, 5)
    calls = []
    channel.read_callback = lambda t: calls.append(("read", t))
    channel.write_callback = lambda: calls.append(("write", None))
    channel.close_callback = lambda: calls.append(("close", None))
    channel.error_callback = lambda: calls.append(("error", None))
    return loop, channel, calls


def test_new_channel_state():
    channel = Channel(FakeLoop(), 7)
    assert channel.events == Event.NONE
    assert channel.index == -1
    assert channel.is_none_event() is True
    assert channel.fd == 7


def test_enable_and_disable_reading():
    loop, channel, _ = make_channel()
    channel.enable_reading()
    assert channel.is_reading() is True
    assert loop.updated == [Event.READ]
    channel.disable_reading()
    assert channel.is_reading() is False
    assert loop.updated[-1] == Event.NONE


def test_enable_and_disable_writing():
    loop, channel, _ = make_channel()
    channel.enable_reading()
    channel.enable_writing()
    assert channel.is_writing() is True
    assert channel.events == Event.READ | Event.WRITE
    channel.disable_writing()
    assert channel.is_writing() is False
    assert channel.is_reading() is True
    assert len(loop.updated) == 3


def test_disable_all():
    loop, channel, _ = make_channel()
    channel.enable_reading()
    channel.enable_writing()
    channel.disable_all()
    assert channel.is_none_event() is True
    assert loop.updated[-1] == Event.NONE


def test_remove_delegates_to_loop():
    loop, channel, _ = make_channel()
    channel.remove()
    assert loop.removed == [channel]


@pytest.mark.parametrize(
    "revents, expected",
    [
        (Event.HUP, "close"),
        (Event.HUP | Event.IN, "read"),
        (Event.ERR, "error"),
        (Event.ERR | Event.IN, "error"),
        (Event.IN, "read"),
        (Event.PRI, "read"),
        (Event.OUT, "write"),
        (Event.IN | Event.OUT, "read"),
    ],
)
def test_dispatch(revents, expected):
    _, channel, calls = make_channel()
    channel.revents = revents
    channel.handle_event(Timestamp(42))
    assert [name for name, _ in calls] == [expected]


def test_read_receives_time():
    _, channel, calls = make_channel()
    channel.revents = Event.IN
    stamp = Timestamp(99)
    channel.handle_event(stamp)
    assert calls == [("read", stamp)]


def test_no_events_no_dispatch():
    _, channel, calls = make_channel()
    channel.handle_event(Timestamp(1))
    assert calls == []


def test_tied_owner_alive_dispatches():
    _, channel, calls = make_channel()
    owner = Owner()
    channel.tie(owner)
    channel.revents = Event.OUT
    channel.handle_event(Timestamp(1))
    assert calls == [("write", None)]


def test_tied_owner_gone_skips_dispatch():
    _, channel, calls = make_channel()
    owner = Owner()
    channel.tie(owner)
    del owner
    gc.collect()
    channel.revents = Event.IN
    channel.handle_event(Timestamp(1))
    assert calls == []