import socket

import pytest

from reactornet.buffer import Buffer


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_new_buffer_regions():
    buf = Buffer()
    assert buf.readable_bytes() == 0
    assert buf.writable_bytes() == Buffer.INITIAL_SIZE
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND


def test_append_and_peek():
    buf = Buffer()
    buf.append(b"hello")
    assert buf.peek() == b"hello"
    assert buf.readable_bytes() == len(b"hello")
    assert buf.writable_bytes() == Buffer.INITIAL_SIZE - len(b"hello")


def test_append_str_is_utf8():
    buf = Buffer()
    buf.append("héllo")
    assert buf.peek() == "héllo".encode("utf-8")


def test_partial_retrieve():
    buf = Buffer()
    buf.append(b"abcdef")
    buf.retrieve(2)
    assert buf.peek() == b"cdef"
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND + 2


def test_retrieve_beyond_readable_resets():
    buf = Buffer()
    buf.append(b"abc")
    buf.retrieve(100)
    assert buf.readable_bytes() == 0
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND


def test_retrieve_as_bytes_prefix():
    buf = Buffer()
    buf.append(b"abcdef")
    assert buf.retrieve_as_bytes(3) == b"abc"
    assert buf.retrieve_all_as_bytes() == b"def"
    assert len(buf) == 0


def test_retrieve_all_as_string_round_trip():
    buf = Buffer()
    buf.append("hello world")
    assert buf.retrieve_all_as_string() == "hello world"
    assert buf.readable_bytes() == 0


def test_retrieve_as_string_longer_than_readable():
    buf = Buffer()
    buf.append(b"xy")
    assert buf.retrieve_as_string(10) == "xy"
    assert buf.readable_bytes() == 0


def test_negative_retrieve_rejected():
    buf = Buffer()
    with pytest.raises(ValueError):
        buf.retrieve(-1)


def test_grows_beyond_initial_size():
    buf = Buffer(16)
    data = bytes(range(256)) * 8
    buf.append(data)
    assert buf.peek() == data
    assert buf.readable_bytes() == len(data)


def test_compacts_instead_of_growing():
    buf = Buffer(16)
    buf.append(b"0123456789ab")
    buf.retrieve(10)
    buf.append(b"ABCDEFGHIJ")
    assert buf.prependable_bytes() == Buffer.CHEAP_PREPEND
    assert buf.peek() == b"abABCDEFGHIJ"


@pytest.mark.parametrize("size", [0, 10, 5000])
def test_ensure_writable_bytes(size):
    buf = Buffer(16)
    buf.append(b"data")
    buf.ensure_writable_bytes(size)
    assert buf.writable_bytes() >= size
    assert buf.peek() == b"data"


def test_read_fd(pair):
    a, b = pair
    a.sendall(b"ping")
    buf = Buffer()
    assert buf.read_fd(b) == len(b"ping")
    assert buf.peek() == b"ping"


def test_read_fd_larger_than_writable(pair):
    a, b = pair
    payload = b"z" * 100
    a.sendall(payload)
    buf = Buffer(16)
    assert buf.read_fd(b) == len(payload)
    assert buf.peek() == payload


def test_read_fd_peer_closed(pair):
    a, b = pair
    a.close()
    buf = Buffer()
    assert buf.read_fd(b) == 0
    assert buf.readable_bytes() == 0


def test_write_fd_does_not_consume(pair):
    a, b = pair
    buf = Buffer()
    buf.append(b"pong")
    sent = buf.write_fd(a)
    assert sent == len(b"pong")
    assert b.recv(16) == b"pong"
    assert buf.peek() == b"pong"