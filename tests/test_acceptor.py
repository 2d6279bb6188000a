import socket
import threading

import pytest

from reactornet.acceptor import Acceptor
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress


@pytest.fixture
def loop():
    lp = EventLoop()
    yield lp
    lp.close()


def run_with_client(loop, client):
    result = {}

    def worker():
        try:
            result["value"] = client()
        except BaseException as exc:
            result["error"] = exc
        finally:
            loop.quit()

    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    loop.loop()
    thread.join(5)
    if "error" in result:
        raise result["error"]
    return result["value"]


@pytest.mark.parametrize("reuse_port", [True, False])
def test_listen_marks_acceptor_listening(loop, reuse_port):
    acceptor = Acceptor(loop, InetAddress(0), reuse_port)
    try:
        assert not acceptor.listening
        acceptor.listen()
        assert acceptor.listening
        assert acceptor.address().to_ip() == "127.0.0.1"
        assert acceptor.address().to_port() > 0
    finally:
        acceptor.close()


def test_new_connection_callback_gets_socket_and_peer(loop):
    acceptor = Acceptor(loop, InetAddress(0), True)
    accepted = []
    got = threading.Event()

    def on_new(sock, peer):
        accepted.append((sock.getpeername(), peer))
        sock.close()
        got.set()

    acceptor.new_connection_callback = on_new
    acceptor.listen()
    port = acceptor.address().to_port()

    def client():
        with socket.create_connection(("127.0.0.1", port), timeout=5) as s:
            local = s.getsockname()
            return local, got.wait(5)

    try:
        local, ok = run_with_client(loop, client)
    finally:
        acceptor.close()
    assert ok
    peername, peer = accepted[0]
    assert peer.to_ip_port() == f"{local[0]}:{local[1]}"
    assert peername == local


def test_without_callback_connection_is_closed(loop):
    acceptor = Acceptor(loop, InetAddress(0), True)
    acceptor.listen()
    port = acceptor.address().to_port()

    def client():
        with socket.create_connection(("127.0.0.1", port), timeout=5) as s:
            return s.recv(1)

    try:
        assert run_with_client(loop, client) == b""
    finally:
        acceptor.close()


def test_close_stops_accepting(loop):
    acceptor = Acceptor(loop, InetAddress(0), True)
    acceptor.listen()
    port = acceptor.address().to_port()
    acceptor.close()
    assert not acceptor.listening
    assert not loop.has_channel(acceptor._channel)
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection(("127.0.0.1", port), timeout=5)