import pytest

from reactornet.inet_address import InetAddress


def test_default_address():
    addr = InetAddress()
    assert addr.to_ip() == "127.0.0.1"
    assert addr.to_port() == 0


def test_to_ip_port():
    assert InetAddress(8080).to_ip_port() == "127.0.0.1:8080"


def test_sockaddr_tuple():
    assert InetAddress(9000, "10.0.0.1").sockaddr() == ("10.0.0.1", 9000)


def test_from_sockaddr_round_trip():
    addr = InetAddress(9000, "10.0.0.1")
    assert InetAddress.from_sockaddr(addr.sockaddr()) == addr


def test_from_sockaddr_accepts_longer_tuples():
    addr = InetAddress.from_sockaddr(("192.168.1.2", 4321, 0, 0))
    assert addr.to_ip() == "192.168.1.2"
    assert addr.to_port() == 4321


def test_invalid_ip_becomes_any():
    assert InetAddress(80, "not-an-ip").to_ip() == "0.0.0.0"


@pytest.mark.parametrize("port", [0, 1, 65535])
def test_port_bounds_round_trip(port):
    assert InetAddress(port).to_port() == port


@pytest.mark.parametrize("port", [-1, 65536])
def test_port_out_of_range(port):
    with pytest.raises(ValueError):
        InetAddress(port)