"""IPv4 address and port pairs."""

from __future__ import annotations

import operator
import socket
from dataclasses import dataclass


@dataclass(frozen=True)
class InetAddress:
    """An IPv4 address with a port; an unparsable address becomes 0.0.0.0."""

    port: int = 0
    ip: str = "127.0.0.1"

    def __post_init__(self) -> None:
        port = operator.index(self.port)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        try:
            packed = socket.inet_pton(socket.AF_INET, self.ip)
        except (OSError, TypeError):
            packed = bytes(4)
        object.__setattr__(self, "port", port)
        object.__setattr__(self, "ip", socket.inet_ntop(socket.AF_INET, packed))

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> InetAddress:
        """Build from a ``(host, port)`` tuple as returned by the socket module."""
        host, port = sockaddr[:2]
        return cls(port, host)

    def to_ip(self) -> str:
        return self.ip

    def to_port(self) -> int:
        return self.port

    def to_ip_port(self) -> str:
        return f"{self.ip}:{self.port}"

    def sockaddr(self) -> tuple[str, int]:
        """Return the ``(host, port)`` tuple the socket module expects."""
        return (self.ip, self.port)