"""Reactor-pattern TCP networking: event loops, buffers, connections, servers and an echo server."""

__version__ = "0.1.0"