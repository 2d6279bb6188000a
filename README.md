# reactornet

A small reactor-pattern TCP server library. A base `EventLoop` accepts
connections and hands each one, in turn, to one of several worker loops that
each run in their own thread. Every loop waits on its sockets through a
`selectors`-based poller (`SelectorPoller`) and runs the callbacks you
register. It has no dependencies outside the standard library.

## Install

```
pip install .
```

Use `pip install .[test]` to get pytest as well.

## Echo server

The package ships an echo server that sends back every byte it receives:

```
reactornet-echo
```

Options:

- `--ip` address to listen on (default `127.0.0.1`)
- `--port` port to listen on (default `8080`)
- `--threads` number of worker loop threads (default `3`)

It runs until interrupted with Ctrl-C, then closes its connections and stops
its worker threads. The same server is available in code as
`reactornet.echo_server.EchoServer(loop, addr, name, thread_num=3)`.

## Writing a server

```python
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.tcp_server import TcpServer


def on_connection(conn):
    print("up" if conn.connected() else "down", conn.peer_addr.to_ip_port())


def on_message(conn, buffer, receive_time):
    conn.send(buffer.retrieve_all_as_bytes())


with EventLoop() as loop:
    server = TcpServer(loop, InetAddress(9000, "127.0.0.1"), "MyServer")
    server.connection_callback = on_connection
    server.message_callback = on_message
    server.set_thread_num(2)
    server.start()
    try:
        loop.loop()
    finally:
        server.close()
```

`TcpServer` also takes a `write_complete_callback` and a
`thread_init_callback`, and `address()` returns the address it is bound to
(useful when listening on port 0). The `option` argument
(`ServerOption.REUSE_PORT` by default, or `ServerOption.NO_REUSE_PORT`)
controls `SO_REUSEPORT` on the listening socket.

## Building blocks

- `reactornet.buffer.Buffer`: a growable byte buffer with 8 bytes reserved
  at the front. `append` takes bytes or text; `peek`, `retrieve`,
  `retrieve_all`, `retrieve_as_bytes`, `retrieve_all_as_bytes`,
  `retrieve_as_string` and `retrieve_all_as_string` read from it.
- `reactornet.inet_address.InetAddress`: an IPv4 address and port, with
  `to_ip`, `to_port`, `to_ip_port`, `sockaddr` and `from_sockaddr`. An
  address that cannot be parsed becomes `0.0.0.0`.
- `reactornet.net_socket.Socket`: owns a socket and sets its options;
  `create_nonblocking()` makes a non-blocking TCP socket.
- `reactornet.channel.Channel`: the events a loop watches for one descriptor
  (`Event.READ`, `Event.WRITE`) and the callbacks that handle them.
- `reactornet.poller.SelectorPoller`: maps ready descriptors back to their
  channels; `new_default_poller(loop)` returns one.
- `reactornet.event_loop.EventLoop`: one loop per thread (a second one in
  the same thread raises `LoopExistsError`). Use `run_in_loop` and
  `queue_in_loop` to hand work to it from other threads, and `quit` to stop
  it. It is a context manager that closes itself on exit.
- `reactornet.loop_thread`: `Thread`, `EventLoopThread` (a loop running in
  its own thread) and `EventLoopThreadPool`, which hands out loops in
  round-robin order, or the base loop when it has no threads.
- `reactornet.acceptor.Acceptor`: the listening socket; it passes each
  accepted socket to `new_connection_callback`.
- `reactornet.tcp_connection.TcpConnection`: one accepted connection, with
  `send`, `send_file`, `shutdown` and `set_high_water_mark_callback`.
- `reactornet.logger`: the `Logger` singleton and `log_info`, `log_error`,
  `log_debug` and `log_fatal`, which take printf-style messages and write
  timestamped lines to standard output. `log_fatal` raises `FatalError`.
- `reactornet.timestamp.Timestamp`: whole seconds since the epoch, formatted
  as local time `YYYY/MM/DD HH:MM:SS`.

## What it does not do

- There is no client side: the package accepts connections but has no way
  to open outgoing ones.
- Only IPv4 is supported.
- There are no timers; the only scheduling is `run_in_loop` and
  `queue_in_loop`.
- The logger always writes every level, at INFO detail, to its stream; there
  is no level filter.