"""Threads that each own an event loop, and a round-robin pool of them."""

from __future__ import annotations

import itertools
import threading
from typing import Callable

from reactornet.event_loop import EventLoop, current_thread_id
from reactornet.logger import log_error

InitCallback = Callable[[EventLoop], None]


class Thread:
    """Named worker thread whose id is known once ``start`` returns."""

    _counter = itertools.count(1)
    _counter_lock = threading.Lock()

    def __init__(self, func: Callable[[], None], name: str = "") -> None:
        with Thread._counter_lock:
            number = next(Thread._counter)
        self.func = func
        self.name = name or f"Thread{number}"
        self.started = False
        self.joined = False
        self.tid = 0
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start the thread and wait until it has recorded its id."""
        if self.started:
            raise RuntimeError("thread already started")
        self.started = True
        ready = threading.Event()

        def run() -> None:
            self.tid = current_thread_id()
            ready.set()
            self.func()

        self._thread = threading.Thread(target=run, name=self.name, daemon=True)
        self._thread.start()
        ready.wait()

    def join(self) -> None:
        if self._thread is None:
            raise RuntimeError("thread not started")
        self.joined = True
        self._thread.join()


class EventLoopThread:
    """Runs an event loop in its own thread."""

    def __init__(self, init_callback: InitCallback | None = None, name: str = "") -> None:
        self._callback = init_callback
        self._loop: EventLoop | None = None
        self._error: BaseException | None = None
        self._finished = False
        self.exiting = False
        self._cond = threading.Condition()
        self.thread = Thread(self._thread_func, name)

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once it is ready."""
        self.thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._loop is not None or self._finished)
            if self._error is not None:
                raise self._error
            if self._loop is None:
                raise RuntimeError("event loop thread exited before starting")
            return self._loop

    def stop(self) -> None:
        """Quit the loop and wait for the thread to finish."""
        self.exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            loop.quit()
        if self.thread.started and not self.thread.joined:
            self.thread.join()

    def _thread_func(self) -> None:
        try:
            loop = EventLoop()
        except BaseException as exc:
            with self._cond:
                self._error = exc
                self._finished = True
                self._cond.notify_all()
            return
        try:
            if self._callback:
                self._callback(loop)
            with self._cond:
                self._loop = loop
                self._cond.notify_all()
            loop.loop()
        except Exception as exc:
            log_error("event loop thread %s failed: %s\n", self.thread.name, exc)
            with self._cond:
                self._error = exc
        finally:
            with self._cond:
                self._loop = None
                self._finished = True
                self._cond.notify_all()
            loop.close()


class EventLoopThreadPool:
    """A base loop plus ``thread_num`` loop threads, handed out in turn."""

    def __init__(self, base_loop: EventLoop, name: str = "") -> None:
        self.base_loop = base_loop
        self.name = name
        self.started = False
        self.thread_num = 0
        self._next = 0
        self._threads: list[EventLoopThread] = []
        self._loops: list[EventLoop] = []

    def start(self, init_callback: InitCallback | None = None) -> None:
        """Start the threads; with none, run the callback on the base loop."""
        self.started = True
        for i in range(self.thread_num):
            worker = EventLoopThread(init_callback, f"{self.name}{i}")
            self._threads.append(worker)
            self._loops.append(worker.start_loop())
        if self.thread_num == 0 and init_callback:
            init_callback(self.base_loop)

    def get_next_loop(self) -> EventLoop:
        """Return the next loop in round-robin order, or the base loop."""
        if not self._loops:
            return self.base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_all_loops(self) -> list[EventLoop]:
        return list(self._loops) if self._loops else [self.base_loop]

    def stop(self) -> None:
        """Stop every loop thread."""
        for worker in self._threads:
            worker.stop()
        self._threads.clear()
        self._loops.clear()
        self._next = 0