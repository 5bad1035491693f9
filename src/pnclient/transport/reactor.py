"""Reactor frontend built on a ZeroMQ poller.

A :class:`Reactor` runs a single background thread that polls watched
sockets (ZeroMQ sockets or plain file descriptors), fires timers, and runs
callables handed to it from other threads. :class:`ReactorFrontend` uses it
to drive request cycles: HTTP requests are executed by a small worker pool,
their outcomes are posted back to the reactor thread, and every completion
callback is invoked on that thread.
"""

from __future__ import annotations

import concurrent.futures
import heapq
import itertools
import queue
import sys
import threading
import time
import traceback
from typing import Callable, Optional

import httpx
import zmq

from ..result import Code
from . import http
from .base import Failure, Frontend, Sleep


zmq_context: Optional[zmq.Context] = None
_setup_lock = threading.Lock()


def setup() -> zmq.Context:
    """Create the process-wide ZeroMQ context. Only the first call has any
    effect; it is safe to call as often as desired."""

    global zmq_context

    with _setup_lock:
        if zmq_context is None:
            zmq_context = zmq.Context()

    return zmq_context


class ReactorStopped(RuntimeError):
    """Raised when work is handed to a reactor that has been stopped."""


class Timer:
    """Handle for a callback scheduled with :func:`Reactor.schedule`."""

    _sequence = itertools.count()

    def __init__(self, deadline: float, callback: Callable[[], None]):
        self.deadline = deadline
        self.callback = callback
        self.cancelled = False
        self.sequence = next(self._sequence)

    def __lt__(self, other: 'Timer') -> bool:
        return (self.deadline, self.sequence) < (other.deadline, other.sequence)

    def cancel(self) -> None:
        self.cancelled = True


class Reactor:
    """Single-threaded event loop. Everything other than :func:`call`,
    :func:`schedule`, :func:`watch`, :func:`unwatch` and :func:`stop` must
    only be invoked from the reactor thread itself."""

    idle = 1.0

    def __init__(self):
        context = setup()

        internal = f"inproc://pnclient.Reactor:signal:{id(self)}"
        self._signal_rx = context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)

        # The lock is necessary because any thread may signal the reactor,
        # and ZeroMQ sockets are not thread-safe.

        self._signal_lock = threading.Lock()

        self._queue = queue.SimpleQueue()
        self._timers = list()
        self._watched = dict()

        self.poller = zmq.Poller()
        self.poller.register(self._signal_rx, zmq.POLLIN)

        self.shutdown = False
        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

    def in_thread(self) -> bool:
        return threading.current_thread() is self.thread

    def call(self, callback: Callable[[], None]) -> None:
        """Run *callback* on the reactor thread as soon as possible. Once
        the reactor is stopped :class:`ReactorStopped` is raised instead."""

        with self._signal_lock:
            if self.shutdown:
                raise ReactorStopped('the reactor has been stopped')

            self._queue.put(callback)
            self._signal_tx.send(b'')

    def schedule(self, seconds: float, callback: Callable[[], None]) -> Timer:
        """Run *callback* on the reactor thread after *seconds*."""

        timer = Timer(time.monotonic() + seconds, callback)
        self.call(lambda: heapq.heappush(self._timers, timer))
        return timer

    def watch(self, socket, callback, interest: int = zmq.POLLIN) -> None:
        """Invoke ``callback(socket, events)`` whenever *socket*, a ZeroMQ
        socket or anything with a file descriptor, is ready for *interest*."""

        def register():
            self._watched[socket] = callback
            self.poller.register(socket, interest)

        self.call(register)

    def unwatch(self, socket) -> None:
        def unregister():
            if self._watched.pop(socket, None) is not None:
                self.poller.unregister(socket)

        self.call(unregister)

    def _invoke(self, callback, *args) -> None:
        try:
            callback(*args)
        except Exception:
            print(traceback.format_exc(), file=sys.stderr)

    def _next_timeout(self) -> int:
        """Milliseconds until the nearest timer is due."""

        if len(self._timers) == 0:
            return int(self.idle * 1000)

        delay = self._timers[0].deadline - time.monotonic()
        delay = min(max(delay, 0), self.idle)
        return int(delay * 1000)

    def _run_queue(self) -> None:
        while True:
            try:
                callback = self._queue.get(block=False)
            except queue.Empty:
                break

            self._invoke(callback)

    def _run_timers(self) -> None:
        now = time.monotonic()

        while self._timers and self._timers[0].deadline <= now:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._invoke(timer.callback)

    def _drain_signal(self) -> None:
        while True:
            try:
                self._signal_rx.recv(flags=zmq.NOBLOCK)
            except zmq.Again:
                break

    def run(self) -> None:
        while self.shutdown == False:
            for active, flag in self.poller.poll(self._next_timeout()):
                if active is self._signal_rx:
                    self._drain_signal()
                    continue

                try:
                    callback = self._watched[active]
                except KeyError:
                    continue

                self._invoke(callback, active, flag)

            self._run_queue()
            self._run_timers()

        self.poller.unregister(self._signal_rx)
        self._signal_rx.close(linger=0)

    def stop(self, timeout: Optional[float] = 5) -> None:
        with self._signal_lock:
            if self.shutdown:
                return

            self.shutdown = True
            self._signal_tx.send(b'')
            self._signal_tx.close(linger=0)

        if self.in_thread() == False:
            self.thread.join(timeout)


class _Attempt:
    """One physical request on behalf of a call; at most one of the
    response or the timeout timer settles it."""

    def __init__(self, call):
        self.call = call
        self.timer: Optional[Timer] = None
        self.settled = False


class ReactorFrontend(Frontend):
    """Non-blocking frontend. Operations return None immediately; the
    completion callback fires on the reactor thread. If no *reactor* is
    provided a private one is started, and stopped by :func:`close`."""

    blocking = False
    workers = 4

    def __init__(self, reactor: Optional[Reactor] = None,
                 client: Optional[httpx.Client] = None,
                 transport: Optional[httpx.BaseTransport] = None,
                 callback=None):

        if reactor is None:
            reactor = Reactor()
            self._owns_reactor = True
        else:
            self._owns_reactor = False

        if client is None:
            client = http.client(transport)
            self._owns_client = True
        else:
            self._owns_client = False

        self.reactor = reactor
        self.client = client
        self.callback = callback
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.workers)

    def run(self, call) -> None:
        self.reactor.call(lambda: self._advance(call, None))

    def _advance(self, call, outcome) -> None:
        try:
            effect = call.cycle.send(outcome)
        except StopIteration as stop:
            call.complete(stop.value)
            return
        except Exception:
            print(traceback.format_exc(), file=sys.stderr)
            call.abandon()
            return

        try:
            self._dispatch(call, effect)
        except RuntimeError:
            # The reactor or the worker pool was shut down underneath the
            # call; it can never complete.
            print(traceback.format_exc(), file=sys.stderr)
            call.abandon()

    def _dispatch(self, call, effect) -> None:
        if isinstance(effect, Sleep):
            self.reactor.schedule(effect.seconds, lambda: self._advance(call, None))
            return

        attempt = _Attempt(call)
        attempt.timer = self.reactor.schedule(effect.timeout, lambda: self._expire(attempt, effect))

        future = self.executor.submit(http.execute, self.client, effect)
        future.add_done_callback(lambda future: self._post(attempt, future))

    def _post(self, attempt: _Attempt, future: concurrent.futures.Future) -> None:
        """Hand a finished request back to the reactor thread."""

        try:
            self.reactor.call(lambda: self._arrive(attempt, future))
        except ReactorStopped:
            attempt.call.abandon()

    def _arrive(self, attempt: _Attempt, future: concurrent.futures.Future) -> None:
        if attempt.settled:
            # Already timed out; the late response is dropped.
            return

        attempt.settled = True
        attempt.timer.cancel()

        try:
            outcome = future.result()
        except Exception as e:
            outcome = Failure(Code.IO_ERROR, http.describe(e))

        self._advance(attempt.call, outcome)

    def _expire(self, attempt: _Attempt, request) -> None:
        if attempt.settled:
            return

        attempt.settled = True
        outcome = Failure(Code.TIMEOUT, f"no response in {request.timeout:.1f} sec")
        self._advance(attempt.call, outcome)

    def close(self) -> None:
        self.executor.shutdown(wait=False)

        if self._owns_client:
            self.client.close()

        if self._owns_reactor:
            self.reactor.stop()
