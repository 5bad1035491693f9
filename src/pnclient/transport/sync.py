"""Blocking frontend: each operation runs to completion on the calling
thread, and the terminal result is returned directly."""

from __future__ import annotations

import time
from typing import Optional

import httpx

from . import http
from .base import Frontend, Sleep


class SyncFrontend(Frontend):

    blocking = True

    def __init__(self, client: Optional[httpx.Client] = None,
                 transport: Optional[httpx.BaseTransport] = None,
                 callback=None):

        if client is None:
            client = http.client(transport)
            self._owns_client = True
        else:
            self._owns_client = False

        self.client = client
        self.callback = callback

    def run(self, call):
        outcome = None

        try:
            while True:
                try:
                    effect = call.cycle.send(outcome)
                except StopIteration as stop:
                    return call.complete(stop.value)

                if isinstance(effect, Sleep):
                    time.sleep(effect.seconds)
                    outcome = None
                else:
                    outcome = http.execute(self.client, effect)
        except BaseException:
            call.abandon()
            raise

    def close(self) -> None:
        if self._owns_client:
            self.client.close()
