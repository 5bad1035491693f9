"""asyncio frontend.

Operations return immediately with an :class:`asyncio.Task` that resolves to
the terminal result; any callback is invoked on the event loop, once.
Operations must be issued from a thread running the event loop.
"""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx

from . import http
from .base import Frontend, Sleep


class AsyncioFrontend(Frontend):

    blocking = False
    waitable = False

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 callback=None):

        if client is None:
            client = http.async_client(transport)
            self._owns_client = True
        else:
            self._owns_client = False

        self.client = client
        self.callback = callback

    def run(self, call) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        return loop.create_task(self._drive(call))

    async def _drive(self, call):
        outcome = None

        try:
            while True:
                try:
                    effect = call.cycle.send(outcome)
                except StopIteration as stop:
                    result = stop.value
                    break

                if isinstance(effect, Sleep):
                    await asyncio.sleep(effect.seconds)
                    outcome = None
                else:
                    outcome = await http.execute_async(self.client, effect)
        except BaseException:
            call.abandon()
            raise

        return call.complete(result)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def close(self) -> None:
        """Close the client; from inside a running loop the close is
        scheduled rather than awaited."""

        if self._owns_client == False:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.client.aclose())
        else:
            loop.create_task(self.client.aclose())
