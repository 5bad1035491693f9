"""Transport contract.

The request/retry cycle in :mod:`pnclient.policy` is a generator: it yields
either a :class:`pnclient.request.Request` to execute, or a :class:`Sleep`,
and is sent back a :class:`Reply` or :class:`Failure` for each request. A
frontend drives that generator to completion using whatever I/O and timer
facilities it has; the cycle itself never touches the network.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..result import Code


class Reply:
    """An HTTP response was received, whatever its status."""

    def __init__(self, status: int, content: bytes):
        self.status = status
        self.content = content

    def __repr__(self) -> str:
        return f"<Reply {self.status} ({len(self.content)} bytes)>"


class Failure:
    """No response was received; *code* says why."""

    def __init__(self, code: Code, text: Optional[str] = None):
        self.code = Code(code)
        self.text = text

    def __repr__(self) -> str:
        return f"<Failure {self.code.name}: {self.text}>"


class Sleep:
    """Wait *seconds* before continuing the cycle."""

    def __init__(self, seconds: float):
        self.seconds = float(seconds)


class Frontend(ABC):
    """Minimal contract for a frontend driving request cycles.

    :ivar blocking: True if :func:`run` returns only once the call is
                    complete.
    :ivar callback: Default completion callback for calls made without one.
    :ivar waitable: False if another thread cannot wait for a call to
                    complete, because completion needs the caller's own
                    thread.
    """

    blocking = False
    callback = None
    waitable = True

    @abstractmethod
    def run(self, call):
        """Drive *call* (a :class:`pnclient.dispatch.Call`) to completion."""

    @abstractmethod
    def close(self) -> None:
        """Release any connections, threads, or sockets held."""
