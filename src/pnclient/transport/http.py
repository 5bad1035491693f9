"""Execution of a single wire request with httpx.

Errors raised by httpx are translated into :class:`Failure` outcomes here;
any HTTP response at all, including error statuses, is a :class:`Reply` and
is classified later by :mod:`pnclient.policy`.
"""

from __future__ import annotations

from typing import Optional, Union

import httpx

from .. import config
from ..result import Code
from .base import Failure, Reply


def headers() -> dict:
    return {'User-Agent': config.get('user_agent')}


def client(transport: Optional[httpx.BaseTransport] = None) -> httpx.Client:
    """Return a new blocking client; *transport* is mostly for testing."""
    return httpx.Client(transport=transport, headers=headers())


def async_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=transport, headers=headers())


def describe(exception: Exception) -> str:
    text = str(exception)
    name = type(exception).__name__

    if text:
        return f"{name}: {text}"
    return name


def execute(connection: httpx.Client, request) -> Union[Reply, Failure]:
    try:
        response = connection.request(request.method, request.url, timeout=request.timeout)
    except httpx.TimeoutException as e:
        return Failure(Code.TIMEOUT, describe(e))
    except httpx.HTTPError as e:
        return Failure(Code.IO_ERROR, describe(e))

    return Reply(response.status_code, response.content)


async def execute_async(connection: httpx.AsyncClient, request) -> Union[Reply, Failure]:
    try:
        response = await connection.request(request.method, request.url, timeout=request.timeout)
    except httpx.TimeoutException as e:
        return Failure(Code.TIMEOUT, describe(e))
    except httpx.HTTPError as e:
        return Failure(Code.IO_ERROR, describe(e))

    return Reply(response.status_code, response.content)
