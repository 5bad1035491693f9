"""Frontends and the HTTP transport adapter."""

from .base import Failure, Frontend, Reply, Sleep
from .sync import SyncFrontend
from .aio import AsyncioFrontend
from .reactor import Reactor, ReactorFrontend, ReactorStopped, setup
