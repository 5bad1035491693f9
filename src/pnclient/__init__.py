""" Python client for an HTTP publish/subscribe messaging service. A
    :class:`Context` publishes JSON messages to named channels, subscribes
    to channels by long-polling, retrieves channel history and presence,
    and can sign and encrypt messages along the way.
"""

# Utility components.

from . import json
from . import config

# Submodules used by multiple other components.

from . import result
from . import crypto
from . import cursor
from . import request
from . import policy
from . import dispatch
from . import transport

from .result import Code, Result, ContextBusy, RETRY_ALL, RETRY_NONE, RETRY_DEFAULT
from .crypto import DecryptionFailure

# Primary public-facing interfaces.

from .context import Context
from .transport import SyncFrontend, ReactorFrontend, AsyncioFrontend, Reactor
from . import listen

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
