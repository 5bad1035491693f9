""" The :class:`Context` is the principal interface for applications: one
    context per independent conversation with the service, holding the keys,
    the client identity, the subscribe cursor, and at most one request in
    flight.
"""

import threading
import uuid as uuidmodule

from . import config
from . import crypto
from . import dispatch
from . import request
from .cursor import Cursor
from .policy import ErrorPolicy
from .result import ContextBusy, RETRY_DEFAULT
from .transport import SyncFrontend


class Context:
    """ A context is created with a *publish_key* and a *subscribe_key*.
        Either may be empty: a subscribe-only context never needs a publish
        key, and the absence is only an error when :func:`publish` is
        called.

        The *frontend* determines how operations run. By default a
        :class:`pnclient.transport.SyncFrontend` is created, and every
        operation blocks until its :class:`pnclient.Result` is available
        and returns it. A frontend passed in by the caller is borrowed: it
        is not closed by :func:`close`, unless *own* is set to True.

        Only one operation may be in progress at any time. Starting another,
        or changing any setting, while a request is in flight raises
        :class:`pnclient.ContextBusy`; no request is sent. Applications
        sharing a context between threads must provide their own locking.

        :ivar cursor: The :class:`pnclient.cursor.Cursor` of subscribe
                      positions for this context.
        :ivar last_result: The most recent terminal result.
    """

    def __init__(self, publish_key, subscribe_key, frontend=None, own=False, origin=None, uuid=None):

        if publish_key is None:
            publish_key = ''
        if subscribe_key is None:
            subscribe_key = ''

        self.publish_key = str(publish_key)
        self.subscribe_key = str(subscribe_key)
        self.secret_key = None
        self.signature = crypto.MD5Signature()
        self.cipher = None

        if origin is None:
            origin = config.get('origin')

        self.origin = normalize_origin(origin)

        if uuid is None:
            uuid = str(uuidmodule.uuid4())
            uuid = uuid.lower()

        self.uuid = uuid

        delay = config.get('retry_delay')
        budget = config.get('retry_budget')
        self.policy = ErrorPolicy(RETRY_DEFAULT, True, delay, budget)

        self.cursor = Cursor()
        self.last_result = None
        self.closed = False

        self._busy = False
        self._busy_lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()

        if frontend is None:
            frontend = SyncFrontend()
            own = True

        self.frontend = frontend
        self._owns_frontend = own


    def __enter__(self):
        return self


    def __exit__(self, exc_type, exc_value, exc_traceback):
        self.close()


    def __repr__(self):
        if self._busy:
            state = 'busy'
        else:
            state = 'idle'

        return "<Context %s %s %s>" % (self.uuid, self.origin, state)


    @property
    def busy(self):
        return self._busy


    def _check_idle(self):

        if self._busy:
            raise ContextBusy('a request is in progress on this context')


    def _claim(self):

        if self.closed:
            raise RuntimeError('this context is closed')

        with self._busy_lock:
            self._check_idle()
            self._busy = True
            self._idle.clear()


    def _release(self, result):
        """ Invoked by :class:`pnclient.dispatch.Call` when the request
            cycle settles, just before any callback is invoked.
        """

        if result is not None:
            self.last_result = result

        self._busy = False
        self._idle.set()


    def _start(self, build, callback):
        """ Claim the context, build the request, and hand the call to the
            frontend. Any exception while building the request, or from a
            frontend unable to start the call, releases the context again.
        """

        self._claim()

        try:
            built = build()
        except BaseException:
            self._release(None)
            raise

        if callback is None:
            callback = self.frontend.callback

        call = dispatch.Call(self, built, callback)

        try:
            return self.frontend.run(call)
        except BaseException:
            call.abandon()
            raise


    def close(self, timeout=None):
        """ Wait for any in-flight request to settle, then release the
            frontend if this context owns it. Waiting is not possible for
            a frontend driven by the calling thread's own event loop; in
            that case :class:`pnclient.ContextBusy` is raised instead.
        """

        if self.closed:
            return

        if self._busy and self.frontend.waitable == False:
            raise ContextBusy('cannot wait for an asyncio request from its own loop')

        settled = self._idle.wait(timeout)

        if settled == False:
            raise ContextBusy('request still in progress after %.1f sec' % (timeout))

        self.closed = True

        if self._owns_frontend:
            self.frontend.close()


    ### Configuration.

    def current_uuid(self):
        """ Return the UUID identifying this client to the service, visible
            to others via :func:`here_now`.
        """

        return self.uuid


    def error_policy(self, retry_mask, print, delay=None, budget=None):
        """ Set the automatic retry policy. Bit *n* of *retry_mask* enables
            retries for the :class:`pnclient.Code` with value *n*; the OK
            and OCCUPIED bits are always ignored. ``error_policy(0, ...)``
            turns automatic retry off, ``error_policy(~0, ...)`` retries every
            recoverable error including malformed responses, and
            ``error_policy(~(1 << Code.TIMEOUT), ...)`` retries everything
            but timeouts. The default, :data:`pnclient.result.RETRY_DEFAULT`,
            retries everything except malformed responses. If *print* is
            True every failure is reported on stderr, including those that
            are then retried.

            The optional *delay* is the pause in seconds before each retry,
            and *budget* bounds the time in seconds after the first attempt
            in which retries may still be made; unless set, the current
            values are kept.
        """

        self._check_idle()

        if delay is None:
            delay = self.policy.delay
        if budget is None:
            budget = self.policy.budget

        self.policy = ErrorPolicy(retry_mask, print, delay, budget)


    def set_cipher_key(self, cipher_key, random_iv=False):
        """ Set the key used to encrypt published messages and decrypt
            received ones. None or an empty string disables encryption.
        """

        self._check_idle()

        if cipher_key is None or cipher_key == '':
            self.cipher = None
        else:
            self.cipher = crypto.Cipher(cipher_key, random_iv)


    def set_origin(self, origin):
        """ Set the origin server, for example 'http://pubsub.pubnub.com'.
            A bare hostname is assumed to be http.
        """

        self._check_idle()
        self.origin = normalize_origin(origin)


    def set_secret_key(self, secret_key, scheme=None):
        """ Set the secret key used to sign published messages. None or an
            empty string disables signing. The signature *scheme* is either
            the name of a registered scheme ('md5' or 'hmac-sha256') or a
            :class:`pnclient.crypto.Signature` instance; the current scheme
            is kept if it is not specified.
        """

        self._check_idle()

        if scheme is not None:
            if isinstance(scheme, crypto.Signature):
                self.signature = scheme
            else:
                self.signature = crypto.signature(scheme)

        if secret_key == '':
            secret_key = None

        self.secret_key = secret_key


    def set_uuid(self, uuid):
        """ Replace the UUID asserted by this context.
        """

        self._check_idle()

        uuid = str(uuid)

        if uuid == '':
            raise ValueError('the UUID cannot be empty')

        self.uuid = uuid


    ### Operations.

    def publish(self, channel, message, timeout=None, callback=None):
        """ Publish *message*, any JSON-compatible value, on *channel*. The
            response is a confirmation: ``[1, "Sent", timetoken]``.
        """

        build = lambda: request.Publish(self, channel, message, timeout)
        return self._start(build, callback)


    def subscribe(self, channel, timeout=None, callback=None):
        """ Retrieve messages published on *channel* since the previous
            subscribe. The first call for a channel returns immediately with
            no messages, establishing the position to continue from; a
            typical application subscribes in a loop.
        """

        build = lambda: request.Subscribe(self, (request.check_channel(channel),), timeout)
        return self._start(build, callback)


    def subscribe_multi(self, channels, timeout=None, callback=None):
        """ As :func:`subscribe`, but for several *channels* at once. The
            result's *channels* names the origin channel of each message.
        """

        build = lambda: request.Subscribe(self, channels, timeout)
        return self._start(build, callback)


    def history(self, channel, limit, timeout=None, callback=None):
        """ Retrieve up to the last *limit* messages published on *channel*,
            oldest first. No subscription is required.
        """

        build = lambda: request.History(self, channel, limit, None, timeout)
        return self._start(build, callback)


    def history_ex(self, channel, limit, include_token, timeout=None, callback=None):
        """ As :func:`history`, additionally sending *include_token*; if it
            is True each message is returned as a dictionary with 'message'
            and 'timetoken' fields.
        """

        build = lambda: request.History(self, channel, limit, include_token, timeout)
        return self._start(build, callback)


    def here_now(self, channel, timeout=None, callback=None):
        """ List the clients subscribed to *channel*. The response is a
            dictionary with 'occupancy' (the number of clients) and 'uuids'.
        """

        build = lambda: request.HereNow(self, channel, timeout)
        return self._start(build, callback)


    def time(self, timeout=None, callback=None):
        """ Retrieve the server time as an integer timetoken. This is also
            useful as a 'ping' to estimate network latency.
        """

        build = lambda: request.Time(self, timeout)
        return self._start(build, callback)


# end of class Context



def normalize_origin(origin):

    origin = str(origin).strip()

    if origin == '':
        raise ValueError('the origin cannot be empty')

    if '://' in origin:
        pass
    else:
        origin = 'http://' + origin

    origin = origin.rstrip('/')
    return origin


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
