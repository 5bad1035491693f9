""" Background subscribe loops. :func:`start` dedicates a thread to a
    context, subscribing over and over and handing each arriving message to
    a method. The context is occupied for as long as the loop runs; use a
    separate context for any other operations.
"""

import sys
import threading
import traceback
import weakref

from .result import Code

active = dict()


def reference(method):
    """ Return a weak reference to *method*, regardless of whether it is a
        plain function or a bound method.
    """

    try:
        method.__func__
        method.__self__
    except AttributeError:
        return weakref.ref(method)
    else:
        return weakref.WeakMethod(method)



def key(method):
    """ Return a stable dictionary key for *method*. Bound methods are
        recreated on every attribute access, so they are identified by
        their instance and function instead.
    """

    try:
        return (id(method.__self__), id(method.__func__))
    except AttributeError:
        return id(method)



def running(method):
    """ Return True if a listener is active for the provided *method*.
    """

    return key(method) in active



def start(context, channels, method, timeout=None):
    """ Subscribe *context* to *channels* in a background thread, and
        invoke ``method(channel, message)`` for every message received.
        Only a weak reference to *method* is retained; the loop ends when
        the method is garbage collected, or when :func:`stop` is called.

        The context must use a blocking frontend. If a listener is already
        active for the specified method, it is stopped and replaced.
    """

    if context.frontend.blocking:
        pass
    else:
        raise TypeError('a background listener requires a blocking frontend')

    if callable(method):
        pass
    else:
        raise TypeError('the listening method must be callable')

    if isinstance(channels, str):
        channels = (channels,)

    stop(method)
    listener = _Listener(context, tuple(channels), method, timeout)
    return listener



def stop(method, wait=False):
    """ Discontinue the listener for the provided *method*. The thread
        finishes after its current subscribe request completes; set *wait*
        to True to block until then.
    """

    try:
        listener = active[key(method)]
    except KeyError:
        return

    listener.stop()

    if wait:
        listener.thread.join()



class _Listener:
    """ Background thread for one subscribe loop.
    """

    pause = 1.0

    def __init__(self, context, channels, method, timeout):

        self.method_id = key(method)
        active[self.method_id] = self

        self.context = context
        self.channels = channels
        self.timeout = timeout
        self.reference = reference(method)
        self.shutdown = False

        self.alarm = threading.Event()
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()


    def run(self):

        while self.shutdown == False:
            result = self.context.subscribe_multi(self.channels, self.timeout)

            if self.shutdown == True:
                break

            if result.code != Code.OK:
                # The context's error policy has already decided this is
                # terminal; pause before starting over.
                self.alarm.wait(self.pause)
                continue

            method = self.reference()

            if method is None:
                # The original object is gone. No further calls are possible.
                break

            for channel,message in zip(result.channels, result.messages):
                try:
                    method(channel, message)
                except Exception:
                    print(traceback.format_exc(), file=sys.stderr)

            del method

        # Infinite loop exited.

        if active.get(self.method_id) is self:
            del active[self.method_id]


    def stop(self):
        self.shutdown = True
        self.alarm.set()


# end of class _Listener


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
