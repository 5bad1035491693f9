""" Delivery of a terminal :class:`pnclient.result.Result` to the caller.
    A :class:`Call` ties one operation on a context to its request cycle
    and its completion callback, and guarantees that completion happens
    exactly once.
"""

from . import policy


subscribe_kinds = set(('subscribe',))


class Call:
    """ One in-flight operation. The frontend drives :attr:`cycle`, and
        calls :func:`complete` with the terminal result, or :func:`abandon`
        if the cycle raised an exception.
    """

    def __init__(self, context, request, callback=None):

        self.context = context
        self.request = request
        self.callback = callback
        self.settled = False

        if request.kind in subscribe_kinds:
            cursor = context.cursor
        else:
            cursor = None

        self.cycle = policy.cycle(request, context.policy, cursor)


    def abandon(self):
        """ Release the context without delivering a result.
        """

        if self.settled:
            return

        self.settled = True
        self.context._release(None)


    def complete(self, result):
        """ Release the context, then deliver *result* to the callback, if
            any. The context is idle before the callback is invoked, so the
            callback is free to issue the next operation. The result is
            also the return value.
        """

        if self.settled:
            raise RuntimeError('call already completed: ' + repr(self.request))

        self.settled = True
        self.context._release(result)

        deliver(self.context, self.callback, result)
        return result


# end of class Call



def deliver(context, callback, result):
    """ Invoke *callback* with the argument shape appropriate for the kind
        of operation: ``callback(context, code, body)`` in general, and
        ``callback(context, code, channels, body)`` for subscribe. The
        channel list is a new list belonging to the callback.
    """

    if callback is None:
        return

    if result.kind in subscribe_kinds:
        if result.channels is None:
            channels = list()
        else:
            channels = list(result.channels)

        callback(context, result.code, channels, result.body)
    else:
        callback(context, result.code, result.body)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
