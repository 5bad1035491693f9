""" Classification of request outcomes, and the retry decision. The
    :func:`cycle` generator is the request/response loop for one logical
    operation; frontends drive it, it performs no I/O of its own.
"""

import sys
import time

from .result import Code, Result, MalformedResponse, RETRY_DEFAULT
from .request import decode
from .transport.base import Failure, Sleep


never_retried = set((Code.OK, Code.OCCUPIED))


class ErrorPolicy:
    """ Which failures are retried, and whether failures are reported. Bit
        *n* of the *mask* enables automatic retry for the :class:`Code`
        with value *n*; the bits for OK and OCCUPIED are ignored. If *print*
        is True every failure is written to stderr, whether it is retried
        or not.

        Each retry waits *delay* seconds. If *budget* is set, a failure
        occurring more than *budget* seconds after the first attempt is
        not retried.
    """

    def __init__(self, mask=RETRY_DEFAULT, print=True, delay=0, budget=None):

        self.mask = int(mask)
        self.print = bool(print)
        self.delay = float(delay)

        if budget is None:
            self.budget = None
        else:
            self.budget = float(budget)


    def retry(self, code):
        """ Return True if a failure with this *code* is to be retried.
        """

        if code in never_retried:
            return False

        bit = 1 << int(code)
        return self.mask & bit != 0


# end of class ErrorPolicy



def classify(request, outcome):
    """ Turn the *outcome* of one attempt at *request* into a
        :class:`Result`.
    """

    kind = request.kind

    if isinstance(outcome, Failure):
        return Result(kind, outcome.code, text=outcome.text)

    status = outcome.status

    if status < 200 or status > 299:
        # The server may still explain itself in a JSON body; keep it
        # for inspection if so.

        try:
            body = decode(outcome.content)
        except MalformedResponse:
            body = None

        return Result(kind, Code.HTTP_ERROR, body, text='HTTP status %d' % (status))

    body = None

    try:
        body = decode(outcome.content)
        return request.interpret(body)
    except MalformedResponse as e:
        return Result(kind, Code.FORMAT_ERROR, body, text=str(e))



def report(request, result, retry):
    """ Describe a failed attempt on stderr.
    """

    if retry:
        action = 'retrying'
    else:
        action = 'giving up'

    error = "pnclient: %s failed with %s (%s), %s" % (request.kind, result.code.name, result.text, action)
    print(error, file=sys.stderr)



def cycle(request, policy, cursor=None):
    """ Generator implementing the request/response cycle for *request*.
        Yields the request each time it should be sent, and receives the
        outcome; yields a :class:`Sleep` between retries. The return value
        (via StopIteration) is the terminal :class:`Result`.

        If a *cursor* is provided, it is advanced to the returned timetoken
        on success, for the channels named in the request.
    """

    begin = time.monotonic()

    while True:
        outcome = yield request
        result = classify(request, outcome)

        if result.code == Code.OK:
            if cursor is not None:
                cursor.advance(request.channels, result.timetoken)
            return result

        retry = policy.retry(result.code)

        if retry and policy.budget is not None:
            elapsed = time.monotonic() - begin
            if elapsed >= policy.budget:
                retry = False

        if policy.print:
            report(request, result, retry)

        if retry == False:
            return result

        if policy.delay > 0:
            yield Sleep(policy.delay)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
