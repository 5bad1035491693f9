""" Result codes and the :class:`Result` container returned for every
    completed operation. The numeric value of each :class:`Code` is also
    its bit position in a context's retry mask.
"""

import enum


class Code(enum.IntEnum):
    """ Outcome of a single operation. The ordering is fixed; applications
        construct retry masks from these values, for example
        ``~(1 << Code.TIMEOUT)`` to retry everything except timeouts.
    """

    OK = 0
    OCCUPIED = 1
    TIMEOUT = 2
    IO_ERROR = 3
    HTTP_ERROR = 4
    FORMAT_ERROR = 5
    PUBLISH_FAILED = 6
    DECRYPTION_ERROR = 7


# end of class Code



descriptions = {
    Code.OK: 'success',
    Code.OCCUPIED: 'another request is already in progress',
    Code.TIMEOUT: 'timed out waiting for a response',
    Code.IO_ERROR: 'communication error',
    Code.HTTP_ERROR: 'unexpected HTTP status',
    Code.FORMAT_ERROR: 'unexpected response format',
    Code.PUBLISH_FAILED: 'publish rejected by the server',
    Code.DECRYPTION_ERROR: 'message could not be decrypted',
}

# Malformed responses are not retried unless explicitly requested.

RETRY_ALL = ~0
RETRY_NONE = 0
RETRY_DEFAULT = RETRY_ALL & ~(1 << Code.FORMAT_ERROR)



class ContextBusy(RuntimeError):
    """ Raised immediately when an operation, or a configuration change, is
        attempted on a context that already has a request in flight.
    """

    code = Code.OCCUPIED



class MalformedResponse(ValueError):
    """ The response body could not be interpreted as the structured value
        expected for the operation.
    """

    code = Code.FORMAT_ERROR



class Result:
    """ The terminal outcome of one operation. The *code* is always set; the
        *body* is the structured response value, if any was decoded, and is
        also retained for failures so that it can be inspected. Subscribe
        results carry one entry in *channels* for each entry in *messages*,
        identifying the channel the message arrived on.

        A :class:`Result` is not modified after it is handed to the caller.
    """

    def __init__(self, kind, code, body=None, text=None, messages=None, channels=None, timetoken=None):

        self.kind = kind
        self.code = Code(code)
        self.body = body
        self.channels = channels
        self.messages = messages
        self.timetoken = timetoken

        if text is None:
            text = descriptions[self.code]

        self.text = text


    def __bool__(self):
        return self.code == Code.OK


    def __repr__(self):
        return "<Result %s %s: %s>" % (self.kind, self.code.name, self.text)


    @property
    def ok(self):
        return self.code == Code.OK


# end of class Result


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
