""" Construction of the wire request for each operation, and interpretation
    of the matching response body. A :class:`Request` is built once per
    logical operation from the context's settings at call time; retries
    resend the identical request, with the same cursor and signature.
"""

import urllib.parse

from . import config
from . import json
from .result import Code, Result, MalformedResponse


def quote(segment):
    """ Percent-encode a single path segment, including any slashes.
    """

    return urllib.parse.quote(str(segment), safe='')



def decode(content):
    """ Decode the raw response *content* as JSON, raising
        :class:`MalformedResponse` if that is not possible.
    """

    if content is None or content == b'':
        raise MalformedResponse('empty response body')

    try:
        return json.loads(content)
    except (json.DecodeError, ValueError) as e:
        raise MalformedResponse('response is not JSON: ' + str(e))



def resolve_timeout(timeout, setting='timeout'):
    """ Translate the caller's *timeout* into seconds. None, or any negative
        number, selects the configured default for the operation.
    """

    if timeout is None or timeout < 0:
        return float(config.get(setting))

    return float(timeout)



class Request:
    """ Base class for all wire requests. Subclasses populate *path*, a
        sequence of unencoded path segments, and *query*, a dictionary of
        query parameters, then call :func:`_finalize`.

        :ivar url: The full URL for the request.
        :ivar timeout: Seconds to wait for a response before the attempt
                       is considered timed out.
    """

    kind = None
    method = 'GET'
    timeout_setting = 'timeout'

    def __init__(self, context, timeout=None):

        self.origin = context.origin
        self.uuid = context.uuid
        self.subscribe_key = context.subscribe_key
        self.cipher = context.cipher
        self.timeout = resolve_timeout(timeout, self.timeout_setting)

        self.path = ()
        self.query = dict()
        self.url = None


    def __repr__(self):
        return "<%s %s>" % (self.kind, self.url)


    def _finalize(self):

        # A tuple in the path is a list of names, each encoded separately
        # and joined with literal commas.

        segments = list()

        for segment in self.path:
            if isinstance(segment, tuple):
                segment = ','.join(quote(name) for name in segment)
            else:
                segment = quote(segment)

            segments.append(segment)

        url = self.origin + '/' + '/'.join(segments)

        if self.query:
            url = url + '?' + urllib.parse.urlencode(self.query)

        self.url = url


    def interpret(self, body):
        """ Turn a decoded, successful (2xx) response *body* into a
            :class:`Result`. Raise :class:`MalformedResponse` if the body
            does not have the expected shape.
        """

        raise NotImplementedError('Request subclasses must implement interpret()')


    def decrypt(self, messages):
        if self.cipher is None:
            return list(messages)

        return [self.cipher.decrypt_message(message) for message in messages]


# end of class Request



class Publish(Request):

    kind = 'publish'

    def __init__(self, context, channel, message, timeout=None):

        Request.__init__(self, context, timeout)

        publish_key = context.publish_key
        secret_key = context.secret_key

        if publish_key is None or publish_key == '':
            raise ValueError('publish requires a publish key')

        channel = check_channel(channel)

        if self.cipher is None:
            serialized = json.dumps_text(message)
        else:
            encrypted = self.cipher.encrypt(message)
            serialized = json.dumps_text(encrypted)

        if secret_key:
            signature = context.signature.sign(publish_key, self.subscribe_key, secret_key, channel, serialized)
        else:
            signature = '0'

        self.channel = channel
        self.message = serialized
        self.signature = signature

        self.path = ('publish', publish_key, self.subscribe_key, signature, channel, '0', serialized)
        self.query['uuid'] = self.uuid
        self._finalize()


    def interpret(self, body):

        # A publish response looks like [1, "Sent", "13769501243685161"];
        # a leading zero indicates a rejection, with the reason second.

        if isinstance(body, list) and len(body) >= 2:
            pass
        else:
            raise MalformedResponse('publish response is not a status list')

        if body[0] == 1:
            try:
                timetoken = str(body[2])
            except IndexError:
                timetoken = None

            return Result(self.kind, Code.OK, body, timetoken=timetoken)

        return Result(self.kind, Code.PUBLISH_FAILED, body, text=str(body[1]))


# end of class Publish



class Subscribe(Request):
    """ Long-poll for messages on one or more channels, starting from the
        cursor position recorded for those channels.
    """

    kind = 'subscribe'
    timeout_setting = 'subscribe_timeout'

    def __init__(self, context, channels, timeout=None):

        Request.__init__(self, context, timeout)

        if isinstance(channels, str):
            raise TypeError('channels must be a sequence of channel names, not a string')

        channels = [check_channel(channel) for channel in channels]

        if len(channels) == 0:
            raise ValueError('at least one channel is required to subscribe')

        cursor = context.cursor

        self.channels = channels
        self.timetoken = cursor.position(channels)
        self.timetokens = cursor.positions(channels)

        self.path = ('subscribe', self.subscribe_key, tuple(channels), '0', self.timetoken)

        # Channels at different positions each send their own, aligned
        # with the channel list.

        if len(set(self.timetokens)) > 1:
            self.query['tt'] = ','.join(self.timetokens)

        self.query['uuid'] = self.uuid
        self._finalize()


    def interpret(self, body):

        # [[message, ...], "timetoken"] for a single channel, or
        # [[message, ...], "timetoken", "channel,channel,..."] where the
        # third element names the origin channel of each message.

        if isinstance(body, list) and len(body) >= 2 and isinstance(body[0], list):
            pass
        else:
            raise MalformedResponse('subscribe response is not a message list and timetoken')

        messages = body[0]
        timetoken = body[1]

        if isinstance(timetoken, (str, int)) and not isinstance(timetoken, bool):
            timetoken = str(timetoken)
        else:
            raise MalformedResponse('subscribe timetoken is not a string: ' + repr(timetoken))

        if timetoken.isdigit():
            pass
        else:
            raise MalformedResponse('subscribe timetoken is not numeric: ' + repr(timetoken))

        if len(body) > 2 and body[2]:
            channels = str(body[2]).split(',')
            if len(channels) != len(messages):
                raise MalformedResponse('subscribe response names %d channels for %d messages' % (len(channels), len(messages)))

        elif len(messages) == 0:
            channels = list()

        elif len(self.channels) == 1:
            channels = [self.channels[0]] * len(messages)

        else:
            raise MalformedResponse('subscribe response does not identify the channel of each message')

        messages = self.decrypt(messages)

        return Result(self.kind, Code.OK, messages, messages=messages, channels=channels, timetoken=timetoken)


# end of class Subscribe



class History(Request):
    """ Retrieve up to *limit* of the most recent messages on a channel,
        oldest first. If *include_token* is not None it is sent as the
        ``include_token`` parameter; when True each returned element is a
        dictionary with 'message' and 'timetoken' fields.
    """

    kind = 'history'

    def __init__(self, context, channel, limit, include_token=None, timeout=None):

        Request.__init__(self, context, timeout)

        channel = check_channel(channel)
        limit = int(limit)

        if limit < 1:
            raise ValueError('the history limit must be a positive integer')

        self.channel = channel
        self.limit = limit
        self.include_token = include_token

        self.path = ('v2', 'history', 'sub-key', self.subscribe_key, 'channel', channel)
        self.query['count'] = limit

        if include_token is not None:
            if include_token:
                self.query['include_token'] = 'true'
            else:
                self.query['include_token'] = 'false'

        self.query['uuid'] = self.uuid
        self._finalize()


    def interpret(self, body):

        # [[message, ...], start timetoken, end timetoken]

        if isinstance(body, list) and len(body) >= 1 and isinstance(body[0], list):
            pass
        else:
            raise MalformedResponse('history response is not a message list')

        if self.include_token:
            messages = list()

            for element in body[0]:
                if isinstance(element, dict) and 'message' in element:
                    pass
                else:
                    raise MalformedResponse('history element lacks a message: ' + repr(element))

                element = dict(element)
                element['message'] = self.decrypt((element['message'],))[0]
                messages.append(element)
        else:
            messages = self.decrypt(body[0])

        try:
            timetoken = str(body[2])
        except IndexError:
            timetoken = None

        return Result(self.kind, Code.OK, messages, messages=messages, timetoken=timetoken)


# end of class History



class HereNow(Request):

    kind = 'here_now'

    def __init__(self, context, channel, timeout=None):

        Request.__init__(self, context, timeout)

        channel = check_channel(channel)
        self.channel = channel

        self.path = ('v2', 'presence', 'sub-key', self.subscribe_key, 'channel', channel)
        self.query['uuid'] = self.uuid
        self._finalize()


    def interpret(self, body):

        if isinstance(body, dict) and 'occupancy' in body:
            pass
        else:
            raise MalformedResponse('here_now response lacks an occupancy')

        if isinstance(body.get('uuids', ()), list):
            pass
        else:
            raise MalformedResponse('here_now uuids is not a list')

        return Result(self.kind, Code.OK, body)


# end of class HereNow



class Time(Request):
    """ Retrieve the server time, in units of 100 nanoseconds since the
        UNIX epoch, the same scale used for timetokens.
    """

    kind = 'time'

    def __init__(self, context, timeout=None):

        Request.__init__(self, context, timeout)

        self.path = ('time', '0')
        self.query['uuid'] = self.uuid
        self._finalize()


    def interpret(self, body):

        if isinstance(body, list) and len(body) >= 1:
            timetoken = body[0]
        else:
            raise MalformedResponse('time response is not a list')

        try:
            timetoken = int(timetoken)
        except (TypeError, ValueError):
            raise MalformedResponse('server time is not an integer: ' + repr(timetoken))

        return Result(self.kind, Code.OK, timetoken, timetoken=str(timetoken))


# end of class Time



def check_channel(channel):
    """ Channel names are non-empty strings, and may not contain a comma,
        which separates channel names in a subscribe request.
    """

    if isinstance(channel, str):
        pass
    else:
        raise TypeError('channel names must be strings, not ' + type(channel).__name__)

    if channel == '':
        raise ValueError('channel names cannot be empty')

    if ',' in channel:
        raise ValueError('channel names cannot contain a comma: ' + repr(channel))

    return channel


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
