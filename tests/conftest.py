import hashlib
import itertools
import threading
import urllib.parse

import httpx
import pytest

import pnclient


class FakeService:
    """ In-memory stand-in for the messaging service, speaking the same
        wire format. Use :attr:`failures` to script responses: each entry
        is consumed by one request before normal handling, and is either
        an exception to raise, or a (status, content) tuple.
    """

    origin = 'http://pubsub.test'

    def __init__(self):

        self.clock = itertools.count(15000000000000000)
        self.now = next(self.clock)
        self.log = list()
        self.presence = dict()
        self.requests = list()
        self.failures = list()
        self.secret_key = None
        self.hold = 0
        self.hook = None

        self.lock = threading.Condition()


    def handler(self, request):

        with self.lock:
            self.requests.append(request)

            try:
                failure = self.failures.pop(0)
            except IndexError:
                failure = None

        if self.hook is not None:
            self.hook(request)

        if isinstance(failure, Exception):
            raise failure

        if failure is not None:
            status, content = failure
            return httpx.Response(status, content=content)

        raw = request.url.raw_path.decode()
        path, _, query = raw.partition('?')
        segments = [urllib.parse.unquote(segment) for segment in path.split('/')[1:]]
        params = dict(urllib.parse.parse_qsl(query))

        if segments[0] == 'publish':
            return self.publish(segments, params)
        if segments[0] == 'subscribe':
            return self.subscribe(path, segments, params)
        if segments[:2] == ['v2', 'history']:
            return self.history(segments, params)
        if segments[:2] == ['v2', 'presence']:
            return self.here_now(segments, params)
        if segments[0] == 'time':
            return httpx.Response(200, json=[self.now])

        return httpx.Response(404, json={'status': 404, 'error': True, 'message': 'Not Found'})


    def publish(self, segments, params):

        publish_key, subscribe_key, signature, channel, callback, message = segments[1:7]

        if self.secret_key is not None:
            plaintext = '/'.join((publish_key, subscribe_key, self.secret_key, channel, message))
            expected = hashlib.md5(plaintext.encode()).hexdigest()

            if signature != expected:
                return httpx.Response(403, json={'status': 403, 'error': True, 'message': 'Invalid Signature'})

        value = pnclient.json.loads(message)

        with self.lock:
            self.now = next(self.clock)
            self.log.append((channel, self.now, value))
            self.lock.notify_all()
            timetoken = str(self.now)

        return httpx.Response(200, json=[1, 'Sent', timetoken])


    def subscribe(self, path, segments, params):

        # The channel list is split before unquoting, commas are literal.

        channels = [urllib.parse.unquote(channel) for channel in path.split('/')[3].split(',')]

        if 'tt' in params:
            timetokens = [int(timetoken) for timetoken in params['tt'].split(',')]
            if len(timetokens) != len(channels):
                return httpx.Response(400, json={'status': 400, 'error': True, 'message': 'Invalid Timetoken'})
        else:
            timetokens = [int(segments[4])] * len(channels)

        positions = dict(zip(channels, timetokens))

        with self.lock:
            for channel in channels:
                uuids = self.presence.setdefault(channel, set())
                uuids.add(params['uuid'])

            if max(timetokens) == 0:
                return httpx.Response(200, json=[[], str(self.now)])

            found = self._since(positions)

            if len(found) == 0 and self.hold > 0:
                self.lock.wait(self.hold)
                found = self._since(positions)

            now = str(self.now)

        messages = [entry[2] for entry in found]
        origins = [entry[0] for entry in found]

        if len(channels) > 1:
            return httpx.Response(200, json=[messages, now, ','.join(origins)])

        return httpx.Response(200, json=[messages, now])


    def _since(self, positions):

        # A channel at position zero is only joining; nothing is replayed.

        found = list()

        for entry in self.log:
            channel = entry[0]
            timetoken = positions.get(channel, 0)

            if timetoken != 0 and entry[1] > timetoken:
                found.append(entry)

        return found


    def history(self, segments, params):

        channel = segments[5]
        count = int(params['count'])

        with self.lock:
            entries = [entry for entry in self.log if entry[0] == channel]

        entries = entries[-count:]

        if params.get('include_token') == 'true':
            messages = [{'message': entry[2], 'timetoken': entry[1]} for entry in entries]
        else:
            messages = [entry[2] for entry in entries]

        if entries:
            start = entries[0][1]
            end = entries[-1][1]
        else:
            start = 0
            end = 0

        return httpx.Response(200, json=[messages, start, end])


    def here_now(self, segments, params):

        channel = segments[5]

        with self.lock:
            uuids = sorted(self.presence.get(channel, ()))

        body = dict()
        body['status'] = 200
        body['message'] = 'OK'
        body['service'] = 'Presence'
        body['uuids'] = uuids
        body['occupancy'] = len(uuids)

        return httpx.Response(200, json=body)


# end of class FakeService



@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):

    for variable in pnclient.config.environment.values():
        monkeypatch.delenv(variable, raising=False)

    monkeypatch.setenv('PNCLIENT_HOME', str(tmp_path))
    pnclient.config.reload()
    yield
    pnclient.config.reload()


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def make_context(service):

    contexts = list()

    def make(publish_key='pub', subscribe_key='sub'):
        transport = httpx.MockTransport(service.handler)
        frontend = pnclient.SyncFrontend(transport=transport)
        context = pnclient.Context(publish_key, subscribe_key, frontend, own=True, origin=service.origin)
        context.error_policy(pnclient.RETRY_ALL, False, delay=0)
        contexts.append(context)
        return context

    yield make

    for context in contexts:
        context.close()


@pytest.fixture
def context(make_context):
    return make_context()

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
