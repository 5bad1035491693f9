import pytest

from pnclient import dispatch, request
from pnclient import Code, Result


def test_complete_once(context):

    built = request.Time(context)
    context._claim()
    call = dispatch.Call(context, built)

    result = Result('time', Code.OK, 1, timetoken='1')
    assert call.complete(result) is result
    assert context.busy == False
    assert context.last_result is result

    with pytest.raises(RuntimeError):
        call.complete(result)

    # Abandoning after completion has no effect.
    call.abandon()
    assert context.last_result is result


def test_abandon_releases(context):

    built = request.Time(context)
    context._claim()
    call = dispatch.Call(context, built)

    call.abandon()
    assert context.busy == False
    assert context.last_result is None


def test_subscribe_channels_are_copied(context):

    received = list()

    def callback(context, code, channels, body):
        channels.append('scribbled')
        received.append(channels)

    channels = ['a', 'b']
    result = Result('subscribe', Code.OK, ['x', 'y'], messages=['x', 'y'], channels=channels)

    dispatch.deliver(context, callback, result)

    assert received == [['a', 'b', 'scribbled']]
    assert result.channels == ['a', 'b']


def test_failed_subscribe_has_empty_channels(context):

    received = list()

    def callback(context, code, channels, body):
        received.append((code, channels, body))

    result = Result('subscribe', Code.TIMEOUT, text='no response')
    dispatch.deliver(context, callback, result)

    assert received == [(Code.TIMEOUT, [], None)]


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
