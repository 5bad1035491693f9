import pytest

import pnclient
from pnclient import policy
from pnclient import request
from pnclient.cursor import Cursor
from pnclient.result import Code
from pnclient.transport import Failure, Reply, Sleep


retryable = (Code.TIMEOUT, Code.IO_ERROR, Code.HTTP_ERROR, Code.FORMAT_ERROR, Code.PUBLISH_FAILED)


@pytest.fixture
def context():
    context = pnclient.Context('pub', 'sub', origin='http://origin.test', uuid='me')
    yield context
    context.close()


def drive(cycle, outcomes):
    """ Run *cycle* against a scripted list of *outcomes*, returning the
        terminal result and every effect it yielded.
    """

    effects = list()
    outcomes = list(outcomes)
    sent = None

    while True:
        try:
            effect = cycle.send(sent)
        except StopIteration as stop:
            return stop.value, effects

        effects.append(effect)

        if isinstance(effect, Sleep):
            sent = None
        else:
            sent = outcomes.pop(0)


def failure_for(code):

    if code == Code.HTTP_ERROR:
        return Reply(500, b'{"error": true}')
    if code == Code.FORMAT_ERROR:
        return Reply(200, b'<html>')
    if code == Code.PUBLISH_FAILED:
        return Reply(200, b'[0, "Invalid"]')

    return Failure(code, 'simulated')


def test_mask_bits():

    everything = policy.ErrorPolicy(pnclient.RETRY_ALL)
    nothing = policy.ErrorPolicy(pnclient.RETRY_NONE)

    for code in retryable:
        assert everything.retry(code) == True
        assert nothing.retry(code) == False

        only = policy.ErrorPolicy(1 << code)
        assert only.retry(code) == True

        others = policy.ErrorPolicy(~(1 << code))
        assert others.retry(code) == False

    # These two bits are ignored, whatever the mask says.

    for code in (Code.OK, Code.OCCUPIED):
        assert everything.retry(code) == False
        assert policy.ErrorPolicy(1 << code).retry(code) == False


def test_default_mask_surfaces_malformed_responses(context):

    default = policy.ErrorPolicy(print=False)
    assert default.mask == pnclient.RETRY_DEFAULT
    assert default.retry(Code.FORMAT_ERROR) == False

    for code in retryable:
        if code != Code.FORMAT_ERROR:
            assert default.retry(code) == True

    built = request.Time(context)
    outcomes = (failure_for(Code.FORMAT_ERROR), Reply(200, b'[15000000000000000]'))
    result, effects = drive(policy.cycle(built, default), outcomes)

    assert result.code == Code.FORMAT_ERROR
    assert effects == [built]


def test_retried_when_bit_set(context):

    ok = Reply(200, b'[1, "Sent", "15000000000000001"]')

    for code in retryable:
        built = request.Publish(context, 'demo', 1)
        rules = policy.ErrorPolicy(1 << code, print=False)

        result, effects = drive(policy.cycle(built, rules), (failure_for(code), ok))

        assert result.code == Code.OK
        assert effects == [built, built]


def test_surfaced_when_bit_clear(context):

    ok = Reply(200, b'[1, "Sent", "15000000000000001"]')

    for code in retryable:
        built = request.Publish(context, 'demo', 1)
        rules = policy.ErrorPolicy(~(1 << code), print=False)

        result, effects = drive(policy.cycle(built, rules), (failure_for(code), ok))

        assert result.code == code
        assert effects == [built]


def test_retry_delay(context):

    built = request.Time(context)
    rules = policy.ErrorPolicy(print=False, delay=0.5)

    timeout = Failure(Code.TIMEOUT)
    result, effects = drive(policy.cycle(built, rules), (timeout, Reply(200, b'[1]')))

    assert result.code == Code.OK
    assert len(effects) == 3
    assert isinstance(effects[1], Sleep)
    assert effects[1].seconds == 0.5


def test_retry_budget(context):

    built = request.Time(context)
    rules = policy.ErrorPolicy(print=False, budget=0)

    result, effects = drive(policy.cycle(built, rules), (Failure(Code.TIMEOUT),))

    assert result.code == Code.TIMEOUT
    assert len(effects) == 1


def test_classify(context):

    built = request.HereNow(context, 'demo')

    result = policy.classify(built, Reply(403, b'{"status": 403, "message": "Forbidden"}'))
    assert result.code == Code.HTTP_ERROR
    assert result.body == {'status': 403, 'message': 'Forbidden'}

    result = policy.classify(built, Reply(502, b'Bad Gateway'))
    assert result.code == Code.HTTP_ERROR
    assert result.body is None

    result = policy.classify(built, Reply(200, b''))
    assert result.code == Code.FORMAT_ERROR

    result = policy.classify(built, Reply(200, b'[1, 2]'))
    assert result.code == Code.FORMAT_ERROR
    assert result.body == [1, 2]

    result = policy.classify(built, Failure(Code.IO_ERROR, 'connection refused'))
    assert result.code == Code.IO_ERROR
    assert result.text == 'connection refused'
    assert result.kind == 'here_now'


def test_cursor_advances_only_on_success(context):

    cursor = Cursor()
    built = request.Subscribe(context, ('a', 'b'))
    rules = policy.ErrorPolicy(print=False)

    outcomes = (Failure(Code.TIMEOUT), Reply(200, b'[[], "15000000000000009"]'))
    cycle = policy.cycle(built, rules, cursor)

    first = cycle.send(None)
    assert first is built

    second = cycle.send(outcomes[0])
    assert second is built
    assert cursor.position(('a',)) == '0'

    with pytest.raises(StopIteration):
        cycle.send(outcomes[1])

    assert cursor['a'] == '15000000000000009'
    assert cursor['b'] == '15000000000000009'


def test_print(context, capsys):

    built = request.Time(context)

    rules = policy.ErrorPolicy(~(1 << Code.IO_ERROR), print=True)
    drive(policy.cycle(built, rules), (Failure(Code.TIMEOUT), Failure(Code.IO_ERROR)))

    captured = capsys.readouterr()
    lines = captured.err.strip().split('\n')

    assert len(lines) == 2
    assert 'TIMEOUT' in lines[0]
    assert 'retrying' in lines[0]
    assert 'IO_ERROR' in lines[1]
    assert 'giving up' in lines[1]

    rules = policy.ErrorPolicy(print=False)
    drive(policy.cycle(built, rules), (Failure(Code.TIMEOUT), Reply(200, b'[1]')))

    captured = capsys.readouterr()
    assert captured.err == ''


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
