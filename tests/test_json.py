import json
import pnclient


def test_json_encode_and_decode():
    encode_and_decode(json.dumps, json.loads, dump_is_bytes=False)


def test_pnclient_encode_and_decode():
    encode_and_decode(pnclient.json.dumps, pnclient.json.loads)


def test_compact_text():

    # Signatures are computed over the serialized message, which must be
    # the same text no matter which JSON library is in use.

    encoded = pnclient.json.dumps_text({'hello': 'world', 'list': [1, 2]})
    assert encoded == '{"hello":"world","list":[1,2]}'


def encode_and_decode(dumps, loads, dump_is_bytes=True):

    input_dictionary = dict()
    input_dictionary['list'] = [1, 2, 3, 'a', 'b', None, 'c', 'z']
    input_dictionary['dict'] = {'one': 1, 'two': 2}
    input_dictionary['none'] = None
    input_dictionary['true'] = True
    input_dictionary['false'] = False
    input_dictionary['unicode'] = 'café'

    encoded = dumps(input_dictionary)

    if dump_is_bytes:
        assert isinstance(encoded, bytes)
    else:
        assert isinstance(encoded, str)

    decoded = loads(encoded)
    assert decoded == input_dictionary


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
