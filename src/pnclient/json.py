''' Wrapper module to select the most performant available library for the
    equivalent of :func:`json.loads` and :func:`json.dumps`. Every *dumps*
    variant returns compact bytes, so that a message serialized for signing
    is byte-for-byte the message put on the wire.
'''

msgspec = None
orjson = None
json = None

try:
    import msgspec
except ImportError:
    pass

if msgspec is None:
    try:
        import orjson
    except ImportError:
        pass

if msgspec is None and orjson is None:
    import json


def json_dumps(value):
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False).encode()


if msgspec is not None:
    encoder = msgspec.json.Encoder()
    decoder = msgspec.json.Decoder()
    dumps = encoder.encode
    loads = decoder.decode
    DecodeError = msgspec.DecodeError
elif orjson is not None:
    dumps = orjson.dumps
    loads = orjson.loads
    DecodeError = orjson.JSONDecodeError
else:
    dumps = json_dumps
    loads = json.loads
    DecodeError = json.JSONDecodeError



def dumps_text(value):
    """ Return the compact JSON encoding of *value* as a string.
    """

    return dumps(value).decode()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
