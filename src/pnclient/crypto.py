""" Message signing and symmetric encryption. Both are pluggable: a context
    holds one signature scheme and, optionally, one :class:`Cipher`.

    The default signature is the scheme expected by the origin service for
    signed publish requests: an MD5 hex digest over the publish key,
    subscribe key, secret key, channel, and serialized message, joined by
    slashes. The default cipher is AES-256-CBC with PKCS#7 padding, a key
    derived from the first 32 hexadecimal digits of the SHA-256 digest of
    the cipher key, and a fixed initialization vector; ciphertext travels
    as base64 text inside a JSON string.
"""

import base64
import binascii
import hashlib
import hmac
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher as _Cipher
from cryptography.hazmat.primitives.ciphers import algorithms, modes

from . import json
from .result import Code


legacy_iv = b'0123456789012345'


class Signature:
    """ Base class for signature schemes. Subclasses implement :func:`sign`,
        returning the text placed in the signature field of a publish
        request.
    """

    name = None

    def sign(self, publish_key, subscribe_key, secret_key, channel, message):
        raise NotImplementedError('Signature subclasses must implement sign()')


class MD5Signature(Signature):

    name = 'md5'

    def sign(self, publish_key, subscribe_key, secret_key, channel, message):
        fields = (publish_key, subscribe_key, secret_key, channel, message)
        plaintext = '/'.join(fields)
        return hashlib.md5(plaintext.encode()).hexdigest()


class HMACSignature(Signature):
    """ HMAC-SHA256 keyed by the secret key, over the same fields as
        :class:`MD5Signature` minus the secret key itself. The digest is
        URL-safe base64.
    """

    name = 'hmac-sha256'

    def sign(self, publish_key, subscribe_key, secret_key, channel, message):
        fields = (publish_key, subscribe_key, channel, message)
        plaintext = '/'.join(fields)

        digest = hmac.new(secret_key.encode(), plaintext.encode(), hashlib.sha256)
        digest = digest.digest()
        return base64.urlsafe_b64encode(digest).decode()


schemes = dict()
schemes[MD5Signature.name] = MD5Signature
schemes[HMACSignature.name] = HMACSignature


def signature(name):
    """ Return a new instance of the signature scheme registered as *name*.
    """

    try:
        scheme = schemes[name]
    except KeyError:
        raise ValueError('unknown signature scheme: ' + repr(name))

    return scheme()



class DecryptionFailure:
    """ Stands in for a single message that could not be decrypted. The
        *raw* value is the message as it arrived; *reason* describes what
        went wrong. Other messages in the same response are unaffected.
    """

    code = Code.DECRYPTION_ERROR

    def __init__(self, raw, reason):
        self.raw = raw
        self.reason = reason


    def __eq__(self, other):
        if isinstance(other, DecryptionFailure):
            return self.raw == other.raw
        return NotImplemented


    def __repr__(self):
        return "<DecryptionFailure: %s>" % (self.reason)


# end of class DecryptionFailure



class Cipher:
    """ Symmetric encryption of message values. If *random_iv* is True a
        fresh initialization vector is generated for each message and sent
        as the first 16 bytes of the ciphertext; both ends must agree on
        this setting.
    """

    block_bits = 128

    def __init__(self, cipher_key, random_iv=False):

        if cipher_key is None or cipher_key == '':
            raise ValueError('the cipher key must be a non-empty string')

        digest = hashlib.sha256(cipher_key.encode()).hexdigest()
        self.key = digest[:32].encode()
        self.random_iv = random_iv


    def _cipher(self, iv):
        return _Cipher(algorithms.AES(self.key), modes.CBC(iv))


    def encrypt(self, value):
        """ Serialize *value* to JSON, encrypt it, and return the base64
            text of the ciphertext.
        """

        plaintext = json.dumps(value)

        padder = padding.PKCS7(self.block_bits).padder()
        padded = padder.update(plaintext) + padder.finalize()

        if self.random_iv:
            iv = os.urandom(16)
        else:
            iv = legacy_iv

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        if self.random_iv:
            ciphertext = iv + ciphertext

        return base64.b64encode(ciphertext).decode()


    def decrypt(self, text):
        """ Inverse of :func:`encrypt`. Any failure along the way (the value
            is not a string, not base64, the padding is wrong, or the
            plaintext is not JSON) raises a ValueError.
        """

        if isinstance(text, str):
            pass
        else:
            raise ValueError('expected ciphertext as a string, got ' + type(text).__name__)

        try:
            ciphertext = base64.b64decode(text, validate=True)
        except binascii.Error as e:
            raise ValueError('ciphertext is not base64: ' + str(e))

        if self.random_iv:
            iv = ciphertext[:16]
            ciphertext = ciphertext[16:]
        else:
            iv = legacy_iv

        if len(ciphertext) == 0 or len(ciphertext) % 16 != 0:
            raise ValueError('ciphertext length is not a multiple of the block size')

        decryptor = self._cipher(iv).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(self.block_bits).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()

        try:
            return json.loads(plaintext)
        except (json.DecodeError, ValueError) as e:
            raise ValueError('decrypted message is not JSON: ' + str(e))


    def decrypt_message(self, text):
        """ Decrypt a single delivered message, returning a
            :class:`DecryptionFailure` in place of the value if decryption
            is not possible.
        """

        try:
            return self.decrypt(text)
        except ValueError as e:
            return DecryptionFailure(text, str(e))


# end of class Cipher


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
